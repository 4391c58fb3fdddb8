'''
Exceptions raised inside the rendering pipeline. None of these escape the public entry points;
each is caught at the boundary of the stage that produces it and converted into fallback markup.
'''


class ReadmarkError(Exception):
    pass


class ScanError(ReadmarkError):
    '''The math scanner could not make sense of the delimiters. Math is then treated as text.'''


class RenderError(ReadmarkError):
    '''A single math expression failed to render.'''

    def __init__(self, msg: str, latex: str):
        super().__init__(msg)
        self.latex = latex


class EngineUnavailable(ReadmarkError):
    '''The math rendering engine could not be initialised.'''


class TransformError(ReadmarkError):
    '''The markdown-to-HTML conversion failed outright.'''

    def __init__(self, msg: str, stage: str):
        super().__init__(msg)
        self.stage = stage


class FatalFallback(ReadmarkError):
    '''Even the plain-text fallback could not be produced.'''
