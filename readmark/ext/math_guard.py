r'''
# Math Guard Extension

Prepares Python Markdown to receive text in which math has already been cut out and replaced by
placeholders (see readmark.lib.placeholders):

* '$' becomes an escapable character, so that '\$' in the source is output as a literal '$'. (The
  math scanner has already declined to treat '\$' as a delimiter.)

* If 'escape_html' is True (the default), raw HTML in the source is not passed through, but shown
  as text. Text from OCR and chat models should never be able to inject markup of its own.
'''

import markdown


NAME = 'readmark.math_guard'  # For error messages


class MathGuardExtension(markdown.Extension):
    def __init__(self, **kwargs):
        self.config = {
            'escape_html': [
                True,
                'If True, raw HTML in the markdown source is escaped (displayed as text), rather '
                'than being passed through to the output.'
            ],
        }
        super().__init__(**kwargs)


    def extendMarkdown(self, md):
        md.registerExtension(self)
        if '$' not in md.ESCAPED_CHARS:
            md.ESCAPED_CHARS.append('$')

        if self.getConfig('escape_html'):
            md.preprocessors.deregister('html_block', strict = False)
            md.inlinePatterns.deregister('html', strict = False)


def makeExtension(**kwargs):
    return MathGuardExtension(**kwargs)
