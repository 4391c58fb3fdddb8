r'''
Renders individual math expressions to HTML.

The actual conversion is done by an "engine" (by default, latex2mathml, producing MathML <math>
elements for the browser to render). The engine is created on first use, by a LazyEngine shared
between all pipeline calls. If it cannot be created, every expression is shown as its own Latex
source in a neutral "fallback" container. If the engine is fine but a particular expression
cannot be rendered, that expression alone is shown in an error-styled container.

Before rendering, simple macros are expanded (by default, \R, \N, \Z, \Q and \C for the
blackboard-bold number sets, which latex2mathml does not know).
'''

from __future__ import annotations
from .error import EngineUnavailable, RenderError
from .progress import Progress
from .segments import MathSpan, RenderedMath

import latex2mathml.converter

from concurrent.futures import ThreadPoolExecutor
import html
import re
import threading
from typing import Callable, Mapping, Optional, Protocol, Sequence


NAME = 'math'  # For progress/error messages

INLINE_CLASS = 'math-inline'
DISPLAY_CLASS = 'math-display'
FALLBACK_CLASS = 'math-fallback'
ERROR_CLASS = 'math-error'

MATH_CSS = r'''
    .math-display {
        display: block;
        text-align: center;
        margin: 1rem 0;
        overflow-x: auto;
    }

    .math-inline {
        display: inline;
    }

    .math-fallback-inline,
    .math-fallback-display {
        font-family: monospace;
        padding: 0.2rem 0.4rem;
        border-radius: 4px;
        border: 1px dashed #666;
    }

    .math-error-inline,
    .math-error-display {
        font-family: monospace;
        background-color: #2a1a1a;
        color: #ff6b6b;
        padding: 0.2rem 0.4rem;
        border-radius: 4px;
        border: 1px solid #ff6b6b;
    }

    .math-fallback-display,
    .math-error-display {
        display: block;
        text-align: center;
        margin: 1rem 0;
        padding: 1rem;
    }

    .table-wrapper {
        overflow-x: auto;
        max-width: 100%;
    }
'''


DEFAULT_MACROS = {
    r'\R': r'\mathbb{R}',
    r'\N': r'\mathbb{N}',
    r'\Z': r'\mathbb{Z}',
    r'\Q': r'\mathbb{Q}',
    r'\C': r'\mathbb{C}',
}

COMMAND_RE = re.compile(r'\\[a-zA-Z]+')


class MathEngine(Protocol):
    def render(self, latex: str, display: bool) -> str:
        ...


def expand_macros(latex: str, macros: Mapping[str, str]) -> str:
    '''
    Replaces each whole Latex command found in 'macros' with its definition (once; definitions
    are not themselves expanded). '\\Rightarrow' is a different command from '\\R', so it's left
    alone.
    '''
    if not macros:
        return latex
    return COMMAND_RE.sub(lambda match: macros.get(match.group(0), match.group(0)), latex)


def validate_latex(content: str) -> tuple[bool, Optional[str]]:
    '''
    A cheap sanity check on Latex math code, catching unmatched braces and parentheses.
    Escaped braces (\\{ and \\}) are not counted.
    '''
    issues = []
    unescaped = re.sub(r'\\.', '', content)

    depth = 0
    for ch in unescaped:
        if ch == '{':
            depth += 1
        elif ch == '}':
            depth -= 1
            if depth < 0:
                break
    if depth != 0:
        issues.append('Unmatched braces')

    if unescaped.count('(') != unescaped.count(')'):
        issues.append('Unmatched parentheses')

    return (not issues, '; '.join(issues) if issues else None)


class Latex2MathMLEngine:
    '''Converts Latex math to MathML using latex2mathml.'''

    def __init__(self):
        # Fail here, rather than on every expression, if the converter doesn't work at all.
        latex2mathml.converter.convert('x')

    def render(self, latex: str, display: bool) -> str:
        valid, issue = validate_latex(latex)
        if not valid and 'braces' in issue:
            raise RenderError(issue, latex)

        return latex2mathml.converter.convert(latex, display = 'block' if display else 'inline')


class LazyEngine:
    '''
    Creates the engine on first request, exactly once, even with concurrent first requests.

    The engine is only published once its factory has returned, so a caller that abandons a
    pipeline call part way through cannot leave a half-built engine behind. If the factory fails,
    the failure is remembered and get() raises EngineUnavailable until reset() is called.
    '''

    def __init__(self, factory: Callable[[], MathEngine] = Latex2MathMLEngine,
                 progress: Progress | None = None):
        self._factory = factory
        self._progress = progress or Progress()
        self._lock = threading.Lock()
        self._engine: MathEngine | None = None
        self._failure: Exception | None = None

    @property
    def initialised(self) -> bool:
        return self._engine is not None

    @property
    def failed(self) -> bool:
        return self._failure is not None

    def get(self) -> MathEngine:
        engine = self._engine
        if engine is not None:
            return engine

        with self._lock:
            if self._engine is None and self._failure is None:
                try:
                    engine = self._factory()
                except Exception as e:
                    self._failure = e
                    self._progress.error(NAME, msg = 'Could not initialise math engine',
                                         exception = e)
                else:
                    self._engine = engine

            if self._engine is None:
                raise EngineUnavailable(f'Math engine unavailable: {self._failure}')

            return self._engine

    def reset(self):
        '''Forgets any previous initialisation failure, so the next get() tries again.'''
        with self._lock:
            self._failure = None


class MathRenderer:
    def __init__(self, engine: LazyEngine, progress: Progress | None = None,
                 max_workers: int = 4, macros: Mapping[str, str] | None = None):
        self.engine = engine
        self.progress = progress or Progress()
        self.max_workers = max_workers
        self.macros = DEFAULT_MACROS if macros is None else macros


    def fallback_markup(self, span: MathSpan) -> str:
        '''Neutral rendering, used when there's no engine to render with.'''
        delim = span.kind.delimiter
        return (f'<span class="{FALLBACK_CLASS}-{span.kind.value}" '
                f'title="Math formula (renderer not loaded)">'
                f'{html.escape(delim + span.content + delim)}</span>')


    def error_markup(self, span: MathSpan, message: str = 'Rendering failed') -> str:
        delim = span.kind.delimiter
        return (f'<span class="{ERROR_CLASS}-{span.kind.value}" '
                f'title="Math error: {html.escape(message)}" data-math-error="true">'
                f'{html.escape(delim + span.content + delim)}</span>')


    def render(self, span: MathSpan, index: int = 0) -> RenderedMath:
        '''Renders one span. Never raises; failures produce fallback or error markup.'''
        try:
            engine = self.engine.get()
        except EngineUnavailable:
            return RenderedMath(index, self.fallback_markup(span), False)

        try:
            output = engine.render(expand_macros(span.content, self.macros), span.is_display)
        except Exception as e:
            self.progress.warning(NAME, msg = f'Could not render "{span.original_text}": {e}')
            return RenderedMath(index, self.error_markup(span, str(e) or e.__class__.__name__),
                                False)

        css_class = DISPLAY_CLASS if span.is_display else INLINE_CLASS
        return RenderedMath(index, f'<span class="{css_class}">{output}</span>', True)


    def render_batch(self, spans: Sequence[MathSpan]) -> dict[int, RenderedMath]:
        '''
        Renders a list of spans, returning results keyed by list position. Each expression is
        independent, so they're rendered concurrently where max_workers allows.
        '''
        if len(spans) == 0:
            return {}

        if self.max_workers <= 1 or len(spans) == 1:
            results = [self.render(span, index) for index, span in enumerate(spans)]

        else:
            with ThreadPoolExecutor(max_workers = min(self.max_workers, len(spans)),
                                    thread_name_prefix = 'readmark-math') as executor:
                results = list(executor.map(self.render, spans, range(len(spans))))

        return {result.index: result for result in results}
