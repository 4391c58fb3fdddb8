'''
# API entry point

Renders markdown containing Latex math (as extracted from documents, or written by a chat model)
into HTML:

    import readmark
    result = readmark.process_markdown(text)
    result.markup, result.stats, result.succeeded

The module-level functions share one default Pipeline (and therefore one math engine, created on
first use). Pass a Pipeline of your own to use a different configuration.
'''

from .lib.config import ProcessorConfig
from .lib.math_renderer import MATH_CSS, LazyEngine, Latex2MathMLEngine, MathRenderer, validate_latex
from .lib.pipeline import Pipeline, feature_support, validate_syntax
from .lib.progress import Progress
from .lib.scanner import MathScanner, contains_math
from .lib.segments import MathKind, MathSpan, ProcessingResult, RenderedMath, Stats, SyntaxReport
from .lib.text_stats import html_to_plain_text, reading_time, word_count

import threading
from typing import Optional


_default_pipeline: Optional[Pipeline] = None
_default_pipeline_lock = threading.Lock()


def default_pipeline() -> Pipeline:
    global _default_pipeline
    if _default_pipeline is None:
        with _default_pipeline_lock:
            if _default_pipeline is None:
                _default_pipeline = Pipeline()
    return _default_pipeline


def process_markdown(raw_text: Optional[str], pipeline: Optional[Pipeline] = None) -> ProcessingResult:
    return (pipeline or default_pipeline()).process(raw_text)


async def process_markdown_async(raw_text: Optional[str],
                                 pipeline: Optional[Pipeline] = None) -> ProcessingResult:
    return await (pipeline or default_pipeline()).process_async(raw_text)


def process_markdown_fast(raw_text: Optional[str], pipeline: Optional[Pipeline] = None) -> str:
    return (pipeline or default_pipeline()).process_fast(raw_text)
