'''
The rendering pipeline: raw markdown-with-math in, HTML and statistics out.

    raw text
      -> scan for math spans
      -> split into text and math segments, joined with placeholders
      -> markdown conversion (in a worker thread) || math rendering (fanned out per expression)
      -> reconstruct (placeholders -> rendered math)
      -> post-process (scrollable tables, blank lines)

Pipeline.process() always returns a ProcessingResult. Failures in a single math expression are
handled by the renderer itself. Anything that goes wrong after scanning puts the whole call into
the fallback state, where the input is shown as escaped text with line breaks.
'''

from __future__ import annotations
from .config import ProcessorConfig
from .error import FatalFallback, ScanError
from .math_renderer import LazyEngine, MathRenderer
from .placeholders import join_segments, reconstruct, sanitise, segment
from .post_processor import post_process
from .progress import Progress
from .scanner import MathScanner, count_fenced_code_blocks
from .segments import MathKind, ProcessingResult, Stats, SyntaxReport
from .transform import MarkdownTransform

import asyncio
from concurrent.futures import ThreadPoolExecutor
import enum
import html
import re
import time


NAME = 'pipeline'  # For progress/error messages

TABLE_TAG_RE = re.compile(r'<table\b', re.IGNORECASE)


class Stage(enum.Enum):
    SCANNING = 'scanning'
    RENDERING = 'rendering'
    RECONSTRUCTING = 'reconstructing'
    POST_PROCESSING = 'post-processing'


def fallback_markup(text: str) -> str:
    '''Escaped text, with <br> for each newline and no other structure.'''
    return html.escape(text).replace('\n', '<br>')


def _elapsed_ms(start_time: float) -> int:
    return int(round((time.perf_counter() - start_time) * 1000))


class Pipeline:
    def __init__(self,
                 config: ProcessorConfig | None = None,
                 engine: LazyEngine | None = None,
                 scanner: MathScanner | None = None):
        self.config = config or ProcessorConfig()
        self.progress: Progress = self.config.progress
        self.scanner = scanner or MathScanner()
        self.engine = engine or LazyEngine(self.config.engine_factory, self.progress)
        self.renderer = MathRenderer(self.engine, self.progress, self.config.max_workers,
                                     self.config.macros)
        self.transform = MarkdownTransform(self.config)


    def process(self, raw_text: str | None) -> ProcessingResult:
        start_time = time.perf_counter()

        if isinstance(raw_text, bytes):
            raw_text = raw_text.decode('utf-8', errors = 'replace')

        if not raw_text:
            return ProcessingResult('', Stats(), True)

        stage = Stage.SCANNING
        try:
            text = sanitise(str(raw_text))

            try:
                spans = self.scanner.scan(text)
            except ScanError as e:
                self.progress.warning(NAME, msg = f'{e}; treating all math as text')
                spans = []

            segments = segment(text, spans)
            working_text = join_segments(segments)

            stage = Stage.RENDERING
            if spans:
                # The markdown conversion and the math share no data, so run them side by side.
                with ThreadPoolExecutor(max_workers = 1,
                                        thread_name_prefix = 'readmark-transform') as executor:
                    transform_future = executor.submit(self.transform.convert, working_text)
                    rendered = self.renderer.render_batch(spans)
                    transformed = transform_future.result()
            else:
                rendered = {}
                transformed = self.transform.convert(working_text)

            stage = Stage.RECONSTRUCTING
            markup = reconstruct(transformed, spans, rendered, self.renderer.error_markup)

            stage = Stage.POST_PROCESSING
            markup = post_process(markup, self.config.table_wrapper_class)

        except Exception as e:
            return self._fallback(raw_text, stage, e, start_time)

        stats = Stats(
            inline_math_count  = sum(1 for span in spans if span.kind is MathKind.INLINE),
            display_math_count = sum(1 for span in spans if span.kind is MathKind.DISPLAY),
            code_block_count   = count_fenced_code_blocks(text),
            table_count        = len(TABLE_TAG_RE.findall(transformed)),
            processing_time_ms = _elapsed_ms(start_time),
        )
        self.progress.progress(
            NAME,
            msg = (f'rendered {len(spans)} math expression(s), {stats.table_count} table(s) and '
                   f'{stats.code_block_count} code block(s) in {stats.processing_time_ms} ms'))

        return ProcessingResult(markup, stats, True)


    def _fallback(self, raw_text, stage: Stage, exception: Exception,
                  start_time: float) -> ProcessingResult:
        error_message = f'{stage.value} stage failed: {exception}'
        self.progress.error(NAME, msg = f'{stage.value} stage failed; showing plain text',
                            exception = exception)

        try:
            try:
                markup = fallback_markup(sanitise(str(raw_text)))
            except Exception as e:
                raise FatalFallback(f'Could not produce fallback markup: {e}') from e

        except FatalFallback as e:
            self.progress.error(NAME, exception = e)
            return ProcessingResult('', Stats(processing_time_ms = _elapsed_ms(start_time)),
                                    False, f'{error_message}; {e}')

        return ProcessingResult(markup,
                                Stats(processing_time_ms = _elapsed_ms(start_time)),
                                False,
                                error_message)


    async def process_async(self, raw_text: str | None) -> ProcessingResult:
        '''
        Runs process() in the event loop's default executor. Cancelling the awaiting task simply
        abandons the result.
        '''
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.process, raw_text)


    def process_fast(self, raw_text: str | None) -> str:
        '''Just the markup, for callers that don't want statistics.'''
        return self.process(raw_text).markup


def validate_syntax(raw_text: str | None) -> SyntaxReport:
    '''
    Advisory pre-check for common delimiter problems. The pipeline copes with all of these
    anyway; this just lets a caller warn the user.
    '''
    text = raw_text or ''
    errors = []

    if text.count('$') % 2 != 0:
        errors.append('Unmatched math delimiters ($)')

    if '$$$$' in text:
        errors.append('Invalid math delimiter pattern ($$$$)')

    if text.count('```') % 2 != 0:
        errors.append('Unclosed code block (```)')

    return SyntaxReport(len(errors) == 0, errors)


def feature_support() -> dict[str, bool]:
    return {
        'math': True,
        'tables': True,
        'strikethrough': True,
        'task_lists': True,
        'autolinks': True,
        'fenced_code': True,
        'footnotes': False,
        'emoji': False,
        'code_highlighting': False,
    }
