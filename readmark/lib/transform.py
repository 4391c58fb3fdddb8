'''
The structural markdown-to-HTML conversion, using Python Markdown.

By the time text gets here, math has been replaced with placeholders, which Python Markdown passes
through untouched. A new Markdown instance is created for each conversion, since Markdown objects
carry per-document state and aren't safe to share between threads.
'''

from __future__ import annotations
from .config import ProcessorConfig
from .error import TransformError
from readmark.ext.classes import ClassesExtension
from readmark.ext.math_guard import MathGuardExtension

import markdown


NAME = 'transform'  # For progress/error messages


class MarkdownTransform:
    def __init__(self, config: ProcessorConfig | None = None):
        self.config = config or ProcessorConfig()


    def _make_markdown(self) -> markdown.Markdown:
        config = self.config
        return markdown.Markdown(
            extensions = [
                *config.extensions,
                MathGuardExtension(escape_html = config.escape_html),
                ClassesExtension(element_classes = config.element_classes,
                                 progress = config.progress),
            ],
            extension_configs = config.extension_configs,
            output_format = 'html'
        )


    def convert(self, text: str) -> str:
        '''Converts markdown to HTML, raising TransformError if Python Markdown fails.'''
        try:
            return self._make_markdown().convert(text)
        except Exception as e:
            raise TransformError(f'Markdown conversion failed: {e}', stage = NAME) from e
