'''
Configuration for the rendering pipeline.

A ProcessorConfig holds everything (apart from the input text) that determines how text is
rendered. The defaults give GitHub-flavoured markdown with MathML math and escaped raw HTML.
'''

from __future__ import annotations
from .math_renderer import DEFAULT_MACROS, Latex2MathMLEngine, MathEngine
from .progress import Progress

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List


DEFAULT_EXTENSIONS = [
    'tables',
    'sane_lists',
    'pymdownx.highlight',       # Lets us stop superfences from using Pygments
    'pymdownx.superfences',     # Fenced code, including inside lists and blockquotes
    'pymdownx.betterem',        # Emphasis, with saner handling of unmatched markers
    'pymdownx.tilde',           # ~~strikethrough~~
    'pymdownx.tasklist',        # - [ ] and - [x]
    'pymdownx.magiclink',       # Bare URLs become links
]

DEFAULT_EXTENSION_CONFIGS: Dict[str, Dict[str, Any]] = {
    'pymdownx.highlight': {
        'use_pygments': False,
    },
    'pymdownx.tilde': {
        'subscript': False,
    },
}


@dataclass
class ProcessorConfig:
    extensions: List[Any]                   = field(default_factory = lambda: list(DEFAULT_EXTENSIONS))
    extension_configs: Dict[str, Dict[str, Any]] = field(
        default_factory = lambda: {k: dict(v) for k, v in DEFAULT_EXTENSION_CONFIGS.items()})
    escape_html: bool                       = True
    element_classes: Dict[str, str]         = field(default_factory = dict)
    table_wrapper_class: str                = 'table-wrapper'
    max_workers: int                        = 4
    engine_factory: Callable[[], MathEngine] = Latex2MathMLEngine
    macros: Dict[str, str]                  = field(default_factory = lambda: dict(DEFAULT_MACROS))
    progress: Progress                      = field(default_factory = Progress)
