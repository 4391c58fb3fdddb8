'''
Value types passed between pipeline stages. All of them live for a single pipeline call.
'''

from __future__ import annotations

from dataclasses import dataclass, field
import enum
from typing import Optional, Union


class MathKind(enum.Enum):
    INLINE = 'inline'
    DISPLAY = 'display'

    @property
    def delimiter(self) -> str:
        return '$$' if self is MathKind.DISPLAY else '$'


@dataclass(frozen = True)
class MathSpan:
    content: str
    kind: MathKind
    source_start: int
    source_end: int
    original_text: str

    def __post_init__(self):
        if self.source_start >= self.source_end:
            raise ValueError(f'Empty or inverted math span ({self.source_start}, {self.source_end})')

    @property
    def is_display(self) -> bool:
        return self.kind is MathKind.DISPLAY

    def overlaps(self, start: int, end: int) -> bool:
        return self.source_start < end and start < self.source_end


@dataclass(frozen = True)
class TextSegment:
    text: str


@dataclass(frozen = True)
class MathSegment:
    index: int
    span: MathSpan


Segment = Union[TextSegment, MathSegment]


@dataclass(frozen = True)
class RenderedMath:
    index: int
    markup: str
    succeeded: bool


@dataclass
class Stats:
    inline_math_count: int = 0
    display_math_count: int = 0
    code_block_count: int = 0
    table_count: int = 0
    processing_time_ms: int = 0


@dataclass
class ProcessingResult:
    markup: str
    stats: Stats = field(default_factory = Stats)
    succeeded: bool = True
    error_message: Optional[str] = None


@dataclass
class SyntaxReport:
    is_valid: bool
    errors: list[str] = field(default_factory = list)
