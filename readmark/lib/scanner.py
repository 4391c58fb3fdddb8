'''
Finds $...$ and $$...$$ math in raw markdown text.

The scanner works one character position at a time, in the same spirit as a replacement
processor: at each unescaped position it tries, in order, a code span, display math and inline
math, and the first one to match claims the text. This means display math always wins over inline
math at the same position, and nothing inside `...` or a fenced or indented code block is ever
taken as math.

Inline math must also "look like math" (see INDICATORS), so that text such as "costs $5 or $6" is
left alone. The indicator list is a tuning knob, not a correctness guarantee, and can be replaced
per scanner.
'''

from __future__ import annotations
from .error import ScanError
from .segments import MathKind, MathSpan

import re
from typing import Iterable, NamedTuple


NAME = 'scanner'  # For progress/error messages

INDICATORS = [
    re.compile(r'[+\-*/=<>]'),        # Operators
    re.compile(r'\\[a-zA-Z]+'),       # Latex commands
    re.compile(r'[{}^_]'),            # Latex grouping, super/subscripts
    re.compile(r'\d'),                # Numbers
    re.compile(r'[a-zA-Z]\d'),        # Variables with numeric suffixes
    re.compile(r'\([^)]*\)'),         # Parenthesised content
    re.compile(r'\[[^\]]*\]'),        # Bracketed content
    re.compile(r'^[a-zA-Z]$'),        # A lone variable
]

FENCE_OPEN_RE = re.compile(
    r'''(?xm)
    ^ (?P<indent> [ \t]* )
    (?P<fence> `{3,} | ~{3,} )
    (?P<info> [^\n]* ) $
    ''')

CODE_SPAN_RE = re.compile(
    r'''(?xs)
    (?P<tic> `+ ) (?!`)
    (?P<code> (?: (?! \n [ \t]* \n ) . )+? )
    (?<!`) (?P=tic) (?!`)
    ''')

BACKTICK_RUN_RE = re.compile('`+')

LINE_RE = re.compile(r'(?m)^(?P<line>[^\n]*)\n?')
INDENTED_LINE_RE = re.compile(r'(?: {4}|\t)')
LIST_ITEM_RE = re.compile(r' {0,3}(?:[*+-]|[0-9]+[.)])(?:[ \t]|$)')


class CodeBlock(NamedTuple):
    start: int
    end: int
    closed: bool


def find_fenced_blocks(text: str) -> list[CodeBlock]:
    '''
    Locates ```/~~~ fenced code blocks. A fence that is never closed runs to the end of the text
    (and is reported as not closed).
    '''
    blocks = []
    pos = 0
    while True:
        match = FENCE_OPEN_RE.search(text, pos)
        if match is None:
            break

        fence = match.group('fence')
        if fence[0] == '`' and '`' in match.group('info'):
            # Not a fence opener, by the usual rules; it's an inline code span.
            pos = match.end()
            continue

        close_re = re.compile(rf'(?m)^[ \t]*{re.escape(fence[0])}{{{len(fence)},}}[ \t]*$')
        close_match = close_re.search(text, match.end())
        if close_match is None:
            blocks.append(CodeBlock(match.start(), len(text), False))
            break

        blocks.append(CodeBlock(match.start(), close_match.end(), True))
        pos = close_match.end()

    return blocks


def count_fenced_code_blocks(text: str) -> int:
    return sum(1 for block in find_fenced_blocks(text) if block.closed)


def find_indented_blocks(text: str,
                         fenced_blocks: list[CodeBlock] | None = None) -> list[CodeBlock]:
    '''
    Locates indented code blocks: lines indented by four spaces or a tab, following a blank line
    (or the start of the text). Indented lines that continue a paragraph or a list item are not
    code. Lines inside 'fenced_blocks' are skipped.
    '''
    if fenced_blocks is None:
        fenced_blocks = find_fenced_blocks(text)

    blocks = []
    block_start = None
    block_end = None
    prev_blank = True
    in_list = False
    fence_index = 0

    for line_match in LINE_RE.finditer(text):
        line_start = line_match.start()
        if line_start == len(text):
            break
        line = line_match.group('line')

        while fence_index < len(fenced_blocks) and fenced_blocks[fence_index].end <= line_start:
            fence_index += 1
        in_fence = (fence_index < len(fenced_blocks)
                    and fenced_blocks[fence_index].start <= line_start)

        if not in_fence and not line.strip():
            prev_blank = True
            continue

        if not in_fence and INDENTED_LINE_RE.match(line):
            if block_start is not None:
                block_end = line_match.end('line')
            elif prev_blank and not in_list:
                block_start = line_start
                block_end = line_match.end('line')
            prev_blank = False
            continue

        # An unindented line (or part of a fenced block) ends any indented block.
        if block_start is not None:
            blocks.append(CodeBlock(block_start, block_end, True))
            block_start = None

        if in_fence:
            in_list = False
        elif LIST_ITEM_RE.match(line):
            in_list = True
        elif prev_blank:
            in_list = False
        prev_blank = False

    if block_start is not None:
        blocks.append(CodeBlock(block_start, block_end, True))

    return blocks


def _is_escaped(text: str, index: int, floor: int = 0) -> bool:
    n_backslashes = 0
    index -= 1
    while index >= floor and text[index] == '\\':
        n_backslashes += 1
        index -= 1
    return n_backslashes % 2 == 1


class MathScanner:
    def __init__(self, indicators: Iterable[re.Pattern] | None = None):
        self.indicators = list(INDICATORS if indicators is None else indicators)


    def looks_like_math(self, content: str) -> bool:
        return bool(content) and any(regex.search(content) for regex in self.indicators)


    def scan(self, text: str) -> list[MathSpan]:
        '''
        Returns the math spans of 'text', in ascending order of position. Unmatched delimiters are
        simply left as text.
        '''
        try:
            return self._scan(text or '')
        except Exception as e:
            raise ScanError(f'Could not scan text for math: {e}') from e


    def _scan(self, text: str) -> list[MathSpan]:
        fenced_blocks = find_fenced_blocks(text)
        code_blocks = sorted(fenced_blocks + find_indented_blocks(text, fenced_blocks))
        block_index = 0
        spans = []

        escaped = False
        i = 0
        while i < len(text):
            if block_index < len(code_blocks) and i >= code_blocks[block_index].start:
                # Jump over fenced and indented code entirely.
                i = code_blocks[block_index].end
                block_index += 1
                escaped = False
                continue

            limit = (code_blocks[block_index].start if block_index < len(code_blocks)
                     else len(text))
            ch = text[i]

            if ch == '\\':
                escaped = not escaped
                i += 1
                continue

            if not escaped:
                if ch == '`':
                    match = CODE_SPAN_RE.match(text, i, limit) or BACKTICK_RUN_RE.match(text, i)
                    i = match.end()
                    continue

                if ch == '$':
                    span = (self._match_display(text, i, limit)
                            or self._match_inline(text, i, limit))
                    if span is not None:
                        spans.append(span)
                        i = span.source_end
                        continue

            escaped = False
            i += 1

        return spans


    def _match_display(self, text: str, start: int, limit: int) -> MathSpan | None:
        if not text.startswith('$$', start):
            return None

        # The closing marker is the next unescaped '$$'; an escaped '\$' is part of the body.
        end = start + 2
        while True:
            end = text.find('$$', end, limit)
            if end == -1:
                return None
            if not _is_escaped(text, end, start + 2):
                break
            end += 1

        if end == start + 2:
            return None

        body = text[start + 2:end]
        if not body.strip():
            return None

        return MathSpan(content = body.strip(),
                        kind = MathKind.DISPLAY,
                        source_start = start,
                        source_end = end + 2,
                        original_text = text[start:end + 2])


    def _match_inline(self, text: str, start: int, limit: int) -> MathSpan | None:
        line_end = text.find('\n', start, limit)
        if line_end == -1:
            line_end = limit

        end = start + 1
        while True:
            end = text.find('$', end, line_end)
            if end == -1:
                return None
            if not _is_escaped(text, end, start + 1):
                break
            end += 1

        body = text[start + 1:end]
        if not body or body[0].isspace() or body[-1].isspace():
            return None

        # "$5 and $6": a closing marker directly followed by a digit is a price, not math.
        if end + 1 < len(text) and text[end + 1].isdigit():
            return None

        if not self.looks_like_math(body):
            return None

        return MathSpan(content = body,
                        kind = MathKind.INLINE,
                        source_start = start,
                        source_end = end + 1,
                        original_text = text[start:end + 1])


def contains_math(text: str) -> bool:
    '''Quick check for whether 'text' contains anything the scanner would treat as math.'''
    return bool(text) and '$' in text and bool(MathScanner().scan(text))
