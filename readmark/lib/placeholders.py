'''
Placeholder substitution and reconstruction.

Each math span is cut out of the source and replaced with a token of the form

    U+FDD0 "rm-math:" <index> U+FDD1

before the text goes anywhere near Python Markdown. U+FDD0 and U+FDD1 are Unicode noncharacters,
reserved for internal use, and are stripped from the raw input beforehand, so a token cannot be
forged by user content. (STX and ETX, as used by Python Markdown's own placeholders, won't do here:
Python Markdown strips them from its input.) Nothing in the token means anything to markdown.

Once the markdown has been converted, reconstruct() walks the output from left to right and swaps
each token for its rendered math.
'''

from __future__ import annotations
from .segments import MathSegment, MathSpan, RenderedMath, Segment, TextSegment

import html
import re
from typing import Callable, Iterator, Mapping, Sequence, Union


TOKEN_OPEN = '\ufdd0'
TOKEN_CLOSE = '\ufdd1'
PLACEHOLDER_PREFIX = f'{TOKEN_OPEN}rm-math:'
PLACEHOLDER_RE = re.compile(f'{PLACEHOLDER_PREFIX}(?P<index>[0-9]+){TOKEN_CLOSE}')


def sanitise(text: str) -> str:
    return text.replace(TOKEN_OPEN, '').replace(TOKEN_CLOSE, '')


def placeholder(index: int) -> str:
    return f'{PLACEHOLDER_PREFIX}{index}{TOKEN_CLOSE}'


def segment(text: str, spans: Sequence[MathSpan]) -> list[Segment]:
    '''
    Splits 'text' into an ordered list of text and math segments. Span i (in order of position)
    receives index i.
    '''
    ordered = sorted(spans, key = lambda span: span.source_start)
    segments: list[Segment] = []
    pos = 0
    for index, span in enumerate(ordered):
        if span.source_start < pos:
            raise ValueError(f'Overlapping math spans at offset {span.source_start}')

        if pos < span.source_start:
            segments.append(TextSegment(text[pos:span.source_start]))
        segments.append(MathSegment(index, span))
        pos = span.source_end

    if pos < len(text):
        segments.append(TextSegment(text[pos:]))

    return segments


def substitute(text: str, spans: Sequence[MathSpan]) -> tuple[str, list[Segment]]:
    '''
    Replaces each span in 'text' with its placeholder, returning the working text along with the
    segments it was built from.
    '''
    segments = segment(text, spans)
    return join_segments(segments), segments


def join_segments(segments: Sequence[Segment]) -> str:
    return ''.join(
        placeholder(seg.index) if isinstance(seg, MathSegment) else seg.text
        for seg in segments
    )


def split_placeholders(text: str) -> Iterator[Union[str, int]]:
    '''
    Yields the literal text between placeholders (as str) and the placeholder indexes (as int),
    in document order. Anything that merely resembles a placeholder is yielded as literal text.
    '''
    pos = 0
    literal_start = 0
    while True:
        open_index = text.find(TOKEN_OPEN, pos)
        if open_index == -1:
            break

        match = PLACEHOLDER_RE.match(text, open_index)
        if match is None:
            pos = open_index + 1
            continue

        if literal_start < open_index:
            yield text[literal_start:open_index]
        yield int(match.group('index'))
        pos = literal_start = match.end()

    if literal_start < len(text):
        yield text[literal_start:]


def _ends_inside_tag(literal: str, inside_tag: bool) -> bool:
    # Converted markdown escapes '<' and '>' everywhere except in markup itself, so the last one
    # seen says whether we're between '<' and '>'.
    open_index = literal.rfind('<')
    close_index = literal.rfind('>')
    if open_index == close_index:  # Neither
        return inside_tag
    return open_index > close_index


def reconstruct(transformed: str,
                spans: Sequence[MathSpan],
                rendered: Mapping[int, RenderedMath],
                fallback: Callable[[MathSpan], str]) -> str:
    '''
    Substitutes rendered math back into the converted markdown. A span whose result is missing
    gets 'fallback(span)'; a placeholder with no span at all is dropped. A placeholder inside a
    tag (e.g., in an alt or href attribute) gets the escaped source text, since markup can't go
    there.
    '''
    ordered = sorted(spans, key = lambda span: span.source_start)
    parts = []
    inside_tag = False
    for part in split_placeholders(transformed):
        if isinstance(part, str):
            parts.append(part)
            inside_tag = _ends_inside_tag(part, inside_tag)

        elif not 0 <= part < len(ordered):
            continue

        elif inside_tag:
            parts.append(html.escape(ordered[part].original_text))

        elif part in rendered:
            parts.append(rendered[part].markup)

        else:
            parts.append(fallback(ordered[part]))

    return ''.join(parts)
