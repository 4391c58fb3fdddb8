'''
Presentation tweaks applied to the finished HTML. These never change the document's content.
'''

import html
import re


TABLE_RE = re.compile(r'<table\b[^>]*>.*?</table>', re.DOTALL | re.IGNORECASE)
PRE_RE = re.compile(r'<pre\b[^>]*>.*?</pre>', re.DOTALL | re.IGNORECASE)
BLANK_LINES_RE = re.compile(r'\n(?:[ \t]*\n){2,}')


def wrap_tables(markup: str, wrapper_class: str = 'table-wrapper') -> str:
    '''Puts each <table> inside a <div> that can scroll horizontally.'''
    return TABLE_RE.sub(
        lambda match: f'<div class="{html.escape(wrapper_class)}">{match.group(0)}</div>',
        markup)


def collapse_blank_lines(markup: str) -> str:
    '''
    Reduces any run of two or more blank lines to a single blank line, except inside <pre>
    elements, whose content is left exactly as it is.
    '''
    parts = []
    pos = 0
    for match in PRE_RE.finditer(markup):
        parts.append(BLANK_LINES_RE.sub('\n\n', markup[pos:match.start()]))
        parts.append(match.group(0))
        pos = match.end()
    parts.append(BLANK_LINES_RE.sub('\n\n', markup[pos:]))
    return ''.join(parts)


def post_process(markup: str, wrapper_class: str = 'table-wrapper') -> str:
    return collapse_blank_lines(wrap_tables(markup, wrapper_class))
