'''
Reader-facing statistics about rendered output: plain text, word count and reading time.
'''

import lxml.html
from lxml.etree import ParserError

import math


WORDS_PER_MINUTE = 200


def html_to_plain_text(markup: str) -> str:
    if not markup or not markup.strip():
        return ''
    try:
        return lxml.html.fragment_fromstring(markup, create_parent = 'div').text_content()
    except ParserError:
        return ''


def word_count(markup: str) -> int:
    return len(html_to_plain_text(markup).split())


def reading_time(markup: str, words_per_minute: int = WORDS_PER_MINUTE) -> int:
    '''Estimated reading time in whole minutes (rounded up).'''
    return math.ceil(word_count(markup) / words_per_minute)
