'''
Logging/error reporting infrastructure.

Each pipeline stage reports through a Progress object, identifying itself by a short location
string (the module's NAME). Progress messages are only printed on request, since the pipeline may
run once per chat message; warnings and errors are always printed, and errors are retained so that
callers can inspect them afterwards.
'''

from dataclasses import dataclass, field
import shutil
import threading
import traceback
from typing import List, Optional, Set


RESET = '\033[0m'

LINE_NUMBER_COLOUR = '\033[30;1m'
LINE_NUMBER_WIDTH = 4

HIGHLIGHT_COLOUR = '\033[43;30m'


def wrap(text, width):
    line_number = 1
    start_of_line = True

    if text == '':
        yield (1, True, '')
    while text:
        newline_index = text.find('\n')
        if newline_index != -1 and newline_index <= width:
            yield (line_number, start_of_line, text[:newline_index])
            text = text[newline_index + 1:]
            start_of_line = True
            line_number += 1
        else:
            yield (line_number, start_of_line, text[:width])
            text = text[width:]
            start_of_line = False


@dataclass
class Details:
    title: str
    content: str
    show_line_numbers: bool = False
    context_lines: Optional[int] = None
    highlight_lines: Set[int] = field(default_factory = set)


class Message:
    LOCATION_COLOUR = ''
    MSG_COLOUR = ''
    TAG = ''

    def __init__(self, location: str, msg: str, details_list: Optional[List[Details]] = None):
        self._location = location
        self._msg = msg
        self._details_list = details_list or []

    @property
    def location(self):
        return self._location

    @property
    def msg(self):
        return self._msg

    @property
    def details_list(self):
        return list(self._details_list)

    def _rule(self, left: str, right: str, width: int, title: str = '') -> str:
        label = f' {title} ' if title else ''
        return f'  {left}─{label}{"─" * max(0, width - len(label))}─{right}'


    def _detail_lines(self, details: Details, width: int):
        if not details.show_line_numbers:
            for _, _, line in wrap(details.content.rstrip(), width):
                yield f'  │ {line.ljust(width)} │'
            return

        text_width = width - LINE_NUMBER_WIDTH - 1
        for line_number, start_of_line, line in wrap(details.content.rstrip(), text_width):
            near_highlight = (details.context_lines is None
                              or not details.highlight_lines
                              or any(abs(line_number - hl) <= details.context_lines
                                     for hl in details.highlight_lines))
            if not near_highlight:
                continue

            number = str(line_number) if start_of_line else ''
            colour = HIGHLIGHT_COLOUR if line_number in details.highlight_lines else ''
            yield (f'  │{LINE_NUMBER_COLOUR}{number.rjust(LINE_NUMBER_WIDTH)}{RESET}  '
                   f'{colour}{line.ljust(text_width)}{RESET} │')


    def lines(self):
        '''The console rendering of this message, one line at a time.'''
        yield f'{self.LOCATION_COLOUR}{self.TAG}{self._location}:{RESET} {self.MSG_COLOUR}{self._msg}{RESET}'
        if not self._details_list:
            return

        width = max(20, shutil.get_terminal_size(fallback = (80, 40)).columns - 6)
        for i, details in enumerate(self._details_list):
            yield self._rule('├' if i else '┌', '┤' if i else '┐', width, details.title)
            yield from self._detail_lines(details, width)
        yield self._rule('└', '┘', width)


    def print(self):
        print('\n'.join(self.lines()))

    def __str__(self):
        return f'{self.TAG}{self._location}: {self._msg}'


class ProgressMsg(Message):
    LOCATION_COLOUR = '\033[32m'
    MSG_COLOUR = ''
    TAG = ''

class WarningMsg(Message):
    LOCATION_COLOUR = '\033[33;1m'
    MSG_COLOUR = '\033[37;1m'
    TAG = '[!] '

class ErrorMsg(Message):
    LOCATION_COLOUR = '\033[31;1m'
    MSG_COLOUR = '\033[37;1m'
    TAG = '[!!] '


class Progress:
    def __init__(self, show_progress = False):
        self._errors = []
        self._show_progress = show_progress
        # Math expressions may be rendered from several worker threads at once.
        self._lock = threading.Lock()


    def show(self, msg: Message):
        with self._lock:
            if isinstance(msg, ErrorMsg):
                self._errors.append(msg)
            if self._show_progress or not isinstance(msg, ProgressMsg):
                msg.print()
        return msg


    def progress(self, location, *, msg, advice = None):
        details_list = []
        if advice:
            details_list.append(Details('Advice', advice))
        return self.show(ProgressMsg(location, msg, details_list))


    def warning(self, location, *, msg):
        return self.show(WarningMsg(location, msg))


    def error(self, location, *, msg = None, exception = None, show_traceback = True,
              output = None, code = None, highlight_lines = None, context_lines = 6):
        details_list = []
        if exception:
            msg = f'{msg}: {str(exception)} ({exception.__class__.__name__})' if msg else str(exception)
            if show_traceback and exception.__traceback__ is not None:
                details_list.append(Details(
                    'Traceback',
                    ''.join(traceback.format_exception(type(exception),
                                                       exception,
                                                       exception.__traceback__))))

        elif not msg:
            msg = 'error'

        if output:
            details_list.append(Details('Output', output))

        if code:
            details_list.append(Details('Code',
                                        code,
                                        show_line_numbers = True,
                                        highlight_lines = highlight_lines or set(),
                                        context_lines = context_lines))

        return self.show(ErrorMsg(location, msg, details_list))


    def get_errors(self):
        with self._lock:
            return list(self._errors)


    def clear_errors(self):
        with self._lock:
            self._errors.clear()
