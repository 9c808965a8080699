"""
Error line mapping

map_error_line() recovers a 1-based line in the user's source for an error.
Errors raised by the evaluator already carry an exact line; everything else
(host exceptions, errors from embedding code, hand-built messages) goes
through a fixed list of best-effort heuristics. A line is only returned when
it exists in the source; otherwise the error is reported without one.

Order:
    1. the error's own `line` attribute
    2. "line N" in the message
    3. "position N" character offset in the message
    4. "<sketch>:N:M" (or File "<sketch>", line N) stack markers, minus the
       number of wrapper lines placed before the user's code
    5. heuristics: an undefined name found on a source line, the character of
       an "Unexpected token 'x'" message, a line with unbalanced parentheses,
       a dangling 'function' line with no body opener
"""

import re
import traceback
from typing import List, Optional

from .errors import SKETCH_FILENAME, E_SYNTAX_ERROR, E_PARSE_ERROR

LINE_IN_MESSAGE = re.compile(r'[Ll]ine[:\s]+(\d+)')
POSITION_IN_MESSAGE = re.compile(r'position[:\s]+(\d+)', re.IGNORECASE)
STACK_MARKER = re.compile(re.escape(SKETCH_FILENAME) + r':(\d+):(\d+)')
TRACEBACK_MARKER = re.compile(r'File "' + re.escape(SKETCH_FILENAME) + r'", line (\d+)')
UNDEFINED_NAME = (
    re.compile(r'Undefined (?:variable|function): (\w+)'),
    re.compile(r"'?(\w+)'? is not defined"),
    re.compile(r"Cannot read property '(\w+)'"),
)
UNEXPECTED_TOKEN = re.compile(r"Unexpected (?:token|identifier|character) ['\"]([^'\"]+)['\"]")


def _message(error: BaseException) -> str:
    return getattr(error, 'message', None) or str(error)


def _stack(error: BaseException) -> str:
    stack = getattr(error, 'stack', None)
    if isinstance(stack, str) and stack:
        return stack
    if error.__traceback__ is not None:
        return ''.join(traceback.format_exception(type(error), error, error.__traceback__))
    return ''


def _strip_comment(line: str) -> str:
    index = line.find('//')
    return line[:index] if index >= 0 else line


def _is_syntax_error(error: BaseException, message: str) -> bool:
    code = getattr(error, 'code', None)
    return (code in (E_SYNTAX_ERROR, E_PARSE_ERROR)
            or isinstance(error, SyntaxError)
            or 'Unexpected' in message)


def map_error_line(error: BaseException, source: str, wrapper_offset: int = 0) -> Optional[int]:
    """
    Map an error to a 1-based line of source

    Args:
        error: Exception raised while parsing or running the sketch
        source: Original sketch source
        wrapper_offset: Lines of synthetic code that preceded the user's
            source when the error was produced

    Returns:
        Line number, or None when no rule applies
    """
    lines = source.split('\n')

    def valid(number: int) -> bool:
        return 1 <= number <= len(lines)

    line = getattr(error, 'line', None)
    if isinstance(line, int) and not isinstance(line, bool) and valid(line):
        return line

    message = _message(error)

    match = LINE_IN_MESSAGE.search(message)
    if match and valid(int(match.group(1))):
        return int(match.group(1))

    match = POSITION_IN_MESSAGE.search(message)
    if match:
        position = int(match.group(1))
        if 0 <= position < len(source):
            number = source.count('\n', 0, position) + 1
            if valid(number):
                return number

    number = _line_from_stack(_stack(error), wrapper_offset, valid)
    if number is not None:
        return number

    return _heuristic_line(error, message, lines)


def _line_from_stack(stack: str, wrapper_offset: int, valid) -> Optional[int]:
    for pattern in (STACK_MARKER, TRACEBACK_MARKER):
        for match in pattern.finditer(stack):
            raw = int(match.group(1))
            if valid(raw - wrapper_offset):
                return raw - wrapper_offset
            if valid(raw):
                return raw
    return None


def _heuristic_line(error: BaseException, message: str, lines: List[str]) -> Optional[int]:
    for pattern in UNDEFINED_NAME:
        match = pattern.search(message)
        if match:
            word = re.compile(r'\b' + re.escape(match.group(1)) + r'\b')
            for i, line in enumerate(lines):
                if not line.strip().startswith('//') and word.search(_strip_comment(line)):
                    return i + 1

    if not _is_syntax_error(error, message):
        return None

    match = UNEXPECTED_TOKEN.search(message)
    if match:
        token = match.group(1)
        for i in range(len(lines) - 1, -1, -1):
            if token in _strip_comment(lines[i]):
                return i + 1

    for i in range(len(lines) - 1, -1, -1):
        code = _strip_comment(lines[i]).strip()
        if code.count('(') != code.count(')'):
            return i + 1
        if (re.match(r'function\b', code) and '{' not in code
                and not code.endswith(')')):
            return i + 1

    return None


__all__ = ['map_error_line']
