"""
Sketch source formatter

Re-indents a sketch by block nesting. Both block styles are understood:
brace/bracket nesting and keyword blocks closed by 'end'. Line contents are
only stripped, never rewritten; blank lines are kept.
"""

import re

BLOCK_KEYWORDS = ('function', 'if', 'elseif', 'else', 'while', 'for')
DEDENT_KEYWORDS = ('end', 'else', 'elseif')

_STRING = re.compile(r'"(?:\\.|[^"\\])*"|\'(?:\\.|[^\'\\])*\'')
_FIRST_WORD = re.compile(r'[A-Za-z_]\w*')


def _code_part(line: str) -> str:
    """Line without string contents and trailing // comment"""
    code = _STRING.sub('""', line)
    index = code.find('//')
    return (code[:index] if index >= 0 else code).strip()


def _first_word(code: str) -> str:
    match = _FIRST_WORD.match(code)
    return match.group(0) if match else ''


def _closes_first(code: str) -> bool:
    return code[:1] in ('}', ']', ')') or _first_word(code) in DEDENT_KEYWORDS


def _opens_block(code: str) -> bool:
    if code.endswith('{') or code.endswith('['):
        return True
    if code.endswith('(') and ')' not in code:
        return True
    word = _first_word(code)
    if word in BLOCK_KEYWORDS and '{' not in code and '}' not in code:
        # One-line keyword blocks close themselves
        return not re.search(r'\bend\s*;?$', code)
    return False


def format_source(source: str, indent: int = 2) -> str:
    """
    Re-indent sketch source

    Example:
        >>> print(format_source('function setup() {\\nprint(1)\\n}'))
        function setup() {
          print(1)
        }
    """
    formatted = []
    level = 0

    for line in source.split('\n'):
        stripped = line.strip()
        if not stripped:
            formatted.append('')
            continue

        code = _code_part(stripped)
        if _closes_first(code):
            level = max(0, level - 1)

        formatted.append(' ' * (level * indent) + stripped)

        if _opens_block(code):
            level += 1

    return '\n'.join(formatted)


__all__ = ['format_source']
