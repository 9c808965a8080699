"""
SketchScript Tokenizer

Converts sketch source text into a flat token stream. Whitespace and comments
are dropped; every token records its character offset plus 1-based line and
column so the parser and the error mapper can point at the original source.

Lexical rules:
    numbers      42  3.14  5.          (at most one '.')
    strings      "text"  'text'        escapes: \\n \\t \\\\ \\" \\'
    comments     // to end of line, /* block */
    identifiers  [A-Za-z_][A-Za-z0-9_]*
    operators    == != ~= <= >= && || += -= *= /=   then  + - * / % < > = !
    punctuation  ( ) { } [ ] , ; . :

Any other character is a lexical error (E_SYNTAX_ERROR).
"""

from typing import Any, List
from dataclasses import dataclass
import string

from .errors import SketchError, E_SYNTAX_ERROR


# ============================================================================
# Token Types
# ============================================================================

@dataclass
class Token:
    """Token from sketch source"""
    type: str
    value: Any
    pos: int
    line: int = 1
    column: int = 1


class TokenType:
    """Token type constants"""
    NUMBER = "NUMBER"
    STRING = "STRING"
    IDENTIFIER = "IDENTIFIER"
    KEYWORD = "KEYWORD"
    OPERATOR = "OPERATOR"
    PUNCT = "PUNCT"
    EOF = "EOF"


KEYWORDS = frozenset({
    'function', 'end', 'if', 'then', 'else', 'elseif',
    'for', 'while', 'do', 'return',
    'and', 'or', 'not',
    'true', 'false', 'nil', 'null',
    'var', 'let',
})

# Longest match first
TWO_CHAR_OPERATORS = ('==', '!=', '~=', '<=', '>=', '&&', '||', '+=', '-=', '*=', '/=')
ONE_CHAR_OPERATORS = '+-*/%<>=!'
PUNCTUATION = '(){}[],;.:'

DIGITS = frozenset(string.digits)
IDENT_START = frozenset(string.ascii_letters + '_')
IDENT_CHARS = IDENT_START | DIGITS

ESCAPES = {'n': '\n', 't': '\t', '\\': '\\', '"': '"', "'": "'"}


# ============================================================================
# Tokenizer
# ============================================================================

class SketchTokenizer:
    """Tokenize SketchScript source code"""

    def __init__(self, source: str):
        self.source = source
        self.pos = 0
        self.line = 1
        self.line_start = 0
        self.tokens: List[Token] = []

    def tokenize(self) -> List[Token]:
        """Tokenize entire source"""
        while self.pos < len(self.source):
            self._skip_whitespace_and_comments()
            if self.pos >= len(self.source):
                break

            ch = self.source[self.pos]

            if ch in DIGITS:
                self._read_number()
            elif ch in '"\'':
                self._read_string()
            elif ch in IDENT_START:
                self._read_identifier()
            elif self.source[self.pos:self.pos + 2] in TWO_CHAR_OPERATORS:
                self._add_token(TokenType.OPERATOR, self.source[self.pos:self.pos + 2])
                self.pos += 2
            elif ch in ONE_CHAR_OPERATORS:
                self._add_token(TokenType.OPERATOR, ch)
                self.pos += 1
            elif ch in PUNCTUATION:
                self._add_token(TokenType.PUNCT, ch)
                self.pos += 1
            else:
                raise SketchError(
                    E_SYNTAX_ERROR,
                    f"Unexpected character '{ch}' at line {self.line}",
                    line=self.line, column=self._column(),
                )

        self._add_token(TokenType.EOF, None)
        return self.tokens

    def _skip_whitespace_and_comments(self):
        """Skip whitespace and comments, keeping line bookkeeping current"""
        while self.pos < len(self.source):
            ch = self.source[self.pos]
            if ch == '\n':
                self._newline()
            elif ch in ' \t\r\f\v':
                self.pos += 1
            elif self.source.startswith('//', self.pos):
                while self.pos < len(self.source) and self.source[self.pos] != '\n':
                    self.pos += 1
            elif self.source.startswith('/*', self.pos):
                start_line = self.line
                self.pos += 2
                while self.pos < len(self.source) and not self.source.startswith('*/', self.pos):
                    if self.source[self.pos] == '\n':
                        self._newline()
                    else:
                        self.pos += 1
                if self.pos >= len(self.source):
                    raise SketchError(E_SYNTAX_ERROR, "Unterminated block comment",
                                      line=start_line)
                self.pos += 2
            else:
                break

    def _newline(self):
        self.pos += 1
        self.line += 1
        self.line_start = self.pos

    def _column(self, pos: int = None) -> int:
        if pos is None:
            pos = self.pos
        return pos - self.line_start + 1

    def _read_number(self):
        """Read numeric literal"""
        start = self.pos
        has_dot = False

        while self.pos < len(self.source):
            ch = self.source[self.pos]
            if ch in DIGITS:
                self.pos += 1
            elif ch == '.' and not has_dot:
                has_dot = True
                self.pos += 1
            else:
                break

        text = self.source[start:self.pos]
        value = float(text) if has_dot else int(text)
        self.tokens.append(Token(TokenType.NUMBER, value, start, self.line, self._column(start)))

    def _read_string(self):
        """Read string literal, processing escapes"""
        quote = self.source[self.pos]
        start = self.pos
        start_line, start_column = self.line, self._column()
        self.pos += 1  # Skip opening quote
        chars = []

        while self.pos < len(self.source) and self.source[self.pos] != quote:
            ch = self.source[self.pos]
            if ch == '\\' and self.pos + 1 < len(self.source):
                escaped = self.source[self.pos + 1]
                chars.append(ESCAPES.get(escaped, escaped))
                self.pos += 2
            elif ch == '\n':
                chars.append(ch)
                self._newline()
            else:
                chars.append(ch)
                self.pos += 1

        if self.pos >= len(self.source):
            raise SketchError(
                E_SYNTAX_ERROR,
                f"Unterminated string literal starting at line {start_line}",
                line=start_line, column=start_column,
            )

        self.pos += 1  # Skip closing quote
        self.tokens.append(Token(TokenType.STRING, ''.join(chars), start, start_line, start_column))

    def _read_identifier(self):
        """Read identifier or keyword"""
        start = self.pos

        while self.pos < len(self.source):
            ch = self.source[self.pos]
            if ch in IDENT_CHARS:
                self.pos += 1
            else:
                break

        text = self.source[start:self.pos]
        kind = TokenType.KEYWORD if text in KEYWORDS else TokenType.IDENTIFIER
        self.tokens.append(Token(kind, text, start, self.line, self._column(start)))

    def _add_token(self, type: str, value: Any):
        """Add token starting at the current position"""
        self.tokens.append(Token(type=type, value=value, pos=self.pos,
                                 line=self.line, column=self._column()))


def tokenize(source: str) -> List[Token]:
    """
    Tokenize sketch source (convenience function)

    Example:
        >>> [t.value for t in tokenize('x = 1')]
        ['x', '=', 1, None]
    """
    return SketchTokenizer(source).tokenize()


__all__ = [
    'Token',
    'TokenType',
    'SketchTokenizer',
    'tokenize',
    'KEYWORDS',
]
