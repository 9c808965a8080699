"""
Static sketch analysis

analyze() produces editor diagnostics without running anything:

    syntax            lexical errors, unexpected closing brackets, and the
                      first parse error when the brackets balance
    missing_closing   an opening bracket that is never closed
    unknown_function  a call to a name that is neither a builtin, a declared
                      function, a parameter nor an assigned variable
"""

from dataclasses import dataclass
from typing import List, Optional, Set

from .errors import SketchError
from .lexer import Token, TokenType, tokenize
from .library import builtin_names
from .parser import BUTTON_SUGAR_ARG, SketchParser

SYNTAX = "syntax"
UNKNOWN_FUNCTION = "unknown_function"
MISSING_CLOSING = "missing_closing"

BRACKET_PAIRS = {')': '(', '}': '{', ']': '['}
BRACKET_NAMES = {'(': 'parenthesis', '{': 'brace', '[': 'bracket'}

_builtins: Optional[Set[str]] = None


@dataclass
class Diagnostic:
    """One problem found in a sketch"""
    line: int
    message: str
    kind: str
    column: int = 0


def _known_builtins() -> Set[str]:
    global _builtins
    if _builtins is None:
        _builtins = set(builtin_names())
    return _builtins


def _declared_names(tokens: List[Token]) -> Set[str]:
    """Functions, parameters and assigned variables declared anywhere"""
    names = set()
    in_params = False
    for i, token in enumerate(tokens):
        if token.type == TokenType.KEYWORD and token.value == 'function':
            if i + 1 < len(tokens) and tokens[i + 1].type == TokenType.IDENTIFIER:
                names.add(tokens[i + 1].value)
            in_params = True
            continue
        if in_params:
            if token.type == TokenType.IDENTIFIER and i > 0 and tokens[i - 1].value in ('(', ','):
                names.add(token.value)
            if token.type == TokenType.PUNCT and token.value == ')':
                in_params = False
            continue
        nxt = tokens[i + 1] if i + 1 < len(tokens) else None
        if (token.type == TokenType.IDENTIFIER and nxt is not None
                and nxt.type == TokenType.OPERATOR and nxt.value in ('=', '+=', '-=', '*=', '/=')):
            names.add(token.value)
    return names


def _check_brackets(tokens: List[Token]) -> List[Diagnostic]:
    diagnostics = []
    stack: List[Token] = []
    for token in tokens:
        if token.type != TokenType.PUNCT:
            continue
        if token.value in '({[':
            stack.append(token)
        elif token.value in BRACKET_PAIRS:
            if stack and stack[-1].value == BRACKET_PAIRS[token.value]:
                stack.pop()
            else:
                name = BRACKET_NAMES[BRACKET_PAIRS[token.value]]
                diagnostics.append(Diagnostic(token.line, f"Unexpected closing {name}", SYNTAX, token.column))
    for token in stack:
        diagnostics.append(Diagnostic(token.line, f"Missing closing {BRACKET_NAMES[token.value]}",
                                      MISSING_CLOSING, token.column))
    return diagnostics


def _check_calls(tokens: List[Token]) -> List[Diagnostic]:
    known = _known_builtins() | _declared_names(tokens)
    diagnostics = []
    for i, token in enumerate(tokens[:-1]):
        nxt = tokens[i + 1]
        if token.type != TokenType.IDENTIFIER or nxt.type != TokenType.PUNCT or nxt.value != '(':
            continue
        prev = tokens[i - 1] if i > 0 else None
        if prev is not None and prev.value in ('.', 'function'):
            continue
        # name(clicked) is button sugar, not a call
        if (i + 3 < len(tokens) and tokens[i + 2].value == BUTTON_SUGAR_ARG
                and tokens[i + 3].value == ')'):
            continue
        if token.value not in known:
            diagnostics.append(Diagnostic(token.line, f"Unknown function: {token.value}",
                                          UNKNOWN_FUNCTION, token.column))
    return diagnostics


def analyze(source: str) -> List[Diagnostic]:
    """
    Collect diagnostics for a sketch, sorted by line

    Example:
        >>> [d.message for d in analyze('circel(1, 2, 3)')]
        ['Unknown function: circel']
    """
    try:
        tokens = tokenize(source)
    except SketchError as err:
        return [Diagnostic(err.line or 1, err.message, SYNTAX, err.column or 0)]

    diagnostics = _check_brackets(tokens)
    if not diagnostics:
        try:
            SketchParser(tokens).parse()
        except SketchError as err:
            diagnostics.append(Diagnostic(err.line or 1, err.message, SYNTAX, err.column or 0))

    diagnostics.extend(_check_calls(tokens))
    diagnostics.sort(key=lambda d: (d.line, d.column))
    return diagnostics


__all__ = ['Diagnostic', 'analyze', 'SYNTAX', 'UNKNOWN_FUNCTION', 'MISSING_CLOSING']
