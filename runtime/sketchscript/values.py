"""
Dynamic value helpers

Sketch values are plain Python values:

    number   int | float        string   str        boolean  bool
    null     None               list     list       map      dict
    function builtin callable or UserFunction

This module holds the rules that differ from Python's own: how values print,
which values are truthy, and how '+' mixes strings with other values.
"""

import math
from typing import Any

from .errors import SketchError, E_TYPE_ERROR, E_RUNTIME_ERROR


def is_number(value: Any) -> bool:
    """True for int/float, never for bool"""
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def type_name(value: Any) -> str:
    """Sketch-level type name of a value"""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if is_number(value):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "list"
    if isinstance(value, dict):
        return "map"
    if callable(value):
        return "function"
    return type(value).__name__


def format_number(value) -> str:
    """Format numbers the way sketches expect: 2.0 prints as 2"""
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "Infinity" if value > 0 else "-Infinity"
        if value.is_integer() and abs(value) < 1e16:
            return str(int(value))
        return repr(value)
    return str(value)


def display(value: Any, nested: bool = False) -> str:
    """
    Convert a value to its printed form

    Strings print bare at top level and quoted inside lists and maps.

    Example:
        >>> display([1, 2.0, "a", None, True])
        '[1, 2, "a", null, true]'
    """
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if is_number(value):
        return format_number(value)
    if isinstance(value, str):
        return f'"{value}"' if nested else value
    if isinstance(value, list):
        return "[" + ", ".join(display(item, nested=True) for item in value) + "]"
    if isinstance(value, dict):
        fields = ", ".join(f"{key}: {display(item, nested=True)}" for key, item in value.items())
        return "{" + fields + "}"
    name = getattr(value, 'name', None) or getattr(value, '__name__', None)
    if name:
        return f"<function {name}>"
    return str(value)


def truthy(value: Any) -> bool:
    """Truthiness: null, false, 0 and "" are false; lists and maps are always true"""
    if value is None or value is False:
        return False
    if isinstance(value, (list, dict)):
        return True
    if is_number(value):
        return value != 0 and not (isinstance(value, float) and math.isnan(value))
    if isinstance(value, str):
        return value != ""
    return True


def add(left: Any, right: Any) -> Any:
    """'+' concatenates when either side is a string, otherwise adds numbers"""
    if isinstance(left, str) or isinstance(right, str):
        return display(left) + display(right)
    if isinstance(left, list) and isinstance(right, list):
        return left + right
    return arithmetic('+', left, right)


def arithmetic(op: str, left: Any, right: Any) -> Any:
    """Numeric operators; booleans count as 0/1 like the host dialect"""
    if not _numeric(left) or not _numeric(right):
        raise SketchError(
            E_TYPE_ERROR,
            f"Cannot apply '{op}' to {type_name(left)} and {type_name(right)}",
        )
    if op == '+':
        return left + right
    if op == '-':
        return left - right
    if op == '*':
        return left * right
    if op == '/':
        if right == 0:
            raise SketchError(E_RUNTIME_ERROR, "Division by zero")
        return left / right
    if op == '%':
        if right == 0:
            raise SketchError(E_RUNTIME_ERROR, "Modulo by zero")
        return left % right
    raise SketchError(E_TYPE_ERROR, f"Unknown operator: {op}")


def compare(op: str, left: Any, right: Any) -> bool:
    """Ordering comparisons between two numbers or two strings"""
    if not ((_numeric(left) and _numeric(right))
            or (isinstance(left, str) and isinstance(right, str))):
        raise SketchError(
            E_TYPE_ERROR,
            f"Cannot compare {type_name(left)} and {type_name(right)} with '{op}'",
        )
    if op == '<':
        return left < right
    if op == '<=':
        return left <= right
    if op == '>':
        return left > right
    return left >= right


def equals(left: Any, right: Any) -> bool:
    """Equality without Python's True == 1 coincidence"""
    if isinstance(left, bool) != isinstance(right, bool):
        return False
    return left == right


def _numeric(value: Any) -> bool:
    return isinstance(value, (int, float))


__all__ = [
    'is_number',
    'type_name',
    'format_number',
    'display',
    'truthy',
    'add',
    'arithmetic',
    'compare',
    'equals',
]
