"""
SketchScript error definitions

Every failure raised by the language front end, the evaluator and the runtime
library is a SketchError tagged with one of the error codes below. Errors
raised while evaluating the AST also carry the 1-based source line (and
column) of the statement that failed, plus the sketch-level call stack.
"""

from typing import List, Optional, Tuple


# ============================================================================
# Error Codes
# ============================================================================

E_SYNTAX_ERROR = "E_SYNTAX_ERROR"        # lexical: bad character, unterminated string
E_PARSE_ERROR = "E_PARSE_ERROR"          # grammar
E_NAME_ERROR = "E_NAME_ERROR"            # unknown variable or function
E_TYPE_ERROR = "E_TYPE_ERROR"            # bad operand or call target
E_BOUNDS_ERROR = "E_BOUNDS_ERROR"        # list index out of range
E_RUNTIME_ERROR = "E_RUNTIME_ERROR"      # builtin failure, division by zero
E_DECRYPT_ERROR = "E_DECRYPT_ERROR"      # malformed decrypt() input
E_READONLY_ERROR = "E_READONLY_ERROR"    # assignment to a pseudo-variable

SKETCH_FILENAME = "<sketch>"


class SketchError(Exception):
    """Base exception for SketchScript errors"""

    def __init__(self, code: str, message: str,
                 line: Optional[int] = None, column: Optional[int] = None):
        self.code = code
        self.message = message
        self.line = line
        self.column = column
        # (function name, line, column), innermost first
        self.frames: List[Tuple[str, int, int]] = []
        super().__init__(f"[{code}] {message}")

    def locate(self, line: int, column: int = 0) -> "SketchError":
        """Attach a position unless a more precise one is already set"""
        if self.line is None and line:
            self.line = line
            self.column = column
        return self

    def add_frame(self, name: str, line: int, column: int = 0):
        """Record a sketch function the error unwound through"""
        self.frames.append((name, line, column))

    @property
    def stack(self) -> str:
        """Sketch call stack, formatted like a host stack trace"""
        lines = [str(self)]
        for name, line, column in self.frames:
            lines.append(f"    at {name} ({SKETCH_FILENAME}:{line}:{column})")
        return "\n".join(lines)


def bounds_error(index, length: int) -> SketchError:
    """Build the bounds error shared by getItem, setItem and list[i]"""
    return SketchError(
        E_BOUNDS_ERROR,
        f"Index {index} is out of bounds. List has {length} items.",
    )


__all__ = [
    'SketchError',
    'bounds_error',
    'SKETCH_FILENAME',
    'E_SYNTAX_ERROR',
    'E_PARSE_ERROR',
    'E_NAME_ERROR',
    'E_TYPE_ERROR',
    'E_BOUNDS_ERROR',
    'E_RUNTIME_ERROR',
    'E_DECRYPT_ERROR',
    'E_READONLY_ERROR',
]
