"""
Test suite for error line mapping
"""

import pytest
import sys
import os

# Add grandparent directory to path for imports (to find sketchscript package)
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))))

from sketchscript.error_mapper import map_error_line
from sketchscript.errors import SketchError, E_PARSE_ERROR, E_RUNTIME_ERROR
from sketchscript.parser import parse

THREE_LINES = "a = 1\nb = 2\nc = 3"


class TestDirectSources:
    """Line attribute, message and position"""

    def test_error_line_attribute(self):
        err = SketchError(E_RUNTIME_ERROR, "boom", line=2)
        assert map_error_line(err, THREE_LINES) == 2

    def test_line_out_of_range_falls_through(self):
        err = SketchError(E_RUNTIME_ERROR, "boom", line=10)
        assert map_error_line(err, THREE_LINES) is None

    def test_line_in_message(self):
        assert map_error_line(Exception("failed at line 3"), THREE_LINES) == 3

    def test_position_in_message(self):
        assert map_error_line(Exception("bad value at position 7"), THREE_LINES) == 2

    def test_parse_error_from_parser(self):
        source = "x = 1\ny = (2 +\n"
        with pytest.raises(SketchError) as exc:
            parse(source)
        assert map_error_line(exc.value, source) == 3


class TestStackMarkers:
    """<sketch>:N:M markers and Python tracebacks"""

    def test_marker_with_wrapper_offset(self):
        err = Exception("oops")
        err.stack = "Error: oops\n    at loop (<sketch>:5:3)"
        assert map_error_line(err, THREE_LINES, wrapper_offset=2) == 3

    def test_marker_without_offset(self):
        err = Exception("oops")
        err.stack = "Error: oops\n    at loop (<sketch>:2:1)"
        assert map_error_line(err, THREE_LINES) == 2

    def test_python_traceback(self):
        code = compile("x = 1\ny = 2\nz = 1 / 0", "<sketch>", "exec")
        with pytest.raises(ZeroDivisionError) as exc:
            exec(code, {})
        assert map_error_line(exc.value, THREE_LINES) == 3

    def test_sketch_call_stack(self):
        err = SketchError(E_RUNTIME_ERROR, "boom")
        err.add_frame("helper", 2, 5)
        assert map_error_line(err, THREE_LINES) == 2


class TestHeuristics:
    """Fallback guesses"""

    def test_undefined_name_skips_comments(self):
        source = "// speed is set below\nx = 1\ny = speed * 2"
        err = Exception("Undefined variable: speed")
        assert map_error_line(err, source) == 3

    def test_not_defined_message(self):
        source = "a = 1\nb = foo + 1"
        assert map_error_line(NameError("name 'foo' is not defined"), source) == 2

    def test_undefined_name_is_whole_word(self):
        source = "xspeed = 1\nspeed = 2"
        err = Exception("Undefined function: speed")
        assert map_error_line(err, source) == 2

    def test_unexpected_token_searches_from_end(self):
        source = "function f() {\n  x = 1\n}\n}"
        err = SketchError(E_PARSE_ERROR, "Unexpected token '}'")
        assert map_error_line(err, source) == 4

    def test_unbalanced_parenthesis(self):
        source = "a = 1\nb = (2 + 3\nc = 4"
        err = SketchError(E_PARSE_ERROR, "Expected expression")
        assert map_error_line(err, source) == 2

    def test_dangling_function(self):
        source = "function f\nx = 1"
        err = SketchError(E_PARSE_ERROR, "Expected '('")
        assert map_error_line(err, source) == 1

    def test_syntax_heuristics_only_for_syntax_errors(self):
        source = "a = (1"
        assert map_error_line(RuntimeError("weird"), source) is None

    def test_nothing_matches(self):
        assert map_error_line(RuntimeError("weird"), "x = 1") is None
