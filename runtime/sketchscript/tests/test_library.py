"""
Test suite for the runtime library
Builtins are called directly with Python values; drawing goes to a
RecordingSurface so the exact surface calls can be checked.
"""

import asyncio
import math
import pytest
import sys
import os

# Add grandparent directory to path for imports (to find sketchscript package)
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))))

from sketchscript.config import InterpreterConfig
from sketchscript.errors import SketchError, E_BOUNDS_ERROR, E_TYPE_ERROR
from sketchscript.library import RuntimeLibrary, builtin_names, BUTTON_FILL, BUTTON_BORDER
from sketchscript.messages import INFO
from sketchscript.state import InterpreterState, RIGHT_MOUSE
from sketchscript.surface import BLACK, WHITE, Color


@pytest.fixture
def state():
    return InterpreterState.fresh(InterpreterConfig())


@pytest.fixture
def resizes():
    return []


@pytest.fixture
def lib(state, surface, log, resizes):
    return RuntimeLibrary(state, surface, on_message=log,
                          on_resize=lambda w, h: resizes.append((w, h)))


def call(lib, name, *args):
    return lib.builtins[name](*args)


class TestColors:
    """fill/stroke argument forms"""

    def test_rgb(self, lib, state):
        call(lib, 'fill', 255, 0, 0)
        assert state.paint.fill == Color(255, 0, 0)

    def test_gray(self, lib, state):
        call(lib, 'stroke', 128)
        assert state.paint.stroke == Color(128, 128, 128)

    def test_gray_alpha(self, lib, state):
        call(lib, 'fill', 0, 0.5)
        assert state.paint.fill == Color(0, 0, 0, 0.5)

    def test_rgba(self, lib, state):
        call(lib, 'fill', 10, 20, 30, 0.25)
        assert state.paint.fill.a == 0.25

    def test_channels_clamp(self, lib, state):
        call(lib, 'fill', 300, -5, 0, 2)
        assert state.paint.fill == Color(255, 0, 0, 1.0)

    def test_no_fill_no_stroke(self, lib, state):
        call(lib, 'noFill')
        call(lib, 'noStroke')
        assert state.paint.fill is None
        assert state.paint.stroke is None

    def test_missing_color(self, lib):
        with pytest.raises(SketchError) as exc:
            call(lib, 'fill')
        assert exc.value.code == E_TYPE_ERROR

    def test_non_numeric_color(self, lib):
        with pytest.raises(SketchError) as exc:
            call(lib, 'fill', "red")
        assert exc.value.code == E_TYPE_ERROR


class TestDrawing:
    """Shapes reach the surface with the current paint"""

    def test_rect_uses_paint(self, lib, surface):
        call(lib, 'fill', 255, 0, 0)
        call(lib, 'strokeWeight', 3)
        call(lib, 'rect', 1, 2, 3, 4)
        assert surface.find('rect')[0].args == (1, 2, 3, 4, Color(255, 0, 0), BLACK, 3)

    def test_rect_argument_count(self, lib):
        with pytest.raises(SketchError):
            call(lib, 'rect', 1, 2, 3)

    def test_ellipse_height_defaults_to_width(self, lib, surface):
        call(lib, 'ellipse', 10, 10, 20)
        assert surface.find('ellipse')[0].args[:4] == (10, 10, 20, 20)

    def test_circle_takes_radius(self, lib, surface):
        call(lib, 'circle', 5, 5, 10)
        assert surface.find('ellipse')[0].args[:4] == (5, 5, 20, 20)

    def test_point_uses_stroke_color(self, lib, surface):
        call(lib, 'stroke', 0, 0, 255)
        call(lib, 'point', 3, 4)
        args = surface.find('rect')[0].args
        assert args[:4] == (3, 4, 1, 1)
        assert args[4] == Color(0, 0, 255)
        assert args[5] is None

    def test_triangle_and_quad(self, lib, surface):
        call(lib, 'triangle', 0, 0, 10, 0, 5, 5)
        call(lib, 'quad', 0, 0, 1, 0, 1, 1, 0, 1)
        polygons = surface.find('polygon')
        assert polygons[0].args[0] == ((0, 0), (10, 0), (5, 5))
        assert len(polygons[1].args[0]) == 4

    def test_line_uses_stroke(self, lib, surface):
        call(lib, 'line', 0, 0, 10, 10)
        assert surface.find('line')[0].args == (0, 0, 10, 10, BLACK, 1.0)

    def test_arc(self, lib, surface):
        call(lib, 'arc', 50, 50, 20, 20, 0, math.pi)
        assert surface.find('arc')[0].args[4:6] == (0, math.pi)

    def test_text_displays_value(self, lib, surface):
        call(lib, 'text', 3.0, 1, 2)
        assert surface.find('text')[0].args == ('3', 1, 2, 16, BLACK)

    def test_text_size(self, lib, surface):
        call(lib, 'textSize', 24)
        call(lib, 'text', "hi", 0, 0)
        call(lib, 'text', "big", 0, 0, 40)
        texts = surface.find('text')
        assert texts[0].args[3] == 24
        assert texts[1].args[3] == 40

    def test_background(self, lib, surface):
        call(lib, 'background', 0)
        assert surface.find('clear')[0].args == (BLACK,)

    def test_size(self, lib, surface, state, resizes):
        call(lib, 'size', 200, 100)
        assert (state.width, state.height) == (200, 100)
        assert (surface.width, surface.height) == (200, 100)
        assert surface.ops()[-2:] == ['resize', 'clear']
        assert surface.find('clear')[0].args == (WHITE,)
        assert resizes == [(200, 100)]

    def test_size_rejects_zero(self, lib):
        with pytest.raises(SketchError):
            call(lib, 'size', 0, 100)

    def test_push_pop_restore_paint(self, lib, state, surface):
        call(lib, 'fill', 255, 0, 0)
        call(lib, 'push')
        call(lib, 'fill', 0, 0, 255)
        call(lib, 'strokeWeight', 5)
        call(lib, 'translate', 10, 10)
        call(lib, 'pop')
        assert state.paint.fill == Color(255, 0, 0)
        assert state.paint.stroke_weight == 1.0
        assert surface.depth == 0
        assert surface.ops() == ['save', 'translate', 'restore']

    def test_pop_without_push(self, lib, surface):
        call(lib, 'pop')
        assert surface.ops() == []

    def test_transforms(self, lib, surface):
        call(lib, 'rotate', 1.5)
        call(lib, 'scale', 2)
        call(lib, 'scale', 2, 3)
        assert [cmd.args for cmd in surface.commands] == [(1.5,), (2, 2), (2, 3)]


class TestMath:
    """Math builtins and constants"""

    def test_map_is_linear(self, lib):
        assert call(lib, 'map', 5, 0, 10, 0, 100) == 50
        assert call(lib, 'map', 0, 0, 10, 100, 200) == 100
        assert call(lib, 'map', 10, 0, 10, 100, 200) == 200

    def test_map_does_not_clamp(self, lib):
        assert call(lib, 'map', 15, 0, 10, 0, 100) == 150

    def test_map_reversed_range(self, lib):
        assert call(lib, 'map', 2, 0, 10, 10, 0) == 8

    def test_map_empty_range(self, lib):
        with pytest.raises(SketchError):
            call(lib, 'map', 1, 5, 5, 0, 1)

    def test_constrain(self, lib):
        assert call(lib, 'constrain', 15, 0, 10) == 10
        assert call(lib, 'constrain', -3, 0, 10) == 0
        assert call(lib, 'constrain', 4, 0, 10) == 4

    def test_dist(self, lib):
        assert call(lib, 'dist', 0, 0, 3, 4) == 5

    def test_lerp(self, lib):
        assert call(lib, 'lerp', 0, 10, 0.25) == 2.5

    def test_round_half_up(self, lib):
        assert call(lib, 'round', 2.5) == 3
        assert call(lib, 'round', -2.5) == -2
        assert call(lib, 'round', 2.4) == 2

    def test_floor_ceil(self, lib):
        assert call(lib, 'floor', 2.7) == 2
        assert call(lib, 'ceil', 2.1) == 3
        assert call(lib, 'floor', math.inf) == math.inf

    def test_min_max(self, lib):
        assert call(lib, 'max', 1, 5, 3) == 5
        assert call(lib, 'min', [4, 2, 8]) == 2
        with pytest.raises(SketchError):
            call(lib, 'max')

    def test_random_ranges(self, lib):
        for _ in range(50):
            assert 0 <= call(lib, 'random') < 1
            assert 0 <= call(lib, 'random', 5) < 5
            assert 5 <= call(lib, 'random', 5, 10) < 10

    def test_random_choice(self, lib):
        assert call(lib, 'random', ['a', 'b']) in ('a', 'b')
        assert call(lib, 'random', []) is None

    def test_constants(self, lib):
        assert lib.constants['PI'] == math.pi
        assert lib.constants['TWO_PI'] == 2 * math.pi
        assert lib.constants['HALF_PI'] == math.pi / 2
        assert lib.constants['math']['cos'](0) == 1
        assert lib.constants['math']['PI'] == math.pi


class TestLists:
    """createList/append/getLength/getItem/setItem"""

    def test_create_list(self, lib):
        assert call(lib, 'createList', 1, 2, 3) == [1, 2, 3]
        assert call(lib, 'createList') == []

    def test_append_list(self, lib):
        items = [1]
        assert call(lib, 'append', items, 2) is items
        assert items == [1, 2]

    def test_append_map_merges(self, lib):
        target = {'a': 1, 'b': 2}
        call(lib, 'append', target, {'b': 3, 'c': 4})
        assert target == {'a': 1, 'b': 3, 'c': 4}

    def test_append_non_map_to_map(self, lib):
        with pytest.raises(SketchError) as exc:
            call(lib, 'append', {}, 5)
        assert exc.value.code == E_TYPE_ERROR

    def test_append_to_number(self, lib):
        with pytest.raises(SketchError):
            call(lib, 'append', 5, 1)

    def test_get_length(self, lib):
        assert call(lib, 'getLength', [1, 2]) == 2
        assert call(lib, 'getLength', "abc") == 3
        assert call(lib, 'getLength', {'a': 1}) == 1

    @pytest.mark.parametrize("length", [0, 1, 2, 5])
    def test_bounds_for_every_length(self, lib, length):
        items = list(range(length))
        for bad in (length, length + 3, -1):
            with pytest.raises(SketchError) as exc:
                call(lib, 'getItem', items, bad)
            assert exc.value.code == E_BOUNDS_ERROR
            with pytest.raises(SketchError):
                call(lib, 'setItem', items, bad, 0)
        for good in range(length):
            assert call(lib, 'getItem', items, good) == good

    def test_bounds_message(self, lib):
        with pytest.raises(SketchError) as exc:
            call(lib, 'getItem', [1, 2, 3], 5)
        assert exc.value.message == "Index 5 is out of bounds. List has 3 items."

    def test_set_item(self, lib):
        items = [1, 2, 3]
        call(lib, 'setItem', items, 1, 'x')
        assert items == [1, 'x', 3]

    def test_map_items(self, lib):
        target = {}
        call(lib, 'setItem', target, 'k', 1)
        assert call(lib, 'getItem', target, 'k') == 1
        assert call(lib, 'getItem', target, 'nope') is None


class TestOutput:
    """print, input, delay, conversions"""

    def test_print_joins_with_spaces(self, lib, log):
        call(lib, 'print', "a", 1, True, 2.0, None)
        assert log.messages[0].kind == INFO
        assert log.messages[0].text == "a 1 true 2 null"

    def test_print_list(self, lib, log):
        call(lib, 'print', [1, "a"])
        assert log.texts() == ['[1, "a"]']

    def test_input_sync_provider(self, state, surface):
        lib = RuntimeLibrary(state, surface, on_input_request=lambda prompt: "Ada")
        assert asyncio.run(call(lib, 'input', "Name?")) == "Ada"

    def test_input_async_provider(self, state, surface):
        prompts = []

        async def provider(prompt):
            prompts.append(prompt)
            await asyncio.sleep(0)
            return 42

        lib = RuntimeLibrary(state, surface, on_input_request=provider)
        assert asyncio.run(call(lib, 'input', "Age?")) == "42"
        assert prompts == ["Age?"]

    def test_input_without_provider(self, lib):
        assert asyncio.run(call(lib, 'input', "?")) is None

    def test_delay(self, lib):
        asyncio.run(call(lib, 'delay', 0.01))
        asyncio.run(call(lib, 'delay', -1))

    def test_conversions(self, lib):
        assert call(lib, 'num', "3.5px") == 3.5
        assert call(lib, 'num', " 42 ") == 42
        assert call(lib, 'num', "abc") is None
        assert call(lib, 'int', "42.9") == 42
        assert call(lib, 'str', 2.0) == "2"
        assert call(lib, 'type', []) == "list"
        assert call(lib, 'type', {}) == "map"
        assert call(lib, 'len', [1, 2, 3]) == 3

    def test_builtin_names(self):
        names = builtin_names()
        for name in ('rect', 'PI', 'mouseX', 'buttonClicked', 'encrypt'):
            assert name in names


class TestInputQueries:
    """Key, mouse and button builtins"""

    def test_key_pressed_requires_all(self, lib, state):
        state.input.press_key('a')
        state.input.press_key('b')
        assert call(lib, 'keyPressed', 'a', 'b') is True
        assert call(lib, 'keyPressed', 'a', 'c') is False
        assert call(lib, 'keyPressed') is True

    def test_key_clicked_list_is_any(self, lib, state):
        state.input.press_key('x')
        assert call(lib, 'keyClicked', ['w', 'x']) is True
        assert call(lib, 'keyClicked', ['w', 'y']) is False
        assert call(lib, 'keyClicked') is True

    def test_key_held(self, lib, state):
        assert call(lib, 'keyHeld') is False
        state.input.press_key('Shift')
        assert call(lib, 'keyHeld', 'shift') is True
        assert call(lib, 'isKeyPressed', 'Shift') is True

    def test_mouse_clicked_by_name_or_number(self, lib, state):
        state.input.press_mouse(RIGHT_MOUSE, 5, 5)
        assert call(lib, 'mouseClicked') is True
        assert call(lib, 'mouseClicked', 'right') is True
        assert call(lib, 'mouseClicked', 'left') is False
        assert call(lib, 'mouseClicked', 0, 2) is True
        assert call(lib, 'isRightMouse') is True
        assert call(lib, 'isLeftMouse') is False

    def test_mouse_clicked_false_without_click(self, lib):
        assert call(lib, 'mouseClicked') is False

    def test_pseudo_variables(self, lib, state):
        state.frame_count = 7
        state.input.pointer_x = 30
        state.input.begin_frame()
        assert lib.pseudo_variables['frameCount']() == 7
        assert lib.pseudo_variables['mouseX']() == 30
        assert lib.pseudo_variables['width']() == 400

    def test_button_click_inside(self, lib, state, surface):
        state.input.press_mouse(0, 15, 15)
        assert call(lib, 'button', 10, 10, 50, 20, "go") is True
        assert call(lib, 'buttonClicked', "go") is True
        rect = surface.find('rect')[0]
        assert rect.args == (10, 10, 50, 20, BUTTON_FILL, BUTTON_BORDER, 1)
        assert surface.find('text')[0].args[0] == "go"

    def test_button_click_outside(self, lib, state):
        state.input.press_mouse(0, 200, 200)
        assert call(lib, 'button', 10, 10, 50, 20, "go") is False

    def test_button_keeps_custom_fill(self, lib, surface):
        call(lib, 'fill', 0, 200, 0)
        call(lib, 'button', 0, 0, 10, 10, "ok")
        assert surface.find('rect')[0].args[4] == Color(0, 200, 0)

    def test_unknown_button(self, lib):
        assert call(lib, 'buttonClicked', "nothing") is False
