"""
Test suite for input tracking and the button registry
"""

import sys
import os

# Add grandparent directory to path for imports (to find sketchscript package)
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))))

from sketchscript.config import InterpreterConfig
from sketchscript.state import (
    ButtonRegistry, InputTracker, InterpreterState, LEFT_MOUSE, MIDDLE_MOUSE,
    RIGHT_MOUSE,
)
from sketchscript.surface import Color


class TestKeys:
    """Level vs edge key state"""

    def test_press_sets_level_and_edge(self):
        inp = InputTracker()
        inp.press_key('a')
        assert inp.key_pressed
        assert inp.key_clicked
        assert inp.clicked_key == 'a'
        assert inp.current_key == 'a'

    def test_edge_cleared_at_end_of_frame(self):
        inp = InputTracker()
        inp.press_key('a')
        inp.end_frame()
        assert inp.key_pressed
        assert not inp.key_clicked
        assert inp.clicked_key is None

    def test_repeat_is_not_a_new_click(self):
        inp = InputTracker()
        inp.press_key('a')
        inp.end_frame()
        inp.press_key('a')
        assert not inp.key_clicked
        assert inp.pressed_keys == ['a']

    def test_release_falls_back_to_last_held(self):
        inp = InputTracker()
        inp.press_key('a')
        inp.press_key('b')
        inp.release_key('b')
        assert inp.current_key == 'a'
        inp.release_key('a')
        assert inp.current_key == ''
        assert not inp.key_pressed

    def test_case_insensitive_match(self):
        inp = InputTracker()
        inp.press_key('A')
        assert inp.is_key_pressed('a')
        assert inp.is_key_clicked('a')
        assert not inp.is_key_pressed('b')


class TestMouse:
    """Pointer latching and click edges"""

    def test_begin_frame_latches_pointer(self):
        inp = InputTracker()
        inp.move_mouse(10, 20)
        assert (inp.mouse_x, inp.mouse_y) == (0, 0)
        inp.begin_frame()
        assert (inp.mouse_x, inp.mouse_y) == (10, 20)
        assert (inp.pmouse_x, inp.pmouse_y) == (0, 0)
        inp.move_mouse(30, 40)
        inp.begin_frame()
        assert (inp.pmouse_x, inp.pmouse_y) == (10, 20)
        assert (inp.mouse_x, inp.mouse_y) == (30, 40)

    def test_click_is_one_frame(self):
        inp = InputTracker()
        inp.press_mouse(LEFT_MOUSE, 5, 6)
        assert inp.mouse_clicked
        assert inp.click_position == (5, 6)
        inp.end_frame()
        assert not inp.mouse_clicked
        assert inp.click_position is None
        assert inp.mouse_pressed

    def test_release(self):
        inp = InputTracker()
        inp.press_mouse(RIGHT_MOUSE)
        inp.release_mouse()
        assert not inp.mouse_pressed
        assert inp.mouse_button == LEFT_MOUSE

    def test_button_names(self):
        inp = InputTracker()
        inp.press_mouse(MIDDLE_MOUSE)
        assert inp.is_mouse_button('middle')
        assert inp.is_mouse_button('middleMouse')
        assert inp.is_mouse_button(1)
        assert not inp.is_mouse_button('left')
        assert not inp.is_mouse_button('sideways')
        assert not inp.is_mouse_button(True)

    def test_click_button_survives_release(self):
        inp = InputTracker()
        inp.press_mouse(RIGHT_MOUSE)
        inp.release_mouse()
        assert inp.mouse_button == LEFT_MOUSE
        assert inp.is_click_button('right')
        assert not inp.is_click_button('left')
        inp.end_frame()
        assert inp.click_button is None
        assert not inp.is_click_button('right')


class TestButtonRegistry:
    """Per-frame click flags"""

    def test_click_inside(self):
        registry = ButtonRegistry()
        assert registry.update('go', 0, 0, 10, 10, (5, 5))
        assert registry.clicked('go')

    def test_click_outside(self):
        registry = ButtonRegistry()
        assert not registry.update('go', 0, 0, 10, 10, (50, 5))

    def test_flag_survives_redraw_in_same_frame(self):
        registry = ButtonRegistry()
        registry.update('go', 0, 0, 10, 10, (5, 5))
        assert registry.update('go', 0, 0, 10, 10, None)

    def test_clear(self):
        registry = ButtonRegistry()
        registry.update('go', 0, 0, 10, 10, (5, 5))
        registry.clear()
        assert not registry.clicked('go')
        assert 'go' in registry.buttons

    def test_moved_button_uses_new_bounds(self):
        registry = ButtonRegistry()
        registry.update('go', 0, 0, 10, 10, None)
        assert registry.update('go', 100, 100, 10, 10, (105, 105))

    def test_begin_frame_clears_buttons(self):
        inp = InputTracker()
        inp.buttons.update('go', 0, 0, 10, 10, (1, 1))
        inp.begin_frame()
        assert not inp.buttons.clicked('go')


class TestInterpreterState:
    """Fresh state per run"""

    def test_fresh_defaults(self):
        state = InterpreterState.fresh(InterpreterConfig())
        assert (state.width, state.height) == (400, 300)
        assert state.frame_count == 0
        assert state.paint.fill == Color(0, 0, 0)
        assert state.paint.stroke_weight == 1.0
        assert state.paint_stack == []

    def test_fresh_states_are_independent(self):
        config = InterpreterConfig(default_width=64, default_height=32)
        first = InterpreterState.fresh(config)
        second = InterpreterState.fresh(config)
        first.input.press_key('a')
        assert not second.input.key_pressed
        assert first.width == 64

    def test_paint_copy(self):
        state = InterpreterState.fresh(InterpreterConfig())
        saved = state.paint.copy()
        state.paint.fill = None
        assert saved.fill == Color(0, 0, 0)
