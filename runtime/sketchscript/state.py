"""
Interpreter state and input tracking

One InterpreterState is created per execute() call and owned by that run.
The InputTracker receives raw input events from the host (pointer moves,
button and key transitions) and exposes them to sketches with two kinds of
semantics:

    level   true on every frame the condition holds (mousePressed, keyHeld)
    edge    true for exactly one frame after a transition (mouseClicked,
            keyClicked); cleared by end_frame()
"""

from typing import Dict, List, Optional, Set, Tuple
from dataclasses import dataclass, field

from .config import InterpreterConfig
from .surface import Color


LEFT_MOUSE = 0
MIDDLE_MOUSE = 1
RIGHT_MOUSE = 2

MOUSE_BUTTON_NAMES = {
    'left': LEFT_MOUSE, 'leftmouse': LEFT_MOUSE,
    'middle': MIDDLE_MOUSE, 'middlemouse': MIDDLE_MOUSE,
    'right': RIGHT_MOUSE, 'rightmouse': RIGHT_MOUSE,
}


def _key_matches(held: str, wanted: str) -> bool:
    return held == wanted or held.lower() == wanted.lower()


def _button_matches(button, actual: Optional[int]) -> bool:
    if actual is None:
        return False
    if isinstance(button, str):
        number = MOUSE_BUTTON_NAMES.get(button.strip().lower())
        return number is not None and number == actual
    if isinstance(button, (int, float)) and not isinstance(button, bool):
        return actual == button
    return False


# ============================================================================
# Buttons
# ============================================================================

@dataclass
class ButtonState:
    """Bounds and click flag of one button widget"""
    x: float
    y: float
    w: float
    h: float
    clicked: bool = False

    def contains(self, px: float, py: float) -> bool:
        return self.x <= px <= self.x + self.w and self.y <= py <= self.y + self.h


class ButtonRegistry:
    """Button widgets by id; click flags live for one frame"""

    def __init__(self):
        self.buttons: Dict[str, ButtonState] = {}

    def update(self, button_id: str, x: float, y: float, w: float, h: float,
               click: Optional[Tuple[float, float]]) -> bool:
        """
        Register or move a button and hit-test this frame's click

        Args:
            click: position of a click that landed this frame, or None

        Returns:
            The button's clicked flag for the current frame
        """
        btn = self.buttons.get(button_id)
        if btn is None:
            btn = ButtonState(x, y, w, h)
            self.buttons[button_id] = btn
        else:
            btn.x, btn.y, btn.w, btn.h = x, y, w, h

        # Set at most once per frame; a second draw never clears it
        if click is not None and btn.contains(*click):
            btn.clicked = True
        return btn.clicked

    def clicked(self, button_id: str) -> bool:
        btn = self.buttons.get(button_id)
        return btn.clicked if btn else False

    def clear(self):
        """Reset click flags (start of every frame)"""
        for btn in self.buttons.values():
            btn.clicked = False


# ============================================================================
# Input Tracker
# ============================================================================

class InputTracker:
    """Mouse and keyboard state fed by host events"""

    def __init__(self):
        # Frame-latched positions seen by sketches
        self.mouse_x: float = 0
        self.mouse_y: float = 0
        self.pmouse_x: float = 0
        self.pmouse_y: float = 0
        # Latest pointer position reported by the host
        self.pointer_x: float = 0
        self.pointer_y: float = 0

        self.mouse_pressed = False
        self.mouse_clicked = False
        self.mouse_button = LEFT_MOUSE
        # Button behind the latched click; outlives release until end_frame
        self.click_button: Optional[int] = None
        self.click_position: Optional[Tuple[float, float]] = None

        # Insertion-ordered so the most recent key is last
        self.pressed_keys: List[str] = []
        self.current_key = ''
        self.clicked_keys: Set[str] = set()
        self.clicked_key: Optional[str] = None

        self.buttons = ButtonRegistry()

    # ------------------------------------------------------------------
    # Host events
    # ------------------------------------------------------------------

    def move_mouse(self, x: float, y: float):
        self.pointer_x = x
        self.pointer_y = y

    def press_mouse(self, button: int = LEFT_MOUSE, x: Optional[float] = None, y: Optional[float] = None):
        if x is not None and y is not None:
            self.move_mouse(x, y)
        self.mouse_pressed = True
        self.mouse_clicked = True
        self.mouse_button = button
        self.click_button = button
        self.click_position = (self.pointer_x, self.pointer_y)

    def release_mouse(self):
        self.mouse_pressed = False
        self.mouse_button = LEFT_MOUSE

    def press_key(self, key: str):
        # Auto-repeat of a held key is not a new click
        if key not in self.pressed_keys:
            self.clicked_keys.add(key)
            self.clicked_key = key
            self.pressed_keys.append(key)
        self.current_key = key

    def release_key(self, key: str):
        if key in self.pressed_keys:
            self.pressed_keys.remove(key)
        self.current_key = self.pressed_keys[-1] if self.pressed_keys else ''

    # ------------------------------------------------------------------
    # Frame boundaries
    # ------------------------------------------------------------------

    def begin_frame(self):
        """Latch the pointer for this frame and clear button flags"""
        self.buttons.clear()
        self.pmouse_x, self.pmouse_y = self.mouse_x, self.mouse_y
        self.mouse_x, self.mouse_y = self.pointer_x, self.pointer_y

    def end_frame(self):
        """Clear edge-triggered state once the frame has observed it"""
        self.mouse_clicked = False
        self.click_button = None
        self.click_position = None
        self.clicked_keys.clear()
        self.clicked_key = None

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def key_pressed(self) -> bool:
        return bool(self.pressed_keys)

    @property
    def key_clicked(self) -> bool:
        return bool(self.clicked_keys)

    def is_key_pressed(self, key: str) -> bool:
        wanted = str(key).strip()
        if any(_key_matches(held, wanted) for held in self.pressed_keys):
            return True
        return bool(self.current_key) and _key_matches(self.current_key, wanted)

    def is_key_clicked(self, key: str) -> bool:
        wanted = str(key).strip()
        return any(_key_matches(clicked, wanted) for clicked in self.clicked_keys)

    def is_mouse_button(self, button) -> bool:
        """Match a button given by number or by name ('left', 'rightMouse', ...)"""
        return _button_matches(button, self.mouse_button)

    def is_click_button(self, button) -> bool:
        """Match the button of this frame's click, even if already released"""
        return self.mouse_clicked and _button_matches(button, self.click_button)


# ============================================================================
# Paint and Interpreter State
# ============================================================================

@dataclass
class Paint:
    """Current drawing style"""
    fill: Optional[Color]
    stroke: Optional[Color]
    stroke_weight: float
    text_size: float

    def copy(self) -> "Paint":
        return Paint(self.fill, self.stroke, self.stroke_weight, self.text_size)


@dataclass
class InterpreterState:
    """Mutable state of one sketch run"""
    width: int
    height: int
    paint: Paint
    frame_count: int = 0
    input: InputTracker = field(default_factory=InputTracker)
    paint_stack: List[Paint] = field(default_factory=list)

    @classmethod
    def fresh(cls, config: InterpreterConfig) -> "InterpreterState":
        """Default state for a new run"""
        paint = Paint(
            fill=Color(*config.fill),
            stroke=Color(*config.stroke),
            stroke_weight=config.stroke_weight,
            text_size=config.text_size,
        )
        return cls(width=config.default_width, height=config.default_height, paint=paint)


__all__ = [
    'LEFT_MOUSE',
    'MIDDLE_MOUSE',
    'RIGHT_MOUSE',
    'ButtonState',
    'ButtonRegistry',
    'InputTracker',
    'Paint',
    'InterpreterState',
]
