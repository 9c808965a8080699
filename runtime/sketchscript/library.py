"""
SketchScript Runtime Library

The fixed namespace bound into every run:

    builtins          callables (drawing, math, lists, I/O, input, buttons,
                      timing, encrypt/decrypt, conversions)
    constants         PI, TWO_PI, HALF_PI, mouse button numbers and the
                      `math` object (math.cos(x), math.PI, ...)
    pseudo_variables  read-only values recomputed on every read (mouseX,
                      frameCount, width, ...)

A RuntimeLibrary is created per run and closes over that run's state and the
interpreter's surface and host callbacks.
"""

import asyncio
import inspect
import logging
import math
import random
import re
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from .config import InterpreterConfig
from .errors import SketchError, bounds_error, E_TYPE_ERROR
from .messages import INFO, MessageCallback
from .obfuscate import encrypt, decrypt
from .state import InterpreterState, LEFT_MOUSE, MIDDLE_MOUSE, RIGHT_MOUSE
from .surface import Color, RecordingSurface, Surface, WHITE
from . import values

logger = logging.getLogger(__name__)

InputCallback = Callable[[str], Union[Optional[str], Awaitable[Optional[str]]]]
ResizeCallback = Callable[[int, int], None]

BUTTON_FILL = Color(200, 200, 200)
BUTTON_BORDER = Color(100, 100, 100)
BUTTON_LABEL_SIZE = 14

_NUMBER_PREFIX = re.compile(r'^\s*[-+]?(\d+\.?\d*|\.\d+)([eE][-+]?\d+)?')


def _number(name: str, value: Any) -> Union[int, float]:
    """Check a numeric argument"""
    if not values.is_number(value):
        raise SketchError(E_TYPE_ERROR, f"{name}() expects a number, got {values.type_name(value)}")
    return value


def _color(name: str, args: tuple) -> Color:
    if not 1 <= len(args) <= 4:
        raise SketchError(E_TYPE_ERROR, f"{name}() expects 1 to 4 color values, got {len(args)}")
    return Color.from_args([_number(name, arg) for arg in args])


def _js_round(value):
    """Round half up, like the host dialect (round(2.5) == 3, round(-2.5) == -2)"""
    if isinstance(value, float) and not math.isfinite(value):
        return value
    return math.floor(value + 0.5)


def _floor(value):
    if isinstance(value, float) and not math.isfinite(value):
        return value
    return math.floor(value)


def _ceil(value):
    if isinstance(value, float) and not math.isfinite(value):
        return value
    return math.ceil(value)


class RuntimeLibrary:
    """Builtins bound to one run's state and surface"""

    def __init__(self,
                 state: InterpreterState,
                 surface: Surface,
                 on_message: Optional[MessageCallback] = None,
                 on_input_request: Optional[InputCallback] = None,
                 on_resize: Optional[ResizeCallback] = None,
                 config: Optional[InterpreterConfig] = None):
        self.state = state
        self.surface = surface
        self.on_message = on_message
        self.on_input_request = on_input_request
        self.on_resize = on_resize
        self.config = config or InterpreterConfig()

        self.builtins: Dict[str, Callable] = {
            # Canvas and drawing
            'size': self._builtin_size,
            'background': self._builtin_background,
            'fill': self._builtin_fill,
            'stroke': self._builtin_stroke,
            'noFill': self._builtin_no_fill,
            'noStroke': self._builtin_no_stroke,
            'strokeWeight': self._builtin_stroke_weight,
            'rect': self._builtin_rect,
            'ellipse': self._builtin_ellipse,
            'circle': self._builtin_circle,
            'line': self._builtin_line,
            'point': self._builtin_point,
            'triangle': self._builtin_triangle,
            'quad': self._builtin_quad,
            'arc': self._builtin_arc,
            'text': self._builtin_text,
            'textSize': self._builtin_text_size,
            'push': self._builtin_push,
            'pop': self._builtin_pop,
            'translate': self._builtin_translate,
            'rotate': self._builtin_rotate,
            'scale': self._builtin_scale,
            # Math
            'random': self._builtin_random,
            'map': self._builtin_map,
            'constrain': self._builtin_constrain,
            'dist': self._builtin_dist,
            'lerp': self._builtin_lerp,
            **self._math_functions(),
            # Lists
            'createList': self._builtin_create_list,
            'append': self._builtin_append,
            'getLength': self._builtin_get_length,
            'getItem': self._builtin_get_item,
            'setItem': self._builtin_set_item,
            # I/O and timing
            'print': self._builtin_print,
            'input': self._builtin_input,
            'delay': self._builtin_delay,
            # Input queries
            'isKeyPressed': self._builtin_is_key_pressed,
            'keyPressed': self._builtin_key_pressed,
            'keyClicked': self._builtin_key_clicked,
            'keyHeld': self._builtin_key_held,
            'isLeftMouse': self._builtin_is_left_mouse,
            'isRightMouse': self._builtin_is_right_mouse,
            'mouseClicked': self._builtin_mouse_clicked,
            # Buttons
            'button': self._builtin_button,
            'buttonClicked': self._builtin_button_clicked,
            # Obfuscation
            'encrypt': encrypt,
            'decrypt': decrypt,
            # Conversions
            'str': self._builtin_str,
            'num': self._builtin_num,
            'int': self._builtin_int,
            'type': self._builtin_type,
            'len': self._builtin_get_length,
        }

        self.constants: Dict[str, Any] = {
            'PI': math.pi,
            'TWO_PI': math.pi * 2,
            'HALF_PI': math.pi / 2,
            'leftMouse': LEFT_MOUSE,
            'middleMouse': MIDDLE_MOUSE,
            'rightMouse': RIGHT_MOUSE,
            'math': {**self._math_functions(), 'PI': math.pi, 'E': math.e},
        }

        inp = state.input
        self.pseudo_variables: Dict[str, Callable[[], Any]] = {
            'mouseX': lambda: inp.mouse_x,
            'mouseY': lambda: inp.mouse_y,
            'pmouseX': lambda: inp.pmouse_x,
            'pmouseY': lambda: inp.pmouse_y,
            'mousePressed': lambda: inp.mouse_pressed,
            'mouseClicked': lambda: inp.mouse_clicked,
            'mouseButton': lambda: inp.mouse_button,
            'keyPressed': lambda: inp.key_pressed,
            'keyClicked': lambda: inp.key_clicked,
            'key': lambda: inp.current_key,
            'clickedKey': lambda: inp.clicked_key,
            'frameCount': lambda: state.frame_count,
            'width': lambda: state.width,
            'height': lambda: state.height,
        }

    def _emit(self, kind: str, text: str, line: Optional[int] = None):
        if self.on_message is not None:
            self.on_message(kind, text, line)

    # ------------------------------------------------------------------
    # Canvas and drawing
    # ------------------------------------------------------------------

    def _builtin_size(self, w, h):
        """Built-in: size(w, h) resizes the canvas and clears it to white"""
        width, height = int(_number('size', w)), int(_number('size', h))
        if width <= 0 or height <= 0:
            raise SketchError(E_TYPE_ERROR, f"size() needs positive dimensions, got {width}x{height}")
        self.surface.resize(width, height)
        self.state.width = width
        self.state.height = height
        self.surface.clear(WHITE)
        if self.on_resize is not None:
            self.on_resize(width, height)
        logger.debug(f"Canvas resized to {width}x{height}")

    def _builtin_background(self, *args):
        self.surface.clear(_color('background', args))

    def _builtin_fill(self, *args):
        self.state.paint.fill = _color('fill', args)

    def _builtin_stroke(self, *args):
        self.state.paint.stroke = _color('stroke', args)

    def _builtin_no_fill(self):
        self.state.paint.fill = None

    def _builtin_no_stroke(self):
        self.state.paint.stroke = None

    def _builtin_stroke_weight(self, weight):
        self.state.paint.stroke_weight = max(0, _number('strokeWeight', weight))

    def _shape(self, name: str, args: tuple, count: int) -> List[float]:
        if len(args) != count:
            raise SketchError(E_TYPE_ERROR, f"{name}() expects {count} arguments, got {len(args)}")
        return [_number(name, arg) for arg in args]

    def _builtin_rect(self, *args):
        x, y, w, h = self._shape('rect', args, 4)
        paint = self.state.paint
        self.surface.draw_rect(x, y, w, h, paint.fill, paint.stroke, paint.stroke_weight)

    def _builtin_ellipse(self, x, y, w, h=None):
        """Built-in: ellipse(x, y, w, h?) centered, w/h are diameters"""
        x, y, w = self._shape('ellipse', (x, y, w), 3)
        h = w if h is None else _number('ellipse', h)
        paint = self.state.paint
        self.surface.draw_ellipse(x, y, w, h, paint.fill, paint.stroke, paint.stroke_weight)

    def _builtin_circle(self, x, y, r):
        """Built-in: circle(x, y, radius)"""
        x, y, r = self._shape('circle', (x, y, r), 3)
        paint = self.state.paint
        self.surface.draw_ellipse(x, y, r * 2, r * 2, paint.fill, paint.stroke, paint.stroke_weight)

    def _builtin_line(self, *args):
        x1, y1, x2, y2 = self._shape('line', args, 4)
        paint = self.state.paint
        self.surface.draw_line(x1, y1, x2, y2, paint.stroke, paint.stroke_weight)

    def _builtin_point(self, *args):
        x, y = self._shape('point', args, 2)
        paint = self.state.paint
        size = max(paint.stroke_weight, 1)
        self.surface.draw_rect(x, y, size, size, paint.stroke, None, 0)

    def _builtin_triangle(self, *args):
        coords = self._shape('triangle', args, 6)
        self._polygon(coords)

    def _builtin_quad(self, *args):
        coords = self._shape('quad', args, 8)
        self._polygon(coords)

    def _polygon(self, coords: List[float]):
        points = list(zip(coords[0::2], coords[1::2]))
        paint = self.state.paint
        self.surface.draw_polygon(points, paint.fill, paint.stroke, paint.stroke_weight)

    def _builtin_arc(self, *args):
        x, y, w, h, start, stop = self._shape('arc', args, 6)
        paint = self.state.paint
        self.surface.draw_arc(x, y, w, h, start, stop, paint.fill, paint.stroke, paint.stroke_weight)

    def _builtin_text(self, value, x, y, size=None):
        """Built-in: text(value, x, y, size?)"""
        x, y = self._shape('text', (x, y), 2)
        size = self.state.paint.text_size if size is None else _number('text', size)
        self.surface.draw_text(values.display(value), x, y, size, self.state.paint.fill)

    def _builtin_text_size(self, size):
        self.state.paint.text_size = _number('textSize', size)

    def _builtin_push(self):
        """Built-in: push() saves colors, stroke weight, text size and transform"""
        self.state.paint_stack.append(self.state.paint.copy())
        self.surface.save()

    def _builtin_pop(self):
        if not self.state.paint_stack:
            return
        self.state.paint = self.state.paint_stack.pop()
        self.surface.restore()

    def _builtin_translate(self, x, y):
        self.surface.translate(_number('translate', x), _number('translate', y))

    def _builtin_rotate(self, angle):
        self.surface.rotate(_number('rotate', angle))

    def _builtin_scale(self, sx, sy=None):
        sx = _number('scale', sx)
        self.surface.scale(sx, sx if sy is None else _number('scale', sy))

    # ------------------------------------------------------------------
    # Math
    # ------------------------------------------------------------------

    @staticmethod
    def _math_functions() -> Dict[str, Callable]:
        def min_max(pick):
            def apply(*args):
                items = args[0] if len(args) == 1 and isinstance(args[0], list) else args
                if not items:
                    raise SketchError(E_TYPE_ERROR, f"{pick.__name__}() needs at least one value")
                return pick(_number(pick.__name__, item) for item in items)
            apply.__name__ = pick.__name__
            return apply

        return {
            'sin': math.sin,
            'cos': math.cos,
            'tan': math.tan,
            'asin': math.asin,
            'acos': math.acos,
            'atan': math.atan,
            'atan2': math.atan2,
            'sqrt': math.sqrt,
            'pow': math.pow,
            'abs': abs,
            'floor': _floor,
            'ceil': _ceil,
            'round': _js_round,
            'min': min_max(min),
            'max': min_max(max),
        }

    def _builtin_random(self, low=None, high=None):
        """
        Built-in: random()

        random() -> [0, 1), random(a) -> [0, a), random(a, b) -> [a, b),
        random(list) -> a random element.
        """
        if isinstance(low, list):
            return random.choice(low) if low else None
        if low is None:
            return random.random()
        if high is None:
            return random.random() * _number('random', low)
        low, high = _number('random', low), _number('random', high)
        return random.random() * (high - low) + low

    def _builtin_map(self, value, start1, stop1, start2, stop2):
        """Built-in: map(v, s1, e1, s2, e2) linear remap"""
        value, start1, stop1, start2, stop2 = (
            _number('map', arg) for arg in (value, start1, stop1, start2, stop2)
        )
        if stop1 == start1:
            raise SketchError(E_TYPE_ERROR, "map() input range is empty")
        return start2 + (stop2 - start2) * ((value - start1) / (stop1 - start1))

    def _builtin_constrain(self, value, low, high):
        return max(_number('constrain', low), min(_number('constrain', high), _number('constrain', value)))

    def _builtin_dist(self, x1, y1, x2, y2):
        return math.hypot(_number('dist', x2) - _number('dist', x1), _number('dist', y2) - _number('dist', y1))

    def _builtin_lerp(self, start, stop, amount):
        start, stop, amount = (_number('lerp', arg) for arg in (start, stop, amount))
        return start + (stop - start) * amount

    # ------------------------------------------------------------------
    # Lists
    # ------------------------------------------------------------------

    def _builtin_create_list(self, *items) -> list:
        return list(items)

    def _builtin_append(self, target, item):
        """
        Built-in: append(target, item)

        On a list, pushes item. On a map, shallow-merges a map item into it
        (later values win).
        """
        if isinstance(target, list):
            target.append(item)
            return target
        if isinstance(target, dict):
            if not isinstance(item, dict):
                raise SketchError(E_TYPE_ERROR,
                                  "Cannot append non-object to object. Use object syntax: obj.key = value")
            target.update(item)
            return target
        raise SketchError(E_TYPE_ERROR, "append() only works with lists [] or objects {}")

    def _builtin_get_length(self, target) -> int:
        if isinstance(target, (list, str, dict)):
            return len(target)
        raise SketchError(E_TYPE_ERROR, f"Cannot get length of {values.type_name(target)}")

    @staticmethod
    def _index(target: list, index) -> int:
        if not values.is_number(index) or not float(index).is_integer():
            raise SketchError(E_TYPE_ERROR, f"List index must be a whole number, got {values.display(index)}")
        if index < 0 or index >= len(target):
            raise bounds_error(values.display(index), len(target))
        return int(index)

    def _builtin_get_item(self, target, index):
        """Built-in: getItem(list, i), bounds-checked"""
        if isinstance(target, (list, str)):
            return target[self._index(target, index)]
        if isinstance(target, dict):
            return target.get(values.display(index))
        raise SketchError(E_TYPE_ERROR, f"getItem() expects a list, got {values.type_name(target)}")

    def _builtin_set_item(self, target, index_or_key, value):
        """Built-in: setItem(listOrMap, indexOrKey, value)"""
        if isinstance(target, list):
            target[self._index(target, index_or_key)] = value
            return target
        if isinstance(target, dict):
            target[values.display(index_or_key)] = value
            return target
        raise SketchError(E_TYPE_ERROR, "setItem() only works with lists [] or objects {}")

    # ------------------------------------------------------------------
    # I/O and timing
    # ------------------------------------------------------------------

    def _builtin_print(self, *args):
        self._emit(INFO, ' '.join(values.display(arg) for arg in args))

    async def _builtin_input(self, prompt=""):
        """Built-in: input(prompt) suspends until the host answers; null if cancelled"""
        if self.on_input_request is None:
            return None
        answer = self.on_input_request(values.display(prompt))
        if inspect.isawaitable(answer):
            answer = await answer
        return None if answer is None else str(answer)

    async def _builtin_delay(self, seconds):
        """Built-in: delay(seconds) suspends the calling sketch code only"""
        seconds = _number('delay', seconds)
        if seconds <= 0:
            return
        await asyncio.sleep(seconds)

    # ------------------------------------------------------------------
    # Input queries
    # ------------------------------------------------------------------

    def _builtin_is_key_pressed(self, key):
        return self.state.input.is_key_pressed(values.display(key))

    def _builtin_key_pressed(self, *keys):
        """Built-in: keyPressed(...keys) is true when ALL keys are down"""
        if not keys:
            return self.state.input.key_pressed
        return all(self.state.input.is_key_pressed(values.display(key)) for key in keys)

    def _builtin_key_clicked(self, key=None):
        """Built-in: keyClicked(key?) is true on the one frame after key-down"""
        inp = self.state.input
        if not inp.key_clicked:
            return False
        if key is None:
            return True
        if isinstance(key, list):
            return any(self._builtin_key_clicked(k) for k in key)
        return inp.is_key_clicked(values.display(key))

    def _builtin_key_held(self, key=None):
        if key is None:
            return self.state.input.key_pressed
        return self.state.input.is_key_pressed(values.display(key))

    def _builtin_is_left_mouse(self):
        return self.state.input.mouse_button == LEFT_MOUSE

    def _builtin_is_right_mouse(self):
        return self.state.input.mouse_button == RIGHT_MOUSE

    def _builtin_mouse_clicked(self, *buttons):
        """Built-in: mouseClicked(...buttons) is true when ANY listed button clicked this frame"""
        inp = self.state.input
        if not inp.mouse_clicked:
            return False
        if not buttons:
            return True
        return any(inp.is_click_button(button) for button in buttons)

    # ------------------------------------------------------------------
    # Buttons
    # ------------------------------------------------------------------

    def _builtin_button(self, x, y, w, h, button_id):
        """Built-in: button(x, y, w, h, id) draws a button and returns its clicked flag"""
        x, y, w, h = self._shape('button', (x, y, w, h), 4)
        label = values.display(button_id)
        inp = self.state.input
        click = inp.click_position if inp.mouse_clicked else None
        clicked = inp.buttons.update(label, x, y, w, h, click)

        fill = self.state.paint.fill
        if fill is None or fill == Color(*self.config.fill):
            fill = BUTTON_FILL
        self.surface.draw_rect(x, y, w, h, fill, BUTTON_BORDER, 1)
        self.surface.draw_text(label, x + 10, y + h / 2, BUTTON_LABEL_SIZE, Color(0, 0, 0))
        return clicked

    def _builtin_button_clicked(self, button_id):
        return self.state.input.buttons.clicked(values.display(button_id))

    # ------------------------------------------------------------------
    # Conversions
    # ------------------------------------------------------------------

    def _builtin_str(self, value) -> str:
        return values.display(value)

    def _builtin_num(self, value):
        """Built-in: num(value) parses a leading number like parseFloat; null if none"""
        if values.is_number(value):
            return value
        if isinstance(value, bool):
            return int(value)
        if isinstance(value, str):
            match = _NUMBER_PREFIX.match(value)
            if match:
                text = match.group(0).strip()
                if '.' in text or 'e' in text.lower():
                    return float(text)
                return int(text)
        return None

    def _builtin_int(self, value):
        number = self._builtin_num(value)
        if number is None:
            return None
        return int(number) if math.isfinite(number) else number

    def _builtin_type(self, value) -> str:
        return values.type_name(value)


def builtin_names() -> List[str]:
    """Names of every builtin function and constant (for tooling)"""
    library = RuntimeLibrary(InterpreterState.fresh(InterpreterConfig()), RecordingSurface())
    return sorted(set(library.builtins) | set(library.constants) | set(library.pseudo_variables))


__all__ = [
    'RuntimeLibrary',
    'builtin_names',
    'InputCallback',
    'ResizeCallback',
]
