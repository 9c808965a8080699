"""
Drawing surface contract

The interpreter draws through the Surface interface only. Paint is passed
explicitly on every call (fill and stroke may each be None), so a surface
keeps no style state of its own besides its transform stack.

Implementations:
    RecordingSurface   appends every call to a command list (tests, replay)
    RasterSurface      numpy RGB raster (see raster.py)
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence, Tuple

Point = Tuple[float, float]


def _clamp_channel(value) -> int:
    return int(max(0, min(255, round(float(value)))))


@dataclass(frozen=True)
class Color:
    """RGBA color: channels 0-255, alpha 0-1"""
    r: int
    g: int
    b: int
    a: float = 1.0

    def __post_init__(self):
        object.__setattr__(self, 'r', _clamp_channel(self.r))
        object.__setattr__(self, 'g', _clamp_channel(self.g))
        object.__setattr__(self, 'b', _clamp_channel(self.b))
        object.__setattr__(self, 'a', max(0.0, min(1.0, float(self.a))))

    @classmethod
    def from_args(cls, args: Sequence[Any]) -> "Color":
        """
        Build a color from sketch arguments

        1 arg: gray, 2: gray + alpha, 3: RGB, 4: RGBA.
        """
        if len(args) == 1:
            return cls(args[0], args[0], args[0])
        if len(args) == 2:
            return cls(args[0], args[0], args[0], args[1])
        if len(args) == 3:
            return cls(args[0], args[1], args[2])
        if len(args) >= 4:
            return cls(args[0], args[1], args[2], args[3])
        raise ValueError("color needs 1 to 4 arguments")

    @property
    def rgb(self) -> Tuple[int, int, int]:
        return (self.r, self.g, self.b)

    def __str__(self) -> str:
        return f"rgba({self.r}, {self.g}, {self.b}, {self.a:g})"


WHITE = Color(255, 255, 255)
BLACK = Color(0, 0, 0)


# ============================================================================
# Surface Interface
# ============================================================================

class Surface(ABC):
    """2D immediate-mode drawing context"""

    @property
    @abstractmethod
    def width(self) -> int:
        ...

    @property
    @abstractmethod
    def height(self) -> int:
        ...

    @abstractmethod
    def resize(self, width: int, height: int):
        """Change pixel dimensions; contents are discarded"""

    @abstractmethod
    def clear(self, color: Color):
        """Fill the whole surface, ignoring the current transform"""

    @abstractmethod
    def save(self):
        ...

    @abstractmethod
    def restore(self):
        ...

    @abstractmethod
    def translate(self, x: float, y: float):
        ...

    @abstractmethod
    def rotate(self, angle: float):
        ...

    @abstractmethod
    def scale(self, sx: float, sy: float):
        ...

    @abstractmethod
    def reset_transform(self):
        ...

    @abstractmethod
    def draw_rect(self, x: float, y: float, w: float, h: float,
                  fill: Optional[Color], stroke: Optional[Color], weight: float):
        ...

    @abstractmethod
    def draw_ellipse(self, cx: float, cy: float, w: float, h: float,
                     fill: Optional[Color], stroke: Optional[Color], weight: float):
        """Ellipse centered at (cx, cy); w and h are full diameters"""

    @abstractmethod
    def draw_arc(self, cx: float, cy: float, w: float, h: float, start: float, stop: float,
                 fill: Optional[Color], stroke: Optional[Color], weight: float):
        ...

    @abstractmethod
    def draw_line(self, x1: float, y1: float, x2: float, y2: float,
                  stroke: Optional[Color], weight: float):
        ...

    @abstractmethod
    def draw_polygon(self, points: Sequence[Point],
                     fill: Optional[Color], stroke: Optional[Color], weight: float):
        ...

    @abstractmethod
    def draw_text(self, text: str, x: float, y: float, size: float, fill: Optional[Color]):
        ...


# ============================================================================
# Recording Surface
# ============================================================================

@dataclass
class DrawCommand:
    """One recorded surface call"""
    op: str
    args: Tuple[Any, ...]


class RecordingSurface(Surface):
    """Surface that records calls instead of rendering them"""

    def __init__(self, width: int = 400, height: int = 300):
        self._width = width
        self._height = height
        self.commands: List[DrawCommand] = []
        self.depth = 0

    @property
    def width(self) -> int:
        return self._width

    @property
    def height(self) -> int:
        return self._height

    def _record(self, op: str, *args):
        self.commands.append(DrawCommand(op, args))

    def ops(self) -> List[str]:
        """Names of recorded calls, in order"""
        return [cmd.op for cmd in self.commands]

    def find(self, op: str) -> List[DrawCommand]:
        return [cmd for cmd in self.commands if cmd.op == op]

    def resize(self, width: int, height: int):
        self._width = int(width)
        self._height = int(height)
        self._record('resize', self._width, self._height)

    def clear(self, color: Color):
        self._record('clear', color)

    def save(self):
        self.depth += 1
        self._record('save')

    def restore(self):
        if self.depth > 0:
            self.depth -= 1
        self._record('restore')

    def translate(self, x: float, y: float):
        self._record('translate', x, y)

    def rotate(self, angle: float):
        self._record('rotate', angle)

    def scale(self, sx: float, sy: float):
        self._record('scale', sx, sy)

    def reset_transform(self):
        self.depth = 0
        self._record('reset_transform')

    def draw_rect(self, x, y, w, h, fill, stroke, weight):
        self._record('rect', x, y, w, h, fill, stroke, weight)

    def draw_ellipse(self, cx, cy, w, h, fill, stroke, weight):
        self._record('ellipse', cx, cy, w, h, fill, stroke, weight)

    def draw_arc(self, cx, cy, w, h, start, stop, fill, stroke, weight):
        self._record('arc', cx, cy, w, h, start, stop, fill, stroke, weight)

    def draw_line(self, x1, y1, x2, y2, stroke, weight):
        self._record('line', x1, y1, x2, y2, stroke, weight)

    def draw_polygon(self, points, fill, stroke, weight):
        self._record('polygon', tuple(points), fill, stroke, weight)

    def draw_text(self, text, x, y, size, fill):
        self._record('text', text, x, y, size, fill)


__all__ = [
    'Color',
    'WHITE',
    'BLACK',
    'Surface',
    'DrawCommand',
    'RecordingSurface',
]
