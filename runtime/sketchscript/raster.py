"""
numpy-backed raster surface

Renders into an (height, width, 3) float RGB array. Shapes are rasterized by
mapping every pixel center through the inverse of the current transform and
testing it against the shape in local coordinates, so rotated and scaled
shapes (and their stroke widths) come out right without a path engine.

Coverage is binary (no anti-aliasing); alpha blends against what is already
in the buffer. Text is not rasterized: draw_text calls are kept in `texts`.
"""

import logging
import math
from typing import List, Optional, Sequence, Tuple

import numpy as np

from .surface import Color, Surface, Point

logger = logging.getLogger(__name__)


def _translation(x: float, y: float) -> np.ndarray:
    return np.array([[1.0, 0.0, x], [0.0, 1.0, y], [0.0, 0.0, 1.0]])


def _rotation(angle: float) -> np.ndarray:
    c, s = math.cos(angle), math.sin(angle)
    return np.array([[c, -s, 0.0], [s, c, 0.0], [0.0, 0.0, 1.0]])


def _scaling(sx: float, sy: float) -> np.ndarray:
    return np.array([[sx, 0.0, 0.0], [0.0, sy, 0.0], [0.0, 0.0, 1.0]])


def _segment_distance(px: np.ndarray, py: np.ndarray,
                      x1: float, y1: float, x2: float, y2: float) -> np.ndarray:
    """Distance from every point to the segment (x1, y1)-(x2, y2)"""
    dx, dy = x2 - x1, y2 - y1
    length_sq = dx * dx + dy * dy
    if length_sq == 0:
        return np.hypot(px - x1, py - y1)
    t = np.clip(((px - x1) * dx + (py - y1) * dy) / length_sq, 0.0, 1.0)
    return np.hypot(px - (x1 + t * dx), py - (y1 + t * dy))


def _angle_mask(lx: np.ndarray, ly: np.ndarray, cx: float, cy: float,
                start: float, stop: float) -> np.ndarray:
    """Points whose angle around (cx, cy) lies in [start, stop] (clockwise, y down)"""
    sweep = stop - start
    if sweep >= 2 * math.pi:
        return np.ones(lx.shape, dtype=bool)
    angles = np.mod(np.arctan2(ly - cy, lx - cx) - start, 2 * math.pi)
    if sweep <= 0:
        return np.zeros(lx.shape, dtype=bool)
    return angles <= sweep


class RasterSurface(Surface):
    """
    Software rasterizer over a numpy RGB buffer

    Example:
        >>> surface = RasterSurface(20, 10)
        >>> surface.clear(Color(255, 0, 0))
        >>> surface.pixel(3, 3)
        (255, 0, 0)
    """

    def __init__(self, width: int = 400, height: int = 300):
        self._matrix = np.identity(3)
        self._stack: List[np.ndarray] = []
        self.texts: List[Tuple[str, float, float, float, Optional[Color]]] = []
        self._allocate(width, height)

    def _allocate(self, width: int, height: int):
        self._width = max(1, int(width))
        self._height = max(1, int(height))
        self.pixels = np.full((self._height, self._width, 3), 255.0)
        xs = np.arange(self._width) + 0.5
        ys = np.arange(self._height) + 0.5
        self._grid_x, self._grid_y = np.meshgrid(xs, ys)

    # ------------------------------------------------------------------
    # Buffer access
    # ------------------------------------------------------------------

    @property
    def width(self) -> int:
        return self._width

    @property
    def height(self) -> int:
        return self._height

    def pixel(self, x: int, y: int) -> Tuple[int, int, int]:
        """RGB of the pixel at integer device coordinates"""
        r, g, b = np.rint(self.pixels[int(y), int(x)]).astype(int)
        return (int(r), int(g), int(b))

    def to_array(self) -> np.ndarray:
        """Copy of the buffer as uint8 (height, width, 3)"""
        return np.clip(np.rint(self.pixels), 0, 255).astype(np.uint8)

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    def resize(self, width: int, height: int):
        logger.debug(f"Raster resize to {width}x{height}")
        self._allocate(width, height)
        self.reset_transform()

    def clear(self, color: Color):
        if color.a >= 1.0:
            self.pixels[:, :] = color.rgb
        else:
            self._blend(np.ones((self._height, self._width), dtype=bool), color)

    def save(self):
        self._stack.append(self._matrix.copy())

    def restore(self):
        if self._stack:
            self._matrix = self._stack.pop()

    def translate(self, x: float, y: float):
        self._matrix = self._matrix @ _translation(x, y)

    def rotate(self, angle: float):
        self._matrix = self._matrix @ _rotation(angle)

    def scale(self, sx: float, sy: float):
        self._matrix = self._matrix @ _scaling(sx, sy)

    def reset_transform(self):
        self._matrix = np.identity(3)
        self._stack.clear()

    # ------------------------------------------------------------------
    # Rasterization helpers
    # ------------------------------------------------------------------

    def _local_grid(self) -> Tuple[Optional[np.ndarray], Optional[np.ndarray]]:
        """Pixel centers expressed in the current local coordinate system"""
        try:
            inverse = np.linalg.inv(self._matrix)
        except np.linalg.LinAlgError:
            # Degenerate transform (scale 0): nothing is visible
            return None, None
        lx = inverse[0, 0] * self._grid_x + inverse[0, 1] * self._grid_y + inverse[0, 2]
        ly = inverse[1, 0] * self._grid_x + inverse[1, 1] * self._grid_y + inverse[1, 2]
        return lx, ly

    def _blend(self, mask: np.ndarray, color: Optional[Color]):
        if color is None or color.a <= 0 or not mask.any():
            return
        rgb = np.array(color.rgb, dtype=float)
        if color.a >= 1.0:
            self.pixels[mask] = rgb
        else:
            self.pixels[mask] = self.pixels[mask] * (1.0 - color.a) + rgb * color.a

    @staticmethod
    def _half_weight(weight: float) -> float:
        # Hairlines still cover the pixel they pass through
        return max(float(weight), 1.0) / 2.0

    # ------------------------------------------------------------------
    # Shapes
    # ------------------------------------------------------------------

    def draw_rect(self, x, y, w, h, fill, stroke, weight):
        lx, ly = self._local_grid()
        if lx is None:
            return
        x0, x1 = sorted((x, x + w))
        y0, y1 = sorted((y, y + h))
        if fill is not None:
            self._blend((lx >= x0) & (lx < x1) & (ly >= y0) & (ly < y1), fill)
        if stroke is not None and weight > 0:
            hw = self._half_weight(weight)
            outer = (lx >= x0 - hw) & (lx < x1 + hw) & (ly >= y0 - hw) & (ly < y1 + hw)
            inner = (lx >= x0 + hw) & (lx < x1 - hw) & (ly >= y0 + hw) & (ly < y1 - hw)
            self._blend(outer & ~inner, stroke)

    def _ellipse_radius(self, lx, ly, cx, cy, rx, ry) -> np.ndarray:
        rx = max(abs(rx), 1e-9)
        ry = max(abs(ry), 1e-9)
        return ((lx - cx) / rx) ** 2 + ((ly - cy) / ry) ** 2

    def draw_ellipse(self, cx, cy, w, h, fill, stroke, weight):
        self.draw_arc(cx, cy, w, h, 0.0, 2 * math.pi, fill, stroke, weight)

    def draw_arc(self, cx, cy, w, h, start, stop, fill, stroke, weight):
        lx, ly = self._local_grid()
        if lx is None:
            return
        rx, ry = abs(w) / 2.0, abs(h) / 2.0
        sector = _angle_mask(lx, ly, cx, cy, start, stop)
        if fill is not None:
            self._blend((self._ellipse_radius(lx, ly, cx, cy, rx, ry) <= 1.0) & sector, fill)
        if stroke is not None and weight > 0:
            hw = self._half_weight(weight)
            outer = self._ellipse_radius(lx, ly, cx, cy, rx + hw, ry + hw) <= 1.0
            if rx > hw and ry > hw:
                inner = self._ellipse_radius(lx, ly, cx, cy, rx - hw, ry - hw) < 1.0
            else:
                inner = np.zeros(lx.shape, dtype=bool)
            self._blend(outer & ~inner & sector, stroke)

    def draw_line(self, x1, y1, x2, y2, stroke, weight):
        lx, ly = self._local_grid()
        if lx is None or stroke is None:
            return
        hw = self._half_weight(weight)
        self._blend(_segment_distance(lx, ly, x1, y1, x2, y2) <= hw, stroke)

    def draw_polygon(self, points: Sequence[Point], fill, stroke, weight):
        lx, ly = self._local_grid()
        if lx is None or len(points) < 2:
            return
        if fill is not None and len(points) >= 3:
            # Even-odd rule
            inside = np.zeros(lx.shape, dtype=bool)
            j = len(points) - 1
            for i in range(len(points)):
                xi, yi = points[i]
                xj, yj = points[j]
                if yi != yj:
                    crosses = (yi > ly) != (yj > ly)
                    x_cross = (xj - xi) * (ly - yi) / (yj - yi) + xi
                    inside ^= crosses & (lx < x_cross)
                j = i
            self._blend(inside, fill)
        if stroke is not None and weight > 0:
            hw = self._half_weight(weight)
            edges = np.zeros(lx.shape, dtype=bool)
            for i in range(len(points)):
                (xa, ya), (xb, yb) = points[i], points[(i + 1) % len(points)]
                edges |= _segment_distance(lx, ly, xa, ya, xb, yb) <= hw
            self._blend(edges, stroke)

    def draw_text(self, text, x, y, size, fill):
        self.texts.append((text, x, y, size, fill))


__all__ = ['RasterSurface']
