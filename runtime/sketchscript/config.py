"""
Interpreter configuration

Defaults mirror the IDE the language was built for: a 400x300 white canvas,
black fill and stroke, 60 frames per second.
"""

from dataclasses import dataclass, field
from typing import Tuple


DEFAULT_WIDTH = 400
DEFAULT_HEIGHT = 300
DEFAULT_FPS = 60.0
DEFAULT_TEXT_SIZE = 16
# Sketch-level call nesting; deeper recursion is reported as a runtime error
DEFAULT_MAX_CALL_DEPTH = 100
FRAME_FUNCTION_NAMES = ("loop", "draw")

RGB = Tuple[int, int, int]


@dataclass
class InterpreterConfig:
    """Per-interpreter settings applied on every execute()"""
    default_width: int = DEFAULT_WIDTH
    default_height: int = DEFAULT_HEIGHT
    fps: float = DEFAULT_FPS
    background: RGB = (255, 255, 255)
    fill: RGB = (0, 0, 0)
    stroke: RGB = (0, 0, 0)
    stroke_weight: float = 1.0
    text_size: int = DEFAULT_TEXT_SIZE
    max_call_depth: int = DEFAULT_MAX_CALL_DEPTH
    # First match wins when a sketch defines more than one
    frame_function_names: Tuple[str, ...] = field(default=FRAME_FUNCTION_NAMES)

    @property
    def frame_interval(self) -> float:
        """Seconds between animation frames"""
        if self.fps <= 0:
            return 0.0
        return 1.0 / self.fps


__all__ = [
    'InterpreterConfig',
    'DEFAULT_WIDTH',
    'DEFAULT_HEIGHT',
    'DEFAULT_FPS',
    'DEFAULT_TEXT_SIZE',
    'DEFAULT_MAX_CALL_DEPTH',
    'FRAME_FUNCTION_NAMES',
]
