"""
Headless sketch runner

    python -m sketchscript sketch.art --frames 60 --save frame.npy

Runs a sketch against a RasterSurface, stepping a ManualClock for the
requested number of frames, and prints the console messages. A sketch path
may also be a folder holding <folder>.art (one sketch per folder, with an
optional data/ directory beside it).
"""

import argparse
import asyncio
import logging
import os
import sys
from typing import List, Optional

import numpy as np

from .config import InterpreterConfig
from .errors import SketchError
from .interpreter import SketchInterpreter
from .messages import ERROR, MessageLog
from .raster import RasterSurface
from .scheduler import ManualClock

logger = logging.getLogger(__name__)

SKETCH_EXTENSION = ".art"


def resolve_sketch_path(path: str) -> str:
    """Return the .art file for a file or sketch-folder path"""
    if os.path.isdir(path):
        folder = os.path.basename(os.path.normpath(path))
        candidate = os.path.join(path, folder + SKETCH_EXTENSION)
        if os.path.isfile(candidate):
            return candidate
        raise FileNotFoundError(f"No {folder}{SKETCH_EXTENSION} in sketch folder '{path}'")
    if not os.path.isfile(path):
        raise FileNotFoundError(f"File '{path}' not found.")
    return path


async def run_sketch(source: str, frames: int, config: InterpreterConfig,
                     on_input: Optional[str] = None):
    """
    Run source headlessly

    Returns:
        (surface, messages, frames_run)
    """
    surface = RasterSurface(config.default_width, config.default_height)
    clock = ManualClock()
    messages = MessageLog()
    interpreter = SketchInterpreter(
        surface,
        on_message=messages,
        on_input_request=(lambda prompt: on_input),
        clock=clock,
        config=config,
    )

    frames_run = 0
    try:
        await interpreter.execute(source)
        frames_run = await clock.advance(frames)
    except SketchError:
        # Already reported through the message log
        pass
    finally:
        interpreter.stop()
    return surface, messages, frames_run


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Run a SketchScript sketch headlessly.")
    parser.add_argument("sketch", type=str, help="Path to a .art file or a sketch folder.")
    parser.add_argument("--frames", type=int, default=1, help="Number of frames to run.")
    parser.add_argument("--fps", type=float, default=None, help="Frame rate reported to the sketch config.")
    parser.add_argument("--save", type=str, default=None, help="Save the final raster as a .npy file.")
    parser.add_argument("--input", type=str, default=None, help="Answer given to every input() call.")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging.")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        path = resolve_sketch_path(args.sketch)
        with open(path, encoding="utf-8") as handle:
            source = handle.read()
    except (OSError, UnicodeDecodeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    config = InterpreterConfig()
    if args.fps is not None:
        config.fps = args.fps

    logger.debug(f"Running {path} for {args.frames} frames")
    surface, messages, frames_run = asyncio.run(run_sketch(source, args.frames, config, args.input))

    for message in messages.messages:
        stream = sys.stderr if message.kind == ERROR else sys.stdout
        print(message, file=stream)

    if args.save:
        np.save(args.save, surface.to_array())
        logger.info(f"Saved {surface.width}x{surface.height} raster to {args.save}")

    return 1 if messages.errors else 0


if __name__ == "__main__":
    sys.exit(main())
