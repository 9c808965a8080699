"""
Shared fixtures for the SketchScript test suite

Interpreter tests run on a RecordingSurface with a ManualClock, so every
frame is released explicitly and the results are deterministic.
"""

import asyncio
import os
import sys

import pytest

# Add grandparent directory to path for imports (to find sketchscript package)
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))))

from sketchscript.errors import SketchError
from sketchscript.interpreter import SketchInterpreter
from sketchscript.messages import MessageLog
from sketchscript.scheduler import ManualClock
from sketchscript.surface import RecordingSurface


@pytest.fixture
def surface():
    return RecordingSurface()


@pytest.fixture
def log():
    return MessageLog()


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def interpreter(surface, log, clock):
    return SketchInterpreter(surface, on_message=log, clock=clock)


async def start(interpreter, source):
    """execute() that keeps going after a reported error"""
    try:
        await interpreter.execute(source)
    except SketchError:
        pass


def run_sketch(interpreter, clock, source, frames=0, before_frame=None):
    """
    Execute source and release frames one at a time

    before_frame(index, input_tracker) runs before each frame so tests can
    inject host events. Returns the number of frames that completed.
    """
    async def scenario():
        await start(interpreter, source)
        completed = 0
        for index in range(frames):
            if before_frame is not None:
                before_frame(index, interpreter.input)
            completed += await clock.advance(1)
        return completed

    return asyncio.run(scenario())
