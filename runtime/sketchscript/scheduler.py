"""
Frame scheduling

FrameScheduler drives the sketch's frame function from a FrameClock. Each
tick is awaited to completion (including any delay()/input() suspension)
before the clock is asked for the next frame, so ticks never overlap.

Clocks:
    RealtimeClock   one frame per config.frame_interval on the event loop
    ManualClock     frames only when advance(n) is called; advance() waits
                    until those frames have finished running
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Awaitable, Callable, Optional

from .config import InterpreterConfig

logger = logging.getLogger(__name__)

TickCallback = Callable[[], Awaitable[bool]]


# ============================================================================
# Clocks
# ============================================================================

class FrameClock(ABC):
    """Source of animation frames"""

    attached = False

    def attach(self):
        """Called when a scheduler starts using the clock"""
        self.attached = True

    def detach(self):
        """Called when the scheduler stops; pending waits return False"""
        self.attached = False

    @abstractmethod
    async def wait_frame(self) -> bool:
        """Wait for the next frame; False means stop scheduling"""

    def frame_done(self):
        """Called after each tick completes"""


class RealtimeClock(FrameClock):
    """Frames at the configured rate; fps changes apply from the next frame"""

    def __init__(self, config: Optional[InterpreterConfig] = None):
        self.config = config or InterpreterConfig()

    @property
    def interval(self) -> float:
        return self.config.frame_interval

    async def wait_frame(self) -> bool:
        if not self.attached:
            return False
        await asyncio.sleep(self.interval)
        return self.attached


class ManualClock(FrameClock):
    """
    Clock stepped by the host

    Example:
        await interpreter.execute(source)
        ran = await clock.advance(5)    # five ticks, each finished
    """

    def __init__(self):
        self._gate: Optional[asyncio.Queue] = None
        self._done: Optional[asyncio.Queue] = None

    def attach(self):
        # Fresh queues per run so nothing leaks from a stopped run
        self._gate = asyncio.Queue()
        self._done = asyncio.Queue()
        super().attach()

    def detach(self):
        super().detach()
        if self._gate is not None:
            self._gate.put_nowait(False)
        if self._done is not None:
            self._done.put_nowait(False)

    async def wait_frame(self) -> bool:
        if not self.attached:
            return False
        return await self._gate.get()

    def frame_done(self):
        if self._done is not None:
            self._done.put_nowait(True)

    async def advance(self, frames: int = 1) -> int:
        """
        Release frames one at a time, waiting for each to finish

        Returns:
            Number of frames that completed (fewer than requested when the
            run stopped or failed part way)
        """
        completed = 0
        for _ in range(frames):
            if not self.attached:
                break
            self._gate.put_nowait(True)
            if not await self._done.get():
                break
            completed += 1
        return completed


# ============================================================================
# Scheduler
# ============================================================================

class FrameScheduler:
    """Runs tick() once per clock frame until stopped or a tick fails"""

    def __init__(self, clock: FrameClock, tick: TickCallback):
        self.clock = clock
        self.tick = tick
        self.frames = 0
        self._task: Optional[asyncio.Task] = None
        self._cancelled = False

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self):
        if self.running:
            raise RuntimeError("Scheduler already running")
        self.clock.attach()
        self._task = asyncio.get_running_loop().create_task(self._run())
        logger.debug("Frame scheduler started")

    async def _run(self):
        try:
            while await self.clock.wait_frame():
                keep_going = await self.tick()
                self.frames += 1
                if not keep_going:
                    break
                self.clock.frame_done()
        finally:
            # After cancel() the clock may already belong to a newer scheduler
            if not self._cancelled:
                self.clock.detach()
            logger.debug(f"Frame scheduler finished after {self.frames} frames")

    def cancel(self):
        """Cancel the pending (or in-flight) tick; safe to call repeatedly"""
        if self._cancelled:
            return
        self._cancelled = True
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self.clock.detach()

    async def join(self):
        """Wait for the scheduler task to end"""
        if self._task is not None:
            await asyncio.wait([self._task])


__all__ = [
    'FrameClock',
    'RealtimeClock',
    'ManualClock',
    'FrameScheduler',
]
