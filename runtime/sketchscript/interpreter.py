"""
SketchScript Interpreter

Execution engine for one canvas. Lifecycle per execute() call:

    IDLE -> SETUP -> LOOPING -> IDLE      (sketch defines loop/draw)
    IDLE -> SETUP -> IDLE                 (setup only, or an error)

execute() tears down any previous run, resets state and the surface,
parses the sketch, runs top-level statements and setup() once, then hands
the frame function to a FrameScheduler. Parse and setup errors are reported
through on_message and raised from execute(); errors in later ticks are only
reported, and end the run.

Each tick:
    1. clear button click flags
    2. pmouse <- mouse, mouse <- latest pointer position
    3. run loop()/draw() once (awaiting any delay()/input())
    4. frameCount += 1
    5. clear keyClicked / mouseClicked edges
"""

import asyncio
import logging
from typing import Any, Dict, Optional

from .config import InterpreterConfig
from .errors import SketchError, E_NAME_ERROR, E_RUNTIME_ERROR
from .error_mapper import map_error_line
from .evaluator import SketchEvaluator
from .library import RuntimeLibrary, InputCallback, ResizeCallback
from .messages import ERROR, SUCCESS, WARNING, MessageCallback
from .parser import Program, parse
from .scheduler import FrameClock, FrameScheduler, RealtimeClock
from .state import InputTracker, InterpreterState
from .surface import Color, Surface

logger = logging.getLogger(__name__)

IDLE = "idle"
SETUP = "setup"
LOOPING = "looping"


class SketchInterpreter:
    """Run sketches against a drawing surface"""

    def __init__(self,
                 surface: Surface,
                 on_message: Optional[MessageCallback] = None,
                 on_input_request: Optional[InputCallback] = None,
                 on_resize: Optional[ResizeCallback] = None,
                 clock: Optional[FrameClock] = None,
                 config: Optional[InterpreterConfig] = None):
        """
        Initialize interpreter

        Args:
            surface: Drawing surface owned by this interpreter
            on_message: Console sink, called as on_message(kind, text, line)
            on_input_request: Answers input(prompt); may return an awaitable
            on_resize: Told about every canvas size change
            clock: Frame source (default: RealtimeClock paced by config)
            config: Canvas and paint defaults
        """
        self.surface = surface
        self.on_message = on_message
        self.on_input_request = on_input_request
        self.on_resize = on_resize
        self.config = config or InterpreterConfig()
        self.clock = clock or RealtimeClock(self.config)

        self.status = IDLE
        self.source = ""
        self.program: Optional[Program] = None
        self.state = InterpreterState.fresh(self.config)
        self.library: Optional[RuntimeLibrary] = None
        self.evaluator: Optional[SketchEvaluator] = None
        self.frame_function: Optional[str] = None

        self._setup_task: Optional[asyncio.Task] = None
        self._scheduler: Optional[FrameScheduler] = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def is_running(self) -> bool:
        return self.status != IDLE

    @property
    def input(self) -> InputTracker:
        """Input tracker of the current run (host events go here)"""
        return self.state.input

    async def execute(self, source: str):
        """
        Start a sketch

        Returns once setup() has finished. If the sketch has a frame
        function, ticks continue on the clock after this returns.

        Raises:
            SketchError: On lexical, parse or setup errors
        """
        self._teardown()
        self._reset(source)

        try:
            self.program = parse(source)
        except SketchError as err:
            self._fail(err)
            raise

        self.status = SETUP
        logger.debug("Running setup")
        task = asyncio.get_running_loop().create_task(self._run_setup(self.program))
        self._setup_task = task
        await asyncio.wait([task])
        if self._setup_task is task:
            self._setup_task = None

        if task.cancelled():
            logger.debug("Setup cancelled")
            return
        exc = task.exception()
        if exc is not None:
            if not isinstance(exc, SketchError):
                # Raised by a top-level statement; errors inside functions
                # are converted by the evaluator with their own line
                err = SketchError(E_RUNTIME_ERROR, str(exc), self.evaluator.frames[0].line or None)
                self._fail(err)
                raise err from exc
            self._fail(exc)
            raise exc

        frame = self.program.find_function(*self.config.frame_function_names)
        if frame is None:
            self.status = IDLE
            self._emit(SUCCESS, "Execution finished")
            logger.info("Sketch finished (no frame function)")
            return

        self.frame_function = frame.name
        self.status = LOOPING
        self._emit(SUCCESS, "Execution started")
        self._scheduler = FrameScheduler(self.clock, self.tick)
        self._scheduler.start()
        logger.info(f"Sketch looping on {frame.name}()")

    def stop(self):
        """Stop the current run; safe to call when idle"""
        was_running = self.is_running
        self._teardown()
        if was_running:
            self._emit(WARNING, "Execution stopped")
            logger.info("Execution stopped")

    async def wait_stopped(self):
        """Wait until the frame scheduler has ended (stop, error)"""
        if self._scheduler is not None:
            await self._scheduler.join()

    def _reset(self, source: str):
        """Fresh state, default canvas and a new library bound to them"""
        config = self.config
        self.source = source
        self.program = None
        self.frame_function = None
        self.state = InterpreterState.fresh(config)

        self.surface.reset_transform()
        self.surface.resize(config.default_width, config.default_height)
        self.surface.clear(Color(*config.background))
        if self.on_resize is not None:
            self.on_resize(config.default_width, config.default_height)

        self.library = RuntimeLibrary(
            self.state,
            self.surface,
            on_message=self.on_message,
            on_input_request=self.on_input_request,
            on_resize=self.on_resize,
            config=config,
        )
        self.evaluator = SketchEvaluator(
            builtins=self.library.builtins,
            constants=self.library.constants,
            pseudo_variables=self.library.pseudo_variables,
            max_call_depth=config.max_call_depth,
        )

    def _teardown(self):
        if self._setup_task is not None and not self._setup_task.done():
            self._setup_task.cancel()
        self._setup_task = None
        if self._scheduler is not None:
            self._scheduler.cancel()
            self._scheduler = None
        self.status = IDLE

    async def _run_setup(self, program: Program):
        await self.evaluator.run_program(program)
        if program.setup is not None:
            await self.evaluator.call(program.setup.name)

    # ------------------------------------------------------------------
    # Frames
    # ------------------------------------------------------------------

    async def tick(self) -> bool:
        """
        Run one frame of the sketch

        Returns:
            False when the run is over (stopped, or the frame raised)
        """
        if self.status != LOOPING:
            return False

        inp = self.state.input
        inp.begin_frame()
        try:
            await self.evaluator.call(self.frame_function)
        except SketchError as err:
            self._fail(err)
            return False
        except Exception as exc:
            logger.exception("Unexpected error in frame")
            self._fail(SketchError(E_RUNTIME_ERROR, str(exc)))
            return False

        self.state.frame_count += 1
        inp.end_frame()
        return True

    def _fail(self, err: SketchError):
        """Report an error and end the run"""
        line = map_error_line(err, self.source)
        self.status = IDLE
        logger.info(f"Sketch error at line {line}: {err}")
        self._emit(ERROR, err.message, line)

    def _emit(self, kind: str, text: str, line: Optional[int] = None):
        if self.on_message is not None:
            self.on_message(kind, text, line)

    # ------------------------------------------------------------------
    # Probes
    # ------------------------------------------------------------------

    def get_var(self, name: str) -> Any:
        """
        Read a variable as the sketch would see it

        Raises:
            SketchError: E_NAME_ERROR if the name is not defined
        """
        if self.evaluator is None:
            raise SketchError(E_NAME_ERROR, f"Undefined variable: {name}")
        return self.evaluator.lookup(name)

    def set_var(self, name: str, value: Any):
        """Set a global variable"""
        if self.evaluator is None:
            raise SketchError(E_RUNTIME_ERROR, "No sketch has been executed")
        self.evaluator.assign(name, value)

    def get_env(self) -> Dict[str, Any]:
        """Copy of the sketch's global variables"""
        if self.evaluator is None:
            return {}
        return dict(self.evaluator.globals)


__all__ = [
    'SketchInterpreter',
    'IDLE',
    'SETUP',
    'LOOPING',
]
