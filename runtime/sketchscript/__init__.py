"""
SketchScript - Creative-Coding Language Runtime

This package provides the complete SketchScript (ArtLang) toolchain:

**Language Front End:**
- Tokenizer: source text to tokens, comments stripped
- Parser: recursive descent into an AST; `{ }` and `then/do ... end` blocks

**Execution:**
- Evaluator: async tree walker with a flat global namespace
- Runtime Library: drawing, math, lists, input, buttons, timing, encrypt
- Interpreter: execute/stop lifecycle, setup() once, loop()/draw() per frame
- Scheduler: frame clocks (realtime, manual) driving non-overlapping ticks

**Surfaces:**
- RecordingSurface: command log
- RasterSurface: numpy RGB raster

**Tooling:**
- Error mapper: 1-based source lines for errors
- Analyzer and formatter for editors
- Headless runner: python -m sketchscript sketch.art --frames N

Version: 1.0.0
"""

import logging

__version__ = '1.0.0'

# ============================================================================
# Language Front End
# ============================================================================

from .errors import (
    SketchError, SKETCH_FILENAME,
    E_SYNTAX_ERROR, E_PARSE_ERROR, E_NAME_ERROR, E_TYPE_ERROR,
    E_BOUNDS_ERROR, E_RUNTIME_ERROR, E_DECRYPT_ERROR, E_READONLY_ERROR,
)
from .lexer import Token, TokenType, SketchTokenizer, tokenize
from .parser import Program, SketchParser, parse

# ============================================================================
# Execution
# ============================================================================

from .config import InterpreterConfig
from .evaluator import SketchEvaluator, UserFunction
from .library import RuntimeLibrary
from .state import InterpreterState, InputTracker, ButtonRegistry
from .scheduler import FrameClock, RealtimeClock, ManualClock, FrameScheduler
from .interpreter import SketchInterpreter, IDLE, SETUP, LOOPING
from .messages import ConsoleMessage, MessageLog
from .obfuscate import encrypt, decrypt

# ============================================================================
# Surfaces and Tooling
# ============================================================================

from .surface import Color, Surface, RecordingSurface
from .raster import RasterSurface
from .error_mapper import map_error_line
from .analyzer import Diagnostic, analyze
from .formatter import format_source

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    # Version
    '__version__',

    # Front end
    'Token', 'TokenType', 'SketchTokenizer', 'tokenize',
    'Program', 'SketchParser', 'parse',

    # Errors
    'SketchError', 'SKETCH_FILENAME',
    'E_SYNTAX_ERROR', 'E_PARSE_ERROR', 'E_NAME_ERROR', 'E_TYPE_ERROR',
    'E_BOUNDS_ERROR', 'E_RUNTIME_ERROR', 'E_DECRYPT_ERROR', 'E_READONLY_ERROR',

    # Execution
    'InterpreterConfig', 'SketchEvaluator', 'UserFunction', 'RuntimeLibrary',
    'InterpreterState', 'InputTracker', 'ButtonRegistry',
    'FrameClock', 'RealtimeClock', 'ManualClock', 'FrameScheduler',
    'SketchInterpreter', 'IDLE', 'SETUP', 'LOOPING',
    'ConsoleMessage', 'MessageLog',
    'encrypt', 'decrypt',

    # Surfaces
    'Color', 'Surface', 'RecordingSurface', 'RasterSurface',

    # Tooling
    'map_error_line', 'Diagnostic', 'analyze', 'format_source',
]
