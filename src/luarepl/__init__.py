"""luarepl: an interactive Lua prompt for Python programs.

Register Python functions and objects into a Lua state and explore them
interactively, with multi-line input, a cycle-safe pretty-printer (``=expr``)
and tab completion that sees into both Lua tables and host objects.

Basic usage::

    from luarepl import LuaInterpreter, PromptToolkitEditor, Session

    lua = LuaInterpreter()
    lua.register({"now": time.time})
    Session(lua, PromptToolkitEditor()).run()
"""

__version__ = "0.1.0"

from .completion import Completer
from .config import ReplConfig
from .continuation import (
    Classification,
    ContinuationDetector,
    ContinuationStrategy,
    EofMarkerStrategy,
)
from .editor import LineEditor, PromptToolkitEditor
from .exceptions import EvaluationError, InterpreterClosed, LuaReplError, StartupError
from .formatter import FormatOptions, Formatter
from .interpreter import LuaInterpreter
from .repl import PromptMode, Session

__all__ = [
    "Session",
    "PromptMode",
    "LuaInterpreter",
    "ReplConfig",
    "Formatter",
    "FormatOptions",
    "Completer",
    "ContinuationDetector",
    "ContinuationStrategy",
    "EofMarkerStrategy",
    "Classification",
    "LineEditor",
    "PromptToolkitEditor",
    "LuaReplError",
    "EvaluationError",
    "StartupError",
    "InterpreterClosed",
]
