"""Custom exceptions for the luarepl package."""


class LuaReplError(Exception):
    """Base exception for all luarepl errors."""


class EvaluationError(LuaReplError):
    """Raised when the Lua state fails to compile or run a chunk.

    The message is the interpreter's own error text, including any
    ``<chunk>:<line>:`` origin tag.
    """

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class StartupError(LuaReplError):
    """Raised when the Lua state cannot be created or the init script fails."""


class InterpreterClosed(LuaReplError):
    """Raised when a closed interpreter is asked to evaluate code."""

    def __init__(self) -> None:
        super().__init__("Lua state has already been closed")
