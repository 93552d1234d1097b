"""Persistent Lua state for the interactive session.

All user statements run in one :class:`lupa.LuaRuntime`, so globals persist
across lines.  Chunks are compiled with Lua's own ``load`` and run under
``pcall``: both syntax and runtime failures come back as plain error text,
which the session classifies and reports.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from lupa.lua54 import LuaRuntime

from .bridge import is_public
from .exceptions import EvaluationError, InterpreterClosed, StartupError
from .formatter import DEFAULT_LIMIT, FormatOptions, Formatter
from .values import LUA_STRING_ENCODING, LuaInspector, is_lua_object, printable

logger = logging.getLogger(__name__)

# Chunk name for interactive input; Lua reports errors as ``stdin:<line>: ...``.
CHUNK_NAME = "=stdin"


def public_attribute_filter(obj: Any, attr_name: Any, is_setting: bool) -> Any:
    """lupa attribute filter: Lua code only sees public host members."""
    if isinstance(attr_name, str) and not is_public(attr_name):
        raise AttributeError(f"access to non-public attribute {attr_name!r} is not allowed")
    return attr_name


class LuaInterpreter:
    """A persistent Lua execution environment.

    Parameters
    ----------
    format_limit:
        Token budget for the ``pprint`` function installed into the state.
    """

    def __init__(self, format_limit: int = DEFAULT_LIMIT) -> None:
        try:
            self._lua = LuaRuntime(
                encoding=LUA_STRING_ENCODING,
                unpack_returned_tuples=True,
                register_eval=False,
                attribute_filter=public_attribute_filter,
            )
        except Exception as exc:
            raise StartupError(f"cannot create Lua state: {exc}") from exc

        g = self._lua.globals()
        self._load = g["load"]
        self._pcall = g["pcall"]
        self._baseline = frozenset(k for k in g.keys() if isinstance(k, str))
        self._registered: set[str] = set()
        self._closed = False
        self._format_limit = format_limit

        self.inspector = LuaInspector(self._lua)
        self.formatter = Formatter(self.inspector, namespace=g, limit=format_limit)

        g["pprint"] = self.formatter.print
        g["print"] = self.raw_print
        g["dump"] = self.dump
        self._baseline |= {"pprint", "print", "dump", "_"}

    # -- Evaluation ----------------------------------------------------------

    def evaluate(self, source: str) -> None:
        """Compile and run *source* as one chunk.

        Raises :class:`EvaluationError` carrying Lua's message when the chunk
        fails to compile or raises.
        """
        if self._closed:
            raise InterpreterClosed()

        chunk = self._load(source, CHUNK_NAME)
        if isinstance(chunk, tuple):
            # load() returns nil plus the syntax error message.
            raise EvaluationError(self._error_text(chunk[1]))

        result = self._pcall(chunk)
        if not isinstance(result, tuple):
            result = (result,)
        if not result[0]:
            message = self._error_text(result[1] if len(result) > 1 else None)
            logger.debug("runtime error: %s", message)
            raise EvaluationError(message)

    def run_init(self, script: str) -> None:
        """Run a startup script; ``@path`` runs the named file instead."""
        if script.startswith("@"):
            path = Path(script[1:]).expanduser()
            try:
                source = path.read_text(encoding="utf-8")
            except OSError as exc:
                raise StartupError(f"cannot open {path}: {exc}") from exc
        else:
            source = script
        try:
            self.evaluate(source)
        except EvaluationError as exc:
            raise StartupError(exc.message) from exc

    def raw_print(self, *values: Any) -> None:
        """Lua-style ``print``: ``tostring`` of each value, tab separated."""
        text = "\t".join(self.formatter.tostring(v) for v in values)
        sys.stdout.write(printable(text) + "\n")

    def dump(self, value: Any, raw: Any = False) -> str:
        """``pprint`` rendering as a string; *raw* ignores ``__tostring``."""
        options = FormatOptions(limit=self._format_limit, raw=bool(raw))
        return self.formatter.format(value, options)

    def _error_text(self, error: Any) -> str:
        if isinstance(error, BaseException):
            return f"{type(error).__name__}: {error}"
        if isinstance(error, bytes):
            return error.decode("utf-8", "replace")
        if isinstance(error, str):
            return printable(error)
        if error is None or is_lua_object(error):
            return printable(self.inspector.tostring(error))
        return str(error)

    # -- Namespace helpers ---------------------------------------------------

    @property
    def globals(self) -> Any:
        """The Lua global table (``_G``)."""
        return self._lua.globals()

    @property
    def version(self) -> str:
        return str(self.globals["_VERSION"])

    def register(self, values: Mapping[str, Any]) -> None:
        """Inject host functions and values into the global namespace."""
        g = self.globals
        for name, value in values.items():
            g[name] = value
            self._registered.add(name)
        logger.debug("registered %d host value(s): %s", len(values), sorted(values))

    def get_variable(self, name: str) -> Any:
        """Retrieve a global from the Lua state (``None`` when unset)."""
        return self.globals[name]

    def has_variable(self, name: str) -> bool:
        """Check if a global is set (non-nil)."""
        return self.globals[name] is not None

    @property
    def variable_names(self) -> list[str]:
        """User-created globals (excludes the standard library and host values)."""
        hidden = self._baseline | self._registered
        return sorted(
            k for k in self.globals.keys() if isinstance(k, str) and k not in hidden
        )

    # -- Lifecycle -----------------------------------------------------------

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Release the Lua state.  Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        self._load = self._pcall = None
        self.inspector = self.formatter = None
        self._lua = None
        logger.debug("Lua state released")
