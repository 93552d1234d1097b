"""Runtime value kinds and Lua-side introspection helpers.

Values reach Python from the Lua state in two shapes: Python objects (numbers,
strings, host values registered into the state) and lupa wrappers around
Lua-owned objects (tables, functions, userdata, coroutines).  :func:`kind_of`
folds both into one tagged view so the formatter and the completer can treat
them uniformly.

Lua strings are byte strings.  The runtime decodes them as UTF-8 with
``surrogateescape``, so bytes that are not valid UTF-8 reach Python as lone
surrogates and go back into Lua unchanged.
"""

from __future__ import annotations

import codecs
import enum
import weakref
from collections.abc import Mapping
from typing import Any

from lupa.lua54 import lua_type

# Codec name handed to ``LuaRuntime(encoding=...)``.
LUA_STRING_ENCODING = "luareplutf8"


def _search_codec(name: str) -> codecs.CodecInfo | None:
    if name != LUA_STRING_ENCODING:
        return None
    return codecs.CodecInfo(
        name=LUA_STRING_ENCODING,
        encode=lambda text, errors="strict": codecs.utf_8_encode(text, "surrogateescape"),
        decode=lambda data, errors="strict": codecs.utf_8_decode(
            data, "surrogateescape", True
        ),
    )


codecs.register(_search_codec)


def lua_bytes(text: str) -> bytes:
    """The Lua byte string behind a decoded *text*."""
    return text.encode("utf-8", "surrogateescape")


def printable(text: str) -> str:
    """*text* with undecodable Lua bytes shown as U+FFFD."""
    return lua_bytes(text).decode("utf-8", "replace")


class ValueKind(enum.Enum):
    NIL = "nil"
    BOOLEAN = "boolean"
    NUMBER = "number"
    STRING = "string"
    FUNCTION = "function"
    OPAQUE = "opaque"
    COMPOSITE = "composite"
    HOST = "host"


# Fixed tokens for values whose internals cannot be printed.
PLACEHOLDERS: dict[str, str] = {
    "function": "<fun>",
    "userdata": "<udata>",
    "thread": "<thread>",
    "method": "<method>",
}

_SEQUENCE_TYPES = (list, tuple, set, frozenset)


class _MethodMarker:
    """Stands in for a method in a directory; methods are listed, never called."""

    _instance: _MethodMarker | None = None

    def __new__(cls) -> _MethodMarker:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return PLACEHOLDERS["method"]


METHOD = _MethodMarker()


def is_lua_object(value: Any) -> bool:
    """True for lupa wrappers around Lua-owned objects."""
    return lua_type(value) is not None


def is_lua_table(value: Any) -> bool:
    return lua_type(value) == "table"


def resolve(value: Any) -> Any:
    """Dereference one level of indirection.

    ``weakref.ref`` objects are called; ``weakref.proxy`` objects already
    forward attribute access (including ``__class__``) to their referent.
    """
    if isinstance(value, weakref.ref):
        return value()
    return value


def kind_of(value: Any) -> ValueKind:
    """Classify *value* into one of the :class:`ValueKind` tags."""
    value = resolve(value)
    if value is None:
        return ValueKind.NIL
    if value is METHOD:
        return ValueKind.FUNCTION
    if isinstance(value, bool):
        return ValueKind.BOOLEAN
    if isinstance(value, (int, float)):
        return ValueKind.NUMBER
    if isinstance(value, (str, bytes)):
        return ValueKind.STRING

    ltype = lua_type(value)
    if ltype == "table":
        return ValueKind.COMPOSITE
    if ltype == "function":
        return ValueKind.FUNCTION
    if ltype is not None:
        return ValueKind.OPAQUE

    # Host (Python) values.
    if isinstance(value, (Mapping, *_SEQUENCE_TYPES)):
        return ValueKind.COMPOSITE
    if callable(value):
        return ValueKind.FUNCTION
    return ValueKind.HOST


def placeholder(value: Any, ltype: str | None = None) -> str:
    """The fixed token for a function or opaque handle.

    *ltype* is the Lua-side ``type()`` of the value when known: lupa hands
    back a coroutine that has not started yet as a function.
    """
    if value is METHOD:
        return PLACEHOLDERS["method"]
    if ltype is None:
        ltype = lua_type(value)
    if ltype is None:
        return PLACEHOLDERS["function"] if callable(value) else PLACEHOLDERS["userdata"]
    return PLACEHOLDERS.get(ltype, PLACEHOLDERS["userdata"])


class LuaInspector:
    """Metatable-aware helpers compiled once inside a Lua state.

    The helpers capture the standard functions they use as upvalues, so later
    reassignment of ``getmetatable``/``pairs``/``tostring`` by evaluated code
    does not change how values are inspected.

    Parameters
    ----------
    runtime:
        The :class:`lupa.LuaRuntime` whose objects will be inspected.
    """

    def __init__(self, runtime: Any) -> None:
        self._tostring = runtime.eval("tostring")
        self._type = runtime.eval("type")
        self._metafield = runtime.execute(
            """
            local getmetatable, rawget, type = getmetatable, rawget, type
            return function(v, name)
              local mt = getmetatable(v)
              if type(mt) == 'table' then
                return rawget(mt, name)
              end
            end
            """
        )
        self._collect_pairs = runtime.execute(
            """
            local pairs = pairs
            return function(t)
              local out, n = {}, 0
              for k, v in pairs(t) do
                n = n + 1
                out[n] = {k, v}
              end
              return out, n
            end
            """
        )
        self._identity = runtime.execute(
            """
            local ids, n = setmetatable({}, {__mode = 'k'}), 0
            return function(t)
              local id = ids[t]
              if id == nil then
                n = n + 1
                ids[t] = n
                id = n
              end
              return id
            end
            """
        )

    def tostring(self, value: Any) -> str:
        """Lua's ``tostring``, honouring ``__tostring``."""
        text = self._tostring(value)
        if isinstance(text, bytes):
            return text.decode("utf-8", "replace")
        return str(text)

    def type(self, value: Any) -> str:
        """Lua's ``type`` of *value*."""
        return str(self._type(value))

    def metafield(self, value: Any, name: str) -> Any:
        """Raw lookup of *name* in *value*'s metatable, or ``None``."""
        return self._metafield(value, name)

    def pairs(self, table: Any) -> list[tuple[Any, Any]]:
        """Key/value pairs as produced by Lua's ``pairs`` (``__pairs`` aware)."""
        out, n = self._collect_pairs(table)
        return [(out[i][1], out[i][2]) for i in range(1, n + 1)]

    def identity(self, table: Any) -> int:
        """A stable integer identity for a Lua table within this state."""
        return self._identity(table)
