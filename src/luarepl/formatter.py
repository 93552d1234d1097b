"""Cycle-safe, human-readable rendering of runtime values (``pprint``).

Tables render as ``{...}`` with the array part first, positionally, and the
remaining entries as ``key=value``.  Every call tracks the composites it has
entered, so self-referencing structures print a cycle marker instead of
recursing, and a global token budget keeps huge structures bounded.
"""

from __future__ import annotations

import math
import sys
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import IO, Any

from .bridge import directory
from .values import (
    LuaInspector,
    ValueKind,
    is_lua_object,
    is_lua_table,
    kind_of,
    placeholder,
    printable,
    resolve,
)

CYCLE_MARKER = "<cycle>"
TRUNCATION_MARKER = "..."
DEFAULT_LIMIT = 1000

_NAVIGABLE = frozenset({ValueKind.COMPOSITE, ValueKind.HOST})

_NAMED_ESCAPES = {
    '"': '\\"',
    "\\": "\\\\",
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
}


@dataclass(frozen=True)
class FormatOptions:
    """Knobs for a single :meth:`Formatter.format` call."""

    limit: int = DEFAULT_LIMIT
    """Max emitted tokens before the output is cut with ``...``."""

    raw: bool = False
    """Ignore custom stringifiers and always dump structure."""


def _is_escaped_byte(ch: str) -> bool:
    return 0xDC80 <= ord(ch) <= 0xDCFF


def _escape_char(ch: str) -> str:
    if ch in _NAMED_ESCAPES:
        return _NAMED_ESCAPES[ch]
    code = ord(ch)
    if _is_escaped_byte(ch):
        # A Lua byte that is not valid UTF-8.
        return f"\\{code - 0xDC00:03d}"
    if code < 32 or code == 127:
        # Always three digits so a following digit is never absorbed.
        return f"\\{code:03d}"
    return ch


def quote_string(text: str | bytes) -> str:
    """Render *text* as a Lua string literal that reads back to the same value."""
    if isinstance(text, bytes):
        body = "".join(
            _escape_char(chr(b)) if b < 128 else f"\\{b:03d}" for b in text
        )
    else:
        body = "".join(_escape_char(ch) for ch in text)
    return f'"{body}"'


def format_number(value: int | float) -> str:
    """Lua 5.4 ``tostring`` for numbers: floats keep a ``.0`` when integral."""
    if isinstance(value, int):
        return str(value)
    if math.isnan(value):
        return "nan" if math.copysign(1.0, value) > 0 else "-nan"
    text = "%.14g" % value
    if text.lstrip("-").isdigit():
        text += ".0"
    return text


def quote(value: Any, inspector: LuaInspector | None = None) -> str:
    """Render a leaf value.

    Strings are quoted for re-parsing, functions and opaque handles become
    fixed placeholders, everything else uses its plain textual form.
    """
    kind = kind_of(value)
    if kind is ValueKind.STRING:
        return quote_string(value)
    if kind in (ValueKind.FUNCTION, ValueKind.OPAQUE):
        ltype = None
        if inspector is not None and is_lua_object(value):
            ltype = inspector.type(value)
        return placeholder(value, ltype)
    if kind is ValueKind.NIL:
        return "nil"
    if kind is ValueKind.BOOLEAN:
        return "true" if value else "false"
    if kind is ValueKind.NUMBER:
        return format_number(value)
    return str(resolve(value))


class _Overrun(Exception):
    """Internal signal: the token budget is spent."""


class _Dump:
    """State of one top-level :meth:`Formatter.format` call."""

    def __init__(self, formatter: Formatter, options: FormatOptions) -> None:
        self._formatter = formatter
        self._options = options
        self.tokens: list[str] = []
        # identity -> value; holding the value keeps ``id()`` keys unique.
        self._seen: dict[tuple[str, int], Any] = {}

    def put(self, token: str) -> None:
        self.tokens.append(token)
        if len(self.tokens) > self._options.limit:
            self.tokens.append(TRUNCATION_MARKER)
            raise _Overrun

    def emit(self, value: Any) -> None:
        fmt = self._formatter
        value = resolve(value)
        kind = kind_of(value)
        if kind not in _NAVIGABLE:
            self.put(fmt.quote(value))
            return

        ident = fmt.identity(value)
        if ident in self._seen:
            self.put(CYCLE_MARKER)
            return

        if not self._options.raw:
            text = fmt.custom_stringify(value)
            if text is not None:
                self.put(text)
                return

        pairs = fmt.custom_enumerate(value)
        if pairs is None and kind is not ValueKind.COMPOSITE:
            self.put(fmt.quote(value))
            return

        self._seen[ident] = value
        if pairs is None:
            array, assoc = fmt.native_entries(value)
        else:
            array, assoc = split_entries(pairs)

        self.put("{")
        for item in array:
            self.emit(item)
            self.put(",")
        for key, item in assoc:
            self.put(f"{fmt.render_key(key)}=")
            self.emit(item)
            self.put(",")
        if self.tokens[-1] == ",":
            self.tokens.pop()
        self.put("}")


def _is_index(key: Any, length: int) -> bool:
    return isinstance(key, int) and not isinstance(key, bool) and 1 <= key <= length


def split_entries(
    pairs: Iterable[tuple[Any, Any]],
) -> tuple[list[Any], list[tuple[Any, Any]]]:
    """Split key/value pairs into the array part and the associative rest.

    The array part is the run of values at integer keys ``1..n``.
    """
    pairs = list(pairs)
    indexed = {
        k: v for k, v in pairs if isinstance(k, int) and not isinstance(k, bool)
    }
    length = 0
    while length + 1 in indexed:
        length += 1
    array = [indexed[i] for i in range(1, length + 1)]
    assoc = [(k, v) for k, v in pairs if not _is_index(k, length)]
    return array, assoc


class Formatter:
    """Pretty-printer bound to one Lua state.

    Parameters
    ----------
    inspector:
        Helpers for the Lua state whose tables will be rendered.
    namespace:
        Where :meth:`print` stores the implicit ``_`` binding.  ``None``
        disables the binding.
    stream:
        Output for :meth:`print`; ``None`` means the current ``sys.stdout``.
    limit:
        Default token budget for :meth:`format`.
    """

    def __init__(
        self,
        inspector: LuaInspector,
        namespace: Any = None,
        stream: IO[str] | None = None,
        limit: int = DEFAULT_LIMIT,
    ) -> None:
        self._inspector = inspector
        self._namespace = namespace
        self._stream = stream
        self._limit = limit

    # -- Entry points --------------------------------------------------------

    def format(self, value: Any, options: FormatOptions | None = None) -> str:
        """Render *value*.  Never recurses into a composite twice."""
        if options is None:
            options = FormatOptions(limit=self._limit)
        dump = _Dump(self, options)
        try:
            dump.emit(value)
        except _Overrun:
            pass
        return "".join(dump.tokens)

    def print(self, *values: Any) -> None:
        """Write the tab-joined renderings of *values* and bind ``_``."""
        if self._namespace is not None:
            self._namespace["_"] = values[0] if values else None
        line = "\t".join(self.format(v) for v in values)
        stream = self._stream if self._stream is not None else sys.stdout
        stream.write(printable(line) + "\n")

    # -- Capabilities --------------------------------------------------------

    def custom_stringify(self, value: Any) -> str | None:
        """Text from a ``__tostring`` metamethod or a host ``__str__``, if any."""
        if is_lua_table(value):
            if self._inspector.metafield(value, "__tostring") is not None:
                return self._inspector.tostring(value)
            return None
        if kind_of(value) is ValueKind.HOST and value.__class__.__str__ is not object.__str__:
            return str(value)
        return None

    def custom_enumerate(self, value: Any) -> list[tuple[Any, Any]] | None:
        """Pairs from a ``__pairs`` metamethod or a host directory, if any."""
        if is_lua_table(value):
            if self._inspector.metafield(value, "__pairs") is not None:
                return self._inspector.pairs(value)
            return None
        if kind_of(value) is ValueKind.HOST:
            return list(directory(value).items())
        return None

    # -- Helpers -------------------------------------------------------------

    def identity(self, value: Any) -> tuple[str, int]:
        if is_lua_table(value):
            return ("lua", self._inspector.identity(value))
        return ("py", id(value))

    def native_entries(self, value: Any) -> tuple[list[Any], list[tuple[Any, Any]]]:
        if is_lua_table(value):
            length = len(value)
            array = [value[i] for i in range(1, length + 1)]
            assoc = [(k, v) for k, v in value.items() if not _is_index(k, length)]
            return array, assoc
        if isinstance(value, Mapping):
            return split_entries(value.items())
        return list(value), []

    def quote(self, value: Any) -> str:
        return quote(value, self._inspector)

    def tostring(self, value: Any) -> str:
        if is_lua_object(value):
            return self._inspector.tostring(value)
        if kind_of(value) is ValueKind.STRING:
            return value.decode("utf-8", "replace") if isinstance(value, bytes) else value
        return quote(value)

    def render_key(self, key: Any) -> str:
        if isinstance(key, bytes):
            key = key.decode("utf-8", "surrogateescape")
        if not isinstance(key, str):
            return f"[{self.tostring(key)}]"
        if any(ch.isspace() or _is_escaped_byte(ch) for ch in key):
            return quote_string(key)
        return key
