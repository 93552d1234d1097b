"""Namespace bridge: uniform key/value views over runtime containers.

Host objects registered into the Lua state show up in Lua as opaque userdata.
:func:`directory` gives them an enumerable surface: their public fields mapped
to current values and their public methods mapped to :data:`METHOD`.

The :class:`Container` capability is what the completer walks.  Lua tables,
Python mappings and host objects all implement it.
"""

from __future__ import annotations

import dataclasses
import inspect
from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any

from .values import METHOD, LuaInspector, ValueKind, is_lua_table, kind_of, resolve


def is_public(name: str) -> bool:
    return not name.startswith("_")


def _slot_names(cls: type) -> list[str]:
    names: list[str] = []
    for klass in cls.__mro__:
        slots = klass.__dict__.get("__slots__", ())
        if isinstance(slots, str):
            slots = (slots,)
        names.extend(s for s in slots if s not in ("__dict__", "__weakref__"))
    return names


def _field_names(target: Any, cls: type) -> list[str]:
    names: list[str] = []
    if dataclasses.is_dataclass(cls):
        names.extend(f.name for f in dataclasses.fields(cls))
    names.extend(getattr(target, "__dict__", {}))
    names.extend(_slot_names(cls))
    for name in dir(cls):
        # Properties plus C-level getset and member descriptors.
        if inspect.isdatadescriptor(inspect.getattr_static(cls, name, None)):
            names.append(name)
    # Keep declaration order, drop repeats.
    return list(dict.fromkeys(names))


def _method_names(cls: type) -> list[str]:
    names = []
    for name in dir(cls):
        if not is_public(name):
            continue
        attr = inspect.getattr_static(cls, name, None)
        if isinstance(attr, (staticmethod, classmethod)) or inspect.isroutine(attr):
            names.append(name)
    return names


def directory(value: Any) -> dict[str, Any]:
    """Map the public members of a host object to their current values.

    Fields map to their value, methods map to :data:`METHOD`.  Nothing is
    cached: every call reads the fields again.
    """
    target = resolve(value)
    if target is None:
        return {}
    cls = target.__class__

    members: dict[str, Any] = {}
    for name in _field_names(target, cls):
        if not is_public(name):
            continue
        try:
            members[name] = getattr(target, name)
        except AttributeError:
            # Unset slot or a property that refuses to compute.
            continue
    for name in _method_names(cls):
        members.setdefault(name, METHOD)
    return members


# -- Container capability ----------------------------------------------------


class Container(ABC):
    """Something that can be walked by name and listed."""

    @abstractmethod
    def lookup(self, key: str) -> tuple[Any, bool]:
        """Return ``(value, found)`` for *key*."""

    @abstractmethod
    def keys(self) -> list[str]:
        """String keys visible through this container."""


class TableContainer(Container):
    """A Lua table.  Keys honour ``__pairs``; lookups honour ``__index``."""

    def __init__(self, table: Any, inspector: LuaInspector) -> None:
        self._table = table
        self._inspector = inspector

    def lookup(self, key: str) -> tuple[Any, bool]:
        value = self._table[key]
        return value, value is not None

    def keys(self) -> list[str]:
        if self._inspector.metafield(self._table, "__pairs") is not None:
            keys = [k for k, _ in self._inspector.pairs(self._table)]
        else:
            keys = list(self._table.keys())
        return [k for k in keys if isinstance(k, str)]


class MappingContainer(Container):
    """A Python mapping registered as a host value."""

    def __init__(self, mapping: Mapping[Any, Any]) -> None:
        self._mapping = mapping

    def lookup(self, key: str) -> tuple[Any, bool]:
        if key in self._mapping:
            return self._mapping[key], True
        return None, False

    def keys(self) -> list[str]:
        return [k for k in self._mapping if isinstance(k, str)]


class HostObject(Container):
    """A host object seen through its :func:`directory`.

    The directory is computed once, when the wrapper is built.
    """

    def __init__(self, value: Any) -> None:
        self.value = value
        self.members = directory(value)

    def lookup(self, key: str) -> tuple[Any, bool]:
        if key in self.members:
            return self.members[key], True
        return None, False

    def keys(self) -> list[str]:
        return list(self.members)


def as_container(value: Any, inspector: LuaInspector) -> Container | None:
    """Wrap *value* in the matching :class:`Container`, or ``None``."""
    value = resolve(value)
    if is_lua_table(value):
        return TableContainer(value, inspector)
    if isinstance(value, Mapping):
        return MappingContainer(value)
    if kind_of(value) is ValueKind.HOST:
        return HostObject(value)
    return None
