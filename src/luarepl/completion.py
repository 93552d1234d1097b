"""Tab completion against the live Lua namespace.

The trailing ``a.b:c`` style expression of the line is resolved from ``_G``
one segment at a time; the keys of the final container (plus those of its
metatable's ``__index`` table) that start with the unfinished last segment
become the candidates.  Each candidate is the whole line with that segment
completed, ready to replace the text before the cursor.
"""

from __future__ import annotations

import logging
import re
from typing import Any

from .bridge import Container, TableContainer, as_container
from .values import LuaInspector, is_lua_object, is_lua_table, lua_bytes, resolve

logger = logging.getLogger(__name__)

# Longest trailing run of identifier characters and separators.
_EXPRESSION_RE = re.compile(r"[.:A-Za-z0-9_]+$")
_SEPARATOR_RE = re.compile(r"[.:]")


def split_expression(run: str) -> tuple[str, str]:
    """Split ``a.b:c`` into the prefix path ``a.b:`` and the leaf ``c``."""
    cut = max(run.rfind("."), run.rfind(":")) + 1
    return run[:cut], run[cut:]


def _typeable(key: str) -> bool:
    """False for keys holding bytes that are not valid UTF-8."""
    try:
        lua_bytes(key).decode("utf-8")
    except UnicodeError:
        return False
    return True


class Completer:
    """Resolve completion candidates for a partial input line.

    Parameters
    ----------
    namespace:
        The global table (``_G``) every lookup starts from.
    inspector:
        Helpers for the Lua state that owns *namespace*.
    """

    def __init__(self, namespace: Any, inspector: LuaInspector) -> None:
        self._namespace = namespace
        self._inspector = inspector

    def complete(self, line: str) -> list[str]:
        """Candidates for *line*; any internal failure yields ``[]``."""
        try:
            return self._complete(line)
        except Exception:
            logger.debug("completion failed for %r", line, exc_info=True)
            return []

    def _complete(self, line: str) -> list[str]:
        match = _EXPRESSION_RE.search(line)
        if match is None:
            return []
        leading = line[: match.start()]
        prefix, leaf = split_expression(match.group())

        target = self._namespace
        for segment in _SEPARATOR_RE.split(prefix[:-1]) if prefix else ():
            if not segment:
                continue
            target, found = self._lookup(target, segment)
            # Mirrors Lua: a nil or false link ends the chain.
            if not found or target is None or target is False:
                return []

        keys = [
            k for k in self._candidate_keys(target) if k.startswith(leaf) and _typeable(k)
        ]
        return [leading + prefix + key for key in sorted(keys)]

    # -- Namespace walking ---------------------------------------------------

    def _fallback(self, value: Any) -> Container | None:
        """The ``__index`` table of *value*'s metatable, as a container."""
        if not (is_lua_object(value) or isinstance(value, (str, bytes))):
            return None
        index = self._inspector.metafield(value, "__index")
        if is_lua_table(index):
            return TableContainer(index, self._inspector)
        return None

    def _lookup(self, value: Any, key: str) -> tuple[Any, bool]:
        value = resolve(value)
        container = as_container(value, self._inspector)
        if container is not None:
            return container.lookup(key)
        fallback = self._fallback(value)
        if fallback is not None:
            return fallback.lookup(key)
        return None, False

    def _candidate_keys(self, value: Any) -> list[str]:
        value = resolve(value)
        keys: list[str] = []
        container = as_container(value, self._inspector)
        if container is not None:
            keys.extend(container.keys())
        fallback = self._fallback(value)
        if fallback is not None:
            keys.extend(fallback.keys())
        return list(dict.fromkeys(keys))
