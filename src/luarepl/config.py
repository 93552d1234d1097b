"""Configuration for the luarepl session."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

# Environment variables consulted by :meth:`ReplConfig.from_env`, in lookup
# order for the init script (versioned name first, as ``lua.c`` does).
INIT_ENV_VARS: tuple[str, ...] = ("LUA_INIT_5_4", "LUA_INIT")
VERBOSE_ENV_VAR = "LUAREPL_VERBOSE"

_TRUTHY = frozenset({"1", "true", "yes", "on"})


@dataclass
class ReplConfig:
    """Configuration for an interactive session.

    All fields have sensible defaults. Override only what you need.
    """

    primary_prompt: str = "> "
    """Prompt shown when a fresh statement is expected."""

    continuation_prompt: str = ">> "
    """Prompt shown while an unfinished statement is being collected."""

    history_filename: str = ".luar_history"
    """Name of the history file, relative to :attr:`home`."""

    max_history: int = 1000
    """Max entries written back to the history file."""

    format_limit: int = 1000
    """Max tokens ``pprint`` emits for one value before truncating."""

    home: str | None = None
    """Directory holding the history file.  ``None`` means ``$HOME``."""

    init_script: str | None = None
    """Lua source run before the session starts.

    A value starting with ``@`` names a file to run instead, following the
    ``LUA_INIT`` convention of the stock ``lua`` interpreter.
    """

    verbose: bool = False
    """Print debug logs to stderr."""

    def __post_init__(self) -> None:
        if not self.primary_prompt or not self.continuation_prompt:
            raise ValueError("Prompts must be non-empty strings")
        if self.max_history < 0:
            raise ValueError(f"max_history must be >= 0, got {self.max_history}")
        if self.format_limit < 1:
            raise ValueError(f"format_limit must be >= 1, got {self.format_limit}")

    @property
    def history_path(self) -> Path:
        """Plain-text history file: one entry per line."""
        home = Path(self.home).expanduser() if self.home else Path.home()
        return home / self.history_filename

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> ReplConfig:
        """Build a config from ``HOME``, ``LUA_INIT`` and ``LUAREPL_VERBOSE``."""
        env = os.environ if environ is None else environ
        init_script = None
        for name in INIT_ENV_VARS:
            if env.get(name):
                init_script = env[name]
                break
        return cls(
            home=env.get("HOME") or None,
            init_script=init_script,
            verbose=env.get(VERBOSE_ENV_VAR, "").strip().lower() in _TRUTHY,
        )
