"""Line editing for the session, backed by prompt_toolkit.

The session only needs a small surface from its editor (see
:class:`LineEditor`): read a line, remember it, persist history, and ask a
callback for completions.  :class:`PromptToolkitEditor` provides it on a real
terminal.  History is kept in a plain-text file, one entry per line.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from pathlib import Path
from typing import Protocol

from prompt_toolkit import PromptSession
from prompt_toolkit.completion import CompleteEvent, Completer, Completion
from prompt_toolkit.document import Document
from prompt_toolkit.history import InMemoryHistory

logger = logging.getLogger(__name__)

CompletionHandler = Callable[[str], list[str]]


class LineEditor(Protocol):
    """What the session needs from a line editor."""

    def read_line(self, prompt: str) -> str | None:
        """Block for one line; ``None`` means end of input or interrupt."""

    def add_history(self, line: str) -> None: ...

    def load_history(self, path: Path) -> None: ...

    def save_history(self, path: Path) -> None: ...

    def set_completion_handler(self, handler: CompletionHandler | None) -> None: ...


class CallbackCompleter(Completer):
    """Adapts a ``line -> [candidate line]`` callback to prompt_toolkit.

    Candidates are whole replacement lines, so each one replaces all the text
    before the cursor.
    """

    def __init__(self, handler: CompletionHandler | None = None) -> None:
        self.handler = handler

    def get_completions(
        self, document: Document, complete_event: CompleteEvent
    ) -> Iterable[Completion]:
        if self.handler is None:
            return
        text = document.text_before_cursor
        for candidate in self.handler(text):
            yield Completion(
                candidate,
                start_position=-len(text),
                display=_display_name(candidate),
            )


def _display_name(candidate: str) -> str:
    """The last segment of a candidate, for the completion menu."""
    cut = max(candidate.rfind("."), candidate.rfind(":"))
    return candidate[cut + 1 :] or candidate


class PromptToolkitEditor:
    """Interactive line editor with history and tab completion.

    Parameters
    ----------
    max_history:
        Max entries written back by :meth:`save_history` (newest kept).
    """

    def __init__(self, max_history: int = 1000) -> None:
        self.max_history = max_history
        self._entries: list[str] = []
        self._history = InMemoryHistory()
        self._completer = CallbackCompleter()
        self._session: PromptSession | None = None

    def _prompt_session(self) -> PromptSession:
        # Created on first use: PromptSession wants a terminal.
        if self._session is None:
            self._session = PromptSession(
                history=self._history,
                completer=self._completer,
                complete_while_typing=False,
            )
        return self._session

    def read_line(self, prompt: str) -> str | None:
        try:
            return self._prompt_session().prompt(prompt)
        except (EOFError, KeyboardInterrupt):
            return None

    # -- History -------------------------------------------------------------

    @property
    def entries(self) -> list[str]:
        return list(self._entries)

    def add_history(self, line: str) -> None:
        if not line or "\n" in line:
            return
        # Don't add duplicates of last entry
        if self._entries and self._entries[-1] == line:
            return
        self._entries.append(line)
        self._history.append_string(line)

    def load_history(self, path: Path) -> None:
        """Load entries from *path*; a missing file is not an error."""
        try:
            lines = Path(path).read_text(encoding="utf-8").splitlines()
        except FileNotFoundError:
            logger.debug("no history file at %s", path)
            return
        except OSError as exc:
            logger.error("Failed to load history: %s", exc)
            return
        for line in lines:
            if line:
                self.add_history(line)
        logger.debug("Loaded %d history entries", len(self._entries))

    def save_history(self, path: Path) -> None:
        entries = self._entries[-self.max_history :] if self.max_history else []
        try:
            Path(path).write_text(
                "".join(entry + "\n" for entry in entries), encoding="utf-8"
            )
        except OSError as exc:
            logger.error("Failed to save history: %s", exc)

    # -- Completion ----------------------------------------------------------

    def set_completion_handler(self, handler: CompletionHandler | None) -> None:
        self._completer.handler = handler

    def __repr__(self) -> str:
        return f"{type(self).__name__}(entries={len(self._entries)})"

