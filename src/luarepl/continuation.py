"""Decide whether a failed chunk is unfinished or genuinely wrong.

Lua reports a construct left open at end of input as a syntax error whose
message ends in ``near <eof>`` (``near '<eof>'`` before Lua 5.2).  The stock
``lua`` interpreter keys its continuation prompt off that marker, and so do
we.  The check lives in :class:`EofMarkerStrategy` so a session can swap in
another strategy without touching the loop.
"""

from __future__ import annotations

import enum
import re
from abc import ABC, abstractmethod

# ``stdin:3: `` or ``[string "x = ..."]:1: `` at the very start of a message.
_ORIGIN_RE = re.compile(r'^(?:\[string "[^\n]*?"\]|[^\s:\[]+):\d+: ')


class Classification(enum.Enum):
    INCOMPLETE = "incomplete"
    REAL = "real"


class ContinuationStrategy(ABC):
    """Recognises the interpreter's "input ended too early" signal."""

    @abstractmethod
    def is_incomplete(self, error_text: str) -> bool:
        """True when *error_text* only says the input stopped too soon."""


class EofMarkerStrategy(ContinuationStrategy):
    """Suffix match on Lua's ``<eof>`` token in syntax error messages."""

    marker = "<eof>"

    def __init__(self) -> None:
        self._pattern = re.compile(r"near '?" + re.escape(self.marker) + r"'?$")

    def is_incomplete(self, error_text: str) -> bool:
        return bool(self._pattern.search(error_text.rstrip()))


class ContinuationDetector:
    """Classify evaluation errors for the session loop.

    Parameters
    ----------
    strategy:
        How to spot unfinished input.  Defaults to :class:`EofMarkerStrategy`.
    """

    def __init__(self, strategy: ContinuationStrategy | None = None) -> None:
        self.strategy = strategy or EofMarkerStrategy()

    def classify(self, error_text: str) -> Classification:
        if self.strategy.is_incomplete(error_text):
            return Classification.INCOMPLETE
        return Classification.REAL


def strip_origin(error_text: str) -> str:
    """Drop the leading ``<chunk>:<line>: `` tag, if present."""
    return _ORIGIN_RE.sub("", error_text, count=1)
