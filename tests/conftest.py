"""Shared test fixtures."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

# Ensure the src directory is on the path when the package is not installed.
sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "src"))

from luarepl.interpreter import LuaInterpreter  # noqa: E402


@pytest.fixture
def lua():
    interp = LuaInterpreter()
    yield interp
    interp.close()
