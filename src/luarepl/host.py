"""Host values registered into every new session.

Add the Python functions and objects you want to play with from Lua here.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any


@dataclass
class Person:
    """A small record for exploring host objects from Lua.

    ``Name`` is public; ``_age`` is not, so neither Lua code nor completion
    can see it.
    """

    Name: str
    _age: int = 0

    def greet(self, other: str = "world") -> str:
        return f"{self.Name} says hello to {other}"

    def __str__(self) -> str:
        return self.Name


def default_host_values() -> dict[str, Any]:
    return {
        "regexp": re.compile,
        "String": str,
        "ST": Person("Dolly", 46),
        "S": Person("Joe", 32),
    }
