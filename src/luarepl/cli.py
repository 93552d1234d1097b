"""Command-line entry point: ``luarepl`` / ``python -m luarepl``."""

from __future__ import annotations

import logging
import sys

from .config import ReplConfig
from .editor import PromptToolkitEditor
from .exceptions import StartupError
from .host import default_host_values
from .interpreter import LuaInterpreter
from .repl import Session

logger = logging.getLogger(__name__)


def main() -> int:
    config = ReplConfig.from_env()

    if config.verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(name)s %(levelname)s: %(message)s",
        )

    interpreter = None
    try:
        interpreter = LuaInterpreter(format_limit=config.format_limit)
        interpreter.register(default_host_values())
        if config.init_script:
            interpreter.run_init(config.init_script)
    except StartupError as exc:
        print(f"initial {exc}")
        if interpreter is not None:
            interpreter.close()
        return 1

    editor = PromptToolkitEditor(max_history=config.max_history)
    return Session(interpreter, editor, config).run()


if __name__ == "__main__":
    sys.exit(main())
