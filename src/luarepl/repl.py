"""The interactive session loop.

One line is read per iteration and appended to the statement buffer; the
whole buffer is then evaluated.  A failure that only means "input ended too
early" keeps the buffer and switches to the continuation prompt; any other
failure is printed and the buffer is dropped.
"""

from __future__ import annotations

import enum
import logging
import sys
from typing import IO, Any

from . import __version__
from .completion import Completer
from .config import ReplConfig
from .continuation import Classification, ContinuationDetector, strip_origin
from .editor import LineEditor
from .exceptions import EvaluationError
from .interpreter import LuaInterpreter

logger = logging.getLogger(__name__)

EXIT_COMMAND = "exit"
EMPTY_LINE_HINT = "empty line. Use exit to get out"
PRETTY_PREFIX = "="
RAW_PREFIX = "."


class PromptMode(enum.Enum):
    PRIMARY = "primary"
    CONTINUATION = "continuation"


def rewrite_line(line: str) -> str:
    """Expand the ``=expr`` and ``.expr`` shortcuts into print calls."""
    if line.startswith(PRETTY_PREFIX):
        return f"pprint({line[1:]})"
    if line.startswith(RAW_PREFIX):
        return f"print({line[1:]})"
    return line


class Session:
    """Owns the statement buffer, the prompt mode and the teardown.

    Parameters
    ----------
    interpreter:
        The Lua state statements run in.
    editor:
        Line editor used for input, history and completion.
    config:
        :class:`~luarepl.config.ReplConfig`; defaults are used when omitted.
    detector:
        Classifier for evaluation errors.
    stream:
        Where messages go; ``None`` means the current ``sys.stdout``.
    """

    def __init__(
        self,
        interpreter: LuaInterpreter,
        editor: LineEditor,
        config: ReplConfig | None = None,
        detector: ContinuationDetector | None = None,
        stream: IO[str] | None = None,
    ) -> None:
        self._interpreter = interpreter
        self._editor = editor
        self._config = config or ReplConfig()
        self._detector = detector or ContinuationDetector()
        self._stream = stream
        self._completer = Completer(interpreter.globals, interpreter.inspector)
        self._closed = False

        self.buffer = ""
        self.mode = PromptMode.PRIMARY

    @property
    def prompt(self) -> str:
        if self.mode is PromptMode.CONTINUATION:
            return self._config.continuation_prompt
        return self._config.primary_prompt

    @property
    def completer(self) -> Completer:
        return self._completer

    def _write(self, text: str) -> None:
        stream = self._stream if self._stream is not None else sys.stdout
        stream.write(text + "\n")

    # -- Loop ----------------------------------------------------------------

    def handle_line(self, line: str) -> bool:
        """Process one input line.  Returns ``False`` when the session ends."""
        if line == EXIT_COMMAND:
            return False
        if not line:
            self._write(EMPTY_LINE_HINT)
            return True

        self._editor.add_history(line)
        self.buffer += rewrite_line(line)

        try:
            self._interpreter.evaluate(self.buffer)
        except EvaluationError as err:
            message = strip_origin(err.message)
            if self._detector.classify(message) is Classification.INCOMPLETE:
                # Keep collecting; the newline keeps the statement's layout.
                self.buffer += "\n"
                self.mode = PromptMode.CONTINUATION
                return True
            self._write(message)

        self.buffer = ""
        self.mode = PromptMode.PRIMARY
        return True

    def banner(self) -> str:
        return f"luarepl {__version__}  ({self._interpreter.version})"

    def run(self) -> int:
        """Read-eval-print until ``exit``, end of input or interrupt.

        Teardown (history save, Lua state release) runs exactly once whatever
        ends the loop.  Returns the process exit status.
        """
        status = 0
        try:
            self._editor.load_history(self._config.history_path)
            self._editor.set_completion_handler(self._completer.complete)
            self._write(self.banner())
            while True:
                line = self._editor.read_line(self.prompt)
                if line is None:
                    break
                if not self.handle_line(line):
                    break
        except (EOFError, KeyboardInterrupt):
            logger.debug("session interrupted")
        except Exception as exc:
            logger.debug("session crashed", exc_info=True)
            self._write(f"runtime {exc}")
            status = 1
        finally:
            self.close()
        return status

    # -- Teardown ------------------------------------------------------------

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Save history and release the Lua state.  Only the first call acts."""
        if self._closed:
            return
        self._closed = True
        try:
            self._editor.set_completion_handler(None)
            self._editor.save_history(self._config.history_path)
        finally:
            self._interpreter.close()

    def __enter__(self) -> Session:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()
