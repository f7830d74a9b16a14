"""
tklib.console: Colored status output bound to the toolkit log.

Every status line printed through Console (success / error / warning / info)
is written to the log exactly once, at the matching level. Headers, tables and
plain text are display-only.

Zero dependency on utils.py, uses only stdlib.
"""

import logging
import os
import sys
from typing import Optional, TextIO

# Custom level between INFO (20) and WARNING (30)
SUCCESS = 25
logging.addLevelName(SUCCESS, "SUCCESS")

# ANSI color codes
RED = "\033[0;31m"
GREEN = "\033[0;32m"
YELLOW = "\033[1;33m"
BLUE = "\033[0;34m"
PURPLE = "\033[0;35m"
CYAN = "\033[0;36m"
NC = "\033[0m"


def color_supported(stream: TextIO, requested: bool = True) -> bool:
    """
    Decide whether ANSI colors should be written to a stream.

    Args:
        stream: Output stream
        requested: Whether the user/config asked for color

    Returns:
        bool: True if colors should be emitted
    """
    if not requested or os.environ.get("NO_COLOR"):
        return False
    isatty = getattr(stream, "isatty", None)
    try:
        return bool(isatty and isatty())
    except ValueError:
        # closed stream
        return False


class Console:
    """
    Terminal printer that mirrors status lines into a logger.

    Args:
        logger: Logger receiving one record per status line
        use_color: Allow ANSI colors (still disabled for non-TTY streams)
        out: Stream for normal output (default sys.stdout)
        err: Stream for errors (default sys.stderr)
    """

    def __init__(
        self,
        logger: logging.Logger,
        use_color: bool = True,
        out: Optional[TextIO] = None,
        err: Optional[TextIO] = None,
    ):
        self.logger = logger
        self.out = out or sys.stdout
        self.err = err or sys.stderr
        self._color_out = color_supported(self.out, use_color)
        self._color_err = color_supported(self.err, use_color)

    def _write(self, text: str, color: str = "", stream: Optional[TextIO] = None) -> None:
        stream = stream or self.out
        use_color = self._color_err if stream is self.err else self._color_out
        if use_color and color:
            text = f"{color}{text}{NC}"
        print(text, file=stream, flush=True)

    # -- logged status lines -------------------------------------------------

    def _log(self, level: int, message: str) -> None:
        # One status line is one log record on one physical line
        self.logger.log(level, " ".join(message.splitlines()))

    def success(self, message: str) -> None:
        self._write(f"✓ {message}", GREEN)
        self._log(SUCCESS, message)

    def error(self, message: str) -> None:
        self._write(f"✗ {message}", RED, stream=self.err)
        self._log(logging.ERROR, message)

    def warning(self, message: str) -> None:
        self._write(f"⚠ {message}", YELLOW)
        self._log(logging.WARNING, message)

    def info(self, message: str) -> None:
        self._write(f"ℹ {message}", BLUE)
        self._log(logging.INFO, message)

    # -- display only --------------------------------------------------------

    def header(self, message: str) -> None:
        self._write(message, PURPLE)

    def section(self, label: str) -> None:
        self._write(label, CYAN)

    def highlight(self, label: str, value: str) -> None:
        """Print 'label value' with the value emphasised, e.g. banner lines."""
        if self._color_out:
            print(f"{BLUE}{label}{YELLOW}{value}{NC}", file=self.out, flush=True)
        else:
            print(f"{label}{value}", file=self.out, flush=True)

    def banner(self, text: str) -> None:
        self._write(text, CYAN)

    def echo(self, text: str = "") -> None:
        print(text, file=self.out, flush=True)

    def table(self, text: str) -> None:
        self.echo(text)
