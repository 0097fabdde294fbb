"""Package-wide logger used for progress and fatal messages."""

from __future__ import annotations

import sys
import time
from abc import ABC, abstractmethod
from typing import IO, Any, Optional


def _format(fmt: str, args: tuple[Any, ...]) -> str:
    return fmt % args if args else fmt


class Logger(ABC):
    """Interface of the package logger."""

    @abstractmethod
    def fatalf(self, fmt: str, *args: Any) -> None:
        """Log a formatted message and stop the program."""

    @abstractmethod
    def printf(self, fmt: str, *args: Any) -> None:
        """Log a formatted message."""


class StdLogger(Logger):
    """Writes timestamped lines to a stream, standard error by default."""

    def __init__(self, stream: Optional[IO[str]] = None) -> None:
        self.stream = stream

    def _write(self, fmt: str, args: tuple[Any, ...]) -> None:
        msg = _format(fmt, args)
        if not msg.endswith("\n"):
            msg += "\n"
        out = self.stream if self.stream is not None else sys.stderr
        out.write(time.strftime("%Y/%m/%d %H:%M:%S ") + msg)
        out.flush()

    def fatalf(self, fmt: str, *args: Any) -> None:
        """Write the message and exit with status 1."""
        self._write(fmt, args)
        raise SystemExit(1)

    def printf(self, fmt: str, *args: Any) -> None:
        """Write the message."""
        self._write(fmt, args)


class NopLogger(Logger):
    """Discards everything."""

    def fatalf(self, fmt: str, *args: Any) -> None:
        """Discard the message."""

    def printf(self, fmt: str, *args: Any) -> None:
        """Discard the message."""


class _Current:
    """Holds the logger the package writes to."""

    logger: Logger = StdLogger()


def set_logger(logger: Logger) -> None:
    """Replace the package logger."""
    _Current.logger = logger


def get_logger() -> Logger:
    """Return the package logger."""
    return _Current.logger


def nop_logger() -> Logger:
    """Return a logger that discards all output."""
    return NopLogger()