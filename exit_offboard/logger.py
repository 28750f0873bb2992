"""Run log written to the console and appended to a log file."""
from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import List, Optional, TextIO

LOG_FORMAT = "%(asctime)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class _RaiseOnErrorMixin:
    """Re-raise write failures instead of reporting them on stderr."""

    def handleError(self, record: logging.LogRecord) -> None:
        # Called from inside the handler's ``except`` block.
        raise


class _ConsoleHandler(_RaiseOnErrorMixin, logging.StreamHandler):
    pass


class _AppendFileHandler(_RaiseOnErrorMixin, logging.FileHandler):
    pass


class RunLogger:
    """Timestamped log sink for a single offboarding run.

    Every line goes to ``stream`` (stdout by default) and is appended to
    ``log_file``. The directory holding the log file is created on first use.
    A failed write raises instead of being reported and skipped.
    """

    def __init__(self, log_file: Path, stream: Optional[TextIO] = None) -> None:
        self.log_file = Path(log_file)
        self._stream = stream
        # Not registered with logging.getLogger, so nothing outlives the run.
        self._logger = logging.Logger("exit_offboard.run", level=logging.INFO)
        self._logger.propagate = False
        self._handlers: List[logging.Handler] = []

    def _ensure_handlers(self) -> None:
        if self._handlers:
            return
        self.log_file.parent.mkdir(parents=True, exist_ok=True)
        formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

        console = _ConsoleHandler(self._stream or sys.stdout)
        file_handler = _AppendFileHandler(self.log_file, mode="a", encoding="utf-8")
        for handler in (console, file_handler):
            handler.setFormatter(formatter)
            self._logger.addHandler(handler)
            self._handlers.append(handler)

    def _emit(self, level: int, message: str) -> None:
        self._ensure_handlers()
        self._logger.log(level, message)

    def log(self, message: str) -> None:
        self._emit(logging.INFO, message)

    def warning(self, message: str) -> None:
        self._emit(logging.WARNING, f"WARNING: {message}")

    def error(self, message: str) -> None:
        self._emit(logging.ERROR, f"ERROR: {message}")

    def close(self) -> None:
        for handler in self._handlers:
            self._logger.removeHandler(handler)
            handler.close()
        self._handlers = []

    def __enter__(self) -> "RunLogger":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


__all__ = ["RunLogger", "LOG_FORMAT", "DATE_FORMAT"]
