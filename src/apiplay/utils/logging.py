"""Logging setup for the ``apiplay`` command line.

Generated clients are printed on stdout, so log records always go to stderr.
A rotating log file is added only when a log directory is configured. Every
record carries the mode of the session currently being driven (``-`` when no
session is tracked).
"""

from __future__ import annotations

import logging
import logging.handlers
import sys
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Iterator, TextIO

__all__ = ["LOG_FILE_NAME", "SessionModeFilter", "setup_logging", "tracking_session_mode"]

LOG_FILE_NAME = "apiplay.log"
_FORMAT = "%(asctime)s | %(levelname)-8s | %(session_mode)-28s | %(name)s | %(message)s"
_NOISY_LOGGERS: tuple[str, ...] = ("asyncio", "httpx", "httpcore")


class SessionModeFilter(logging.Filter):
    """Stamps ``record.session_mode`` from the tracked session, if any."""

    def __init__(self) -> None:
        super().__init__()
        self._source: Callable[[], str] | None = None

    def track(self, source: Callable[[], str] | None) -> Callable[[], str] | None:
        previous = self._source
        self._source = source
        return previous

    def filter(self, record: logging.LogRecord) -> bool:
        source = self._source
        record.session_mode = source() if source is not None else "-"
        return True


_MODE_FILTER = SessionModeFilter()


def setup_logging(
    level: int = logging.INFO,
    *,
    log_dir: Path | str | None = None,
    stream: TextIO | None = None,
    max_bytes: int = 1_000_000,
    backup_count: int = 3,
) -> Path | None:
    """Replace the root handlers with a stderr handler and an optional rotating file.

    Returns the log file path, or ``None`` when only the stream is used.
    """

    handlers: list[logging.Handler] = [logging.StreamHandler(stream or sys.stderr)]
    log_path: Path | None = None
    if log_dir:
        target_dir = Path(log_dir).expanduser()
        target_dir.mkdir(parents=True, exist_ok=True)
        log_path = target_dir / LOG_FILE_NAME
        handlers.append(
            logging.handlers.RotatingFileHandler(
                log_path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
            )
        )

    formatter = logging.Formatter(fmt=_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        handler.addFilter(_MODE_FILTER)

    logging.basicConfig(level=level, handlers=handlers, force=True)
    logging.captureWarnings(True)

    quiet_level = max(level, logging.WARNING)
    for logger_name in _NOISY_LOGGERS:
        logging.getLogger(logger_name).setLevel(quiet_level)
    return log_path


@contextmanager
def tracking_session_mode(source: Callable[[], str]) -> Iterator[None]:
    """Stamp records with ``source()`` while the block runs."""

    previous = _MODE_FILTER.track(source)
    try:
        yield
    finally:
        _MODE_FILTER.track(previous)
