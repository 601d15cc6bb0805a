"""Logging for the webhook server.

Console lines go to stderr, the same stream the deploy script writes to, and
carry an ``[op:delivery]`` prefix so script output can be matched to the push
that started it.  With ``LOG_DIR`` set, records also go to a rotating
``hookdeploy.log`` tagged with the full delivery id.

Call ``setup_logging()`` once at startup and ``shutdown_logging()`` on exit.
"""

from __future__ import annotations

import logging
import queue
import sys
from logging.handlers import QueueHandler, QueueListener, RotatingFileHandler
from pathlib import Path
from typing import TextIO

from hookdeploy.log_context import ContextFilter

LOG_FILE_NAME = "hookdeploy.log"
MAX_BYTES = 5 * 1024 * 1024
BACKUP_COUNT = 3

CONSOLE_FMT = "%(asctime)s %(levelname)-8s %(name)s: %(ctx)s%(message)s"
FILE_FMT = "%(asctime)s %(levelname)-8s [%(name)s] delivery=%(delivery_id)s %(message)s"
DATE_FMT = "%H:%M:%S"
FILE_DATE_FMT = "%Y-%m-%d %H:%M:%S"

# Library loggers that would otherwise repeat what the webhook handler logs.
_QUIET_LOGGERS = ("aiohttp.access", "aiohttp.server", "asyncio")

_LINE_COLORS = {
    logging.DEBUG: "\x1b[2m",
    logging.WARNING: "\x1b[33m",
    logging.ERROR: "\x1b[31m",
    logging.CRITICAL: "\x1b[1;31m",
}
_RESET = "\x1b[0m"

logger = logging.getLogger(__name__)

_installed: list[logging.Handler] = []
_listener: QueueListener | None = None


class _ColorFormatter(logging.Formatter):
    """Tint whole console lines by severity; INFO stays plain."""

    def __init__(self, fmt: str, datefmt: str | None = None, use_color: bool = True) -> None:
        super().__init__(fmt, datefmt)
        self._use_color = use_color

    def formatMessage(self, record: logging.LogRecord) -> str:  # noqa: N802
        line = super().formatMessage(record)
        color = _LINE_COLORS.get(record.levelno, "") if self._use_color else ""
        return f"{color}{line}{_RESET}" if color else line


def _console_handler(level: int, stream: TextIO, ctx_filter: ContextFilter) -> logging.Handler:
    handler = logging.StreamHandler(stream)
    handler.setLevel(level)
    handler.addFilter(ctx_filter)
    use_color = hasattr(stream, "isatty") and stream.isatty()
    handler.setFormatter(_ColorFormatter(CONSOLE_FMT, DATE_FMT, use_color=use_color))
    return handler


def _file_handler(log_dir: Path, ctx_filter: ContextFilter) -> logging.Handler:
    """Queue in front of a rotating file so disk writes stay off the event loop.

    The context filter sits on the queue side: ContextVars are only visible in
    the emitting task, not in the listener thread.
    """
    global _listener  # noqa: PLW0603
    log_dir.mkdir(parents=True, exist_ok=True)
    rotating = RotatingFileHandler(
        log_dir / LOG_FILE_NAME,
        maxBytes=MAX_BYTES,
        backupCount=BACKUP_COUNT,
        encoding="utf-8",
    )
    rotating.setFormatter(logging.Formatter(FILE_FMT, FILE_DATE_FMT))

    records: queue.Queue[logging.LogRecord] = queue.Queue()
    handler = QueueHandler(records)
    handler.addFilter(ctx_filter)
    _listener = QueueListener(records, rotating)
    _listener.start()
    return handler


def setup_logging(
    level: int = logging.INFO,
    verbose: bool = False,
    log_dir: Path | None = None,
    stream: TextIO | None = None,
) -> None:
    """Install the console handler and, with *log_dir*, the rotating file.

    Calling it again replaces the handlers it installed before.  Handlers
    added by anyone else are left alone.
    """
    if verbose:
        level = logging.DEBUG
    shutdown_logging()

    root = logging.getLogger()
    root.setLevel(level)
    ctx_filter = ContextFilter()

    _installed.append(_console_handler(level, stream or sys.stderr, ctx_filter))
    if log_dir is not None:
        _installed.append(_file_handler(log_dir, ctx_filter))
    for handler in _installed:
        root.addHandler(handler)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logger.info(
        "Logging initialized (level=%s, file=%s)",
        logging.getLevelName(level),
        log_dir / LOG_FILE_NAME if log_dir is not None else "off",
    )


def shutdown_logging() -> None:
    """Detach installed handlers and flush any queued file records."""
    global _listener  # noqa: PLW0603
    root = logging.getLogger()
    while _installed:
        handler = _installed.pop()
        root.removeHandler(handler)
        handler.close()
    if _listener is not None:
        _listener.stop()
        for handler in _listener.handlers:
            handler.close()
        _listener = None
