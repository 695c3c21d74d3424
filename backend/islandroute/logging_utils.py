from __future__ import annotations

import logging
from pathlib import Path
from tempfile import gettempdir
from typing import Any

from pythonjsonlogger.json import JsonFormatter

from .settings import settings

LOGGER_NAME = "island_router"
LOG_FILE_NAME = "router.log.jsonl"

_logger: logging.Logger | None = None


def _level_from_name(name: str) -> int:
    level = logging.getLevelName(str(name).upper())
    return level if isinstance(level, int) else logging.INFO


def _writable_log_dir(out_dir: str) -> Path | None:
    # First directory we can create and write to wins; None means stream-only.
    for candidate in (
        Path(out_dir) / "logs",
        Path(gettempdir()) / "island-router" / "logs",
    ):
        try:
            candidate.mkdir(parents=True, exist_ok=True)
            probe = candidate / ".writetest"
            probe.touch(exist_ok=True)
            probe.unlink(missing_ok=True)
        except OSError:
            continue
        return candidate
    return None


def configure_logging(*, level: str | None = None, out_dir: str | None = None) -> logging.Logger:
    """(Re)attach JSON handlers to the router logger.

    Each record is one JSON object with ``timestamp``, ``level`` and ``event``
    keys plus whatever fields the call site passed. Records go to stderr and,
    when a writable directory exists, to ``<out_dir>/logs/router.log.jsonl``.
    """
    global _logger
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    logger.setLevel(_level_from_name(level or settings.log_level))
    logger.propagate = False

    formatter = JsonFormatter(
        "{levelname}{message}",
        style="{",
        timestamp=True,
        rename_fields={"levelname": "level"},
    )
    stream = logging.StreamHandler()
    stream.setFormatter(formatter)
    logger.addHandler(stream)

    log_dir = _writable_log_dir(out_dir or settings.out_dir)
    if log_dir is not None:
        try:
            file_handler = logging.FileHandler(log_dir / LOG_FILE_NAME, encoding="utf-8")
        except OSError:
            file_handler = None
        if file_handler is not None:
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)

    _logger = logger
    return logger


def log_event(event: str, *, level: int = logging.INFO, **fields: Any) -> None:
    """Emit one structured record named ``event``."""
    logger = _logger if _logger is not None else configure_logging()
    logger.log(level, event, extra={"event": event, **fields})
