"""Structured JSON logger for notionwatch.

Each log record is written as one JSON object per line, which keeps the
output of scheduled runs (CI jobs, cron) greppable and machine-readable::

    {"ts": "2026-10-17T06:00:00.123456+00:00", "level": "INFO",
     "logger": "notionwatch.runner", "message": "collection checked",
     "collection_id": "1d1a...", "added": 2, "updated": 1, "deleted": 0}

Usage::

    from notionwatch.observability import get_logger

    log = get_logger("notionwatch.store")
    log.info("snapshot saved", extra={"extra_fields": {"collection_id": cid}})
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any


class StructuredFormatter(logging.Formatter):
    """Format log records as single-line JSON objects.

    Guaranteed keys are ``ts`` (ISO-8601 UTC), ``level``, ``logger`` and
    ``message``.  Fields passed as ``extra={"extra_fields": {...}}`` are
    merged into the top-level object; ``exception`` and ``stack_info`` are
    added when present.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict[str, Any] = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        extra_fields: dict[str, Any] | None = getattr(record, "extra_fields", None)
        if extra_fields is not None:
            log_entry.update(extra_fields)

        if record.exc_info and record.exc_info[1] is not None:
            log_entry["exception"] = self.formatException(record.exc_info)

        if record.stack_info:
            log_entry["stack_info"] = self.formatStack(record.stack_info)

        return json.dumps(log_entry, default=str, ensure_ascii=False)


# One handler per configured logger name, so repeated ``get_logger`` calls
# never stack handlers.
_configured_loggers: set[str] = set()


def get_logger(
    name: str = "notionwatch",
    *,
    level: int | str = logging.DEBUG,
    stream: Any | None = None,
) -> logging.Logger:
    """Get or create a structured JSON logger.

    Parameters
    ----------
    name:
        Logger name, ``"notionwatch"`` or a dotted child such as
        ``"notionwatch.diff"``.
    level:
        Initial level, as an ``int`` or a case-insensitive name.  Only
        applied the first time a given *name* is configured.
    stream:
        Output stream.  Defaults to ``sys.stderr``.

    Returns
    -------
    logging.Logger
        The logger, with a :class:`StructuredFormatter` handler attached
        exactly once.
    """
    logger = logging.getLogger(name)

    if name not in _configured_loggers:
        resolved_level = (
            logging.getLevelName(level.upper())
            if isinstance(level, str)
            else level
        )
        logger.setLevel(resolved_level)

        handler = logging.StreamHandler(stream or sys.stderr)
        handler.setFormatter(StructuredFormatter())
        logger.addHandler(handler)
        logger.propagate = False

        _configured_loggers.add(name)

    return logger


def set_level(level: int | str) -> None:
    """Set *level* on every logger configured through :func:`get_logger`."""
    resolved = logging.getLevelName(level.upper()) if isinstance(level, str) else level
    for name in _configured_loggers:
        logging.getLogger(name).setLevel(resolved)
