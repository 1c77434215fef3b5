"""Logging setup with an in-memory buffer the dashboard can show."""

from __future__ import annotations

import logging
from collections import deque
from datetime import datetime
from typing import Deque

logger = logging.getLogger("radtach")

# Circular buffer of recent log entries (max 100)
log_buffer: Deque[dict] = deque(maxlen=100)


class LogBufferHandler(logging.Handler):
    """Captures log records to the circular buffer."""

    def emit(self, record: logging.LogRecord):
        try:
            log_buffer.append({
                "timestamp": datetime.fromtimestamp(record.created).strftime("%H:%M:%S"),
                "level": record.levelname,
                "message": self.format(record),
            })
        except Exception:
            self.handleError(record)


def configure_logging(level: int | str = logging.INFO) -> LogBufferHandler:
    """Attach a buffer handler to the `radtach` logger (idempotent)."""
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.WARNING
    logger.setLevel(level)

    for handler in logger.handlers:
        if isinstance(handler, LogBufferHandler):
            handler.setLevel(level)
            return handler

    handler = LogBufferHandler()
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)
    return handler


def recent_entries(limit: int = 5) -> list[dict]:
    return list(log_buffer)[-limit:]
