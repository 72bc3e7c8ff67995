"""
Logging setup shared by the API and maintenance scripts.

Format: 2026-01-06T14:05:52Z [api] LEVEL message

LOG_LEVEL selects DEBUG or INFO (default).
"""

import logging
import os
import sys
from datetime import datetime, timezone
from typing import Optional


class ISO8601Formatter(logging.Formatter):
    """Formatter with UTC ISO8601 timestamps and a source tag."""

    def __init__(self, source: str = "app"):
        self.source = source
        super().__init__()

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
        message = record.getMessage()
        if record.exc_info:
            message = f"{message}\n{self.formatException(record.exc_info)}"
        return f"{timestamp} [{self.source}] {record.levelname} {message}"


def configure_logging(source: str = "app", level: Optional[int] = None) -> logging.Logger:
    """Install a single stdout handler on the root logger."""
    if level is None:
        level = logging.DEBUG if os.getenv("LOG_LEVEL", "").upper() == "DEBUG" else logging.INFO

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(ISO8601Formatter(source=source))
    root_logger.addHandler(handler)

    # uvicorn installs its own handlers; route them through ours
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        uvicorn_logger = logging.getLogger(name)
        uvicorn_logger.handlers.clear()
        uvicorn_logger.propagate = True

    return root_logger


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
