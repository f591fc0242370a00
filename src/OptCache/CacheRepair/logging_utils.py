"""Logging setup shared by the CLI and embedding applications."""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

__all__ = ["JSONFormatter", "setup_logging", "LOGGER_NAME", "LOG_FILE_NAME"]

LOGGER_NAME = "OptCache"
LOG_FILE_NAME = "cache-repair.jsonl"
_TEXT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class JSONFormatter(logging.Formatter):
    """Formatter emitting one JSON object per log record."""

    def format(self, record: logging.LogRecord) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            "timestamp": now.isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if hasattr(record, "extra_fields") and isinstance(record.extra_fields, dict):
            payload.update(record.extra_fields)
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def setup_logging(
    level: str = "INFO",
    *,
    json_logs: bool = False,
    log_dir: Optional[Path] = None,
    max_log_size_mb: int = 10,
    backup_count: int = 3,
    stream=None,
) -> logging.Logger:
    """Configure the ``OptCache`` logger.

    A console handler is always installed; a rotating JSON-lines file handler
    is added when ``log_dir`` is given.  Calling this again replaces the
    handlers installed by a previous call.
    """

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    for handler in list(logger.handlers):
        if getattr(handler, "_optcache_handler", False):
            logger.removeHandler(handler)
            handler.close()

    console = logging.StreamHandler(stream or sys.stderr)
    console.setFormatter(JSONFormatter() if json_logs else logging.Formatter(_TEXT_FORMAT))
    console._optcache_handler = True  # type: ignore[attr-defined]
    logger.addHandler(console)

    if log_dir is not None:
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_dir / LOG_FILE_NAME,
            maxBytes=max_log_size_mb * 1024 * 1024,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setFormatter(JSONFormatter())
        file_handler._optcache_handler = True  # type: ignore[attr-defined]
        logger.addHandler(file_handler)

    logger.propagate = False
    return logger
