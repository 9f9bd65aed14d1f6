"""Structured logging utilities."""

from __future__ import annotations

import dataclasses
import enum
import json
import logging
import os
from datetime import datetime
from decimal import Decimal
from logging.handlers import RotatingFileHandler
from typing import IO, Any, Iterable

from .multiwriter import MultiWriter


def get_logger(name: str = "hyperbacktest", writers: Iterable[IO[str]] | None = None) -> logging.Logger:
    """Return a logger configured to emit JSON formatted messages.

    If the environment variable ``LOG_FILE`` is set, logs are also written to a
    rotating file handler with size and backup limits controlled by
    ``LOG_MAX_BYTES`` and ``LOG_BACKUP_COUNT``. The console handler always
    emits plain JSON lines suitable for log ingestion.

    When ``writers`` is given, the console handler is replaced by a handler
    that fans every line out to all of them through a :class:`MultiWriter`.
    """

    logger = logging.getLogger(name)
    if logger.handlers:
        return logger

    level = os.getenv("LOG_LEVEL", "INFO").upper()
    logger.setLevel(getattr(logging, level, logging.INFO))

    if writers:
        stream_handler = logging.StreamHandler(MultiWriter(*writers))
    else:
        stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(stream_handler)

    log_path = os.getenv("LOG_FILE")
    if log_path:
        os.makedirs(os.path.dirname(log_path) or ".", exist_ok=True)
        max_bytes = int(os.getenv("LOG_MAX_BYTES", "10485760"))  # 10 MB
        backup_count = int(os.getenv("LOG_BACKUP_COUNT", "5"))
        file_handler = RotatingFileHandler(log_path, maxBytes=max_bytes, backupCount=backup_count)
        file_handler.setFormatter(logging.Formatter("%(message)s"))
        logger.addHandler(file_handler)

    return logger


def _json_default(o: Any):
    """Best-effort JSON serializer for decimals, enums, dataclasses and datetimes."""
    if isinstance(o, Decimal):
        return str(o)
    if isinstance(o, enum.Enum):
        return o.value
    if isinstance(o, datetime):
        return o.isoformat()
    to_json = getattr(o, "to_json", None)
    if callable(to_json):
        return to_json()
    if dataclasses.is_dataclass(o) and not isinstance(o, type):
        return {f.name: getattr(o, f.name) for f in dataclasses.fields(o) if not f.name.startswith("_")}
    if isinstance(o, (set, frozenset)):
        return list(o)
    if hasattr(o, "tolist"):
        return o.tolist()
    return str(o)


def log_json(logger: logging.Logger, event: str, level: int = logging.INFO, **kwargs: Any) -> None:
    """Emit a structured JSON log entry."""

    payload = {"event": event, **kwargs}
    logger.log(level, json.dumps(payload, default=_json_default))


__all__ = ["get_logger", "log_json"]
