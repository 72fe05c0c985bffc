"""Structured JSON logging for hecflush.

Strategy log lines carry their batch context through ``extra={}``; build it
with :func:`batch_extra` so every line uses the same field names.
"""

import json
import logging
from datetime import UTC, datetime
from typing import Any

# Attributes every LogRecord has; anything else came in through extra={}
_STANDARD_LOGRECORD_KEYS: frozenset[str] = frozenset(
    logging.LogRecord(
        name="", level=0, pathname="", lineno=0, msg="", args=(), exc_info=None
    ).__dict__.keys()
)

# Batch context fields, emitted right after the message
BATCH_FIELDS = ("strategy", "state", "batch_size", "attempt", "delay", "dropped")


def batch_extra(strategy: str, batch_size: int | None = None, **fields: Any) -> dict[str, Any]:
    """Build the ``extra`` mapping for a strategy log line.

    Fields whose value is None are left out.
    """
    extra: dict[str, Any] = {"strategy": strategy, "batch_size": batch_size, **fields}
    return {key: value for key, value in extra.items() if value is not None}


class JSONFormatter(logging.Formatter):
    """One JSON object per line, batch context first, UTC ISO8601 timestamps."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        log_data.update(
            (field, getattr(record, field)) for field in BATCH_FIELDS if hasattr(record, field)
        )
        log_data.update(
            (key, value)
            for key, value in vars(record).items()
            if key not in _STANDARD_LOGRECORD_KEYS and key not in log_data
        )
        if record.exc_info:
            log_data["exc_info"] = self.formatException(record.exc_info)

        try:
            return json.dumps(log_data, default=str)
        except (TypeError, ValueError):
            return str(log_data)


def get_logger(name: str = "hecflush", level: int = logging.INFO) -> logging.Logger:
    """Return ``name`` with a single JSON stream handler attached.

    Repeated calls reuse the handler and only update the level. Records do not
    propagate to the root logger.
    """
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(JSONFormatter())
        logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = False
    return logger
