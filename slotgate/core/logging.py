"""Log output for slotgate's ``rate_limit.*`` events.

Limiter code logs through module loggers under the ``slotgate`` namespace,
using dotted event names as the message and a fixed set of structured
``extra`` fields. Keys are only ever logged as ``hash_key`` digests.

Applications may keep their own logging setup; ``configure_logging`` is for
those that want slotgate's events rendered on their own handler (JSON or
plain, stdout or a rotating file).
"""

from __future__ import annotations

import hashlib
import json
import logging
import sys
from datetime import datetime, timezone
from logging import LogRecord
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

from slotgate.core.config import LogSettings, settings

LOGGER_NAME = "slotgate"

# Structured fields carried by rate_limit.* events, in output order.
EVENT_FIELDS: tuple[str, ...] = (
    "key_hash",
    "function",
    "limit",
    "window_s",
    "config_version",
    "replaced",
    "used",
    "recorded",
    "poll_interval_s",
    "waited_s",
    "polls",
    "retry_after_s",
)

_installed_handler: logging.Handler | None = None


def hash_key(key: object) -> str:
    """Hash a limiter key for logging without exposing it."""
    return hashlib.sha256(str(key).encode()).hexdigest()[:16]


def event_fields(record: LogRecord) -> dict[str, Any]:
    """Pick the rate-limit fields present on ``record``."""
    return {name: getattr(record, name) for name in EVENT_FIELDS if hasattr(record, name)}


class JsonFormatter(logging.Formatter):
    """One JSON object per event: timestamp, level, logger, event, fields."""

    def format(self, record: LogRecord) -> str:  # noqa: D401
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "event": record.getMessage(),
        }
        payload.update(event_fields(record))

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=str)


class PlainFormatter(logging.Formatter):
    """Human-readable line with the event's fields appended as key=value."""

    def __init__(self) -> None:
        super().__init__("%(asctime)s %(levelname)s %(name)s %(message)s")

    def format(self, record: LogRecord) -> str:  # noqa: D401
        line = super().format(record)
        fields = " ".join(f"{name}={value}" for name, value in event_fields(record).items())
        return f"{line} {fields}" if fields else line


def _build_handler(log_settings: LogSettings) -> logging.Handler:
    """Construct the stdout or (rotating) file handler from settings."""

    if log_settings.output.lower() != "file":
        return logging.StreamHandler(sys.stdout)

    file_path = Path(log_settings.file_path or "logs/slotgate.log")
    file_path.parent.mkdir(parents=True, exist_ok=True)
    if log_settings.max_bytes:
        return RotatingFileHandler(
            file_path,
            maxBytes=log_settings.max_bytes,
            backupCount=log_settings.backup_count,
            encoding="utf-8",
        )
    return logging.FileHandler(file_path, encoding="utf-8")


def configure_logging(log_settings: LogSettings | None = None) -> logging.Handler:
    """Send slotgate's events to a dedicated handler.

    Only the ``slotgate`` logger is touched; calling this again replaces the
    handler installed by the previous call.

    Args:
        log_settings: Optional log settings; defaults to global settings if omitted.

    Returns:
        The installed handler.
    """

    global _installed_handler

    cfg = log_settings or settings.log
    logger = logging.getLogger(LOGGER_NAME)

    if _installed_handler is not None:
        logger.removeHandler(_installed_handler)
        _installed_handler.close()

    handler = _build_handler(cfg)
    if cfg.format.lower() == "plain":
        handler.setFormatter(PlainFormatter())
    else:
        handler.setFormatter(JsonFormatter())

    logger.addHandler(handler)
    logger.setLevel(getattr(logging, cfg.level.upper(), logging.INFO))
    # Events already reach our handler; don't print them twice via root.
    logger.propagate = False

    _installed_handler = handler
    return handler
