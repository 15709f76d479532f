"""Diagnostic logging: handler selection, JSON output and secret redaction."""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from logging.handlers import RotatingFileHandler
from typing import Any

from gsc_indexer.config import Settings

SENSITIVE_FIELD_MARKERS = (
    "private_key",
    "secret",
    "token",
    "credential",
    "authorization",
    "api_key",
)
# extra= keys copied into JSON records
CONTEXT_FIELDS = (
    "service",
    "operation",
    "site_url",
    "url",
    "client_email",
    "status",
    "status_code",
    "attempt",
    "rotations",
    "batch_index",
    "batch_count",
    "error_type",
    "error_message",
)
REDACTED = "[REDACTED]"
TEXT_LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
TEXT_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S%z"


def _is_sensitive(key: str) -> bool:
    lowered = key.lower()
    return any(marker in lowered for marker in SENSITIVE_FIELD_MARKERS)


def _redact(value: Any) -> Any:
    if isinstance(value, dict):
        return {
            key: REDACTED if _is_sensitive(str(key)) else _redact(item)
            for key, item in value.items()
        }
    return value


class SensitiveDataFilter(logging.Filter):
    """Blank out keys and record attributes that look like credentials."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.msg = _redact(record.msg)
        if isinstance(record.args, dict):
            record.args = _redact(record.args)

        for attribute in [name for name in vars(record) if _is_sensitive(name)]:
            setattr(record, attribute, REDACTED)
        return True


class JsonLogFormatter(logging.Formatter):
    """One JSON object per line with the event name and its context fields."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(
            (name, getattr(record, name))
            for name in CONTEXT_FIELDS
            if getattr(record, name, None) is not None
        )
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def _handler_for(settings: Settings) -> logging.Handler:
    log_file = settings.LOG_FILE
    if log_file is None:
        handler: logging.Handler = logging.StreamHandler()
    else:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handler = RotatingFileHandler(
            log_file,
            maxBytes=settings.LOG_FILE_MAX_BYTES,
            backupCount=settings.LOG_FILE_BACKUP_COUNT,
            encoding="utf-8",
        )

    if settings.LOG_FORMAT == "json":
        handler.setFormatter(JsonLogFormatter())
    else:
        handler.setFormatter(logging.Formatter(TEXT_LOG_FORMAT, TEXT_DATE_FORMAT))
    handler.addFilter(SensitiveDataFilter())
    return handler


def setup_logging(settings: Settings) -> None:
    """Route all loggers to a single handler chosen by the settings."""

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(_handler_for(settings))
    root_logger.setLevel(settings.LOG_LEVEL)

    # googleapiclient logs every discovery cache miss at WARNING
    logging.getLogger("googleapiclient.discovery_cache").setLevel(logging.ERROR)
    logging.captureWarnings(True)


__all__ = [
    "JsonLogFormatter",
    "REDACTED",
    "SensitiveDataFilter",
    "setup_logging",
]
