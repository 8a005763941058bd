"""Logging configuration helpers for Ritual.

Routine code logs structured context through `extra=` (user ids, attempts,
activity ids). Both formatters carry those fields: JSON output as top-level
keys, text output as trailing `key=value` pairs.
"""

from __future__ import annotations

import json
import logging
import os
from datetime import datetime, timezone
from logging.config import dictConfig
from typing import Any, Dict

from ritual.libs.json_utils import json_safe

_DEV_ENVIRONMENTS = {"local", "dev", "development", "test"}

COLOR_ENABLED = os.getenv("RITUAL_LOG_COLOR", "")
if not COLOR_ENABLED:
    COLOR_ENABLED = "1" if os.getenv("RITUAL_ENVIRONMENT", "dev").lower() in _DEV_ENVIRONMENTS else "0"
COLOR_ENABLED = COLOR_ENABLED == "1"

_COLOR_CODES = {
    "red": "\033[31m",
    "yellow": "\033[33m",
    "cyan": "\033[36m",
}

_LEVEL_COLORS = ((logging.ERROR, "red"), (logging.WARNING, "yellow"))

_RESERVED_ATTRS = set(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime", "taskName"}


def colorize(text: str, color: str = "red") -> str:
    if not COLOR_ENABLED:
        return text
    prefix = _COLOR_CODES.get(color, "")
    suffix = "\033[0m" if prefix else ""
    return f"{prefix}{text}{suffix}"


def record_extras(record: logging.LogRecord) -> Dict[str, Any]:
    """Fields attached through `extra=`, made JSON-safe."""

    return {key: json_safe(value) for key, value in record.__dict__.items() if key not in _RESERVED_ATTRS}


class JsonFormatter(logging.Formatter):
    """One JSON object per line, tagged with the service name."""

    def __init__(self, service: str = "ritual") -> None:
        super().__init__()
        self.service = service

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "service": self.service,
            "message": record.getMessage(),
        }
        for key, value in record_extras(record).items():
            payload.setdefault(key, value)
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


class ColorTextFormatter(logging.Formatter):
    """Console output for local development."""

    def format(self, record: logging.LogRecord) -> str:
        formatted = super().format(record)
        extras = record_extras(record)
        if extras:
            formatted += " " + " ".join(f"{key}={value}" for key, value in sorted(extras.items()))
        for level, color in _LEVEL_COLORS:
            if record.levelno >= level:
                return colorize(formatted, color)
        return formatted


def configure_logging() -> None:
    """Configure global logging from the RITUAL_LOG_* environment variables."""

    environment = os.getenv("RITUAL_ENVIRONMENT", "dev").lower()
    default_level = "DEBUG" if environment in _DEV_ENVIRONMENTS else "INFO"
    log_level = os.getenv("RITUAL_LOG_LEVEL", default_level).upper()
    log_format = os.getenv("RITUAL_LOG_FORMAT", "json").lower()

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "json": {
                    "()": JsonFormatter,
                    "service": os.getenv("RITUAL_APP_NAME", "ritual"),
                },
                "text": {
                    "()": ColorTextFormatter,
                    "format": "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
                },
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "json" if log_format == "json" else "text",
                    "level": log_level,
                }
            },
            "root": {
                "handlers": ["console"],
                "level": log_level,
            },
            # asyncpg logs every pool event at DEBUG
            "loggers": {"asyncpg": {"level": "INFO"}},
        }
    )


__all__ = ["ColorTextFormatter", "JsonFormatter", "colorize", "configure_logging", "record_extras"]
