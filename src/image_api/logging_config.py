"""Structured logging configuration for the SDR Image API.

- JSON structured logging with StructuredFormatter
- Logger hierarchy under the image_api namespace
- Environment variable control (LOG_LEVEL, LOG_FORMAT) when no explicit
  values are passed
"""

import json
import logging
import os
from datetime import datetime, timezone
from typing import Optional

ROOT_LOGGER = "image_api"

# Sensitive keys that should be redacted in log output
SENSITIVE_KEYS = {
    "password", "token", "secret", "apikey", "api_key",
    "authorization", "credential", "auth", "key", "bearer",
}

_STANDARD_FIELDS = {
    "name",
    "msg",
    "args",
    "created",
    "filename",
    "funcName",
    "levelname",
    "levelno",
    "lineno",
    "module",
    "msecs",
    "message",
    "pathname",
    "process",
    "processName",
    "relativeCreated",
    "thread",
    "threadName",
    "exc_info",
    "exc_text",
    "stack_info",
    "taskName",
}


class StructuredFormatter(logging.Formatter):
    """JSON structured log formatter.

    Outputs one JSON object per record with:
    - timestamp: UTC ISO 8601 format with 'Z' suffix
    - level: Log level name (INFO, ERROR, etc.)
    - logger: Logger name (image_api hierarchy)
    - message: Log message
    - context: Extras dict merged from LogRecord attributes
    - exception: Formatted traceback, when present

    Sensitive keys (password, token, api_key, etc.) are redacted.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        extras = {
            k: ("[REDACTED]" if k.lower() in SENSITIVE_KEYS else v)
            for k, v in record.__dict__.items()
            if k not in _STANDARD_FIELDS and not k.startswith("_")
        }

        if extras:
            log_data["context"] = extras

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class TextFormatter(logging.Formatter):
    """Human-readable text formatter for local development."""

    def __init__(self):
        super().__init__(
            fmt="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )


def configure_logging(
    level: Optional[str] = None, log_format: Optional[str] = None
) -> logging.Logger:
    """Configure logging for all image_api loggers.

    Args:
        level: Log level override. Falls back to LOG_LEVEL (default: INFO).
        log_format: "json" or "text". Falls back to LOG_FORMAT (default: json).

    Returns:
        The configured image_api logger
    """
    if level is None:
        level = os.getenv("LOG_LEVEL", "INFO")
    if log_format is None:
        log_format = os.getenv("LOG_FORMAT", "json")

    log_level = getattr(logging, level.upper(), logging.INFO)

    if log_format.lower() == "text":
        formatter = TextFormatter()
    else:
        formatter = StructuredFormatter()

    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(log_level)

    # Idempotent: reconfiguring swaps the formatter instead of stacking handlers
    if not logger.handlers:
        handler = logging.StreamHandler()
        logger.addHandler(handler)
    for handler in logger.handlers:
        handler.setFormatter(formatter)

    logger.propagate = False
    return logger
