"""Structured logging configuration for DevBuddy.

- JSON structured logging with StructuredFormatter
- Logger hierarchy under the devbuddy namespace
- Environment variable control (DEVBUDDY_LOG_LEVEL, DEVBUDDY_LOG_FORMAT) at import
- LOG_LEVEL / LOG_FORMAT settings applied once a DevBuddyConfig is loaded

Connector modules log short snake_case event names and put the details in
``extra`` so they land in the ``context`` object of each JSON line.
"""

import json
import logging
import os
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .config import DevBuddyConfig

ROOT_LOGGER_NAME = "devbuddy"

# Sensitive keys that are redacted in log output.
# Credential material reaches the client through the secret store and must never
# be written to a log line, even when passed in ``extra`` by mistake.
SENSITIVE_KEYS = {
    "password",
    "token",
    "secret",
    "apikey",
    "api_key",
    "authorization",
    "credential",
    "credentials",
    "auth",
    "bearer",
}

# Attributes every LogRecord carries; anything else came in through ``extra``.
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

    Outputs logs in JSON format with:
    - timestamp: UTC ISO 8601 format with 'Z' suffix
    - level: Log level name (INFO, ERROR, etc.)
    - logger: Logger name (devbuddy hierarchy)
    - message: Log message
    - context: Extras dict merged from LogRecord attributes

    Security: Sensitive keys (password, token, authorization, etc.) are
    redacted to prevent credential leakage in logs.
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON.

        Args:
            record: LogRecord to format

        Returns:
            JSON string with structured log data
        """
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
    """Human-readable text formatter, used when DEVBUDDY_LOG_FORMAT=text."""

    def __init__(self):
        super().__init__(
            fmt="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )


def configure_logging(level: Optional[str] = None, log_format: Optional[str] = None) -> None:
    """Configure structured logging for all devbuddy loggers.

    Args:
        level: Optional log level override. If not provided, uses DEVBUDDY_LOG_LEVEL
               environment variable (default: INFO).
        log_format: Optional format override ("json" or "text"). If not provided,
               uses DEVBUDDY_LOG_FORMAT environment variable (default: json).

    Environment Variables:
        DEVBUDDY_LOG_LEVEL: Log level (DEBUG, INFO, WARNING, ERROR). Default: INFO
        DEVBUDDY_LOG_FORMAT: Output format (json, text). Default: json
    """
    if level is None:
        level = os.getenv("DEVBUDDY_LOG_LEVEL", "INFO")

    log_level = getattr(logging, level.upper(), logging.INFO)

    if log_format is None:
        log_format = os.getenv("DEVBUDDY_LOG_FORMAT", "json")

    if log_format.lower() == "text":
        formatter: logging.Formatter = TextFormatter()
    else:
        formatter = StructuredFormatter()

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(log_level)

    # Only add a handler once; repeated imports must not stack handlers.
    if not logger.handlers:
        logger.addHandler(logging.StreamHandler())
    for handler in logger.handlers:
        handler.setFormatter(formatter)

    logger.propagate = False


def configure_logging_from_config(config: "DevBuddyConfig") -> None:
    """Apply the log settings of a loaded config (LOG_LEVEL, LOG_FORMAT).

    The import-time setup only sees DEVBUDDY_LOG_* variables; this brings
    .env and settings-level values into effect.
    """
    configure_logging(level=config.log_level, log_format=config.log_format)
