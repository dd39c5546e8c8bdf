"""
Structured JSON logging configuration.

Sets up application-wide logging with one JSON object per line on stdout:
- timestamp, level, message, logger
- request correlation (request_id, method, path, status_code, latency_ms)
- ceremony context (admin_id, ceremony)
- any other fields passed through ``extra=``

Emails and credential material must never be passed as extra fields.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict


# Attributes every LogRecord carries; everything else came in via ``extra=``.
_RESERVED_ATTRS = frozenset({
    "name", "msg", "args", "created", "filename", "funcName",
    "levelname", "levelno", "lineno", "module", "msecs",
    "message", "pathname", "process", "processName", "relativeCreated",
    "thread", "threadName", "exc_info", "exc_text", "stack_info",
    "taskName",
})


class JSONFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.

    Example output:
        {"timestamp": "2026-10-18T10:30:00.123456+00:00", "level": "INFO",
         "message": "Registration options issued", "logger": "swordfighters_admin.services.registration",
         "admin_id": "9b2f...", "ceremony": "registration", "request_id": "abc-123"}
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if record.stack_info:
            log_data["stack_info"] = self.formatStack(record.stack_info)

        for key, value in record.__dict__.items():
            if key in _RESERVED_ATTRS or key in log_data or value is None:
                continue
            log_data[key] = value

        return json.dumps(log_data, default=str)


def setup_logging(
    level: str = "INFO",
    json_format: bool = True
) -> None:
    """
    Configure application logging.

    Replaces any existing root handlers with a single stdout handler.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: Use JSON formatter (True) or simple formatter (False)

    Note:
        Call this once at application startup, before any logging occurs.
    """
    root_logger = logging.getLogger()

    log_level = getattr(logging, level.upper(), logging.INFO)
    root_logger.setLevel(log_level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)

    if json_format:
        formatter: logging.Formatter = JSONFormatter()
    else:
        # Simple format for local development
        formatter = logging.Formatter(
            fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        )

    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    # Suppress noisy third-party loggers
    logging.getLogger("asyncio").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """
    Get logger instance with given name.

    Example:
        logger = get_logger(__name__)
        logger.info("Challenge issued", extra={"admin_id": admin.id})
    """
    return logging.getLogger(name)
