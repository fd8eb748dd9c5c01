# backend/wealth_engine/utils/logging.py
"""
Logging configuration for the Wealth Engine.

This module provides centralized logging setup with:
- Environment-based log levels
- Operation ID stamping (see utils.context)
- JSON format option for log aggregation
- Suppression of noisy third-party library logs

Usage:
    from wealth_engine.utils import setup_logging

    setup_logging()                       # settings.log_level / settings.log_format
    setup_logging(level="DEBUG")          # local debugging

Log Levels:
    DEBUG   - Cache hits/misses, per-symbol fetch details, reversed transactions
    INFO    - Refresh summaries, migrations, portfolio mutations
    WARNING - Degraded results (missing FX, stale quotes, over-sells, retries)
    ERROR   - Provider or persistence failures

Environment Configuration:
    LOG_LEVEL=DEBUG|INFO|WARNING
    LOG_FORMAT=text|json
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from wealth_engine.config import settings
from wealth_engine.utils.context import get_operation_id

# =============================================================================
# CONSTANTS
# =============================================================================

# timestamp | level | operation_id | logger_name | message
DEFAULT_TEXT_FORMAT = "%(asctime)s | %(levelname)-8s | %(operation_id)s | %(name)s | %(message)s"
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

NO_OPERATION_ID = "-"

NOISY_LOGGERS = [
    "yfinance",
    "peewee",
    "urllib3",
    "urllib3.connectionpool",
    "requests",
    "curl_cffi",
    "sqlalchemy.engine",
]

_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "WARN": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

# LogRecord attributes that are not user-supplied extras
_STANDARD_ATTRS = {
    "name", "msg", "args", "created", "filename", "funcName",
    "levelname", "levelno", "lineno", "module", "msecs",
    "pathname", "process", "processName", "relativeCreated",
    "stack_info", "exc_info", "exc_text", "thread", "threadName",
    "operation_id", "message", "taskName",
}


# =============================================================================
# FILTER
# =============================================================================

class OperationIdFilter(logging.Filter):
    """Adds ``operation_id`` to every record passing through the handler."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.operation_id = get_operation_id() or NO_OPERATION_ID
        return True


# =============================================================================
# JSON FORMATTER
# =============================================================================

class JsonFormatter(logging.Formatter):
    """
    One JSON object per line.

    Output format:
    {
        "timestamp": "2024-01-15T10:30:00.123000+00:00",
        "level": "INFO",
        "logger": "wealth_engine.services.market_data.quote_cache",
        "operation_id": "refresh-1a2b3c4d",
        "message": "Quote refresh finished: 4 updated, 1 failed",
        "extra": {"symbols": 5}
    }
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "operation_id": getattr(record, "operation_id", NO_OPERATION_ID),
            "message": record.getMessage(),
        }

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        extra = {}
        for key, value in record.__dict__.items():
            if key in _STANDARD_ATTRS:
                continue
            try:
                json.dumps(value)
                extra[key] = value
            except (TypeError, ValueError):
                extra[key] = str(value)

        if extra:
            entry["extra"] = extra

        return json.dumps(entry)


# =============================================================================
# SETUP
# =============================================================================

def setup_logging(
        level: str | None = None,
        log_format: str | None = None,
        suppress_noisy_loggers: bool = True,
) -> None:
    """
    Configure root logging once for the embedding application.

    Args:
        level: Log level name. Defaults to settings.log_level.
        log_format: 'text' or 'json'. Defaults to settings.log_format.
        suppress_noisy_loggers: Set third-party loggers to WARNING.

    Raises:
        ValueError: If the level name is unknown
    """
    level_name = level or settings.log_level
    log_level = _get_log_level(level_name)
    format_type = (log_format or settings.log_format).lower()

    if format_type == "json":
        formatter: logging.Formatter = JsonFormatter()
    else:
        formatter = logging.Formatter(fmt=DEFAULT_TEXT_FORMAT, datefmt=DEFAULT_DATE_FORMAT)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)
    handler.addFilter(OperationIdFilter())

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()
    root_logger.addHandler(handler)

    if suppress_noisy_loggers:
        for logger_name in NOISY_LOGGERS:
            logging.getLogger(logger_name).setLevel(logging.WARNING)

    logging.getLogger(__name__).info(
        f"Logging configured: level={level_name}, format={format_type}",
        extra={"config": {"level": level_name, "format": format_type}},
    )


def _get_log_level(level_name: str) -> int:
    """Convert a level name (case-insensitive) to its logging constant."""
    key = level_name.upper().strip()
    if key not in _LEVELS:
        valid = ", ".join(_LEVELS)
        raise ValueError(f"Invalid log level: '{level_name}'. Valid levels are: {valid}")
    return _LEVELS[key]


def get_logger(name: str) -> logging.Logger:
    """Return a standard logger; operation IDs are added by the handler filter."""
    return logging.getLogger(name)
