# portfolio_tracker/utils/logging.py
"""
Logging configuration for the portfolio tracker.

Every record is stamped with the refresh ID of the valuation pass that
produced it, so one recomputation can be followed across price lookups,
rate lookups and provider retries. Output is human-readable text or one
JSON object per line (LOG_FORMAT=json).

Usage:
    from portfolio_tracker.utils import setup_logging

    setup_logging()

Log Levels:
    DEBUG   - Cache hits/misses, queued requests, raw quotes
    INFO    - Service construction, store mutations
    WARNING - Provider failures, retries, circuit breaker trips
    ERROR   - Unexpected failures
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from portfolio_tracker.config import settings
from portfolio_tracker.utils.context import get_refresh_id

# =============================================================================
# CONSTANTS
# =============================================================================

DEFAULT_TEXT_FORMAT = "%(asctime)s | %(levelname)-8s | %(refresh_id)s | %(name)s | %(message)s"
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

NO_REFRESH_ID = "-"

# yfinance logs every failed symbol at ERROR through its own logger
NOISY_LOGGERS = ("yfinance", "urllib3", "httpx", "httpcore", "peewee", "asyncio")

# Attributes every LogRecord carries; anything else came in through extra=
_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "refresh_id"}


# =============================================================================
# REFRESH ID FILTER
# =============================================================================

class RefreshIdFilter(logging.Filter):
    """Adds the current refresh ID to every record as 'refresh_id'."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.refresh_id = get_refresh_id() or NO_REFRESH_ID
        return True


# =============================================================================
# JSON FORMATTER
# =============================================================================

def _extra_fields(record: logging.LogRecord) -> dict[str, Any]:
    fields: dict[str, Any] = {}
    for key, value in vars(record).items():
        if key in _RECORD_ATTRS:
            continue
        try:
            json.dumps(value)
        except (TypeError, ValueError):
            value = str(value)
        fields[key] = value
    return fields


class JsonFormatter(logging.Formatter):
    """
    One JSON object per line:

        {"timestamp": "...", "level": "WARNING",
         "logger": "portfolio_tracker.services.market_data.price_service",
         "refresh_id": "3fa85f64", "message": "...", "extra": {...}}
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "refresh_id": getattr(record, "refresh_id", NO_REFRESH_ID),
            "message": record.getMessage(),
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        extra = _extra_fields(record)
        if extra:
            entry["extra"] = extra
        return json.dumps(entry)


# =============================================================================
# SETUP FUNCTION
# =============================================================================

def setup_logging(
        level: str | None = None,
        log_format: str | None = None,
        suppress_noisy_loggers: bool = True,
) -> None:
    """
    Configure the root logger with refresh ID support.

    Args:
        level: Log level name. Defaults to settings.log_level.
        log_format: 'text' or 'json'. Defaults to settings.log_format.
        suppress_noisy_loggers: If True, set third-party loggers to WARNING.
    """
    level_name = level or settings.log_level
    format_type = (log_format or settings.log_format).lower()

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(RefreshIdFilter())
    if format_type == "json":
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(DEFAULT_TEXT_FORMAT, DEFAULT_DATE_FORMAT))

    root_logger = logging.getLogger()
    root_logger.setLevel(_get_log_level(level_name))
    root_logger.handlers[:] = [handler]

    if suppress_noisy_loggers:
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).info(f"Logging configured: level={level_name}, format={format_type}")


def _get_log_level(level_name: str) -> int:
    """
    Map a level name (case-insensitive, WARN accepted) to its logging constant.

    Raises:
        ValueError: If the name is not a standard level
    """
    name = level_name.strip().upper()
    if name == "WARN":
        name = "WARNING"

    levels = {k: v for k, v in logging.getLevelNamesMapping().items() if k != "NOTSET"}
    if name not in levels:
        raise ValueError(
            f"Invalid log level: '{level_name}'. Valid levels are: {', '.join(sorted(levels))}"
        )
    return levels[name]
