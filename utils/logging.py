"""Logging configuration for the market intelligence engine."""
import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional, TextIO

from config.settings import AppConfig, LogLevel

TEXT_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - [%(correlation_id)s] - %(message)s'
QUIET_LOGGERS = ("aiohttp", "asyncio")

# Attributes every LogRecord carries; anything else arrived through ``extra=``
_STANDARD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {
    "message", "asctime", "correlation_id", "taskName",
}


class CorrelationIDFilter(logging.Filter):
    """Log filter to add correlation ID to log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        """Default correlation_id to '-' when missing or empty."""
        if not getattr(record, "correlation_id", None):
            record.correlation_id = "-"
        return True


class StructuredFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.

    Emits one object per record. Fields passed through ``extra=`` (market_id,
    alert, attempt, ...) are copied to the top level; values that are not JSON
    scalars are rendered with ``str``.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if getattr(record, "correlation_id", "-") != "-":
            log_data["correlation_id"] = record.correlation_id

        log_data.update(self._extra_fields(record))

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data)

    @staticmethod
    def _extra_fields(record: logging.LogRecord) -> Dict[str, Any]:
        fields = {}
        for key, value in vars(record).items():
            if key in _STANDARD_ATTRS:
                continue
            if isinstance(value, (str, int, float, bool, type(None))):
                fields[key] = value
            else:
                fields[key] = str(value)
        return fields


def setup_logging(config: Optional[AppConfig] = None, stream: Optional[TextIO] = None) -> None:
    """
    Configure the root logger with a single console handler.

    Args:
        config: Application configuration. If None, uses INFO level text output.
        stream: Output stream (default: stdout)
    """
    log_level = config.log_level if config else LogLevel.INFO
    use_json = bool(config) and config.log_format == "json"

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setLevel(log_level.value)
    handler.addFilter(CorrelationIDFilter())
    handler.setFormatter(
        StructuredFormatter() if use_json
        else logging.Formatter(TEXT_FORMAT, datefmt='%Y-%m-%d %H:%M:%S')
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level.value)
    root_logger.handlers.clear()
    root_logger.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
