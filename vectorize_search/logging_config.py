"""Structured logging configuration.

JSON output for production, human-readable for development. Records carry
the configured Vectorize index and never contain the API token.
"""

import json
import logging
import sys
from datetime import UTC, datetime
from typing import Any

from vectorize_search.config import Environment, Settings, get_settings

# Attributes every LogRecord carries; anything else came in through ``extra=``.
_RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None)).keys()
) | {"message", "asctime", "taskName"}

REDACTED = "***"


class CloudflareContextFilter(logging.Filter):
    """Stamps the Vectorize index on records and masks the API token."""

    def __init__(self, index: str, token: str | None = None) -> None:
        super().__init__()
        self.index = index
        self.token = token

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "index"):
            record.index = self.index
        if self.token:
            message = record.getMessage()
            if self.token in message:
                record.msg = message.replace(self.token, REDACTED)
                record.args = ()
        return True


class JSONFormatter(logging.Formatter):
    """JSON log formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON string."""
        entry: dict[str, Any] = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        extra = {
            key: value
            for key, value in vars(record).items()
            if key not in _RESERVED_ATTRS
        }
        if extra:
            entry["extra"] = extra
        if record.funcName:
            entry["function"] = record.funcName
        if record.pathname:
            entry["file"] = f"{record.pathname}:{record.lineno}"

        return json.dumps(entry, default=str, ensure_ascii=False)


class DevFormatter(logging.Formatter):
    """Human-readable formatter for development."""

    FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
    DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

    def __init__(self) -> None:
        super().__init__(fmt=self.FORMAT, datefmt=self.DATE_FORMAT)


def _context_filter(settings: Settings) -> CloudflareContextFilter:
    token = settings.cloudflare.api_token
    return CloudflareContextFilter(
        index=settings.cloudflare.vectorize_index,
        token=token.get_secret_value() if token else None,
    )


def setup_logging(
    level: str | None = None,
    json_output: bool | None = None,
) -> logging.Logger:
    """Configure application logging.

    Args:
        level: Log level override (default from settings).
        json_output: Force JSON output (default: JSON outside development).

    Returns:
        Root logger instance.
    """
    settings = get_settings()

    numeric_level = getattr(logging, (level or settings.log_level).upper(), logging.INFO)
    if json_output is None:
        json_output = settings.environment != Environment.DEVELOPMENT

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    root_logger.handlers.clear()

    # stdout is reserved for command output
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(numeric_level)
    handler.setFormatter(JSONFormatter() if json_output else DevFormatter())
    handler.addFilter(_context_filter(settings))
    root_logger.addHandler(handler)

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    return root_logger


def get_logger(name: str) -> logging.Logger:
    """Get a named logger.

    Args:
        name: Logger name (typically __name__).

    Returns:
        Logger instance.
    """
    return logging.getLogger(name)
