"""The logging configuration module.

Log lines are plain text during local development and one JSON object per line
everywhere else. Identifiers such as ``uid``, ``club_id`` and ``stripe_event_id`` travel
as dimensions on a ``ContextualLogger`` instead of being formatted into the message.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Optional

# Attributes every LogRecord has; anything else on a record came in through ``extra``.
_STANDARD_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None))
) | {"message", "asctime", "dimensions"}


class JSONFormatter(logging.Formatter):
    """Render a record as a single JSON line with its dimensions."""

    def format(self, record: logging.LogRecord) -> str:
        """Format the log record as JSON.

        Args:
        ----
            record (logging.LogRecord): The log record to format

        Returns:
        -------
            str: JSON-formatted log line

        """
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "function": record.funcName,
            "line": record.lineno,
        }

        dimensions = getattr(record, "dimensions", None)
        if dimensions:
            entry["dimensions"] = dimensions

        extras = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _STANDARD_RECORD_ATTRS
        }
        if extras:
            entry["extra"] = extras

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


class TextFormatter(logging.Formatter):
    """Human readable format for local development, dimensions appended as key=value."""

    def __init__(self):
        """Initialize with the local development line format."""
        super().__init__("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        """Format the record and append its dimensions."""
        line = super().format(record)
        dimensions = getattr(record, "dimensions", None)
        if dimensions:
            line += " [" + " ".join(f"{k}={v}" for k, v in dimensions.items()) + "]"
        return line


class ContextualLogger(logging.LoggerAdapter):
    """A LoggerAdapter that attaches context dimensions to every record."""

    def __init__(self, logger: logging.Logger, dimensions: Optional[dict] = None) -> None:
        """Initialize the contextual logger.

        Args:
        ----
            logger (logging.Logger): Base logger instance
            dimensions (Optional[dict]): Context dimensions for structured logging

        """
        super().__init__(logger, {})
        self.dimensions = dimensions or {}

    def process(self, msg: str, kwargs: dict) -> tuple[str, dict]:
        """Merge the dimensions into the ``extra`` of a log call."""
        extra = kwargs.setdefault("extra", {})
        if self.dimensions:
            extra["dimensions"] = {**extra.get("dimensions", {}), **self.dimensions}
        return msg, kwargs

    def with_context(self, **dimensions: str | int | float | bool | None) -> "ContextualLogger":
        """Derive a logger with additional context dimensions.

        Dimensions whose value is ``None`` are dropped so callers can pass optional
        identifiers (club id, uid) without checking them first.

        Args:
        ----
            dimensions: Keyword arguments to add to the dimensions

        Returns:
        -------
            ContextualLogger: New logger instance with the merged dimensions

        """
        merged = {
            **self.dimensions,
            **{key: value for key, value in dimensions.items() if value is not None},
        }
        return ContextualLogger(self.logger, merged)


class LoggerConfigurator:
    """Configures module loggers.

    Request handlers, webhook processing and the background reconciler derive child
    loggers with ``with_context`` so that every line carries the identifiers it concerns.
    The format follows ``LOCAL_DEVELOPMENT`` and the level follows ``LOG_LEVEL``.
    """

    @staticmethod
    def configure_logger(name: str, dimensions: Optional[dict] = None) -> ContextualLogger:
        """Configure and return a logger with the given name and initial context.

        Args:
        ----
            name (str): Logger name (typically __name__)
            dimensions (Optional[dict]): Initial context dimensions

        Returns:
        -------
            ContextualLogger: Configured logger with context support

        """
        logger = logging.getLogger(name)

        # Import settings here to avoid circular imports
        from clubhost.core.config import settings

        logger.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
        logger.propagate = False

        if not getattr(logger, "_clubhost_configured", False):
            handler = logging.StreamHandler(sys.stdout)
            handler.setFormatter(
                TextFormatter() if settings.LOCAL_DEVELOPMENT else JSONFormatter()
            )
            logger.handlers.clear()
            logger.addHandler(handler)
            logger._clubhost_configured = True

        return ContextualLogger(logger, dimensions)


# Default logger instance
logger = LoggerConfigurator.configure_logger(__name__)
