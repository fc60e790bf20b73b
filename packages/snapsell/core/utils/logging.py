"""Logging configuration for SnapSell.

Log records go to stderr (or a file) so they never mix with CLI output on
stdout. ``structured=True`` switches to one JSON object per line.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime
from typing import Any

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

NOISY_LOGGERS = ("httpx", "httpcore", "openai", "PIL", "asyncio")

_STANDARD_ATTRS = frozenset(
    {
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
        "taskName",
        "exc_info",
        "exc_text",
        "stack_info",
    }
)


class StructuredJSONFormatter(logging.Formatter):
    """Formats records as JSON lines.

    {
        "level": "WARNING",
        "message": "Image attempt 1/3 failed ...",
        "timestamp": "2026-01-29T12:00:00+00:00",
        "context": {"logger_name": "...", "function": "...", "line": 42, ...}
    }

    Fields passed through ``extra=`` land in ``context``.
    """

    def format(self, record: logging.LogRecord) -> str:
        context: dict[str, Any] = {
            "logger_name": record.name,
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            exc_type, exc_value, _ = record.exc_info
            context["error_type"] = exc_type.__name__ if exc_type else None
            context["error_message"] = str(exc_value) if exc_value else None
            context["stack_trace"] = record.exc_text or self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in _STANDARD_ATTRS and not key.startswith("_"):
                context[key] = value

        entry = {
            "level": record.levelname,
            "message": record.getMessage(),
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "context": context,
        }
        return json.dumps(entry, default=str)


def _suppress_noisy_loggers() -> None:
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.ERROR)


def configure_logging(
    level: str = "INFO",
    format_string: str | None = None,
    filename: str | None = None,
    structured: bool = False,
) -> None:
    """Configure root logging. Safe to call again to reconfigure.

    Args:
        level: Level name, case-insensitive
        format_string: Text format (ignored when structured)
        filename: Log file; stderr when None
        structured: Emit JSON lines instead of text

    Raises:
        ValueError: Unknown level name
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        raise ValueError(f"Unknown log level: {level}")

    handler: logging.Handler
    if filename:
        handler = logging.FileHandler(filename)
    else:
        handler = logging.StreamHandler(sys.stderr)

    formatter: logging.Formatter
    if structured:
        formatter = StructuredJSONFormatter()
    else:
        formatter = logging.Formatter(format_string or DEFAULT_FORMAT)
    handler.setFormatter(formatter)

    logging.basicConfig(level=numeric_level, handlers=[handler], force=True)
    _suppress_noisy_loggers()


def get_logger(name: str, **context: Any) -> logging.Logger | logging.LoggerAdapter:
    """Logger for ``name``; wrapped in a LoggerAdapter when context is given.

    Example:
        >>> log = get_logger(__name__, cycle_id=3)
        >>> log.info("Cycle started")
    """
    logger = logging.getLogger(name)
    if context:
        return logging.LoggerAdapter(logger, context)
    return logger
