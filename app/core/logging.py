"""Structured key=value logging for the Docs Gap Engine."""

import logging
import sys
from typing import Any

# Attributes every LogRecord carries; anything else came in through extra=
_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None))
) | {"message", "asctime", "extra_data"}


def _render(value: Any) -> str:
    text = str(value)
    if not text or any(c.isspace() for c in text) or "=" in text:
        return repr(text)
    return text


class StructuredFormatter(logging.Formatter):
    """Formats records as a single line of key=value pairs."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "function": record.funcName,
            "message": record.getMessage(),
        }

        # Fields passed with extra={...}, request_id first
        if hasattr(record, "request_id"):
            log_data["request_id"] = record.request_id
        for key, value in record.__dict__.items():
            if key not in _RECORD_ATTRS and key not in log_data:
                log_data[key] = value

        # Fields passed through log_with_context
        if hasattr(record, "extra_data"):
            log_data.update(record.extra_data)

        parts = [f"{k}={_render(v)}" for k, v in log_data.items() if v is not None]
        line = " ".join(parts)

        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def _level_from_settings() -> int:
    try:
        from app.core.config import get_settings

        settings = get_settings()
    except Exception:
        # Settings unavailable (e.g. invalid env): fall back to INFO
        return logging.INFO

    if settings.LOG_LEVEL:
        level = logging.getLevelName(settings.LOG_LEVEL.upper())
        if isinstance(level, int):
            return level
    return logging.DEBUG if settings.DOCS_ENGINE_ENV == "dev" else logging.INFO


def get_logger(name: str) -> logging.Logger:
    """
    Get a configured logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Logger writing structured lines to stdout. The level comes from
        LOG_LEVEL, else DEBUG in dev and INFO elsewhere.
    """
    logger = logging.getLogger(name)

    # Only configure if not already configured
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(StructuredFormatter())
        logger.addHandler(handler)
        logger.setLevel(_level_from_settings())

    return logger


def log_with_context(logger: logging.Logger, level: int, msg: str, **kwargs: Any) -> None:
    """
    Log with additional context fields.

    Args:
        logger: Logger instance
        level: Log level (logging.INFO, etc.)
        msg: Log message
        **kwargs: Context fields (e.g. request_id, batch, failed_batches)
    """
    extra: dict[str, Any] = {}
    if "request_id" in kwargs:
        extra["request_id"] = kwargs.pop("request_id")
    extra["extra_data"] = kwargs

    logger.log(level, msg, extra=extra)
