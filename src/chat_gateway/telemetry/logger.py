"""
Structured logging for chat-gateway.

Provides request-scoped context and masking of credentials in log output.
"""

from __future__ import annotations

import json
import logging
import re
import sys
import time
from contextvars import ContextVar
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar

_log_context: ContextVar[dict[str, Any] | None] = ContextVar("chat_log_context", default=None)


class LogLevel(str, Enum):
    """Log levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"

    def to_logging_level(self) -> int:
        """Convert to standard logging level."""
        return getattr(logging, self.value)


@dataclass
class LogContext:
    """Request-scoped logging context.

    Attributes:
        request_id: Client-generated request identifier
        model: Model key used for the call
        extra: Additional context fields
    """

    request_id: str | None = None
    model: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result: dict[str, Any] = {}
        if self.request_id:
            result["request_id"] = self.request_id
        if self.model:
            result["model"] = self.model
        result.update(self.extra)
        return result


def get_log_context() -> LogContext:
    """Get current logging context."""
    data = _log_context.get()
    if not data:
        return LogContext()
    data = dict(data)
    return LogContext(
        request_id=data.pop("request_id", None),
        model=data.pop("model", None),
        extra=data,
    )


def set_log_context(context: LogContext) -> None:
    """Set logging context for the current async context."""
    _log_context.set(context.to_dict())


def clear_log_context() -> None:
    """Clear logging context."""
    _log_context.set(None)


class SensitiveDataMasker:
    """Masks credentials in log messages."""

    DEFAULT_PATTERNS: ClassVar[list[tuple[str, str]]] = [
        (r"(Bearer\s+)([^\s\"']+)", r"\1***REDACTED***"),
        (r"(Authorization[\"']?\s*[:=]\s*[\"']?)([^\"'\s]+)", r"\1***REDACTED***"),
        (r"(api[_-]?key[\"']?\s*[:=]\s*[\"']?)([^\"'\s]+)", r"\1***REDACTED***"),
        (r"(sk-[a-zA-Z0-9]{20,})", r"sk-***REDACTED***"),
        (r"(VOLCENGINE_API_KEY=)([^\s]+)", r"\1***REDACTED***"),
    ]

    def __init__(self, patterns: list[tuple[str, str]] | None = None) -> None:
        self._patterns = [
            (re.compile(p, re.IGNORECASE), r)
            for p, r in (patterns or self.DEFAULT_PATTERNS)
        ]

    def mask(self, text: str) -> str:
        """Mask sensitive data in text."""
        result = text
        for pattern, replacement in self._patterns:
            result = pattern.sub(replacement, result)
        return result

    def mask_dict(self, data: dict[str, Any]) -> dict[str, Any]:
        """Mask sensitive values in a dictionary, recursively."""
        result: dict[str, Any] = {}
        for key, value in data.items():
            key_lower = key.lower()
            if any(s in key_lower for s in ("key", "token", "secret", "auth")):
                result[key] = "***REDACTED***"
            elif isinstance(value, str):
                result[key] = self.mask(value)
            elif isinstance(value, dict):
                result[key] = self.mask_dict(value)
            else:
                result[key] = value
        return result


class JsonFormatter(logging.Formatter):
    """JSON log formatter."""

    def __init__(self, masker: SensitiveDataMasker | None = None) -> None:
        super().__init__()
        self._masker = masker or SensitiveDataMasker()

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data: dict[str, Any] = {
            "timestamp": time.strftime("%Y-%m-%dT%H:%M:%S", time.gmtime(record.created))
            + f".{int(record.msecs):03d}Z",
            "level": record.levelname,
            "logger": record.name,
            "message": self._masker.mask(record.getMessage()),
        }

        if context_dict := get_log_context().to_dict():
            log_data["context"] = context_dict

        if hasattr(record, "extra_fields"):
            log_data.update(self._masker.mask_dict(record.extra_fields))

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class TextFormatter(logging.Formatter):
    """Human-readable text formatter."""

    def __init__(self, masker: SensitiveDataMasker | None = None) -> None:
        super().__init__(
            fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        self._masker = masker or SensitiveDataMasker()

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as text."""
        original_msg = record.msg
        record.msg = self._masker.mask(str(record.msg))
        result = super().format(record)
        record.msg = original_msg

        fields = dict(get_log_context().to_dict())
        if hasattr(record, "extra_fields"):
            fields.update(self._masker.mask_dict(record.extra_fields))
        if fields:
            result = f"{result} | " + " ".join(f"{k}={v}" for k, v in fields.items())
        return result


class GatewayLogger:
    """Logger with keyword fields.

    Example:
        >>> logger = GatewayLogger.get_logger("chat_gateway.client")
        >>> logger.info("Chat request sent", model="doubao-pro-4k", messages=3)
    """

    _loggers: ClassVar[dict[str, logging.Logger]] = {}
    _level: ClassVar[LogLevel] = LogLevel.INFO
    _handler: ClassVar[logging.Handler | None] = None

    @classmethod
    def configure(
        cls,
        level: LogLevel = LogLevel.INFO,
        format: str = "text",
        stream: Any = None,
        masker: SensitiveDataMasker | None = None,
    ) -> None:
        """Configure output for all chat-gateway loggers.

        Args:
            level: Log level
            format: Output format ('json' or 'text')
            stream: Output stream (default: stderr)
            masker: Sensitive data masker
        """
        cls._level = level
        formatter: logging.Formatter = (
            JsonFormatter(masker=masker) if format == "json" else TextFormatter(masker=masker)
        )
        cls._handler = logging.StreamHandler(stream or sys.stderr)
        cls._handler.setFormatter(formatter)
        cls._handler.setLevel(level.to_logging_level())

        for logger in cls._loggers.values():
            logger.handlers.clear()
            logger.addHandler(cls._handler)
            logger.setLevel(level.to_logging_level())
            logger.propagate = False

    @classmethod
    def get_logger(cls, name: str) -> GatewayLogger:
        """Get or create a logger."""
        if name not in cls._loggers:
            logger = logging.getLogger(name)
            logger.setLevel(cls._level.to_logging_level())
            if cls._handler:
                logger.handlers.clear()
                logger.addHandler(cls._handler)
                logger.propagate = False
            cls._loggers[name] = logger
        return cls(cls._loggers[name])

    def __init__(self, logger: logging.Logger) -> None:
        self._logger = logger

    def _log(self, level: int, msg: str, exc_info: bool = False, **kwargs: Any) -> None:
        extra = {"extra_fields": kwargs} if kwargs else {}
        self._logger.log(level, msg, exc_info=exc_info, extra=extra)

    def debug(self, msg: str, **kwargs: Any) -> None:
        """Log debug message."""
        self._log(logging.DEBUG, msg, **kwargs)

    def info(self, msg: str, **kwargs: Any) -> None:
        """Log info message."""
        self._log(logging.INFO, msg, **kwargs)

    def warning(self, msg: str, **kwargs: Any) -> None:
        """Log warning message."""
        self._log(logging.WARNING, msg, **kwargs)

    def error(self, msg: str, exc_info: bool = False, **kwargs: Any) -> None:
        """Log error message."""
        self._log(logging.ERROR, msg, exc_info=exc_info, **kwargs)


def get_logger(name: str) -> GatewayLogger:
    """Get a logger instance."""
    return GatewayLogger.get_logger(name)
