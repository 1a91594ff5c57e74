"""
Telemetry layer - structured logging with credential masking.
"""

from chat_gateway.telemetry.logger import (
    GatewayLogger,
    JsonFormatter,
    LogContext,
    LogLevel,
    SensitiveDataMasker,
    TextFormatter,
    clear_log_context,
    get_log_context,
    get_logger,
    set_log_context,
)

__all__ = [
    "GatewayLogger",
    "JsonFormatter",
    "LogContext",
    "LogLevel",
    "SensitiveDataMasker",
    "TextFormatter",
    "clear_log_context",
    "get_log_context",
    "get_logger",
    "set_log_context",
]
