"""错误体系：结构化错误类型与失败分类。

Error hierarchy for chat-gateway.
"""

from chat_gateway.errors.base import (
    ChatError,
    ConfigError,
    ErrorContext,
    GatewayError,
    RemoteError,
    ResponseFormatError,
    StreamUnavailableError,
    TransportError,
)
from chat_gateway.errors.classification import (
    ErrorKind,
    classify_failure,
    classify_status,
    extract_error_message,
    is_retryable,
    to_chat_error,
)

__all__ = [
    "ChatError",
    "ConfigError",
    "ErrorContext",
    "ErrorKind",
    "GatewayError",
    "RemoteError",
    "ResponseFormatError",
    "StreamUnavailableError",
    "TransportError",
    "classify_failure",
    "classify_status",
    "extract_error_message",
    "is_retryable",
    "to_chat_error",
]
