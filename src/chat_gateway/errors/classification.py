"""错误分类模块：把超时、HTTP 状态码和格式错误映射到封闭的错误类别。

Failure classification for chat calls.

Collapses heterogeneous transport failures into a small closed set of
ErrorKind values so callers can branch on meaning.
"""

from __future__ import annotations

import asyncio
import json
from enum import Enum
from typing import Any

import httpx
import pydantic

from chat_gateway.errors.base import (
    ChatError,
    RemoteError,
    ResponseFormatError,
    StreamUnavailableError,
    TransportError,
)


class ErrorKind(str, Enum):
    """Closed taxonomy of chat call failures."""

    TIMEOUT = "timeout"
    """Request exceeded the configured deadline."""

    AUTH_FAILURE = "auth_failure"
    """Credential rejected (HTTP 401)."""

    RATE_LIMITED = "rate_limited"
    """Throttled by the service (HTTP 429)."""

    SERVER_ERROR = "server_error"
    """Service-side failure (HTTP 5xx)."""

    STREAM_UNAVAILABLE = "stream_unavailable"
    """No readable response stream was obtained."""

    MALFORMED_RESPONSE = "malformed_response"
    """Body present but not in the expected schema."""

    GENERIC = "generic"
    """Anything else; the raised error carries the underlying message."""

    @property
    def hint(self) -> str:
        """Default actionable hint for this kind."""
        return _HINTS[self]


_HINTS: dict[ErrorKind, str] = {
    ErrorKind.TIMEOUT: "the service did not answer in time, retry later",
    ErrorKind.AUTH_FAILURE: "check the API key",
    ErrorKind.RATE_LIMITED: "too many requests, retry after a pause",
    ErrorKind.SERVER_ERROR: "the service is temporarily unavailable, retry later",
    ErrorKind.STREAM_UNAVAILABLE: "use a non-streaming request for this model",
    ErrorKind.MALFORMED_RESPONSE: "the service returned an unexpected payload",
    ErrorKind.GENERIC: "see the error message for details",
}

_RETRYABLE_KINDS: frozenset[ErrorKind] = frozenset(
    {ErrorKind.TIMEOUT, ErrorKind.RATE_LIMITED, ErrorKind.SERVER_ERROR}
)


def classify_status(status_code: int) -> ErrorKind:
    """Classify an HTTP error status.

    Args:
        status_code: HTTP status code

    Returns:
        AUTH_FAILURE for 401, RATE_LIMITED for 429, SERVER_ERROR for
        5xx and above, GENERIC otherwise
    """
    if status_code == 401:
        return ErrorKind.AUTH_FAILURE
    if status_code == 429:
        return ErrorKind.RATE_LIMITED
    if status_code >= 500:
        return ErrorKind.SERVER_ERROR
    return ErrorKind.GENERIC


def _is_timeout(error: BaseException) -> bool:
    if isinstance(error, (httpx.TimeoutException, TimeoutError, asyncio.TimeoutError)):
        return True
    if isinstance(error, TransportError):
        return isinstance(
            error.__cause__, (httpx.TimeoutException, TimeoutError, asyncio.TimeoutError)
        )
    return False


def classify_failure(error: BaseException) -> ErrorKind:
    """Classify a transport or parsing failure.

    Total over its input: never raises.

    Args:
        error: The failure raised while talking to the service

    Returns:
        The matching ErrorKind
    """
    if isinstance(error, ChatError):
        return error.kind
    if _is_timeout(error):
        return ErrorKind.TIMEOUT
    if isinstance(error, RemoteError):
        return classify_status(error.status_code)
    if isinstance(error, httpx.HTTPStatusError):
        return classify_status(error.response.status_code)
    if isinstance(error, (StreamUnavailableError, httpx.StreamError)):
        return ErrorKind.STREAM_UNAVAILABLE
    if isinstance(
        error,
        (ResponseFormatError, json.JSONDecodeError, pydantic.ValidationError),
    ):
        return ErrorKind.MALFORMED_RESPONSE
    return ErrorKind.GENERIC


def _describe(error: BaseException) -> str:
    message = getattr(error, "message", None)
    if isinstance(message, str) and message:
        return message
    try:
        text = str(error)
    except Exception:
        text = ""
    return text or type(error).__name__


def to_chat_error(error: BaseException) -> ChatError:
    """Wrap a failure into a classified ChatError.

    Args:
        error: The failure to classify

    Returns:
        ChatError whose kind comes from classify_failure
    """
    if isinstance(error, ChatError):
        return error

    kind = classify_failure(error)
    status_code: int | None = None
    retry_after: float | None = None
    if isinstance(error, RemoteError):
        status_code = error.status_code
        retry_after = error.retry_after
    elif isinstance(error, httpx.HTTPStatusError):
        status_code = error.response.status_code

    return ChatError(
        kind,
        _describe(error),
        status_code=status_code,
        retry_after=retry_after,
    )


def is_retryable(kind: ErrorKind) -> bool:
    """Check whether a failure kind is typically worth retrying.

    Retry itself is left to the caller; the client never retries.
    """
    return kind in _RETRYABLE_KINDS


def extract_error_message(body: dict[str, Any] | None) -> str | None:
    """Extract an error message from a response body.

    Supports multiple error envelope formats:
    - OpenAI/Ark style: {"error": {"message": "..."}}
    - Simple: {"message": "..."} or {"error": "..."}
    - Detail field: {"detail": "..."}

    Args:
        body: Response body (parsed JSON)

    Returns:
        Error message if found, None otherwise
    """
    if not body or not isinstance(body, dict):
        return None

    if "error" in body:
        error = body["error"]
        if isinstance(error, dict):
            msg = error.get("message")
            if isinstance(msg, str):
                return msg
        elif isinstance(error, str):
            return error

    msg = body.get("message")
    if isinstance(msg, str):
        return msg

    detail = body.get("detail")
    if isinstance(detail, str):
        return detail
    if isinstance(detail, list) and detail:
        return str(detail[0])

    return None
