"""错误基类：分层错误体系和结构化错误上下文。

Base error classes for chat-gateway.

Provides a layered error hierarchy:
- GatewayError: Base class for all library errors
- ConfigError: Invalid configuration or model catalog
- TransportError: HTTP/network errors
- RemoteError: HTTP error status returned by the completion service
- ResponseFormatError: Response body does not match the expected schema
- StreamUnavailableError: No readable stream could be obtained
- ChatError: Classified failure surfaced to callers
"""

from __future__ import annotations

import contextlib
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from chat_gateway.errors.classification import ErrorKind


@dataclass
class ErrorContext:
    """Structured error context for diagnostics."""

    field_path: str | None = None
    """Path to the problematic field (e.g., 'choices[0].message')"""

    details: dict[str, Any] = field(default_factory=dict)
    """Additional details about the error"""

    source: str | None = None
    """Error source (e.g., 'transport', 'response', 'config')"""

    hint: str | None = None
    """Actionable hint for resolving the error"""

    def __str__(self) -> str:
        parts = []
        if self.source:
            parts.append(f"[{self.source}]")
        if self.field_path:
            parts.append(f"at '{self.field_path}'")
        if self.hint:
            parts.append(f"(hint: {self.hint})")
        return " ".join(parts)


class GatewayError(Exception):
    """Base class for all chat-gateway errors.

    Attributes:
        message: Human-readable error message
        context: Structured error context
    """

    def __init__(
        self,
        message: str,
        context: ErrorContext | None = None,
    ) -> None:
        self.message = message
        self.context = context or ErrorContext()
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        ctx_str = str(self.context)
        if ctx_str:
            return f"{self.message} {ctx_str}"
        return self.message

    def with_hint(self, hint: str) -> GatewayError:
        """Add a hint to this error."""
        self.context.hint = hint
        self.args = (self._format_message(),)
        return self


class ConfigError(GatewayError):
    """Invalid client configuration or model catalog entry."""

    def __init__(
        self,
        message: str,
        context: ErrorContext | None = None,
        *,
        field: str | None = None,
    ) -> None:
        ctx = context or ErrorContext(source="config")
        if field:
            ctx.field_path = field
        super().__init__(message, ctx)
        self.field = field


class TransportError(GatewayError):
    """Error during HTTP transport.

    Raised when:
    - Network connection failure
    - Timeout
    - Protocol errors while reading the body
    """

    def __init__(
        self,
        message: str,
        context: ErrorContext | None = None,
        *,
        url: str | None = None,
        cause: Exception | None = None,
    ) -> None:
        ctx = context or ErrorContext(source="transport")
        if url:
            ctx.details["url"] = url
        super().__init__(message, ctx)
        self.url = url
        self.__cause__ = cause


class RemoteError(GatewayError):
    """HTTP error status returned by the completion service.

    Attributes:
        status_code: HTTP status code
        raw_error: Parsed error body, if any
        retry_after: Suggested retry delay in seconds (from header)
        request_id: Upstream request id, if reported
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int,
        raw_error: dict[str, Any] | None = None,
        retry_after: float | None = None,
        request_id: str | None = None,
    ) -> None:
        ctx = ErrorContext(source="remote")
        ctx.details["status_code"] = status_code
        if request_id:
            ctx.details["request_id"] = request_id
        super().__init__(message, ctx)

        self.status_code = status_code
        self.raw_error = raw_error or {}
        self.retry_after = retry_after
        self.request_id = request_id

    @classmethod
    def from_response(
        cls,
        status_code: int,
        body: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        reason: str | None = None,
    ) -> RemoteError:
        """Create RemoteError from an HTTP error response.

        Args:
            status_code: HTTP status code
            body: Response body (parsed JSON), if any
            headers: Response headers
            reason: HTTP reason phrase

        Returns:
            RemoteError carrying the extracted message
        """
        from chat_gateway.errors.classification import extract_error_message

        message = extract_error_message(body) or f"HTTP {status_code}: {reason or 'error'}"

        retry_after = None
        request_id = None
        if headers:
            lowered = {k.lower(): v for k, v in headers.items()}
            retry_after_str = lowered.get("retry-after")
            if retry_after_str:
                with contextlib.suppress(ValueError):
                    retry_after = float(retry_after_str)
            request_id = lowered.get("x-request-id") or lowered.get("request-id")
        if body and isinstance(body.get("request_id"), str):
            request_id = body["request_id"]

        return cls(
            message=message,
            status_code=status_code,
            raw_error=body,
            retry_after=retry_after,
            request_id=request_id,
        )


class ResponseFormatError(GatewayError):
    """Response body present but not parseable as the expected schema."""

    def __init__(
        self,
        message: str,
        context: ErrorContext | None = None,
        *,
        field: str | None = None,
    ) -> None:
        ctx = context or ErrorContext(source="response")
        if field:
            ctx.field_path = field
        super().__init__(message, ctx)
        self.field = field


class StreamUnavailableError(GatewayError):
    """No readable response stream could be obtained."""

    def __init__(self, message: str, context: ErrorContext | None = None) -> None:
        super().__init__(message, context or ErrorContext(source="stream"))


class ChatError(GatewayError):
    """Classified failure of a chat call.

    Callers branch on ``kind`` rather than on transport details.

    Attributes:
        kind: Error kind from the closed taxonomy
        status_code: HTTP status code, when the failure carried one
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        *,
        status_code: int | None = None,
        retry_after: float | None = None,
    ) -> None:
        ctx = ErrorContext(source="chat", hint=kind.hint)
        ctx.details["kind"] = kind.value
        if status_code is not None:
            ctx.details["status_code"] = status_code
        super().__init__(message, ctx)
        self.kind = kind
        self.status_code = status_code
        self.retry_after = retry_after

    @property
    def retryable(self) -> bool:
        """Whether retrying after a backoff is reasonable."""
        from chat_gateway.errors.classification import is_retryable

        return is_retryable(self.kind)
