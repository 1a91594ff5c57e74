"""
Stream cancellation control.

Provides cancellation tokens and handles for stopping a streaming call
from outside the task that drains it.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

from chat_gateway.telemetry.logger import get_logger

if TYPE_CHECKING:
    from collections.abc import Callable

logger = get_logger(__name__)


class CancelReason(str, Enum):
    """Reasons for cancellation."""

    USER_REQUEST = "user_request"
    TIMEOUT = "timeout"
    SHUTDOWN = "shutdown"


@dataclass
class CancelState:
    """State of a cancellation token.

    Attributes:
        cancelled: Whether cancellation was requested
        reason: Reason for cancellation
        timestamp: Time of cancellation
    """

    cancelled: bool = False
    reason: CancelReason | None = None
    timestamp: float | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


class CancelToken:
    """Cooperative cancellation token.

    The streaming drain checks the token before reading each block and
    before delivering each chunk.

    Example:
        >>> token = CancelToken()
        >>> task = asyncio.create_task(client.send_stream(session, "hi", print, cancel_token=token))
        >>> token.cancel()  # from a UI "stop" button
    """

    def __init__(self) -> None:
        self._state = CancelState()
        self._event = asyncio.Event()
        self._callbacks: list[Callable[[CancelReason], Any]] = []

    def cancel(
        self,
        reason: CancelReason = CancelReason.USER_REQUEST,
        **metadata: Any,
    ) -> bool:
        """Request cancellation.

        Args:
            reason: Reason for cancellation
            **metadata: Additional metadata

        Returns:
            True if cancellation was newly requested, False if already cancelled
        """
        if self._state.cancelled:
            return False

        self._state.cancelled = True
        self._state.reason = reason
        self._state.timestamp = time.time()
        self._state.metadata.update(metadata)
        self._event.set()

        for callback in self._callbacks:
            self._invoke(callback, reason)
        return True

    @staticmethod
    def _invoke(callback: Callable[[CancelReason], Any], reason: CancelReason) -> None:
        try:
            callback(reason)
        except Exception:
            logger.error("Cancel callback failed", exc_info=True, reason=reason.value)

    @property
    def is_cancelled(self) -> bool:
        """Check if cancellation was requested."""
        return self._state.cancelled

    @property
    def reason(self) -> CancelReason | None:
        """Get cancellation reason."""
        return self._state.reason

    @property
    def state(self) -> CancelState:
        """Get full cancellation state."""
        return self._state

    async def wait(self) -> CancelReason:
        """Wait until cancellation is requested."""
        await self._event.wait()
        return self._state.reason or CancelReason.USER_REQUEST

    def on_cancel(self, callback: Callable[[CancelReason], Any]) -> CancelToken:
        """Register a callback to be called on cancellation.

        The callback runs immediately if the token is already cancelled.
        """
        self._callbacks.append(callback)
        if self._state.cancelled and self._state.reason:
            self._invoke(callback, self._state.reason)
        return self

    def raise_if_cancelled(self) -> None:
        """Raise CancelledError if cancelled.

        Raises:
            asyncio.CancelledError: If cancellation was requested
        """
        if self._state.cancelled:
            raise asyncio.CancelledError(str(self._state.reason.value if self._state.reason else ""))


class CancelHandle:
    """Public handle for cancelling a streaming call.

    The handle is given to the party that may stop the stream; the paired
    token is passed to the call itself.
    """

    def __init__(self, token: CancelToken) -> None:
        self._token = token

    def cancel(
        self,
        reason: CancelReason = CancelReason.USER_REQUEST,
        **metadata: Any,
    ) -> bool:
        """Request cancellation."""
        return self._token.cancel(reason, **metadata)

    @property
    def is_cancelled(self) -> bool:
        """Check if cancellation was requested."""
        return self._token.is_cancelled

    @property
    def reason(self) -> CancelReason | None:
        """Get cancellation reason."""
        return self._token.reason


def create_cancel_pair() -> tuple[CancelHandle, CancelToken]:
    """Create a cancel handle and token pair."""
    token = CancelToken()
    return CancelHandle(token), token
