"""
Streaming drain: byte source -> chunk callback -> session.

The drain reads one block at a time from an async byte source, decodes
complete lines into frames, hands each content fragment to the chunk
callback in arrival order and, once the stream completes, records the
concatenated reply as a single assistant message.

Nothing is recorded when the stream fails or is cancelled.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol

from chat_gateway.client.response import ChatResult, Usage
from chat_gateway.errors import to_chat_error
from chat_gateway.pipeline.decode import FrameKind, SSELineDecoder
from chat_gateway.telemetry.logger import get_logger

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from chat_gateway.client.cancel import CancelReason, CancelToken
    from chat_gateway.pipeline.base import Decoder
    from chat_gateway.session import ChatSession

logger = get_logger(__name__)


class ChunkCallback(Protocol):
    """Receives content fragments as they arrive."""

    def __call__(self, chunk: str) -> Any: ...


@dataclass
class DrainStats:
    """Counters for one drained stream."""

    frames: int = 0
    deltas: int = 0
    dropped: int = 0
    done_seen: bool = False


def _current_task() -> asyncio.Task[Any] | None:
    try:
        return asyncio.current_task()
    except RuntimeError:
        return None


async def _guarded(
    byte_stream: AsyncIterator[bytes],
    cancel_token: CancelToken | None,
) -> AsyncIterator[bytes]:
    """Yield blocks, checking the token before each read."""
    iterator = byte_stream.__aiter__()
    while True:
        if cancel_token is not None:
            cancel_token.raise_if_cancelled()
        try:
            block = await iterator.__anext__()
        except StopAsyncIteration:
            return
        yield block


async def _close(stream: Any) -> None:
    aclose = getattr(stream, "aclose", None)
    if aclose is not None:
        await aclose()


async def drain_into_session(
    session: ChatSession,
    byte_stream: AsyncIterator[bytes],
    on_chunk: ChunkCallback,
    *,
    cancel_token: CancelToken | None = None,
    decoder: Decoder | None = None,
    stats: DrainStats | None = None,
) -> ChatResult:
    """Drain a streamed completion into a session.

    Args:
        session: Session receiving the assistant message on completion
        byte_stream: Async source of raw response bytes
        on_chunk: Called synchronously with each content fragment
        cancel_token: Optional token; cancelling stops the drain
        decoder: Frame decoder (default: SSELineDecoder)
        stats: Optional counters, filled in while draining

    Returns:
        ChatResult with the concatenated content and the last usage seen

    Raises:
        ChatError: If reading the source fails
        asyncio.CancelledError: If the token or the task is cancelled
    """
    decoder = decoder or SSELineDecoder()
    stats = stats if stats is not None else DrainStats()
    source = _guarded(byte_stream, cancel_token)
    frames = decoder.decode(source)

    parts: list[str] = []
    usage: dict[str, Any] | None = None
    task = _current_task()
    draining = True
    interrupted = False

    def _interrupt(_reason: CancelReason) -> None:
        # Cancellation from another task interrupts a pending read at once;
        # from this task it is picked up by the next token check.
        nonlocal interrupted
        if draining and task is not None and _current_task() is not task:
            interrupted = task.cancel()

    if cancel_token is not None:
        cancel_token.on_cancel(_interrupt)

    try:
        while True:
            try:
                frame = await frames.__anext__()
            except StopAsyncIteration:
                break
            except asyncio.CancelledError:
                raise
            except Exception as e:
                error = to_chat_error(e)
                logger.warning(
                    "Stream failed",
                    kind=error.kind.value,
                    error=error.message,
                    received_chars=sum(len(p) for p in parts),
                )
                raise error from e

            stats.frames += 1
            if frame.kind is FrameKind.DROPPED:
                stats.dropped += 1
                continue
            if frame.kind is FrameKind.DONE:
                stats.done_seen = True
                break
            if frame.usage is not None:
                usage = frame.usage
            if frame.kind is FrameKind.DELTA and frame.content:
                if cancel_token is not None:
                    cancel_token.raise_if_cancelled()
                stats.deltas += 1
                parts.append(frame.content)
                on_chunk(frame.content)

        if cancel_token is not None:
            cancel_token.raise_if_cancelled()
    except asyncio.CancelledError:
        # Withdraw the cancel request issued by _interrupt; the caller's
        # task must not stay marked as cancelling once it handles the error.
        if interrupted and task is not None and hasattr(task, "uncancel"):
            task.uncancel()
        logger.info("Stream cancelled", received_chunks=stats.deltas)
        raise
    finally:
        draining = False
        await _close(frames)
        await _close(source)
        await _close(byte_stream)

    content = "".join(parts)
    if content:
        session.append_assistant(content)

    logger.debug(
        "Stream completed",
        chunks=stats.deltas,
        dropped_frames=stats.dropped,
        done_seen=stats.done_seen,
    )
    return ChatResult(content=content, reasoning=None, usage=Usage.from_dict(usage))
