"""
Stream decoding for server-sent chat completion chunks.

Three layers, each testable without a network:
- LineSplitter: byte blocks -> complete text lines
- parse_line: one line -> one classified Frame
- SSELineDecoder: async byte stream -> frames, stopping at the done signal

Expected wire format::

    data: {"choices":[{"delta":{"content":"Hel"}}]}
    data: {"choices":[{"delta":{"content":"lo"}}]}
    data: [DONE]
"""

from __future__ import annotations

import codecs
import json
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

from chat_gateway.pipeline.base import Decoder
from chat_gateway.telemetry.logger import get_logger

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

logger = get_logger(__name__)

DATA_PREFIX = "data:"
DONE_SIGNAL = "[DONE]"


class FrameKind(str, Enum):
    """Outcome of parsing one line."""

    IGNORED = "ignored"
    """Not a data line (blank, comment, event:, id:, ...)."""

    DONE = "done"
    """The done signal; the stream is complete."""

    DROPPED = "dropped"
    """Data line whose payload is not a JSON object; skipped."""

    EMPTY = "empty"
    """Valid frame without a content fragment."""

    DELTA = "delta"
    """Valid frame carrying a content fragment."""


@dataclass(frozen=True)
class Frame:
    """One decoded line.

    Attributes:
        kind: Parse outcome
        line: The raw line
        content: Content fragment (DELTA only)
        payload: Parsed JSON object (DELTA and EMPTY)
    """

    kind: FrameKind
    line: str = ""
    content: str | None = None
    payload: dict[str, Any] | None = None

    @property
    def usage(self) -> dict[str, Any] | None:
        """Usage object carried by the frame, if any."""
        if self.payload is None:
            return None
        usage = self.payload.get("usage")
        return usage if isinstance(usage, dict) else None


class LineSplitter:
    """Incremental bytes-to-lines splitter.

    Multi-byte characters split across blocks are decoded correctly; the
    trailing partial line stays buffered until the next block.

    Example:
        >>> splitter = LineSplitter()
        >>> splitter.feed(b"data: 1\\ndata")
        ['data: 1']
        >>> splitter.feed(b": 2\\n")
        ['data: 2']
    """

    def __init__(self) -> None:
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""

    def feed(self, block: bytes) -> list[str]:
        """Add a block and return the lines it completed."""
        self._buffer += self._decoder.decode(block)
        if "\n" not in self._buffer:
            return []
        *lines, self._buffer = self._buffer.split("\n")
        return [line.rstrip("\r") for line in lines]

    def flush(self) -> list[str]:
        """Return the buffered remainder as a final line, if any."""
        rest = self._buffer + self._decoder.decode(b"", final=True)
        self._buffer = ""
        rest = rest.rstrip("\r")
        return [rest] if rest else []

    @property
    def pending(self) -> str:
        """Text received but not yet terminated by a newline."""
        return self._buffer


def _delta_content(payload: dict[str, Any]) -> str | None:
    choices = payload.get("choices")
    if not isinstance(choices, list) or not choices:
        return None
    choice = choices[0]
    if not isinstance(choice, dict):
        return None
    delta = choice.get("delta")
    if not isinstance(delta, dict):
        return None
    content = delta.get("content")
    return content if isinstance(content, str) and content else None


def parse_line(
    line: str,
    *,
    prefix: str = DATA_PREFIX,
    done_signal: str = DONE_SIGNAL,
) -> Frame:
    """Classify a single line of the event stream.

    Args:
        line: One complete line, without its newline
        prefix: Data line marker
        done_signal: Payload that ends the stream

    Returns:
        Frame with the parse outcome
    """
    if not line.startswith(prefix):
        return Frame(FrameKind.IGNORED, line)

    data = line[len(prefix) :]
    if data.startswith(" "):
        data = data[1:]

    if data.strip() == done_signal:
        return Frame(FrameKind.DONE, line)

    try:
        payload = json.loads(data)
    except json.JSONDecodeError:
        return Frame(FrameKind.DROPPED, line)
    if not isinstance(payload, dict):
        return Frame(FrameKind.DROPPED, line)

    content = _delta_content(payload)
    if content is None:
        return Frame(FrameKind.EMPTY, line, payload=payload)
    return Frame(FrameKind.DELTA, line, content=content, payload=payload)


class SSELineDecoder(Decoder):
    """Server-sent events decoder for chat completion chunks.

    Every complete line becomes a Frame; decoding stops right after the
    done signal, leaving the rest of the stream unread.

    Attributes:
        prefix: Data line marker (default: "data:")
        done_signal: End of stream signal (default: "[DONE]")
    """

    def __init__(self, prefix: str = DATA_PREFIX, done_signal: str = DONE_SIGNAL) -> None:
        self._prefix = prefix
        self._done_signal = done_signal

    def _parse(self, line: str) -> Frame:
        frame = parse_line(line, prefix=self._prefix, done_signal=self._done_signal)
        if frame.kind is FrameKind.DROPPED:
            logger.debug("Dropped malformed stream frame", line=line[:200])
        return frame

    async def decode(self, byte_stream: AsyncIterator[bytes]) -> AsyncIterator[Frame]:
        """Decode a byte stream into frames.

        Args:
            byte_stream: Async iterator of raw byte blocks

        Yields:
            Frames in arrival order, the DONE frame last if present
        """
        splitter = LineSplitter()

        async for block in byte_stream:
            for line in splitter.feed(block):
                frame = self._parse(line)
                yield frame
                if frame.kind is FrameKind.DONE:
                    return

        for line in splitter.flush():
            frame = self._parse(line)
            yield frame
