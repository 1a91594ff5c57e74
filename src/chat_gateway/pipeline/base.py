"""
Base abstractions for the streaming pipeline.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from chat_gateway.pipeline.decode import Frame


class Decoder(ABC):
    """Abstract decoder that converts a byte stream to frames.

    Decoders handle the transport-level parsing of streaming responses,
    turning raw byte blocks into classified frames.
    """

    @abstractmethod
    def decode(self, byte_stream: AsyncIterator[bytes]) -> AsyncIterator[Frame]:
        """Decode a byte stream into frames.

        Args:
            byte_stream: Async iterator of raw bytes

        Yields:
            One frame per complete line
        """
        ...
