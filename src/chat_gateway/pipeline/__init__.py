"""
Pipeline layer - decoding of streamed chat completion responses.
"""

from chat_gateway.pipeline.base import Decoder
from chat_gateway.pipeline.decode import (
    DATA_PREFIX,
    DONE_SIGNAL,
    Frame,
    FrameKind,
    LineSplitter,
    SSELineDecoder,
    parse_line,
)

__all__ = [
    "DATA_PREFIX",
    "DONE_SIGNAL",
    "Decoder",
    "Frame",
    "FrameKind",
    "LineSplitter",
    "SSELineDecoder",
    "parse_line",
]
