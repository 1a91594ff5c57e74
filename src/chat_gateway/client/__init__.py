"""
Client layer - whole-response and streaming chat calls.
"""

from chat_gateway.client.cancel import (
    CancelHandle,
    CancelReason,
    CancelState,
    CancelToken,
    create_cancel_pair,
)
from chat_gateway.client.conversation import Conversation
from chat_gateway.client.core import ChatClient
from chat_gateway.client.request import RequestEnvelope
from chat_gateway.client.response import ChatResult, Usage
from chat_gateway.client.stream import ChunkCallback, DrainStats, drain_into_session

__all__ = [
    "CancelHandle",
    "CancelReason",
    "CancelState",
    "CancelToken",
    "ChatClient",
    "ChatResult",
    "ChunkCallback",
    "Conversation",
    "DrainStats",
    "RequestEnvelope",
    "Usage",
    "create_cancel_pair",
    "drain_into_session",
]
