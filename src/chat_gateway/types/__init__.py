"""
Types layer - message structures shared by the session and the clients.
"""

from chat_gateway.types.message import Message, MessageRole

__all__ = [
    "Message",
    "MessageRole",
]
