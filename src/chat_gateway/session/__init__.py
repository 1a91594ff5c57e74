"""
Session layer - bounded conversation history.
"""

from chat_gateway.session.history import MAX_HISTORY, ChatSession

__all__ = [
    "MAX_HISTORY",
    "ChatSession",
]
