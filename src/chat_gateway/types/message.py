"""
Chat message types.

Messages are immutable once created; the session stores them as-is and
serialises them to the wire format `{"role": ..., "content": ...}`.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class MessageRole(str, Enum):
    """Message role enumeration."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


class Message(BaseModel):
    """A single chat message.

    Examples:
        >>> msg = Message.user("Where is my order?")
        >>> msg = Message.system("You are a helpful shop assistant.")
        >>> msg.to_wire()
        {'role': 'system', 'content': 'You are a helpful shop assistant.'}
    """

    model_config = ConfigDict(use_enum_values=True, frozen=True)

    role: MessageRole = Field(description="Message role")
    content: str = Field(description="Message text")

    @classmethod
    def system(cls, text: str) -> Message:
        """Create a system message."""
        return cls(role=MessageRole.SYSTEM, content=text)

    @classmethod
    def user(cls, text: str) -> Message:
        """Create a user message."""
        return cls(role=MessageRole.USER, content=text)

    @classmethod
    def assistant(cls, text: str) -> Message:
        """Create an assistant message."""
        return cls(role=MessageRole.ASSISTANT, content=text)

    @property
    def is_system(self) -> bool:
        """Check if this is a system message."""
        return self.role == MessageRole.SYSTEM

    def to_wire(self) -> dict[str, Any]:
        """Serialise to the request payload format."""
        return {"role": str(MessageRole(self.role).value), "content": self.content}
