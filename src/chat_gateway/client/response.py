"""
Response types for client operations.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class Usage:
    """Token usage counters, copied verbatim from the service."""

    prompt_tokens: int | None = None
    completion_tokens: int | None = None
    total_tokens: int | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> Usage | None:
        """Build from a ``usage`` object; None when absent."""
        if not isinstance(data, dict):
            return None
        return cls(
            prompt_tokens=data.get("prompt_tokens"),
            completion_tokens=data.get("completion_tokens"),
            total_tokens=data.get("total_tokens"),
        )


@dataclass(frozen=True)
class ChatResult:
    """Result of a chat call.

    Attributes:
        content: Assistant reply text
        reasoning: Reasoning trace, for models that return one
        usage: Token usage, when reported
    """

    content: str = ""
    reasoning: str | None = None
    usage: Usage | None = None

    @property
    def has_reasoning(self) -> bool:
        """Check if a reasoning trace is present."""
        return bool(self.reasoning)

    @property
    def total_tokens(self) -> int | None:
        """Get total token count from usage."""
        return self.usage.total_tokens if self.usage else None
