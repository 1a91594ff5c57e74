"""
Request envelope built for each chat call.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from chat_gateway.config import ChatConfig
    from chat_gateway.session import ChatSession
    from chat_gateway.types.message import Message


@dataclass(frozen=True)
class RequestEnvelope:
    """Immutable request description.

    Attributes:
        upstream_model_id: Model identifier sent on the wire
        messages: History snapshot taken before the network call
        max_tokens: Completion token limit
        temperature: Sampling temperature
        stream: Whether an incremental response is requested
    """

    upstream_model_id: str
    messages: tuple[Message, ...]
    max_tokens: int
    temperature: float
    stream: bool

    @classmethod
    def build(
        cls,
        session: ChatSession,
        config: ChatConfig,
        upstream_model_id: str,
        *,
        stream: bool,
    ) -> RequestEnvelope:
        """Snapshot the session and combine it with the call settings."""
        return cls(
            upstream_model_id=upstream_model_id,
            messages=session.snapshot(),
            max_tokens=config.max_tokens,
            temperature=config.temperature,
            stream=stream,
        )

    def to_payload(self) -> dict[str, Any]:
        """Serialise to the chat completions request body."""
        return {
            "model": self.upstream_model_id,
            "messages": [m.to_wire() for m in self.messages],
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
            "stream": self.stream,
        }
