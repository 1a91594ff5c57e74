"""
Conversation: one client paired with one session.

Convenience wrapper for the common case of a single chat window; create
one per conversation and drop it when the conversation ends.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from chat_gateway.session import ChatSession

if TYPE_CHECKING:
    from chat_gateway.client.cancel import CancelToken
    from chat_gateway.client.core import ChatClient
    from chat_gateway.client.response import ChatResult
    from chat_gateway.client.stream import ChunkCallback
    from chat_gateway.types.message import Message


class Conversation:
    """A chat conversation bound to a client.

    Example:
        >>> conversation = Conversation(client, system_prompt=SYSTEM_PROMPTS["customer_service"])
        >>> result = await conversation.send("How do I return an item?")
        >>> conversation.get_history()[-1].content == result.content
        True
    """

    def __init__(
        self,
        client: ChatClient,
        *,
        session: ChatSession | None = None,
        system_prompt: str | None = None,
    ) -> None:
        self._client = client
        self._session = session if session is not None else ChatSession()
        prompt = system_prompt if system_prompt is not None else client.config.system_prompt
        if prompt is not None:
            self._session.set_system_prompt(prompt)

    @property
    def client(self) -> ChatClient:
        return self._client

    @property
    def session(self) -> ChatSession:
        return self._session

    def set_system_prompt(self, text: str) -> None:
        """Replace the system prompt."""
        self._session.set_system_prompt(text)

    async def send(self, text: str) -> ChatResult:
        """Send a message and wait for the whole reply."""
        return await self._client.send(self._session, text)

    async def send_stream(
        self,
        text: str,
        on_chunk: ChunkCallback,
        *,
        cancel_token: CancelToken | None = None,
    ) -> ChatResult:
        """Send a message and stream the reply to ``on_chunk``."""
        return await self._client.send_stream(
            self._session, text, on_chunk, cancel_token=cancel_token
        )

    def clear_history(self) -> None:
        """Forget the exchange, keeping the system prompt."""
        self._session.clear_history()

    def get_history(self) -> list[Message]:
        """Copy of the history for display."""
        return self._session.get_history()
