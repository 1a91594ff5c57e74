"""核心客户端实现：整包响应与流式响应两种对话请求。

Core ChatClient implementation.
"""

from __future__ import annotations

import asyncio
import time
import uuid
from typing import TYPE_CHECKING, Any

import httpx

from chat_gateway.client.request import RequestEnvelope
from chat_gateway.client.response import ChatResult, Usage
from chat_gateway.client.stream import DrainStats, drain_into_session
from chat_gateway.errors import (
    ChatError,
    ErrorKind,
    GatewayError,
    ResponseFormatError,
    StreamUnavailableError,
    to_chat_error,
)
from chat_gateway.registry import ModelRegistry
from chat_gateway.telemetry.logger import (
    LogContext,
    clear_log_context,
    get_logger,
    set_log_context,
)
from chat_gateway.transport import HttpTransport

if TYPE_CHECKING:
    from chat_gateway.client.cancel import CancelToken
    from chat_gateway.client.stream import ChunkCallback
    from chat_gateway.config import ChatConfig
    from chat_gateway.registry import ModelDescriptor
    from chat_gateway.session import ChatSession

logger = get_logger(__name__)

_HEALTH_TIMEOUT = 5.0
_CONNECTION_FIELDS = ("api_key", "base_url", "timeout_ms", "proxy")


class ChatClient:
    """Client for a chat completion service.

    A client holds connection settings only; the conversation state lives
    in the ChatSession passed to each call, so one client can serve many
    sessions concurrently.

    Example:
        >>> config = ChatConfig(api_key="ark-...", model="doubao-pro-4k")
        >>> async with ChatClient(config) as client:
        ...     session = ChatSession()
        ...     result = await client.send(session, "Where is my order?")
        ...     print(result.content)

        >>> # Streaming
        >>> await client.send_stream(session, "And the refund?", lambda c: print(c, end=""))
    """

    def __init__(
        self,
        config: ChatConfig,
        *,
        registry: ModelRegistry | None = None,
        transport: HttpTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            config: Validated client configuration
            registry: Model catalog (default: built-in catalog)
            transport: HTTP transport (default: built from config)
        """
        self._config = config
        self._registry = registry if registry is not None else ModelRegistry.default()
        self._transport = transport or self._make_transport(config)

    @staticmethod
    def _make_transport(config: ChatConfig) -> HttpTransport:
        return HttpTransport(
            config.base_url,
            api_key=config.api_key,
            timeout=config.timeout_seconds,
            proxy=config.proxy,
        )

    @property
    def config(self) -> ChatConfig:
        """Current configuration."""
        return self._config

    @property
    def registry(self) -> ModelRegistry:
        """Model catalog used to resolve model keys."""
        return self._registry

    @property
    def descriptor(self) -> ModelDescriptor | None:
        """Catalog entry of the configured model, if it is known."""
        return self._registry.get(self._config.model)

    @property
    def upstream_model_id(self) -> str:
        """Identifier sent on the wire for the configured model."""
        return self._registry.resolve(self._config.model)

    async def update_config(self, **changes: Any) -> ChatConfig:
        """Validate and apply configuration changes.

        The HTTP client is rebuilt when connection settings change.

        Returns:
            The new configuration
        """
        new_config = self._config.with_changes(**changes)
        if any(getattr(new_config, f) != getattr(self._config, f) for f in _CONNECTION_FIELDS):
            await self._transport.close()
            self._transport = self._make_transport(new_config)
        self._config = new_config
        logger.info("Configuration updated", fields=sorted(changes))
        return new_config

    def _envelope(self, session: ChatSession, *, stream: bool) -> RequestEnvelope:
        return RequestEnvelope.build(session, self._config, self.upstream_model_id, stream=stream)

    def _start_call(self) -> float:
        set_log_context(
            LogContext(request_id=str(uuid.uuid4()), model=self._config.model)
        )
        return time.perf_counter()

    async def send(self, session: ChatSession, text: str) -> ChatResult:
        """Send a message and wait for the whole reply.

        The user message is appended before the request and stays in the
        session even if the call fails.

        Args:
            session: Conversation history to extend
            text: User message

        Returns:
            ChatResult with content, optional reasoning and usage

        Raises:
            ChatError: Classified failure
        """
        started = self._start_call()
        session.append_user(text)
        envelope = self._envelope(session, stream=False)
        logger.debug("Chat request", messages=len(envelope.messages), stream=False)

        try:
            result = await asyncio.wait_for(
                self._exchange(envelope), timeout=self._config.timeout_seconds
            )
        except (GatewayError, httpx.HTTPError, httpx.InvalidURL, asyncio.TimeoutError) as e:
            error = to_chat_error(e)
            logger.warning(
                "Chat request failed",
                kind=error.kind.value,
                status_code=error.status_code,
                error=error.message,
            )
            raise error from e
        else:
            session.append_assistant(result.content)
            logger.info(
                "Chat completed",
                latency_ms=round((time.perf_counter() - started) * 1000, 1),
                total_tokens=result.total_tokens,
            )
            return result
        finally:
            clear_log_context()

    async def _exchange(self, envelope: RequestEnvelope) -> ChatResult:
        response = await self._transport.post(self._config.chat_path, envelope.to_payload())
        return self._parse_response(response)

    def _parse_response(self, response: httpx.Response) -> ChatResult:
        """Parse a chat completion body into a ChatResult.

        Raises:
            ResponseFormatError: If the body does not match the expected schema
        """
        try:
            data = response.json()
        except ValueError as e:
            raise ResponseFormatError(f"Response is not valid JSON: {e}") from e
        if not isinstance(data, dict):
            raise ResponseFormatError("Response body is not a JSON object")

        choices = data.get("choices")
        if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
            raise ResponseFormatError("Response has no choices", field="choices")
        message = choices[0].get("message")
        if not isinstance(message, dict):
            raise ResponseFormatError("Choice has no message", field="choices[0].message")

        content = message.get("content")
        if content is None:
            content = ""
        if not isinstance(content, str):
            raise ResponseFormatError(
                "Message content is not a string", field="choices[0].message.content"
            )

        return ChatResult(
            content=content,
            reasoning=self._reasoning(message),
            usage=Usage.from_dict(data.get("usage")),
        )

    def _reasoning(self, message: dict[str, Any]) -> str | None:
        if not self._config.enable_reasoning:
            return None
        descriptor = self.descriptor
        if descriptor is not None and not descriptor.supports_reasoning:
            return None
        reasoning = message.get("reasoning_content")
        return reasoning if isinstance(reasoning, str) and reasoning else None

    async def send_stream(
        self,
        session: ChatSession,
        text: str,
        on_chunk: ChunkCallback,
        *,
        cancel_token: CancelToken | None = None,
    ) -> ChatResult:
        """Send a message and stream the reply.

        ``on_chunk`` receives each content fragment as it arrives. The
        complete reply is recorded in the session once the stream ends;
        a failed or cancelled stream records nothing beyond the user
        message.

        Args:
            session: Conversation history to extend
            text: User message
            on_chunk: Callback for content fragments
            cancel_token: Optional token to stop the stream

        Returns:
            ChatResult with the full content and usage, if reported

        Raises:
            ChatError: Classified failure
            asyncio.CancelledError: If the stream was cancelled
        """
        descriptor = self.descriptor
        if descriptor is not None and not descriptor.supports_stream:
            raise ChatError(
                ErrorKind.STREAM_UNAVAILABLE,
                f"Model {descriptor.key!r} does not support streaming",
            )

        started = self._start_call()
        session.append_user(text)
        envelope = self._envelope(session, stream=True)
        logger.debug("Chat request", messages=len(envelope.messages), stream=True)
        stats = DrainStats()

        try:
            async with self._transport.stream_post(
                self._config.chat_path, envelope.to_payload()
            ) as response:
                content_type = response.headers.get("content-type", "")
                if content_type.startswith("application/json"):
                    raise StreamUnavailableError(
                        "Service answered with a JSON body instead of an event stream"
                    )
                result = await drain_into_session(
                    session,
                    response.aiter_bytes(),
                    on_chunk,
                    cancel_token=cancel_token,
                    stats=stats,
                )
        except ChatError:
            raise
        except (GatewayError, httpx.HTTPError, httpx.StreamError, httpx.InvalidURL) as e:
            error = to_chat_error(e)
            logger.warning(
                "Stream request failed",
                kind=error.kind.value,
                status_code=error.status_code,
                error=error.message,
            )
            raise error from e
        else:
            logger.info(
                "Stream completed",
                latency_ms=round((time.perf_counter() - started) * 1000, 1),
                chunks=stats.deltas,
                dropped_frames=stats.dropped,
            )
            return result
        finally:
            clear_log_context()

    async def check_health(self) -> bool:
        """Check that the service answers ``GET /health`` with 200.

        Returns:
            True if healthy, False on any failure
        """
        try:
            response = await self._transport.get("/health", timeout=_HEALTH_TIMEOUT)
        except (GatewayError, httpx.HTTPError, httpx.InvalidURL) as e:
            logger.warning("Health check failed", error=str(e))
            return False
        return response.status_code == 200

    async def close(self) -> None:
        """Close the client and release resources."""
        await self._transport.close()

    async def __aenter__(self) -> ChatClient:
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()
