"""
Integration test helper utilities.

Shared fixtures and utilities for integration tests.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

import pytest_asyncio

from chat_gateway.client import ChatClient

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from chat_gateway.config import ChatConfig


def mock_chat_response(
    content: str = "您好，请问有什么可以帮您？",
    reasoning: str | None = None,
    usage: dict[str, int] | None = None,
    model: str = "doubao-pro-4k",
) -> dict[str, Any]:
    """Create a mock whole-response chat completion body."""
    message: dict[str, Any] = {"role": "assistant", "content": content}
    if reasoning is not None:
        message["reasoning_content"] = reasoning

    response: dict[str, Any] = {
        "id": "chatcmpl-123",
        "object": "chat.completion",
        "created": 1740000000,
        "model": model,
        "choices": [{"index": 0, "message": message, "finish_reason": "stop"}],
    }
    if usage:
        response["usage"] = usage
    return response


def mock_sse_body(
    fragments: list[str],
    *,
    usage: dict[str, int] | None = None,
    done: bool = True,
    extra_lines: list[str] | None = None,
) -> bytes:
    """Create a mock event-stream body for the given fragments."""
    lines = []
    for fragment in fragments:
        chunk = {
            "id": "chatcmpl-123",
            "object": "chat.completion.chunk",
            "choices": [{"index": 0, "delta": {"content": fragment}, "finish_reason": None}],
        }
        lines.append(f"data: {json.dumps(chunk, ensure_ascii=False)}\n\n")
    lines.extend(f"{line}\n\n" for line in extra_lines or [])

    final: dict[str, Any] = {
        "id": "chatcmpl-123",
        "object": "chat.completion.chunk",
        "choices": [{"index": 0, "delta": {}, "finish_reason": "stop"}],
    }
    if usage:
        final["usage"] = usage
    lines.append(f"data: {json.dumps(final)}\n\n")

    if done:
        lines.append("data: [DONE]\n\n")
    return "".join(lines).encode()


def setup_mock_stream(httpx_mock, url: str, body: bytes) -> None:
    """Register one event-stream response."""
    httpx_mock.add_response(
        url=url,
        method="POST",
        content=body,
        headers={"Content-Type": "text/event-stream"},
    )


@pytest_asyncio.fixture
async def client(config: ChatConfig) -> AsyncIterator[ChatClient]:
    """Chat client bound to the fake service, closed after the test."""
    async with ChatClient(config) as chat_client:
        yield chat_client
