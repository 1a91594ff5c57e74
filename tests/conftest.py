"""Root pytest fixtures for chat-gateway tests."""

from __future__ import annotations

import json
from typing import Any

import pytest

from chat_gateway.config import ChatConfig
from chat_gateway.session import ChatSession

BASE_URL = "https://ark.test"
CHAT_PATH = "/api/v3/chat/completions"


def sse_frame(payload: dict[str, Any] | str) -> bytes:
    """Encode one `data:` line."""
    data = payload if isinstance(payload, str) else json.dumps(payload)
    return f"data: {data}\n".encode()


def delta_frame(content: str) -> bytes:
    """Encode a frame carrying one content fragment."""
    return sse_frame({"choices": [{"index": 0, "delta": {"content": content}}]})


@pytest.fixture
def base_url() -> str:
    return BASE_URL


@pytest.fixture
def chat_url() -> str:
    return f"{BASE_URL}{CHAT_PATH}"


@pytest.fixture
def config() -> ChatConfig:
    """Config pointing at a fake service with a non-reasoning model."""
    return ChatConfig(
        api_key="ark-test-key",
        base_url=BASE_URL,
        chat_path=CHAT_PATH,
        model="doubao-pro-4k",
        max_tokens=512,
        temperature=0.5,
        timeout_ms=5000,
    )


@pytest.fixture
def session() -> ChatSession:
    return ChatSession()
