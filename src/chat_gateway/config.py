"""客户端配置：连接参数、生成参数与系统提示词预设。

Client configuration.

ChatConfig is validated once on construction; the clients trust its
bounds afterwards.
"""

from __future__ import annotations

import os
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

DEFAULT_BASE_URL = "https://ark.cn-beijing.volces.com"
DEFAULT_CHAT_PATH = "/api/v3/chat/completions"
DEFAULT_MODEL = "deepseek-r1-250120"
DEFAULT_MAX_TOKENS = 2000
DEFAULT_TEMPERATURE = 0.7
DEFAULT_TIMEOUT_MS = 30000

# Environment variables read by ChatConfig.from_env
ENV_API_KEY = "VOLCENGINE_API_KEY"
ENV_BASE_URL = "VOLCENGINE_BASE_URL"
ENV_MODEL = "CHAT_GATEWAY_MODEL"
ENV_TIMEOUT_MS = "CHAT_GATEWAY_TIMEOUT_MS"

SYSTEM_PROMPTS: dict[str, str] = {
    "customer_service": """You are a professional e-commerce customer service assistant with these traits:

1. **Professional**: familiar with order management, shipping, return and exchange policies, and payment methods
2. **Friendly**: polite, warm language; always patient and understanding
3. **Accurate**: specific, correct information; no vague or misleading answers
4. **Efficient**: understand the question quickly and give a concise solution

**Answering rules**:
- Answer in Chinese
- Keep answers short and clear
- Give concrete steps
- Suggest contacting a human agent when a problem cannot be solved
- For order questions, ask for the order number first

**Common questions**:
- Order lookup: point the user to the orders page
- Shipping: explain how to track the parcel
- Returns and exchanges: explain the policy and the process
- Payment: list payment methods and troubleshooting steps
- Product questions: point the user to the product detail page

Always put the user experience first.""",
    "general": (
        "You are an intelligent assistant. Answer the user's questions in Chinese. "
        "Keep answers accurate, useful and friendly."
    ),
}


class ChatConfig(BaseModel):
    """Connection and generation settings for a chat client.

    Example:
        >>> config = ChatConfig(api_key="ark-...", model="doubao-pro-4k")
        >>> config.timeout_seconds
        30.0
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    api_key: str = Field(min_length=1, description="Bearer credential")
    base_url: str = Field(default=DEFAULT_BASE_URL, min_length=1, description="Service base URL")
    chat_path: str = Field(default=DEFAULT_CHAT_PATH, description="Chat completions path")
    model: str = Field(default=DEFAULT_MODEL, min_length=1, description="Model key or upstream id")
    max_tokens: int = Field(default=DEFAULT_MAX_TOKENS, ge=1, le=32768)
    temperature: float = Field(default=DEFAULT_TEMPERATURE, ge=0.0, le=2.0)
    timeout_ms: int = Field(default=DEFAULT_TIMEOUT_MS, ge=1000, description="Request deadline")
    enable_reasoning: bool = Field(default=True, description="Return reasoning traces")
    system_prompt: str | None = Field(default=None, description="Default system prompt")
    proxy: str | None = Field(default=None, description="Proxy URL")

    @field_validator("api_key", "base_url", "model")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value

    @field_validator("base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @property
    def timeout_seconds(self) -> float:
        """Request deadline in seconds."""
        return self.timeout_ms / 1000.0

    def with_changes(self, **changes: Any) -> ChatConfig:
        """Return a validated copy with some fields replaced."""
        return ChatConfig.model_validate({**self.model_dump(), **changes})

    @classmethod
    def from_env(cls, **overrides: Any) -> ChatConfig:
        """Build a config from environment variables and explicit overrides.

        Reads VOLCENGINE_API_KEY, VOLCENGINE_BASE_URL, CHAT_GATEWAY_MODEL
        and CHAT_GATEWAY_TIMEOUT_MS; explicit keyword arguments win.
        """
        data: dict[str, Any] = {}
        if api_key := os.getenv(ENV_API_KEY):
            data["api_key"] = api_key
        if base_url := os.getenv(ENV_BASE_URL):
            data["base_url"] = base_url
        if model := os.getenv(ENV_MODEL):
            data["model"] = model
        if timeout := os.getenv(ENV_TIMEOUT_MS):
            data["timeout_ms"] = timeout
        data.update(overrides)
        return cls.model_validate(data)


def validate_config(data: dict[str, Any]) -> list[str]:
    """Validate raw settings without raising.

    Args:
        data: Settings as entered by the user

    Returns:
        One readable message per problem; empty if the settings are valid
    """
    try:
        ChatConfig.model_validate(data)
    except ValidationError as e:
        messages = []
        for err in e.errors():
            location = ".".join(str(part) for part in err["loc"]) or "config"
            messages.append(f"{location}: {err['msg']}")
        return messages
    return []
