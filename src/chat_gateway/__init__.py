"""对话网关：有界会话历史、整包/流式对话请求与失败分类。

chat-gateway: async client for OpenAI-compatible chat completion services.

Keeps a bounded conversation history per session, sends whole-response
or streamed requests, and reports failures as a small closed set of
error kinds.
"""
from __future__ import annotations

from chat_gateway.client import (
    CancelHandle,
    CancelReason,
    CancelToken,
    ChatClient,
    ChatResult,
    Conversation,
    Usage,
    create_cancel_pair,
    drain_into_session,
)
from chat_gateway.config import SYSTEM_PROMPTS, ChatConfig, validate_config
from chat_gateway.errors import ChatError, ConfigError, ErrorKind, GatewayError
from chat_gateway.registry import ModelDescriptor, ModelRegistry, Provider
from chat_gateway.session import ChatSession
from chat_gateway.types.message import Message, MessageRole

__version__ = "0.1.0"

__all__ = [
    # Client
    "CancelHandle",
    "CancelReason",
    "CancelToken",
    "ChatClient",
    "ChatResult",
    "Conversation",
    "Usage",
    "create_cancel_pair",
    "drain_into_session",
    # Config
    "SYSTEM_PROMPTS",
    "ChatConfig",
    "validate_config",
    # Errors
    "ChatError",
    "ConfigError",
    "ErrorKind",
    "GatewayError",
    # Registry
    "ModelDescriptor",
    "ModelRegistry",
    "Provider",
    # Session
    "ChatSession",
    # Types
    "Message",
    "MessageRole",
    # Version
    "__version__",
]
