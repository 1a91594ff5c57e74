"""
Transport layer - HTTP client for the chat completion service.
"""

from chat_gateway.transport.auth import get_auth_header
from chat_gateway.transport.http import HttpTransport

__all__ = [
    "HttpTransport",
    "get_auth_header",
]
