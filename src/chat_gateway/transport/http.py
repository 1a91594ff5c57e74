"""HTTP 传输层：基于 httpx 的异步 HTTP 客户端，支持流式读取。

HTTP transport using httpx for async requests.

Provides:
- Async streaming support
- Deadline-bounded requests
- Proxy support
- Automatic header management
"""

from __future__ import annotations

import importlib.util
import json as json_module
import os
from contextlib import asynccontextmanager
from importlib.metadata import PackageNotFoundError
from typing import TYPE_CHECKING, Any

import httpx

from chat_gateway.errors import RemoteError, TransportError
from chat_gateway.transport.auth import get_auth_header

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

_DEFAULT_TIMEOUT = 30.0
_DEFAULT_CONNECT_TIMEOUT = 10.0

_UA_VERSION: str | None = None


def _http2_enabled() -> bool:
    """Enable HTTP/2 only when the optional dependency is present."""
    return importlib.util.find_spec("h2") is not None


def _trust_env_enabled() -> bool:
    """Use env proxy settings only when explicitly enabled."""
    return os.getenv("CHAT_GATEWAY_TRUST_ENV", "0") == "1"


def _get_ua_version() -> str:
    """Get package version for User-Agent (cached)."""
    global _UA_VERSION
    if _UA_VERSION is None:
        try:
            from importlib.metadata import version

            _UA_VERSION = version("chat-gateway")
        except PackageNotFoundError:
            _UA_VERSION = "0.0.0"
    return _UA_VERSION


def _error_body(raw: bytes) -> dict[str, Any] | None:
    if not raw:
        return None
    try:
        body = json_module.loads(raw)
    except (ValueError, UnicodeDecodeError):
        return None
    return body if isinstance(body, dict) else None


class HttpTransport:
    """HTTP transport for the chat completion service.

    Example:
        >>> transport = HttpTransport("https://ark.cn-beijing.volces.com", api_key="...")
        >>> async with transport.stream_post("/api/v3/chat/completions", payload) as response:
        ...     async for block in response.aiter_bytes():
        ...         process(block)
    """

    def __init__(
        self,
        base_url: str,
        *,
        api_key: str | None = None,
        timeout: float | None = None,
        proxy: str | None = None,
    ) -> None:
        """Initialize HTTP transport.

        Args:
            base_url: Base URL of the service
            api_key: Bearer credential
            timeout: Request deadline in seconds
            proxy: Proxy URL
        """
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout if timeout is not None else _DEFAULT_TIMEOUT
        if proxy is not None:
            self._proxy: str | None = proxy
        elif _trust_env_enabled():
            self._proxy = os.getenv("CHAT_GATEWAY_PROXY_URL")
        else:
            self._proxy = None
        self._auth_headers = get_auth_header(api_key)
        self._client: httpx.AsyncClient | None = None

    @property
    def base_url(self) -> str:
        """Base URL requests are sent to."""
        return self._base_url

    @property
    def timeout(self) -> float:
        """Request deadline in seconds."""
        return self._timeout

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            timeout = httpx.Timeout(
                self._timeout,
                connect=min(_DEFAULT_CONNECT_TIMEOUT, self._timeout),
            )
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=timeout,
                proxy=self._proxy,
                http2=_http2_enabled(),
                trust_env=_trust_env_enabled(),
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def _build_headers(self, extra_headers: dict[str, str] | None = None) -> dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "User-Agent": f"chat-gateway/{_get_ua_version()}",
        }
        headers.update(self._auth_headers)
        if extra_headers:
            headers.update(extra_headers)
        return headers

    def _wrap(self, error: httpx.HTTPError, path: str) -> TransportError:
        url = f"{self._base_url}{path}"
        if isinstance(error, httpx.TimeoutException):
            return TransportError(f"Request timed out: {error}", url=url, cause=error)
        if isinstance(error, httpx.ConnectError):
            return TransportError(f"Connection failed: {error}", url=url, cause=error)
        return TransportError(f"HTTP error: {error}", url=url, cause=error)

    async def request(
        self,
        method: str,
        path: str,
        *,
        json: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        timeout: float | None = None,
    ) -> httpx.Response:
        """Make an HTTP request.

        Args:
            method: HTTP method
            path: Request path (relative to base URL)
            json: JSON body
            headers: Additional headers
            timeout: Per-request deadline overriding the default

        Returns:
            HTTP response

        Raises:
            TransportError: On network/connection errors and timeouts
            RemoteError: On HTTP error statuses (4xx, 5xx)
        """
        client = self._get_client()
        extra: dict[str, Any] = {}
        if timeout is not None:
            extra["timeout"] = timeout

        try:
            response = await client.request(
                method=method,
                url=path,
                json=json,
                headers=self._build_headers(headers),
                **extra,
            )
        except httpx.HTTPError as e:
            raise self._wrap(e, path) from e

        if response.status_code >= 400:
            raise RemoteError.from_response(
                status_code=response.status_code,
                body=_error_body(response.content),
                headers=dict(response.headers),
                reason=response.reason_phrase,
            )

        return response

    async def post(
        self,
        path: str,
        json: dict[str, Any],
        *,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        """Make a POST request."""
        return await self.request("POST", path, json=json, headers=headers)

    async def get(
        self,
        path: str,
        *,
        headers: dict[str, str] | None = None,
        timeout: float | None = None,
    ) -> httpx.Response:
        """Make a GET request."""
        return await self.request("GET", path, headers=headers, timeout=timeout)

    @asynccontextmanager
    async def stream_post(
        self,
        path: str,
        json: dict[str, Any],
        *,
        headers: dict[str, str] | None = None,
    ) -> AsyncIterator[httpx.Response]:
        """Make a streaming POST request.

        The response body is not read; iterate ``aiter_bytes()`` inside the
        context. Leaving the context closes the connection.

        Yields:
            HTTP response with an unread body

        Raises:
            TransportError: On network errors, including while reading
            RemoteError: On HTTP error statuses
        """
        client = self._get_client()
        request_headers = self._build_headers(headers)
        request_headers["Accept"] = "text/event-stream"

        try:
            async with client.stream(
                "POST",
                url=path,
                json=json,
                headers=request_headers,
            ) as response:
                if response.status_code >= 400:
                    raw = await response.aread()
                    raise RemoteError.from_response(
                        status_code=response.status_code,
                        body=_error_body(raw),
                        headers=dict(response.headers),
                        reason=response.reason_phrase,
                    )
                yield response
        except httpx.HTTPError as e:
            raise self._wrap(e, path) from e

    async def __aenter__(self) -> HttpTransport:
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()
