"""
Integration tests for whole-response chat calls.

Tests end-to-end chat interactions with mocked API responses.
"""

import asyncio
import json
import time

import httpx
import pytest

from chat_gateway import SYSTEM_PROMPTS, ChatClient, ChatSession, Conversation
from chat_gateway.errors import ChatError, ErrorKind


class TestSend:
    """Tests for successful whole-response calls."""

    @pytest.mark.asyncio
    async def test_round_trip(self, client, session, chat_url, httpx_mock) -> None:
        """Test the reply is returned and recorded."""
        from tests.integration.conftest import mock_chat_response

        httpx_mock.add_response(
            url=chat_url,
            method="POST",
            json=mock_chat_response(
                content="您的订单已发货。",
                usage={"prompt_tokens": 12, "completion_tokens": 8, "total_tokens": 20},
            ),
        )
        session.set_system_prompt("P")

        result = await client.send(session, "我的订单到哪了？")

        assert result.content == "您的订单已发货。"
        assert result.reasoning is None
        assert result.usage is not None
        assert result.usage.prompt_tokens == 12
        assert result.total_tokens == 20

        history = session.snapshot()
        assert [m.role for m in history] == ["system", "user", "assistant"]
        assert history[-1].content == result.content
        assert history[1].content == "我的订单到哪了？"

    @pytest.mark.asyncio
    async def test_request_payload(self, client, session, chat_url, httpx_mock) -> None:
        """Test the request body and headers."""
        from tests.integration.conftest import mock_chat_response

        httpx_mock.add_response(url=chat_url, method="POST", json=mock_chat_response())
        session.set_system_prompt("P")

        await client.send(session, "hi")

        request = httpx_mock.get_request()
        assert request.headers["Authorization"] == "Bearer ark-test-key"
        assert request.headers["Content-Type"] == "application/json"
        body = json.loads(request.content)
        assert body == {
            "model": "doubao-pro-4k",
            "messages": [
                {"role": "system", "content": "P"},
                {"role": "user", "content": "hi"},
            ],
            "max_tokens": 512,
            "temperature": 0.5,
            "stream": False,
        }

    @pytest.mark.asyncio
    async def test_upstream_id_sent(self, config, session, chat_url, httpx_mock) -> None:
        """Test the model key is resolved before sending."""
        from tests.integration.conftest import mock_chat_response

        httpx_mock.add_response(url=chat_url, method="POST", json=mock_chat_response())

        async with ChatClient(config.with_changes(model="deepseek-r1-250120")) as client:
            await client.send(session, "hi")

        body = json.loads(httpx_mock.get_request().content)
        assert body["model"] == "bot-20250221150454-8g452"

    @pytest.mark.asyncio
    async def test_unknown_model_passes_through(
        self, config, session, chat_url, httpx_mock
    ) -> None:
        """Test an unknown key is sent unchanged."""
        from tests.integration.conftest import mock_chat_response

        httpx_mock.add_response(url=chat_url, method="POST", json=mock_chat_response())

        async with ChatClient(config.with_changes(model="ep-20250101-abc")) as client:
            await client.send(session, "hi")

        body = json.loads(httpx_mock.get_request().content)
        assert body["model"] == "ep-20250101-abc"

    @pytest.mark.asyncio
    async def test_reasoning_returned(self, config, session, chat_url, httpx_mock) -> None:
        """Test a reasoning model returns its trace."""
        from tests.integration.conftest import mock_chat_response

        httpx_mock.add_response(
            url=chat_url,
            method="POST",
            json=mock_chat_response(content="42", reasoning="6 * 7"),
        )

        async with ChatClient(config.with_changes(model="deepseek-r1-250120")) as client:
            result = await client.send(session, "6 * 7?")

        assert result.content == "42"
        assert result.reasoning == "6 * 7"
        assert result.has_reasoning
        assert session.snapshot()[-1].content == "42"

    @pytest.mark.asyncio
    async def test_reasoning_ignored_for_plain_model(
        self, client, session, chat_url, httpx_mock
    ) -> None:
        """Test a model without reasoning support returns no trace."""
        from tests.integration.conftest import mock_chat_response

        httpx_mock.add_response(
            url=chat_url,
            method="POST",
            json=mock_chat_response(content="42", reasoning="6 * 7"),
        )

        result = await client.send(session, "6 * 7?")

        assert result.reasoning is None

    @pytest.mark.asyncio
    async def test_reasoning_disabled(self, config, session, chat_url, httpx_mock) -> None:
        """Test reasoning can be switched off."""
        from tests.integration.conftest import mock_chat_response

        httpx_mock.add_response(
            url=chat_url,
            method="POST",
            json=mock_chat_response(content="42", reasoning="6 * 7"),
        )
        changed = config.with_changes(model="deepseek-r1-250120", enable_reasoning=False)

        async with ChatClient(changed) as client:
            result = await client.send(session, "6 * 7?")

        assert result.reasoning is None

    @pytest.mark.asyncio
    async def test_null_content(self, client, session, chat_url, httpx_mock) -> None:
        """Test a null content field is treated as an empty reply."""
        httpx_mock.add_response(
            url=chat_url,
            method="POST",
            json={"choices": [{"message": {"role": "assistant", "content": None}}]},
        )

        result = await client.send(session, "hi")

        assert result.content == ""
        assert session.snapshot()[-1].role == "assistant"

    @pytest.mark.asyncio
    async def test_history_capped_across_turns(
        self, client, session, chat_url, httpx_mock
    ) -> None:
        """Test the history stays within the cap over many turns."""
        from tests.integration.conftest import mock_chat_response

        turns = 12
        for i in range(turns):
            httpx_mock.add_response(
                url=chat_url, method="POST", json=mock_chat_response(content=f"a{i}")
            )
        session.set_system_prompt("P")

        for i in range(turns):
            await client.send(session, f"u{i}")

        history = session.snapshot()
        assert len(history) == 20
        assert history[0].content == "P"
        assert history[-1].content == f"a{turns - 1}"

        last_body = json.loads(httpx_mock.get_requests()[-1].content)
        assert len(last_body["messages"]) <= 20
        assert last_body["messages"][0] == {"role": "system", "content": "P"}


class TestSendFailures:
    """Tests for failed whole-response calls."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("status", "kind"),
        [
            (401, ErrorKind.AUTH_FAILURE),
            (429, ErrorKind.RATE_LIMITED),
            (500, ErrorKind.SERVER_ERROR),
            (503, ErrorKind.SERVER_ERROR),
            (404, ErrorKind.GENERIC),
        ],
    )
    async def test_status_classified(
        self, client, session, chat_url, httpx_mock, status, kind
    ) -> None:
        """Test error statuses map to their kinds."""
        httpx_mock.add_response(
            url=chat_url,
            method="POST",
            status_code=status,
            json={"error": {"message": f"failure {status}"}},
        )

        with pytest.raises(ChatError) as excinfo:
            await client.send(session, "hi")

        assert excinfo.value.kind is kind
        assert excinfo.value.status_code == status
        assert excinfo.value.message == f"failure {status}"

    @pytest.mark.asyncio
    async def test_user_message_kept_on_failure(
        self, client, session, chat_url, httpx_mock
    ) -> None:
        """Test a failed call keeps the user message and adds no reply."""
        httpx_mock.add_response(url=chat_url, method="POST", status_code=503)

        with pytest.raises(ChatError) as excinfo:
            await client.send(session, "hi")

        assert excinfo.value.kind is ErrorKind.SERVER_ERROR
        history = session.snapshot()
        assert [m.role for m in history] == ["user"]
        assert history[0].content == "hi"

    @pytest.mark.asyncio
    async def test_retry_after(self, client, session, chat_url, httpx_mock) -> None:
        """Test the suggested retry delay is exposed."""
        httpx_mock.add_response(
            url=chat_url,
            method="POST",
            status_code=429,
            headers={"Retry-After": "5"},
        )

        with pytest.raises(ChatError) as excinfo:
            await client.send(session, "hi")

        assert excinfo.value.retry_after == 5.0
        assert excinfo.value.retryable

    @pytest.mark.asyncio
    async def test_timeout(self, client, session, httpx_mock) -> None:
        """Test a deadline failure maps to TIMEOUT."""
        httpx_mock.add_exception(httpx.ReadTimeout("Read timed out"))

        with pytest.raises(ChatError) as excinfo:
            await client.send(session, "hi")

        assert excinfo.value.kind is ErrorKind.TIMEOUT
        assert session.count("assistant") == 0

    @pytest.mark.asyncio
    async def test_slow_reply_hits_total_deadline(
        self, config, session, chat_url, httpx_mock
    ) -> None:
        """Test a reply slower than timeout_ms is cut off at the deadline."""
        from tests.integration.conftest import mock_chat_response

        async def slow_reply(request: httpx.Request) -> httpx.Response:
            await asyncio.sleep(5)
            return httpx.Response(200, json=mock_chat_response(content="slow"))

        httpx_mock.add_callback(slow_reply, url=chat_url, method="POST")

        started = time.perf_counter()
        async with ChatClient(config.with_changes(timeout_ms=1000)) as client:
            with pytest.raises(ChatError) as excinfo:
                await client.send(session, "hi")
        elapsed = time.perf_counter() - started

        assert excinfo.value.kind is ErrorKind.TIMEOUT
        assert elapsed < 3
        assert [m.role for m in session.snapshot()] == ["user"]

    @pytest.mark.asyncio
    async def test_trickling_body_hits_total_deadline(
        self, config, session, chat_url, httpx_mock
    ) -> None:
        """Test a body that keeps arriving byte by byte is cut off at the deadline."""
        from tests.integration.conftest import mock_chat_response

        body = json.dumps(mock_chat_response(content="slow")).encode()

        class Trickle(httpx.AsyncByteStream):
            async def __aiter__(self):
                for i in range(len(body)):
                    await asyncio.sleep(0.08)
                    yield body[i : i + 1]

        def trickle_reply(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200, headers={"Content-Type": "application/json"}, stream=Trickle()
            )

        httpx_mock.add_callback(trickle_reply, url=chat_url, method="POST")

        started = time.perf_counter()
        async with ChatClient(config.with_changes(timeout_ms=1000)) as client:
            with pytest.raises(ChatError) as excinfo:
                await client.send(session, "hi")
        elapsed = time.perf_counter() - started

        assert excinfo.value.kind is ErrorKind.TIMEOUT
        assert elapsed < 3
        assert session.count("assistant") == 0

    @pytest.mark.asyncio
    async def test_connection_error(self, client, session, httpx_mock) -> None:
        """Test a connection failure maps to GENERIC with its message."""
        httpx_mock.add_exception(httpx.ConnectError("Connection refused"))

        with pytest.raises(ChatError) as excinfo:
            await client.send(session, "hi")

        assert excinfo.value.kind is ErrorKind.GENERIC
        assert "Connection refused" in excinfo.value.message

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "body",
        [
            b"not json at all",
            b"[1, 2, 3]",
            b"{}",
            b'{"choices": []}',
            b'{"choices": [{"index": 0}]}',
            b'{"choices": [{"message": {"content": 42}}]}',
        ],
    )
    async def test_malformed_body(self, client, session, chat_url, httpx_mock, body) -> None:
        """Test unexpected bodies map to MALFORMED_RESPONSE."""
        httpx_mock.add_response(url=chat_url, method="POST", content=body)

        with pytest.raises(ChatError) as excinfo:
            await client.send(session, "hi")

        assert excinfo.value.kind is ErrorKind.MALFORMED_RESPONSE
        assert session.count("assistant") == 0


class TestHealthAndConfig:
    """Tests for health checks and configuration updates."""

    @pytest.mark.asyncio
    async def test_healthy(self, client, base_url, httpx_mock) -> None:
        """Test a 200 answer means healthy."""
        httpx_mock.add_response(url=f"{base_url}/health", method="GET", text="ok")
        assert await client.check_health() is True

    @pytest.mark.asyncio
    async def test_unhealthy_status(self, client, base_url, httpx_mock) -> None:
        """Test an error status means unhealthy."""
        httpx_mock.add_response(url=f"{base_url}/health", method="GET", status_code=503)
        assert await client.check_health() is False

    @pytest.mark.asyncio
    async def test_unreachable(self, client, httpx_mock) -> None:
        """Test a network failure means unhealthy."""
        httpx_mock.add_exception(httpx.ConnectError("Connection refused"))
        assert await client.check_health() is False

    @pytest.mark.asyncio
    async def test_update_config(self, client, session, base_url, httpx_mock) -> None:
        """Test updated settings apply to the next call."""
        from tests.integration.conftest import mock_chat_response

        new_url = "https://ark-backup.test/api/v3/chat/completions"
        httpx_mock.add_response(url=new_url, method="POST", json=mock_chat_response())

        config = await client.update_config(
            base_url="https://ark-backup.test", api_key="ark-new-key", temperature=1.2
        )
        await client.send(session, "hi")

        assert config.temperature == 1.2
        assert client.config is config
        request = httpx_mock.get_request()
        assert request.headers["Authorization"] == "Bearer ark-new-key"
        assert json.loads(request.content)["temperature"] == 1.2

    @pytest.mark.asyncio
    async def test_update_config_invalid(self, client) -> None:
        """Test invalid updates are rejected and the old config kept."""
        from pydantic import ValidationError

        before = client.config
        with pytest.raises(ValidationError):
            await client.update_config(temperature=5.0)
        assert client.config is before


class TestConversation:
    """Tests for the Conversation wrapper."""

    @pytest.mark.asyncio
    async def test_conversation(self, client, chat_url, httpx_mock) -> None:
        """Test a conversation keeps its own history."""
        from tests.integration.conftest import mock_chat_response

        httpx_mock.add_response(url=chat_url, method="POST", json=mock_chat_response(content="a1"))
        httpx_mock.add_response(url=chat_url, method="POST", json=mock_chat_response(content="a2"))

        conversation = Conversation(client, system_prompt=SYSTEM_PROMPTS["customer_service"])
        await conversation.send("q1")
        result = await conversation.send("q2")

        history = conversation.get_history()
        assert result.content == "a2"
        assert [m.role for m in history] == ["system", "user", "assistant", "user", "assistant"]
        assert history[0].content == SYSTEM_PROMPTS["customer_service"]

        conversation.clear_history()
        assert [m.role for m in conversation.get_history()] == ["system"]

    @pytest.mark.asyncio
    async def test_default_prompt_from_config(self, config) -> None:
        """Test the configured system prompt is used by default."""
        async with ChatClient(config.with_changes(system_prompt="P")) as client:
            conversation = Conversation(client)
        assert conversation.session.system_prompt == "P"

    @pytest.mark.asyncio
    async def test_shared_session(self, client) -> None:
        """Test an existing session can be wrapped."""
        session = ChatSession()
        session.append_user("earlier")
        conversation = Conversation(client, session=session)
        conversation.set_system_prompt("P")

        assert conversation.session is session
        assert [m.role for m in session.snapshot()] == ["system", "user"]
