"""Unit tests for the Anthropic Messages API client."""

from __future__ import annotations

import json

import httpx
import pytest
import respx

from quorum.config import AnthropicConfig
from quorum.intelligence.claude_client import (
    ClaudeAPIError,
    ClaudeClient,
    ClaudeConnectionError,
    ClaudeResponse,
    ClaudeTimeoutError,
    is_retryable_status,
    strip_code_fence,
)

MESSAGES_URL = "https://api.anthropic.com/v1/messages"

REPLY = {
    "model": "claude-sonnet-4-5",
    "content": [
        {"type": "text", "text": "Hello "},
        {"type": "tool_use", "id": "x", "name": "noop", "input": {}},
        {"type": "text", "text": "there"},
    ],
    "usage": {"input_tokens": 12, "output_tokens": 3},
    "stop_reason": "end_turn",
}


@pytest.fixture
def config() -> AnthropicConfig:
    return AnthropicConfig(api_key="test-key", max_retries=1)


def test_response_joins_text_blocks() -> None:
    reply = ClaudeResponse.from_json(REPLY)
    assert reply.content == "Hello there"
    assert reply.input_tokens == 12
    assert reply.stop_reason == "end_turn"


def test_response_tolerates_missing_fields() -> None:
    reply = ClaudeResponse.from_json({})
    assert reply.content == ""
    assert reply.output_tokens == 0


@pytest.mark.parametrize(
    "status,expected",
    [(429, True), (500, True), (529, True), (400, False), (401, False), (None, False)],
)
def test_retryable_status(status: int | None, expected: bool) -> None:
    assert is_retryable_status(status) is expected


def test_strip_code_fence() -> None:
    assert strip_code_fence('```json\n{"a": 1}\n```') == '{"a": 1}'
    assert strip_code_fence("```\n[1]\n```") == "[1]"
    assert strip_code_fence('  {"a": 1}  ') == '{"a": 1}'


@pytest.mark.asyncio
async def test_send_message_requires_open_client(config: AnthropicConfig) -> None:
    client = ClaudeClient(config, initial_backoff=0)
    with pytest.raises(RuntimeError, match="must be opened"):
        await client.send_message("system", "hi")


@respx.mock
@pytest.mark.asyncio
async def test_send_message_success(config: AnthropicConfig) -> None:
    route = respx.post(MESSAGES_URL).mock(return_value=httpx.Response(200, json=REPLY))

    async with ClaudeClient(config, initial_backoff=0) as client:
        reply = await client.send_message("Be terse.", "Say hi", max_tokens=50)

    assert reply.content == "Hello there"
    request = route.calls.last.request
    assert request.headers["x-api-key"] == "test-key"
    assert request.headers["anthropic-version"] == "2023-06-01"
    body = json.loads(request.content)
    assert body["system"] == "Be terse."
    assert body["max_tokens"] == 50
    assert body["messages"] == [{"role": "user", "content": "Say hi"}]


@respx.mock
@pytest.mark.asyncio
async def test_send_message_retries_server_error(config: AnthropicConfig) -> None:
    route = respx.post(MESSAGES_URL).mock(
        side_effect=[
            httpx.Response(500, json={"error": {"type": "api_error", "message": "boom"}}),
            httpx.Response(200, json=REPLY),
        ]
    )

    async with ClaudeClient(config, initial_backoff=0) as client:
        reply = await client.send_message("s", "u")

    assert reply.content == "Hello there"
    assert route.call_count == 2


@respx.mock
@pytest.mark.asyncio
async def test_send_message_rate_limit_exhausted(config: AnthropicConfig) -> None:
    route = respx.post(MESSAGES_URL).mock(
        return_value=httpx.Response(
            429, json={"error": {"type": "rate_limit_error", "message": "slow down"}}
        )
    )

    async with ClaudeClient(config, initial_backoff=0) as client:
        with pytest.raises(ClaudeAPIError) as exc_info:
            await client.send_message("s", "u")

    assert route.call_count == 2
    assert exc_info.value.status_code == 429
    assert exc_info.value.error_type == "rate_limit_error"
    assert exc_info.value.retryable is True


@respx.mock
@pytest.mark.asyncio
async def test_send_message_client_error_not_retried(config: AnthropicConfig) -> None:
    route = respx.post(MESSAGES_URL).mock(
        return_value=httpx.Response(
            400, json={"error": {"type": "invalid_request_error", "message": "bad"}}
        )
    )

    async with ClaudeClient(config, initial_backoff=0) as client:
        with pytest.raises(ClaudeAPIError, match="HTTP 400: bad") as exc_info:
            await client.send_message("s", "u")

    assert route.call_count == 1
    assert exc_info.value.retryable is False


@respx.mock
@pytest.mark.asyncio
async def test_send_message_non_json_error_body(config: AnthropicConfig) -> None:
    respx.post(MESSAGES_URL).mock(return_value=httpx.Response(403, text="Forbidden"))

    async with ClaudeClient(config, initial_backoff=0) as client:
        with pytest.raises(ClaudeAPIError, match="Forbidden") as exc_info:
            await client.send_message("s", "u")

    assert exc_info.value.error_type is None


@respx.mock
@pytest.mark.asyncio
async def test_send_message_timeout(config: AnthropicConfig) -> None:
    route = respx.post(MESSAGES_URL).mock(side_effect=httpx.ReadTimeout("timed out"))

    async with ClaudeClient(config, initial_backoff=0) as client:
        with pytest.raises(ClaudeTimeoutError):
            await client.send_message("s", "u")

    assert route.call_count == 2


@respx.mock
@pytest.mark.asyncio
async def test_send_message_connection_error(config: AnthropicConfig) -> None:
    respx.post(MESSAGES_URL).mock(side_effect=httpx.ConnectError("Connection refused"))

    async with ClaudeClient(config, initial_backoff=0) as client:
        with pytest.raises(ClaudeConnectionError, match="api.anthropic.com"):
            await client.send_message("s", "u")


@pytest.mark.asyncio
async def test_close_is_idempotent(config: AnthropicConfig) -> None:
    client = ClaudeClient(config)
    await client.open()
    await client.close()
    await client.close()
    with pytest.raises(RuntimeError):
        await client.send_message("s", "u")
