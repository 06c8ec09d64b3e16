"""Anthropic Messages API client.

Async HTTP client for the Messages endpoint. It handles timeouts, retries
with exponential backoff on rate limits, server errors and transport
failures, and joins the text blocks of a reply into one string.

Example usage:
    >>> from quorum.config import AnthropicConfig
    >>> config = AnthropicConfig(api_key="sk-ant-...")
    >>> async with ClaudeClient(config) as client:
    ...     reply = await client.send_message("You are terse.", "Say hi")
    ...     print(reply.content)
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any

import httpx
import structlog

from quorum.config import AnthropicConfig

logger = structlog.get_logger(__name__)

MESSAGES_ENDPOINT = "/messages"


class ClaudeClientError(Exception):
    """Base exception for Claude client errors.

    Attributes:
        retryable: Whether repeating the same call may succeed.
    """

    retryable = False


class ClaudeTimeoutError(ClaudeClientError):
    """Raised when requests keep timing out after every retry."""

    retryable = True


class ClaudeConnectionError(ClaudeClientError):
    """Raised when the API cannot be reached after every retry."""

    retryable = True


class ClaudeAPIError(ClaudeClientError):
    """Raised when the API returns an error response.

    Attributes:
        status_code: HTTP status of the response.
        error_type: ``error.type`` from the response body, if present.
    """

    def __init__(
        self, message: str, status_code: int | None = None, error_type: str | None = None
    ) -> None:
        self.status_code = status_code
        self.error_type = error_type
        self.retryable = is_retryable_status(status_code)
        super().__init__(message)


class GenerationError(ClaudeClientError):
    """Raised when a reply cannot be turned into the expected result."""

    retryable = True


def is_retryable_status(status_code: int | None) -> bool:
    """Rate limits and server errors are retryable."""
    if status_code is None:
        return False
    return status_code == 429 or 500 <= status_code < 600


def strip_code_fence(text: str) -> str:
    """Remove a surrounding Markdown code fence, if any."""
    stripped = text.strip()
    if stripped.startswith("```json"):
        stripped = stripped[len("```json") :]
    elif stripped.startswith("```"):
        stripped = stripped[3:]
    if stripped.endswith("```"):
        stripped = stripped[:-3]
    return stripped.strip()


@dataclass(frozen=True)
class ClaudeResponse:
    """A parsed Messages API reply."""

    content: str
    model: str
    input_tokens: int = 0
    output_tokens: int = 0
    stop_reason: str | None = None

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> ClaudeResponse:
        blocks = data.get("content") or []
        text = "".join(
            block.get("text", "")
            for block in blocks
            if isinstance(block, dict) and block.get("type") == "text"
        )
        usage = data.get("usage") or {}
        return cls(
            content=text,
            model=data.get("model", ""),
            input_tokens=usage.get("input_tokens", 0),
            output_tokens=usage.get("output_tokens", 0),
            stop_reason=data.get("stop_reason"),
        )


def _api_error(response: httpx.Response) -> ClaudeAPIError:
    message = f"API error: HTTP {response.status_code}"
    error_type = None
    try:
        error = response.json().get("error") or {}
        error_type = error.get("type")
        message = f"{message}: {error.get('message', response.text)}"
    except (ValueError, AttributeError):
        message = f"{message}: {response.text}"
    return ClaudeAPIError(message, status_code=response.status_code, error_type=error_type)


class ClaudeClient:
    """Async client for the Anthropic Messages API.

    Attributes:
        config: API key, model, timeout and retry settings
    """

    def __init__(self, config: AnthropicConfig, initial_backoff: float = 1.0) -> None:
        self.config = config
        self.initial_backoff = initial_backoff
        self._client: httpx.AsyncClient | None = None
        logger.info(
            "claude_client_initialized",
            base_url=config.base_url,
            model=config.model,
            timeout=config.timeout_seconds,
        )

    async def __aenter__(self) -> ClaudeClient:
        await self.open()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def open(self) -> None:
        """Create the underlying HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.config.base_url,
                timeout=httpx.Timeout(self.config.timeout_seconds),
                headers={
                    "x-api-key": self.config.api_key,
                    "anthropic-version": self.config.api_version,
                    "content-type": "application/json",
                },
            )

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def _get_client(self) -> httpx.AsyncClient:
        """Return the open HTTP client.

        Raises:
            RuntimeError: If the client has not been opened
        """
        if self._client is None:
            raise RuntimeError("ClaudeClient must be opened before use")
        return self._client

    async def _backoff(self, event: str, attempt: int, **context: Any) -> None:
        delay = self.initial_backoff * (2**attempt)
        logger.warning(event, attempt=attempt + 1, backoff_seconds=delay, **context)
        await asyncio.sleep(delay)

    async def send_message(
        self,
        system_prompt: str,
        user_message: str,
        max_tokens: int | None = None,
        model: str | None = None,
    ) -> ClaudeResponse:
        """Send one user message and return the reply.

        Args:
            system_prompt: System instructions
            user_message: The user turn
            max_tokens: Completion budget (defaults to config.max_tokens)
            model: Model override (defaults to config.model)

        Returns:
            The parsed reply

        Raises:
            ClaudeTimeoutError: If the request times out after all retries
            ClaudeConnectionError: If the API is unreachable after all retries
            ClaudeAPIError: If the API returns an error response
        """
        client = self._get_client()
        max_retries = self.config.max_retries
        payload = {
            "model": model or self.config.model,
            "max_tokens": max_tokens or self.config.max_tokens,
            "system": system_prompt,
            "messages": [{"role": "user", "content": user_message}],
        }

        for attempt in range(max_retries + 1):
            try:
                logger.debug(
                    "claude_message_request",
                    attempt=attempt + 1,
                    max_attempts=max_retries + 1,
                    prompt_length=len(user_message),
                )
                response = await client.post(MESSAGES_ENDPOINT, json=payload)

                if response.status_code == 200:
                    reply = ClaudeResponse.from_json(response.json())
                    logger.info(
                        "claude_message_completed",
                        model=reply.model,
                        input_tokens=reply.input_tokens,
                        output_tokens=reply.output_tokens,
                        stop_reason=reply.stop_reason,
                        attempt=attempt + 1,
                    )
                    return reply

                error = _api_error(response)
                if error.retryable and attempt < max_retries:
                    await self._backoff(
                        "claude_server_error_retry", attempt, status_code=response.status_code
                    )
                    continue
                logger.error(
                    "claude_api_error",
                    status_code=response.status_code,
                    error_type=error.error_type,
                )
                raise error

            except httpx.TimeoutException as e:
                if attempt < max_retries:
                    await self._backoff("claude_timeout_retry", attempt, error=str(e))
                    continue
                logger.error(
                    "claude_timeout_exhausted",
                    max_retries=max_retries,
                    timeout_seconds=self.config.timeout_seconds,
                )
                raise ClaudeTimeoutError(
                    f"Request timed out after {max_retries} retries"
                ) from e

            except (httpx.ConnectError, httpx.NetworkError) as e:
                if attempt < max_retries:
                    await self._backoff("claude_connection_error_retry", attempt, error=str(e))
                    continue
                logger.error(
                    "claude_connection_exhausted",
                    base_url=self.config.base_url,
                    max_retries=max_retries,
                )
                raise ClaudeConnectionError(
                    f"Failed to connect to Anthropic API at {self.config.base_url}"
                ) from e

        raise ClaudeClientError("Unexpected retry loop exit")
