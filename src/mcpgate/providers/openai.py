"""OpenAI-compatible upstream adapter."""

from __future__ import annotations

import contextlib
import logging
import time
from typing import TYPE_CHECKING, Any

import openai

from mcpgate.core.errors import (
    ModelNotFoundError,
    UpstreamAuthError,
    UpstreamOverloadedError,
    UpstreamRateLimitError,
    UpstreamTimeoutError,
)
from mcpgate.providers.base import ModelResponse, TokenUsage, ToolCallData

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from mcpgate.config.schema import UpstreamConfig
    from mcpgate.providers.base import ChatMessage

logger = logging.getLogger(__name__)

PROVIDER_ID = "upstream"

# Sampling knobs copied from UpstreamConfig when set.
_SAMPLING_FIELDS = (
    "temperature",
    "max_tokens",
    "top_p",
    "frequency_penalty",
    "presence_penalty",
)


def _map_error(e: openai.APIError) -> Exception:
    """Map OpenAI SDK errors to the gateway error hierarchy."""
    if isinstance(e, openai.AuthenticationError):
        return UpstreamAuthError(PROVIDER_ID, str(e))
    if isinstance(e, openai.RateLimitError):
        retry_after = None
        if hasattr(e, "response") and e.response is not None:
            raw = e.response.headers.get("retry-after")
            if raw is not None:
                with contextlib.suppress(ValueError):
                    retry_after = float(raw)
        return UpstreamRateLimitError(PROVIDER_ID, retry_after=retry_after)
    if isinstance(e, openai.APITimeoutError):
        return UpstreamTimeoutError(PROVIDER_ID, str(e))
    if isinstance(e, openai.InternalServerError):
        return UpstreamOverloadedError(PROVIDER_ID, str(e))
    if isinstance(e, openai.NotFoundError):
        return ModelNotFoundError(PROVIDER_ID, str(e))
    # Fallback for unknown API errors
    return UpstreamOverloadedError(PROVIDER_ID, str(e))


def _build_messages(messages: Sequence[ChatMessage]) -> list[dict[str, Any]]:
    """Convert chat messages to OpenAI wire format."""
    return [msg.to_dict() for msg in messages]


class OpenAIUpstream:
    """Adapter for any OpenAI-compatible ``/chat/completions`` service.

    One ``AsyncOpenAI`` client is kept per API key so the caller can pick
    a key per request without rebuilding connection pools.
    """

    def __init__(
        self,
        config: UpstreamConfig,
        *,
        client_factory: Callable[[str | None], openai.AsyncOpenAI] | None = None,
    ) -> None:
        self._config = config
        self._client_factory = client_factory or self._default_client
        self._clients: dict[str | None, openai.AsyncOpenAI] = {}

    def _default_client(self, api_key: str | None) -> openai.AsyncOpenAI:
        kwargs: dict[str, Any] = {
            "base_url": self._config.base_url.rstrip("/"),
            "timeout": self._config.timeout,
            "max_retries": 0,
        }
        if api_key is not None:
            kwargs["api_key"] = api_key
        return openai.AsyncOpenAI(**kwargs)

    def _client(self, api_key: str | None) -> openai.AsyncOpenAI:
        if api_key not in self._clients:
            try:
                self._clients[api_key] = self._client_factory(api_key)
            except openai.OpenAIError as e:
                # raised when neither a pool key nor OPENAI_API_KEY is set
                raise UpstreamAuthError(PROVIDER_ID, str(e)) from e
        return self._clients[api_key]

    @property
    def provider_id(self) -> str:
        return PROVIDER_ID

    def sampling_params(self) -> dict[str, Any]:
        """Configured sampling parameters, omitting unset ones."""
        params: dict[str, Any] = {}
        for name in _SAMPLING_FIELDS:
            value = getattr(self._config, name)
            if value is not None:
                params[name] = value
        return params

    async def send(
        self,
        messages: Sequence[ChatMessage],
        model: str,
        *,
        api_key: str | None = None,
        tools: list[dict[str, Any]] | None = None,
    ) -> ModelResponse:
        kwargs: dict[str, Any] = {
            "model": model,
            "messages": _build_messages(messages),
            **self.sampling_params(),
        }
        if tools:
            kwargs["tools"] = tools

        start = time.monotonic()
        try:
            response = await self._client(api_key).chat.completions.create(**kwargs)
        except openai.APIError as e:
            logger.error("Upstream request failed for model %s: %s", model, e)
            raise _map_error(e) from e

        latency_ms = (time.monotonic() - start) * 1000

        tool_calls_data: list[ToolCallData] | None = None
        if response.choices:
            message = response.choices[0].message
            content = message.content or ""
            finish_reason = response.choices[0].finish_reason or "stop"
            if message.tool_calls:
                tool_calls_data = [
                    ToolCallData(
                        id=tc.id,
                        name=tc.function.name,
                        arguments=tc.function.arguments or "{}",
                    )
                    for tc in message.tool_calls
                ]
        else:
            content = ""
            finish_reason = "stop"

        if response.usage:
            usage = TokenUsage(
                input_tokens=response.usage.prompt_tokens,
                output_tokens=response.usage.completion_tokens,
            )
        else:
            usage = TokenUsage(input_tokens=0, output_tokens=0)

        logger.info(
            "Upstream %s answered in %.0fms (finish=%s, tool_calls=%d)",
            model,
            latency_ms,
            finish_reason,
            len(tool_calls_data or []),
        )

        return ModelResponse(
            content=content,
            model=response.model or model,
            finish_reason=finish_reason,
            usage=usage,
            latency_ms=latency_ms,
            raw_response=response,
            tool_calls=tool_calls_data,
        )

    async def close(self) -> None:
        """Close every cached HTTP client."""
        for client in self._clients.values():
            await client.close()
        self._clients.clear()
