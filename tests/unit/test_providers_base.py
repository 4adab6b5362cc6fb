"""Tests for chat message types and the API key pool."""

from __future__ import annotations

import pytest

from mcpgate.core.errors import ConfigError
from mcpgate.providers.base import (
    AssistantMessage,
    ModelResponse,
    SystemMessage,
    TokenUsage,
    ToolCallData,
    ToolResultMessage,
    UserMessage,
    message_from_dict,
)
from mcpgate.providers.keys import ApiKeyPool

# ─── message_from_dict ────────────────────────────────────────


class TestMessageFromDict:
    def test_system(self):
        assert message_from_dict({"role": "system", "content": "hi"}) == SystemMessage(
            content="hi"
        )

    def test_user_text(self):
        msg = message_from_dict({"role": "user", "content": "hello"})
        assert msg == UserMessage(content="hello")

    def test_user_parts(self):
        parts = [{"type": "text", "text": "look"}]
        msg = message_from_dict({"role": "user", "content": parts})
        assert isinstance(msg, UserMessage)
        assert msg.content == tuple(parts)

    def test_assistant_with_tool_calls(self):
        msg = message_from_dict(
            {
                "role": "assistant",
                "content": None,
                "tool_calls": [
                    {
                        "id": "c1",
                        "type": "function",
                        "function": {"name": "forecast", "arguments": '{"a": 1}'},
                    }
                ],
            }
        )
        assert msg == AssistantMessage(
            content=None,
            tool_calls=(ToolCallData(id="c1", name="forecast", arguments='{"a": 1}'),),
        )

    def test_tool(self):
        msg = message_from_dict({"role": "tool", "content": "ok", "tool_call_id": "c1"})
        assert msg == ToolResultMessage(tool_call_id="c1", content="ok")

    def test_tool_without_id(self):
        with pytest.raises(ValueError, match="tool_call_id"):
            message_from_dict({"role": "tool", "content": "ok"})

    def test_unknown_role(self):
        with pytest.raises(ValueError, match="Unknown message role"):
            message_from_dict({"role": "wizard", "content": "?"})

    def test_round_trip_through_to_dict(self):
        data = {"role": "tool", "content": "ok", "tool_call_id": "c1"}
        assert message_from_dict(data).to_dict() == data


# ─── ModelResponse ────────────────────────────────────────────


class TestModelResponse:
    def _response(self, tool_calls=None) -> ModelResponse:
        return ModelResponse(
            content="",
            model="m",
            finish_reason="stop",
            usage=TokenUsage(input_tokens=1, output_tokens=2),
            latency_ms=0.0,
            tool_calls=tool_calls,
        )

    def test_wants_tools(self):
        assert not self._response().wants_tools
        assert not self._response(tool_calls=[]).wants_tools
        assert self._response(
            tool_calls=[ToolCallData(id="c", name="x", arguments="{}")]
        ).wants_tools

    def test_total_tokens(self):
        assert self._response().usage.total_tokens == 3


# ─── ApiKeyPool ───────────────────────────────────────────────


class TestApiKeyPool:
    def test_round_robin(self):
        pool = ApiKeyPool(["a", "b", "c"])
        assert [pool.next_key() for _ in range(7)] == ["a", "b", "c", "a", "b", "c", "a"]

    def test_blank_keys_dropped(self):
        pool = ApiKeyPool(["", "a", ""])
        assert len(pool) == 1
        assert pool.next_key() == "a"

    def test_empty_pool(self):
        pool = ApiKeyPool([])
        assert len(pool) == 0
        with pytest.raises(ConfigError, match="No upstream API keys"):
            pool.next_key()
