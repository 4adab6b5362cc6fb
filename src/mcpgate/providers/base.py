"""Upstream model interface and chat data classes.

The upstream adapter implements the ``ChatModel`` protocol. Messages are
a closed set of frozen dataclasses that render to the OpenAI chat wire
format with ``to_dict()``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

FINISH_TOOL_CALLS = "tool_calls"


@dataclass(frozen=True, slots=True)
class TokenUsage:
    """Token counts from a single model call."""

    input_tokens: int
    output_tokens: int

    @property
    def total_tokens(self) -> int:
        """Total tokens consumed (input + output)."""
        return self.input_tokens + self.output_tokens


@dataclass(frozen=True, slots=True)
class ToolCallData:
    """A tool call from a model response."""

    id: str
    name: str
    arguments: str  # JSON string of arguments

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": "function",
            "function": {"name": self.name, "arguments": self.arguments},
        }


# ─── Messages ─────────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class SystemMessage:
    content: str
    role: str = field(default="system", init=False)

    def to_dict(self) -> dict[str, Any]:
        return {"role": "system", "content": self.content}


@dataclass(frozen=True, slots=True)
class UserMessage:
    # plain text, or OpenAI content parts (text / image_url)
    content: str | tuple[dict[str, Any], ...]
    role: str = field(default="user", init=False)

    def to_dict(self) -> dict[str, Any]:
        content = self.content if isinstance(self.content, str) else list(self.content)
        return {"role": "user", "content": content}


@dataclass(frozen=True, slots=True)
class AssistantMessage:
    content: str | None
    tool_calls: tuple[ToolCallData, ...] = ()
    role: str = field(default="assistant", init=False)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"role": "assistant", "content": self.content}
        if self.tool_calls:
            data["tool_calls"] = [tc.to_dict() for tc in self.tool_calls]
        return data


@dataclass(frozen=True, slots=True)
class ToolResultMessage:
    tool_call_id: str
    content: str
    role: str = field(default="tool", init=False)

    def to_dict(self) -> dict[str, Any]:
        return {"role": "tool", "content": self.content, "tool_call_id": self.tool_call_id}


ChatMessage = SystemMessage | UserMessage | AssistantMessage | ToolResultMessage


def message_from_dict(data: Mapping[str, Any]) -> ChatMessage:
    """Build a :data:`ChatMessage` from an OpenAI-style dict.

    Raises:
        ValueError: On an unknown role or a malformed message.
    """
    role = data.get("role")
    content = data.get("content")
    if role == "system":
        return SystemMessage(content=str(content or ""))
    if role == "user":
        if isinstance(content, list):
            return UserMessage(content=tuple(content))
        return UserMessage(content=str(content or ""))
    if role == "assistant":
        calls = tuple(
            ToolCallData(
                id=tc["id"],
                name=tc["function"]["name"],
                arguments=tc["function"].get("arguments") or "{}",
            )
            for tc in data.get("tool_calls") or []
        )
        return AssistantMessage(content=content, tool_calls=calls)
    if role == "tool":
        call_id = data.get("tool_call_id")
        if not call_id:
            msg = "tool message requires tool_call_id"
            raise ValueError(msg)
        return ToolResultMessage(tool_call_id=str(call_id), content=str(content or ""))
    msg = f"Unknown message role: {role!r}"
    raise ValueError(msg)


# ─── Responses ────────────────────────────────────────────────


@dataclass(slots=True)
class ModelResponse:
    """Complete response from a model call."""

    content: str
    model: str
    finish_reason: str  # "stop", "length", "tool_calls"
    usage: TokenUsage
    latency_ms: float
    raw_response: object = field(default=None, repr=False)
    tool_calls: list[ToolCallData] | None = None

    @property
    def wants_tools(self) -> bool:
        """True when the model asked for tool invocations."""
        return bool(self.tool_calls)


@runtime_checkable
class ChatModel(Protocol):
    """Protocol the upstream adapter must satisfy."""

    @property
    def provider_id(self) -> str:
        """Identifier used in error messages (e.g. ``openai``)."""
        ...

    async def send(
        self,
        messages: Sequence[ChatMessage],
        model: str,
        *,
        api_key: str | None = None,
        tools: list[dict[str, Any]] | None = None,
    ) -> ModelResponse:
        """Send a chat request and wait for the complete response.

        Raises UpstreamError on failure.
        """
        ...
