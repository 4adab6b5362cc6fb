"""Upstream model adapters."""

from mcpgate.providers.base import (
    AssistantMessage,
    ChatMessage,
    ChatModel,
    ModelResponse,
    SystemMessage,
    TokenUsage,
    ToolCallData,
    ToolResultMessage,
    UserMessage,
    message_from_dict,
)
from mcpgate.providers.keys import ApiKeyPool

__all__ = [
    "ApiKeyPool",
    "AssistantMessage",
    "ChatMessage",
    "ChatModel",
    "ModelResponse",
    "SystemMessage",
    "TokenUsage",
    "ToolCallData",
    "ToolResultMessage",
    "UserMessage",
    "message_from_dict",
]
