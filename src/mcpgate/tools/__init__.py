"""Tool server orchestration.

Connections to stdio tool servers, the registry that routes calls
between them, the executor that runs model-issued tool calls, and the
conversation loop that ties them to the upstream model.
"""

from mcpgate.tools.base import (
    CatalogEntry,
    ConnectionStatus,
    ToolCallResult,
    ToolInvocation,
    ToolOutcome,
    ToolSchema,
)
from mcpgate.tools.connection import ToolServerConnection
from mcpgate.tools.conversation import ConversationResult, ToolConversation
from mcpgate.tools.executor import ToolCallExecutor
from mcpgate.tools.history import format_tool_history, has_tool_calls
from mcpgate.tools.registry import RegistryStats, ToolServerRegistry

__all__ = [
    "CatalogEntry",
    "ConnectionStatus",
    "ConversationResult",
    "RegistryStats",
    "ToolCallExecutor",
    "ToolCallResult",
    "ToolConversation",
    "ToolInvocation",
    "ToolOutcome",
    "ToolSchema",
    "ToolServerConnection",
    "ToolServerRegistry",
    "format_tool_history",
    "has_tool_calls",
]
