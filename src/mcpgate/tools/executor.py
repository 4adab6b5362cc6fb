"""Bridge between model-issued tool calls and the tool server registry.

Builds the function catalog sent to the model, runs each round's tool
calls concurrently and turns provider results into the text the model
reads back.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import TYPE_CHECKING, Any

from mcpgate.tools.base import ImagePart, ResourcePart, TextPart, ToolOutcome

if TYPE_CHECKING:
    from collections.abc import Sequence

    from mcpgate.tools.base import ToolCallResult, ToolInvocation, ToolSchema
    from mcpgate.tools.registry import ToolServerRegistry

logger = logging.getLogger(__name__)

ERROR_PREFIX = "[error]"
FAILURE_PREFIX = "[execution failed]"
EMPTY_RESULT = "(tool returned no content)"
UNREADABLE_RESULT = "(tool returned no readable content)"


def to_function_descriptor(tool: ToolSchema) -> dict[str, Any]:
    """Map a tool schema to an OpenAI ``tools`` entry."""
    schema = tool.input_schema or {}
    return {
        "type": "function",
        "function": {
            "name": tool.name,
            "description": tool.description or f"MCP tool: {tool.name}",
            "parameters": {
                "type": "object",
                "properties": schema.get("properties") or {},
                "required": schema.get("required") or [],
            },
        },
    }


def render_result(result: ToolCallResult) -> str:
    """Flatten provider content into one string.

    Images are never inlined, only annotated with their MIME type.
    """
    if not result.content:
        return EMPTY_RESULT

    parts: list[str] = []
    for part in result.content:
        if isinstance(part, TextPart):
            if part.text:
                parts.append(part.text)
        elif isinstance(part, ResourcePart):
            if part.text:
                parts.append(f"[resource] {part.text}")
        elif isinstance(part, ImagePart):
            parts.append(f"[image: {part.mime_type or 'unknown'}]")

    return "\n\n".join(parts) or UNREADABLE_RESULT


def is_error_text(text: str) -> bool:
    """True when *text* is a rendered error or failure outcome."""
    return text.startswith((ERROR_PREFIX, FAILURE_PREFIX))


def _parse_arguments(arguments_json: str) -> dict[str, Any]:
    if not arguments_json or not arguments_json.strip():
        return {}
    try:
        args = json.loads(arguments_json)
    except json.JSONDecodeError as e:
        msg = f"Invalid tool arguments JSON: {e}"
        raise ValueError(msg) from e
    if not isinstance(args, dict):
        msg = f"Tool arguments must be a JSON object, got {type(args).__name__}"
        raise ValueError(msg)
    return args


class ToolCallExecutor:
    """Executes batches of tool invocations against a registry."""

    def __init__(self, registry: ToolServerRegistry) -> None:
        self._registry = registry

    def function_catalog(self) -> list[dict[str, Any]]:
        """Function descriptors for every routable tool, one per name."""
        seen: set[str] = set()
        functions: list[dict[str, Any]] = []
        for entry in self._registry.list_all_tools():
            if entry.tool.name in seen:
                continue
            seen.add(entry.tool.name)
            functions.append(to_function_descriptor(entry.tool))
        return functions

    async def execute(self, invocation: ToolInvocation) -> ToolOutcome:
        """Run one invocation. Never raises; failures become error outcomes."""
        try:
            args = _parse_arguments(invocation.arguments_json)
            result = await self._registry.call_tool(invocation.tool_name, args)
        except Exception as exc:
            logger.error(
                "Tool call %s (%s) failed: %s",
                invocation.call_id,
                invocation.tool_name,
                exc,
            )
            return ToolOutcome(
                call_id=invocation.call_id,
                text=f"{FAILURE_PREFIX} {exc}",
                is_error=True,
            )

        text = render_result(result)
        if result.is_error:
            text = f"{ERROR_PREFIX} {text}"
        logger.info(
            "Tool call %s (%s) done: %d chars, is_error=%s",
            invocation.call_id,
            invocation.tool_name,
            len(text),
            result.is_error,
        )
        return ToolOutcome(call_id=invocation.call_id, text=text, is_error=result.is_error)

    async def execute_batch(
        self, invocations: Sequence[ToolInvocation]
    ) -> list[ToolOutcome]:
        """Run every invocation concurrently; outcomes match input order."""
        if not invocations:
            return []

        logger.info(
            "Executing %d tool calls: %s",
            len(invocations),
            ", ".join(inv.tool_name for inv in invocations),
        )
        outcomes = await asyncio.gather(*(self.execute(inv) for inv in invocations))
        logger.info(
            "Tool batch done: %d/%d succeeded",
            sum(1 for o in outcomes if not o.is_error),
            len(outcomes),
        )
        return list(outcomes)
