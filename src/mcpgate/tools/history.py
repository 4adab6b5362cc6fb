"""Markdown rendering of the tool calls made during a conversation."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from mcpgate.providers.base import AssistantMessage, ToolResultMessage
from mcpgate.tools.executor import is_error_text

if TYPE_CHECKING:
    from collections.abc import Sequence

    from mcpgate.providers.base import ChatMessage, ToolCallData


def has_tool_calls(messages: Sequence[ChatMessage] | None) -> bool:
    """True when any assistant message in *messages* requested tools."""
    if not messages:
        return False
    return any(isinstance(m, AssistantMessage) and m.tool_calls for m in messages)


def _format_arguments(arguments: str) -> str:
    try:
        args: Any = json.loads(arguments)
    except json.JSONDecodeError:
        args = {"raw": arguments}
    if not isinstance(args, dict):
        args = {"raw": arguments}
    return "\n".join(
        f"  - **{key}**: {json.dumps(value, ensure_ascii=False)}"
        for key, value in args.items()
    )


def _details(summary: str, body: str) -> str:
    return (
        f"<details>\n<summary><strong>{summary}</strong></summary>\n\n"
        f"{body}\n\n</details>\n\n"
    )


def _format_call(call: ToolCallData, result: ToolResultMessage | None) -> str:
    out = f"### Tool call: `{call.name}`\n\n"
    out += _details("Arguments", _format_arguments(call.arguments))
    if result is not None:
        block = f"```\n{result.content}\n```"
        if is_error_text(result.content):
            out += _details("Failed - show details", block)
        else:
            out += _details("Succeeded - show result", block)
    return out


def format_tool_history(messages: Sequence[ChatMessage]) -> str:
    """Render every tool round in *messages* as collapsible markdown.

    Each assistant message with tool calls starts a new round. A call's
    result is the first later tool message carrying its id; calls with
    no result only show their arguments.
    """
    out = ""
    round_no = 0
    for i, message in enumerate(messages):
        if not isinstance(message, AssistantMessage) or not message.tool_calls:
            continue
        round_no += 1
        if round_no > 1:
            out += "---\n\n"
        out += f"## Tool round {round_no}\n\n"

        later = messages[i + 1 :]
        for call in message.tool_calls:
            result = next(
                (
                    m
                    for m in later
                    if isinstance(m, ToolResultMessage) and m.tool_call_id == call.id
                ),
                None,
            )
            out += _format_call(call, result)
    return out
