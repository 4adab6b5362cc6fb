"""POST /api/chat -- run a tool-augmented conversation via REST."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from mcpgate.core.errors import (
    GatewayError,
    ToolLoopLimitError,
    UpstreamError,
    UpstreamRateLimitError,
    UpstreamTimeoutError,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["chat"])


class ChatRequest(BaseModel):
    model: str | None = None
    messages: list[dict[str, Any]] = Field(min_length=1)
    max_rounds: int | None = Field(default=None, ge=1)
    tools: bool = True


class ChatResponse(BaseModel):
    model: str
    content: str
    finish_reason: str
    conversation_rounds: int
    full_messages: list[dict[str, Any]] | None = None
    tool_history: str | None = None


@router.post("/chat", response_model=ChatResponse, response_model_exclude_none=True)
async def chat(body: ChatRequest, request: Request) -> ChatResponse | JSONResponse:
    """Send messages upstream, running any tools the model asks for."""
    from mcpgate.cli.app import _build_conversation
    from mcpgate.providers.base import message_from_dict
    from mcpgate.tools.history import format_tool_history, has_tool_calls

    config = request.app.state.config

    try:
        messages = [message_from_dict(m) for m in body.messages]
    except (KeyError, TypeError, ValueError) as exc:
        return JSONResponse(
            status_code=400,
            content={"detail": f"Invalid messages: {exc}"},
        )

    conversation = _build_conversation(
        config,
        request.app.state.tool_registry,
        request.app.state.upstream,
        request.app.state.key_pool,
    )
    model = body.model or config.upstream.default_model

    try:
        result = await conversation.run(
            messages,
            model,
            max_rounds=body.max_rounds,
            use_tools=body.tools and config.tools.enabled,
        )
    except UpstreamRateLimitError as exc:
        logger.warning("Upstream rate limit during /api/chat: %s", exc)
        headers = {}
        if exc.retry_after is not None:
            headers["Retry-After"] = str(int(exc.retry_after))
        return JSONResponse(
            status_code=429,
            content={"detail": f"Upstream error: {exc}"},
            headers=headers,
        )
    except UpstreamTimeoutError as exc:
        logger.exception("Upstream timeout during /api/chat")
        return JSONResponse(
            status_code=504,
            content={"detail": f"Upstream error: {exc}"},
        )
    except UpstreamError as exc:
        logger.exception("Upstream error during /api/chat")
        return JSONResponse(
            status_code=502,
            content={"detail": f"Upstream error: {exc}"},
        )
    except ToolLoopLimitError as exc:
        logger.warning("Tool loop limit during /api/chat: %s", exc)
        detail = f"tool-call loop limit exceeded ({exc.max_rounds} rounds)"
        return JSONResponse(status_code=502, content={"detail": detail})
    except GatewayError as exc:
        logger.exception("Error during /api/chat")
        return JSONResponse(
            status_code=400,
            content={"detail": str(exc)},
        )

    response = result.response
    if config.logging.log_assistant_responses:
        logger.info("Assistant response (%s): %s", response.model, response.content)

    full_messages = None
    if result.rounds > 1:
        full_messages = [m.to_dict() for m in result.messages]
    tool_history = None
    if has_tool_calls(result.messages):
        tool_history = format_tool_history(result.messages)

    return ChatResponse(
        model=response.model,
        content=response.content,
        finish_reason=response.finish_reason,
        conversation_rounds=result.rounds,
        full_messages=full_messages,
        tool_history=tool_history,
    )
