"""Tool conversation loop: send, run requested tools, send again.

1. Send the caller's messages with the function catalog
2. If the response has tool calls, run them as one batch
3. Append the assistant turn and one tool result per call
4. Repeat until the model answers without tools or ``max_rounds`` is hit

Hitting the round limit is an error, never a partial answer.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from mcpgate.core.errors import ToolLoopLimitError
from mcpgate.providers.base import AssistantMessage, ToolResultMessage
from mcpgate.tools.base import ToolInvocation

if TYPE_CHECKING:
    from collections.abc import Sequence

    from mcpgate.providers.base import ChatMessage, ChatModel, ModelResponse
    from mcpgate.providers.keys import ApiKeyPool
    from mcpgate.tools.executor import ToolCallExecutor

logger = logging.getLogger(__name__)

DEFAULT_MAX_ROUNDS = 5


class LoopState(enum.Enum):
    SENDING = "sending"
    AWAITING_MODEL = "awaiting_model"
    EXECUTING_TOOLS = "executing_tools"
    FINISHED = "finished"


@dataclass(slots=True)
class ConversationResult:
    """Final model answer plus the history that led to it."""

    response: ModelResponse
    messages: list[ChatMessage]
    rounds: int

    @property
    def used_tools(self) -> bool:
        return self.rounds > 1


def _check_rounds(max_rounds: int) -> None:
    if max_rounds < 1:
        msg = f"max_rounds must be >= 1, got {max_rounds}"
        raise ValueError(msg)


class ToolConversation:
    """Drives the bounded tool-use cycle for one request at a time.

    Holds no per-request state; each :meth:`run` call owns its own
    message list.
    """

    def __init__(
        self,
        model: ChatModel,
        executor: ToolCallExecutor,
        *,
        key_pool: ApiKeyPool | None = None,
        max_rounds: int = DEFAULT_MAX_ROUNDS,
    ) -> None:
        _check_rounds(max_rounds)
        self._model = model
        self._executor = executor
        self._key_pool = key_pool
        self._max_rounds = max_rounds

    async def run(
        self,
        messages: Sequence[ChatMessage],
        model_id: str,
        *,
        max_rounds: int | None = None,
        use_tools: bool = True,
    ) -> ConversationResult:
        """Run the loop until the model stops asking for tools.

        Tool calls requested in the last allowed round are not run.

        Raises:
            ValueError: If *max_rounds* is given and below 1.
            ToolLoopLimitError: If the model still wants tools after
                ``max_rounds`` upstream calls.
            UpstreamError: Propagated unchanged from the upstream model.
        """
        if max_rounds is None:
            limit = self._max_rounds
        else:
            _check_rounds(max_rounds)
            limit = max_rounds
        api_key = self._key_pool.next_key() if self._key_pool else None
        functions = self._executor.function_catalog() if use_tools else []
        history: list[ChatMessage] = list(messages)

        state = LoopState.SENDING
        for round_no in range(1, limit + 1):
            logger.debug("Round %d/%d: %s", round_no, limit, state.value)
            state = LoopState.AWAITING_MODEL
            response = await self._model.send(
                history,
                model_id,
                api_key=api_key,
                tools=functions or None,
            )

            if not response.wants_tools:
                state = LoopState.FINISHED
                logger.info("Conversation finished after %d round(s)", round_no)
                return ConversationResult(
                    response=response, messages=history, rounds=round_no
                )

            if round_no == limit:
                break

            state = LoopState.EXECUTING_TOOLS
            calls = tuple(response.tool_calls or ())
            outcomes = await self._executor.execute_batch(
                [
                    ToolInvocation(
                        call_id=tc.id, tool_name=tc.name, arguments_json=tc.arguments
                    )
                    for tc in calls
                ]
            )
            history.append(
                AssistantMessage(content=response.content or None, tool_calls=calls)
            )
            history.extend(
                ToolResultMessage(tool_call_id=o.call_id, content=o.text)
                for o in outcomes
            )
            state = LoopState.SENDING

        logger.warning("Tool-call loop limit reached (%d rounds)", limit)
        raise ToolLoopLimitError(limit)
