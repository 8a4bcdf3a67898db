"""Agent orchestrator: bounded model and tool loop with run statistics."""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Sequence
from enum import Enum
from typing import Any

from .config import OrchestratorOptions
from .conversation import ConversationStore
from .errors import ModelClientError, ToolExecutionError
from .model_client import ModelClient
from .models import (
    ChatResult,
    CompletionOptions,
    ConversationMetadata,
    ToolCall,
    ToolDef,
    UsageStats,
)
from .prompts import MAX_ITERATIONS_REPLY, error_reply, format_error_for_user, format_tool_call
from .tools import BaseToolExecutor

logger = logging.getLogger(__name__)

MAX_ITERATIONS_ERROR = "Maximum tool iterations exceeded"


class AgentState(str, Enum):
    AWAITING_INPUT = "awaiting_input"
    MODEL_CALL = "model_call"
    TOOLS_REQUESTED = "tools_requested"
    TOOL_EXECUTION = "tool_execution"
    RESPONSE_READY = "response_ready"
    MAX_ITERATIONS_EXCEEDED = "max_iterations_exceeded"
    ERROR = "error"


TERMINAL_STATES = frozenset(
    {AgentState.RESPONSE_READY, AgentState.MAX_ITERATIONS_EXCEEDED, AgentState.ERROR}
)


class AgentOrchestrator:
    """Drives one conversation through the tool-calling loop.

    Owns exactly one ConversationStore and one ModelClient. ``chat()`` must
    not be called concurrently on the same instance.
    """

    def __init__(
        self,
        model_client: ModelClient,
        tool_executor: BaseToolExecutor,
        tools: Sequence[ToolDef | dict[str, Any]] | None = None,
        options: OrchestratorOptions | None = None,
        conversation: ConversationStore | None = None,
    ) -> None:
        self._model_client = model_client
        self._tool_executor = tool_executor
        self._tools = list(tools) if tools is not None else tool_executor.get_tool_definitions()
        self._options = options or OrchestratorOptions()
        self._conversation = conversation or ConversationStore()
        self._stats = UsageStats()
        self._state = AgentState.AWAITING_INPUT
        logger.info(
            "Agent initialized (conversation=%s, tools=%d, max_tool_iterations=%d)",
            self._conversation.id,
            len(self._tools),
            self._options.max_tool_iterations,
        )

    @property
    def state(self) -> AgentState:
        return self._state

    @property
    def conversation(self) -> ConversationStore:
        return self._conversation

    # ------------------------------------------------------------------
    # Chat loop
    # ------------------------------------------------------------------

    async def chat(self, user_text: str) -> ChatResult:
        """Process one user message. Never raises for model or tool failures."""
        started = time.perf_counter()
        tokens_before, cost_before = self._model_client.get_usage()
        logger.info(
            "Processing user message (%d chars) in conversation %s",
            len(user_text),
            self._conversation.id,
        )

        self._conversation.add_user_message(user_text)
        result = await self._run_loop()

        tokens_after, cost_after = self._model_client.get_usage()
        result.tokens_used = max(0, tokens_after - tokens_before)
        result.cost = max(0.0, cost_after - cost_before)
        self._record_run(result, time.perf_counter() - started)
        return result

    def _completion_options(self) -> CompletionOptions:
        if not self._tools:
            return CompletionOptions()
        return CompletionOptions(tools=self._tools, tool_choice=self._options.tool_choice)

    async def _run_loop(self) -> ChatResult:
        iteration = 0
        requested: list[ToolCall] = []
        executed: list[ToolCall] = []
        final_text = ""
        failure: Exception | None = None
        self._state = AgentState.MODEL_CALL

        while self._state not in TERMINAL_STATES:
            if self._state is AgentState.MODEL_CALL:
                if iteration >= self._options.max_tool_iterations:
                    self._state = AgentState.MAX_ITERATIONS_EXCEEDED
                    continue
                iteration += 1
                if self._options.verbose:
                    logger.debug(
                        "Agent loop iteration %d (%d messages)", iteration, len(self._conversation)
                    )
                try:
                    response = await self._model_client.complete(
                        self._conversation.get_messages(), self._completion_options()
                    )
                except Exception as exc:
                    if not isinstance(exc, ModelClientError):
                        logger.exception("Unexpected model client failure")
                    failure = exc
                    self._state = AgentState.ERROR
                    continue

                if response.tool_calls:
                    requested = response.tool_calls
                    self._conversation.add_assistant_message(response.text, requested)
                    self._state = AgentState.TOOLS_REQUESTED
                else:
                    final_text = response.text or ""
                    self._conversation.add_assistant_message(final_text)
                    self._state = AgentState.RESPONSE_READY

            elif self._state is AgentState.TOOLS_REQUESTED:
                logger.debug(
                    "Tool calls requested: %s", ", ".join(tc.name for tc in requested)
                )
                self._state = AgentState.TOOL_EXECUTION

            elif self._state is AgentState.TOOL_EXECUTION:
                for call in requested:
                    await self._execute_tool_call(call)
                    executed.append(call)
                self._state = AgentState.MODEL_CALL

        if self._state is AgentState.RESPONSE_READY:
            return ChatResult(success=True, message=final_text, tool_calls=executed or None)

        if self._state is AgentState.MAX_ITERATIONS_EXCEEDED:
            logger.warning(
                "Max tool iterations reached (%d) in conversation %s",
                self._options.max_tool_iterations,
                self._conversation.id,
            )
            return ChatResult(
                success=False,
                message=MAX_ITERATIONS_REPLY,
                tool_calls=requested or None,
                error=MAX_ITERATIONS_ERROR,
            )

        logger.error(
            "Agent chat failed in conversation %s: %s", self._conversation.id, failure
        )
        return ChatResult(
            success=False,
            message=error_reply(failure),
            error=format_error_for_user(failure),
        )

    async def _execute_tool_call(self, call: ToolCall) -> None:
        """Run one tool call and append its result (or error) as a tool message."""
        self._stats.tool_calls_executed += 1

        if call.arguments_error:
            logger.error("Tool call %s has unparseable arguments", call.name)
            content = json.dumps({"error": call.arguments_error})
            self._conversation.add_tool_message(call.id, call.name, content)
            return

        log = logger.info if self._options.verbose else logger.debug
        log("Tool call: %s", format_tool_call(call.name, call.arguments))
        try:
            result = await self._tool_executor.execute(call.name, call.arguments)
        except ToolExecutionError as exc:
            content = json.dumps({"error": str(exc)})
        except Exception as exc:
            logger.error("Tool %s raised: %s", call.name, exc)
            content = json.dumps({"error": format_error_for_user(exc)})
        else:
            try:
                content = json.dumps(result, default=str)
            except (TypeError, ValueError) as exc:
                logger.error("Tool %s returned an unserializable result: %s", call.name, exc)
                content = json.dumps({"error": f"Unserializable tool result: {exc}"})
        self._conversation.add_tool_message(call.id, call.name, content)

    def _record_run(self, result: ChatResult, elapsed: float) -> None:
        stats = self._stats
        stats.messages_processed += 1
        stats.total_tokens += result.tokens_used
        stats.total_cost += result.cost
        previous = stats.average_response_time * (stats.messages_processed - 1)
        stats.average_response_time = (previous + elapsed) / stats.messages_processed

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    def get_stats(self) -> UsageStats:
        return self._stats.model_copy()

    def reset_stats(self) -> None:
        self._stats = UsageStats()

    def get_conversation_metadata(self) -> ConversationMetadata:
        return self._conversation.get_metadata()

    def export_conversation(self) -> dict[str, Any]:
        return self._conversation.to_json()

    def clear_conversation(self) -> None:
        self._conversation.clear()
        self._state = AgentState.AWAITING_INPUT
        logger.info("Conversation %s cleared", self._conversation.id)
