"""Data models for messages, tools, usage and chat results."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Messages
# ---------------------------------------------------------------------------

Role = Literal["system", "user", "assistant", "tool"]


class ToolCall(BaseModel):
    """A structured request from the model to invoke a tool."""

    id: str
    name: str
    arguments: dict[str, Any] = Field(default_factory=dict)
    # Set when the model sent arguments that are not a JSON object.
    arguments_error: str | None = None

    def to_openai(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": "function",
            "function": {"name": self.name, "arguments": json.dumps(self.arguments)},
        }


class Message(BaseModel):
    """A single message in a conversation."""

    role: Role
    content: str | None = None
    tool_calls: list[ToolCall] | None = None
    tool_call_id: str | None = None
    tool_name: str | None = None

    def to_chat_dict(self) -> dict[str, Any]:
        """Format for the chat completions API."""
        out: dict[str, Any] = {"role": self.role, "content": self.content}
        if self.role != "assistant" and out["content"] is None:
            out["content"] = ""
        if self.tool_calls:
            out["tool_calls"] = [tc.to_openai() for tc in self.tool_calls]
        if self.tool_call_id is not None:
            out["tool_call_id"] = self.tool_call_id
        return out


# ---------------------------------------------------------------------------
# Tools
# ---------------------------------------------------------------------------


@dataclass
class ToolResult:
    """Result of a single tool execution."""

    success: bool
    content: Any = None
    error: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class ToolDef:
    """Tool definition for the orchestrator and LLM."""

    name: str
    description: str
    parameters: dict[str, Any]  # JSON Schema

    def to_tool_schema(self) -> dict[str, Any]:
        """Standard function-calling schema (OpenAI-style)."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }


# ---------------------------------------------------------------------------
# Model calls
# ---------------------------------------------------------------------------


class TokenUsage(BaseModel):
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class TokenCost(BaseModel):
    """Cost breakdown in USD."""

    prompt_cost: float = 0.0
    completion_cost: float = 0.0
    total_cost: float = 0.0


class CompletionOptions(BaseModel):
    """Per-request overrides for a chat completion."""

    model: str | None = None
    max_tokens: int | None = None
    temperature: float | None = None
    tools: list[ToolDef | dict[str, Any]] | None = None
    tool_choice: str | dict[str, Any] | None = None
    stop: str | list[str] | None = None
    presence_penalty: float | None = None
    frequency_penalty: float | None = None


class CompletionResult(BaseModel):
    """Normalized outcome of one chat-completion exchange."""

    text: str | None = None
    tool_calls: list[ToolCall] = Field(default_factory=list)
    usage: TokenUsage = Field(default_factory=TokenUsage)
    cost: TokenCost = Field(default_factory=TokenCost)
    finish_reason: str | None = None
    model: str


# ---------------------------------------------------------------------------
# Conversation and agent
# ---------------------------------------------------------------------------


class ConversationMetadata(BaseModel):
    id: str
    started_at: datetime
    last_interaction_at: datetime
    message_count: int = 0
    # Estimated tokens currently held, system message included.
    total_tokens: int = 0


class UsageStats(BaseModel):
    """Run-level statistics; average_response_time is in seconds."""

    total_tokens: int = 0
    total_cost: float = 0.0
    messages_processed: int = 0
    tool_calls_executed: int = 0
    average_response_time: float = 0.0


class ChatResult(BaseModel):
    """Outcome of one AgentOrchestrator.chat() call."""

    success: bool
    message: str | None = None
    tool_calls: list[ToolCall] | None = None
    error: str | None = None
    tokens_used: int = 0
    cost: float = 0.0
