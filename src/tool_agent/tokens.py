"""Token estimation, model limits, pricing and budget truncation.

Counts are a character-based approximation (~4 characters per token plus a
10% buffer), good enough for budgeting and cost tracking without a
tokenizer dependency.
"""

from __future__ import annotations

import json
import math
from collections.abc import Sequence
from typing import Any

from .models import Message, TokenCost, TokenUsage

CHARS_PER_TOKEN = 4
MESSAGE_OVERHEAD_TOKENS = 4
LIST_OVERHEAD_TOKENS = 3

DEFAULT_MODEL_TOKEN_LIMIT = 8192
MODEL_TOKEN_LIMITS: dict[str, int] = {
    "gpt-5": 128000,
    "gpt-4-turbo": 128000,
    "gpt-4": 8192,
    "gpt-3.5-turbo": 16385,
}

# USD per 1M tokens
PRICING_FALLBACK_MODEL = "gpt-4-turbo"
MODEL_PRICING: dict[str, dict[str, float]] = {
    "gpt-5": {"input": 10.0, "output": 30.0},
    "gpt-4-turbo": {"input": 10.0, "output": 30.0},
    "gpt-4": {"input": 30.0, "output": 60.0},
    "gpt-3.5-turbo": {"input": 0.5, "output": 1.5},
}


def estimate_tokens(text: str | None) -> int:
    """Rough token count for a text string."""
    if not text:
        return 0
    base = math.ceil(len(text) / CHARS_PER_TOKEN)
    return base + math.ceil(base * 0.1)


def _tool_calls_text(tool_calls: Sequence[Any]) -> str:
    payload = [tc.model_dump() if hasattr(tc, "model_dump") else tc for tc in tool_calls]
    return json.dumps(payload, default=str)


def estimate_message_tokens(messages: Sequence[Message]) -> int:
    """Rough token count for a message list."""
    total = 0
    for m in messages:
        total += MESSAGE_OVERHEAD_TOKENS
        content = m.content
        if isinstance(content, str):
            total += estimate_tokens(content)
        elif content is not None:
            total += estimate_tokens(json.dumps(content, default=str))
        if m.tool_calls:
            total += estimate_tokens(_tool_calls_text(m.tool_calls))
    return total + LIST_OVERHEAD_TOKENS


def get_model_token_limit(model: str) -> int:
    return MODEL_TOKEN_LIMITS.get(model, DEFAULT_MODEL_TOKEN_LIMIT)


def calculate_cost(usage: TokenUsage, model: str) -> TokenCost:
    """Cost of a completion; unknown models are priced as gpt-4-turbo."""
    pricing = MODEL_PRICING.get(model, MODEL_PRICING[PRICING_FALLBACK_MODEL])
    prompt_cost = usage.prompt_tokens / 1_000_000 * pricing["input"]
    completion_cost = usage.completion_tokens / 1_000_000 * pricing["output"]
    return TokenCost(
        prompt_cost=prompt_cost,
        completion_cost=completion_cost,
        total_cost=prompt_cost + completion_cost,
    )


def format_token_usage(usage: TokenUsage, model: str) -> str:
    cost = calculate_cost(usage, model)
    return (
        f"Tokens: {usage.total_tokens} "
        f"(prompt: {usage.prompt_tokens}, completion: {usage.completion_tokens}) "
        f"Cost: ${cost.total_cost:.6f} "
        f"(prompt: ${cost.prompt_cost:.6f}, completion: ${cost.completion_cost:.6f})"
    )


def group_turns(messages: Sequence[Message]) -> list[list[Message]]:
    """Split messages into turns.

    Every non-tool message opens a new turn; tool messages join the turn of
    the assistant message that requested them, so a turn is never split
    between its tool calls and their results.
    """
    turns: list[list[Message]] = []
    for m in messages:
        if m.role == "tool" and turns:
            turns[-1].append(m)
        else:
            turns.append([m])
    return turns


def truncate_messages(
    messages: Sequence[Message],
    max_tokens: int,
    estimator=estimate_message_tokens,
) -> list[Message]:
    """Drop the oldest whole turns until the estimate fits in max_tokens.

    A leading system message and the most recent turn are always kept, even
    when together they exceed the budget.
    """
    if not messages:
        return []
    if messages[0].role == "system":
        head, rest = [messages[0]], list(messages[1:])
    else:
        head, rest = [], list(messages)

    turns = group_turns(rest)
    while len(turns) > 1 and estimator(head + [m for t in turns for m in t]) > max_tokens:
        turns.pop(0)
    return head + [m for t in turns for m in t]
