"""System prompt loading and user-facing text helpers."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from .config import DEFAULT_SYSTEM_PROMPT_PATH

FALLBACK_SYSTEM_PROMPT = (
    "You are a helpful assistant for a satellite imagery platform. "
    "Use only the tools listed with each request, say so when none of them fits, "
    "explain what you are doing, and always confirm before placing orders."
)

MAX_ITERATIONS_REPLY = (
    "I've made several attempts to help with your request, but I'm having trouble "
    "completing it. Could you please rephrase or break down your request?"
)

_cached_prompt: str | None = None


def _read_file(path: Path) -> str:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError:
        return ""
    return text.strip()


def get_default_system_prompt() -> str:
    """Return the default system prompt text, cached after first read.

    Falls back to a built-in prompt when the prompt file is missing or empty.
    """
    global _cached_prompt
    if _cached_prompt is None:
        _cached_prompt = _read_file(DEFAULT_SYSTEM_PROMPT_PATH)
    return _cached_prompt or FALLBACK_SYSTEM_PROMPT


def format_error_for_user(error: BaseException | str | None) -> str:
    if isinstance(error, BaseException) and str(error):
        return str(error)
    if isinstance(error, str) and error:
        return error
    return "An unexpected error occurred. Please try again."


def error_reply(error: BaseException | str | None) -> str:
    return (
        f"I encountered an error: {format_error_for_user(error)}\n\n"
        "Please try again or rephrase your request."
    )


_TOOL_DESCRIPTIONS = {
    "search_archives": "Searching for archive imagery",
    "get_archive_by_id": "Retrieving archive item details",
    "order_archive_imagery": "Placing order for archive imagery",
    "order_tasking_imagery": "Placing tasking order for new satellite imagery",
    "check_tasking_feasibility": "Checking tasking feasibility",
    "predict_satellite_passes": "Predicting satellite passes",
    "list_orders": "Retrieving orders",
    "get_order_details": "Getting order details",
    "get_pricing_info": "Retrieving pricing information",
    "get_time": "Getting the current time",
}


def format_tool_call(tool_name: str, params: dict[str, Any]) -> str:
    """Short human-readable description of a tool call, for logs."""
    label = _TOOL_DESCRIPTIONS.get(tool_name, f"Calling {tool_name}")
    if not params:
        return f"{label}..."
    try:
        rendered = json.dumps(params, default=str, sort_keys=True)
    except (TypeError, ValueError):
        rendered = str(params)
    if len(rendered) > 120:
        rendered = rendered[:117] + "..."
    return f"{label} with {rendered}..."
