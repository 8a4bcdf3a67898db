"""Unit tests for system prompt loading and user-facing text helpers."""
from __future__ import annotations

import unittest
from pathlib import Path
from unittest.mock import patch

from src.tool_agent import prompts
from src.tool_agent.config import DEFAULT_SYSTEM_PROMPT_PATH


class TestSystemPrompt(unittest.TestCase):
    def setUp(self) -> None:
        patcher = patch.object(prompts, "_cached_prompt", None)
        patcher.start()
        self.addCleanup(patcher.stop)

    def test_shipped_prompt_is_loaded(self) -> None:
        text = prompts.get_default_system_prompt()
        self.assertEqual(text, DEFAULT_SYSTEM_PROMPT_PATH.read_text(encoding="utf-8").strip())
        self.assertNotEqual(text, prompts.FALLBACK_SYSTEM_PROMPT)
        self.assertIn("Use only those tools", text)

    def test_missing_file_uses_fallback(self) -> None:
        with patch.object(prompts, "DEFAULT_SYSTEM_PROMPT_PATH", Path("/nonexistent/prompt.md")):
            self.assertEqual(prompts.get_default_system_prompt(), prompts.FALLBACK_SYSTEM_PROMPT)

    def test_prompt_is_read_once(self) -> None:
        first = prompts.get_default_system_prompt()
        with patch.object(prompts, "DEFAULT_SYSTEM_PROMPT_PATH", Path("/nonexistent/prompt.md")):
            self.assertEqual(prompts.get_default_system_prompt(), first)


class TestUserText(unittest.TestCase):
    def test_error_reply(self) -> None:
        reply = prompts.error_reply(RuntimeError("quota exhausted"))
        self.assertTrue(reply.startswith("I encountered an error: quota exhausted"))
        self.assertIn("unexpected error", prompts.error_reply(None))

    def test_format_tool_call(self) -> None:
        self.assertEqual(prompts.format_tool_call("get_time", {}), "Getting the current time...")
        described = prompts.format_tool_call("search_archives", {"query": "x" * 300})
        self.assertTrue(described.startswith("Searching for archive imagery with "))
        self.assertLess(len(described), 200)
        self.assertEqual(prompts.format_tool_call("custom", {}), "Calling custom...")


if __name__ == "__main__":
    unittest.main()
