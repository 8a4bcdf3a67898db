"""Unit tests for token estimation, pricing and budget truncation."""
from __future__ import annotations

import unittest

from src.tool_agent.models import Message, TokenUsage, ToolCall
from src.tool_agent.tokens import (
    calculate_cost,
    estimate_message_tokens,
    estimate_tokens,
    format_token_usage,
    get_model_token_limit,
    group_turns,
    truncate_messages,
)


class TestEstimates(unittest.TestCase):
    def test_estimate_tokens(self) -> None:
        self.assertEqual(estimate_tokens(""), 0)
        self.assertEqual(estimate_tokens(None), 0)
        self.assertEqual(estimate_tokens("abcd"), 2)
        self.assertEqual(estimate_tokens("a" * 400), 110)

    def test_message_overheads(self) -> None:
        self.assertEqual(estimate_message_tokens([]), 3)
        self.assertEqual(estimate_message_tokens([Message(role="user", content="abcd")]), 9)

    def test_tool_calls_count_towards_estimate(self) -> None:
        plain = Message(role="assistant", content=None)
        with_calls = Message(
            role="assistant",
            tool_calls=[ToolCall(id="c1", name="search_archives", arguments={"query": "port"})],
        )
        self.assertGreater(estimate_message_tokens([with_calls]), estimate_message_tokens([plain]))


class TestPricing(unittest.TestCase):
    def test_known_model_limits(self) -> None:
        self.assertEqual(get_model_token_limit("gpt-4"), 8192)
        self.assertEqual(get_model_token_limit("gpt-4-turbo"), 128000)
        self.assertEqual(get_model_token_limit("mystery-model"), 8192)

    def test_cost_per_million_tokens(self) -> None:
        cost = calculate_cost(TokenUsage(prompt_tokens=1_000_000, completion_tokens=1_000_000), "gpt-4")
        self.assertAlmostEqual(cost.prompt_cost, 30.0)
        self.assertAlmostEqual(cost.completion_cost, 60.0)
        self.assertAlmostEqual(cost.total_cost, 90.0)

    def test_unknown_model_priced_as_fallback(self) -> None:
        usage = TokenUsage(prompt_tokens=1000, completion_tokens=500, total_tokens=1500)
        self.assertEqual(calculate_cost(usage, "mystery-model"), calculate_cost(usage, "gpt-4-turbo"))

    def test_format_token_usage(self) -> None:
        text = format_token_usage(TokenUsage(prompt_tokens=10, completion_tokens=20, total_tokens=30), "gpt-4")
        self.assertIn("Tokens: 30", text)
        self.assertIn("$", text)


class TestTruncation(unittest.TestCase):
    def setUp(self) -> None:
        self.messages = [
            Message(role="system", content="sys"),
            Message(role="user", content="old question " + "x" * 400),
            Message(
                role="assistant",
                tool_calls=[ToolCall(id="c1", name="search_archives", arguments={})],
            ),
            Message(role="tool", content="{}", tool_call_id="c1", tool_name="search_archives"),
            Message(role="assistant", content="old answer " + "y" * 400),
            Message(role="user", content="new question"),
        ]

    def test_group_turns_keeps_tool_results_with_request(self) -> None:
        turns = group_turns(self.messages[1:])
        self.assertEqual([[m.role for m in t] for t in turns],
                         [["user"], ["assistant", "tool"], ["assistant"], ["user"]])

    def test_fits_untouched(self) -> None:
        self.assertEqual(truncate_messages(self.messages, 10_000), self.messages)

    def test_drops_oldest_turns_first(self) -> None:
        kept = truncate_messages(self.messages, 60)
        self.assertEqual(kept[0].role, "system")
        self.assertEqual(kept[-1].content, "new question")
        self.assertLessEqual(estimate_message_tokens(kept), 60)
        for i, m in enumerate(kept):
            if m.role == "tool":
                self.assertTrue(kept[i - 1].tool_calls)

    def test_latest_turn_kept_even_when_over_budget(self) -> None:
        kept = truncate_messages(self.messages, 1)
        self.assertEqual([m.role for m in kept], ["system", "user"])

    def test_empty(self) -> None:
        self.assertEqual(truncate_messages([], 100), [])


if __name__ == "__main__":
    unittest.main()
