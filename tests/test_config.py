"""Unit tests for AgentConfig loading and validation."""
from __future__ import annotations

import unittest

from src.tool_agent.config import AgentConfig
from src.tool_agent.errors import InvalidConfigurationError


class TestAgentConfig(unittest.TestCase):
    def test_defaults(self) -> None:
        config = AgentConfig(api_key="k")
        self.assertEqual(config.model, "gpt-4-turbo")
        self.assertEqual(config.max_tokens, 4096)
        self.assertEqual(config.temperature, 0.7)
        self.assertEqual(config.max_retries, 3)
        self.assertEqual(config.retry_delay, 1.0)
        self.assertEqual(config.timeout, 60.0)

    def test_from_env_mapping(self) -> None:
        config = AgentConfig.from_env(
            {
                "OPENAI_API_KEY": "sk-test",
                "OPENAI_MODEL": "gpt-4",
                "OPENAI_MAX_TOKENS": "512",
                "OPENAI_TEMPERATURE": "0.2",
                "OPENAI_MAX_RETRIES": "1",
                "OPENAI_RETRY_DELAY": "0.5",
                "OPENAI_TIMEOUT": "30",
            }
        )
        self.assertEqual(config.api_key, "sk-test")
        self.assertEqual(config.model, "gpt-4")
        self.assertEqual(config.max_tokens, 512)
        self.assertEqual(config.temperature, 0.2)
        self.assertEqual(config.max_retries, 1)
        self.assertEqual(config.retry_delay, 0.5)
        self.assertEqual(config.timeout, 30.0)

    def test_blank_env_values_use_defaults(self) -> None:
        config = AgentConfig.from_env({"OPENAI_API_KEY": "k", "OPENAI_MODEL": "  "})
        self.assertEqual(config.model, "gpt-4-turbo")

    def test_api_key_hidden_from_repr(self) -> None:
        self.assertNotIn("sk-secret", repr(AgentConfig(api_key="sk-secret")))

    def test_out_of_range_values_rejected(self) -> None:
        cases = [
            {"max_tokens": 0},
            {"max_tokens": 200000},
            {"temperature": 2.5},
            {"temperature": -0.1},
            {"max_retries": -1},
            {"max_retries": 11},
            {"retry_delay": -1},
            {"timeout": 0},
            {"unknown_field": 1},
        ]
        for overrides in cases:
            with self.subTest(**overrides):
                with self.assertRaises(InvalidConfigurationError):
                    AgentConfig(api_key="k", **overrides)

    def test_invalid_env_value_rejected(self) -> None:
        with self.assertRaises(InvalidConfigurationError) as ctx:
            AgentConfig.from_env({"OPENAI_API_KEY": "k", "OPENAI_MAX_TOKENS": "lots"})
        self.assertIn("max_tokens", str(ctx.exception))

    def test_config_is_immutable(self) -> None:
        config = AgentConfig(api_key="k")
        with self.assertRaises(Exception):
            config.model = "gpt-4"


if __name__ == "__main__":
    unittest.main()
