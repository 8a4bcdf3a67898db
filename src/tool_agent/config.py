"""Agent configuration: paths, defaults and validated settings."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from main_config import (
    DEFAULT_SYSTEM_PROMPT_PATH as _DEFAULT_SYSTEM_PROMPT_PATH,
    PROMPTS_DIR as _PROMPTS_DIR,
)

from .errors import InvalidConfigurationError

logger = logging.getLogger(__name__)

PROMPTS_DIR = Path(_PROMPTS_DIR)
DEFAULT_SYSTEM_PROMPT_PATH = Path(_DEFAULT_SYSTEM_PROMPT_PATH)

DEFAULT_MODEL = "gpt-4-turbo"
DEFAULT_MAX_TOKENS = 4096
DEFAULT_TEMPERATURE = 0.7
DEFAULT_MAX_RETRIES = 3
DEFAULT_RETRY_DELAY = 1.0
DEFAULT_TIMEOUT = 60.0
DEFAULT_MAX_TOOL_ITERATIONS = 5
DEFAULT_MAX_MESSAGES = 50


def _validation_summary(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        field = ".".join(str(p) for p in err.get("loc", ())) or "config"
        parts.append(f"{field}: {err.get('msg', 'invalid value')}")
    return "; ".join(parts)


class _ValidatedModel(BaseModel):
    """Base for settings objects whose validation failures surface as InvalidConfigurationError."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    def __init__(self, **data: Any) -> None:
        try:
            super().__init__(**data)
        except ValidationError as exc:
            raise InvalidConfigurationError(
                f"Invalid {type(self).__name__}: {_validation_summary(exc)}"
            ) from exc


class AgentConfig(_ValidatedModel):
    """Model-call settings. Durations are in seconds."""

    api_key: str = Field(default="", repr=False, description="OpenAI API key.")
    model: str = Field(default=DEFAULT_MODEL, min_length=1)
    max_tokens: int = Field(default=DEFAULT_MAX_TOKENS, ge=1, le=128000)
    temperature: float = Field(default=DEFAULT_TEMPERATURE, ge=0.0, le=2.0)
    max_retries: int = Field(default=DEFAULT_MAX_RETRIES, ge=0, le=10)
    retry_delay: float = Field(default=DEFAULT_RETRY_DELAY, ge=0.0, le=60.0)
    timeout: float = Field(default=DEFAULT_TIMEOUT, ge=1.0, le=600.0)

    @classmethod
    def from_env(cls, env: dict[str, str] | None = None) -> AgentConfig:
        """Build a config from OPENAI_* environment variables (and .env)."""
        if env is None:
            load_dotenv()
            env = dict(os.environ)

        data: dict[str, Any] = {"api_key": env.get("OPENAI_API_KEY", "")}
        mapping = {
            "OPENAI_MODEL": "model",
            "OPENAI_MAX_TOKENS": "max_tokens",
            "OPENAI_TEMPERATURE": "temperature",
            "OPENAI_MAX_RETRIES": "max_retries",
            "OPENAI_RETRY_DELAY": "retry_delay",
            "OPENAI_TIMEOUT": "timeout",
        }
        for env_name, field_name in mapping.items():
            raw = env.get(env_name)
            if raw is not None and raw.strip():
                data[field_name] = raw.strip()

        config = cls(**data)
        logger.info(
            "Agent configuration loaded: model=%s max_tokens=%d temperature=%.2f max_retries=%d",
            config.model,
            config.max_tokens,
            config.temperature,
            config.max_retries,
        )
        return config


class OrchestratorOptions(_ValidatedModel):
    """Options for the agent loop."""

    max_tool_iterations: int = Field(default=DEFAULT_MAX_TOOL_ITERATIONS, ge=1, le=100)
    tool_choice: str | dict[str, Any] | None = "auto"
    verbose: bool = False
