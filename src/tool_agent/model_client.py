"""OpenAI chat-completion client with token budgeting, retries and usage accounting."""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from typing import Any

from openai import AsyncOpenAI

from .config import AgentConfig
from .errors import (
    ErrorKind,
    InvalidConfigurationError,
    ModelClientError,
    classify_error,
    is_retryable_error,
    user_message_for,
)
from .models import (
    CompletionOptions,
    CompletionResult,
    Message,
    ToolCall,
    ToolDef,
    TokenUsage,
)
from .retry import RetryExecutor, RetryPolicy
from .tokens import (
    calculate_cost,
    estimate_message_tokens,
    estimate_tokens,
    format_token_usage,
    get_model_token_limit,
    truncate_messages,
)

logger = logging.getLogger(__name__)

INVALID_ARGUMENTS_ERROR = "Invalid JSON arguments for tool call"


class ModelClient:
    """Performs chat-completion exchanges and keeps running token/cost totals.

    ``client`` is any object exposing ``chat.completions.create`` with the
    ``openai.AsyncOpenAI`` signature; by default one is built from the
    config with SDK-level retries disabled, since retries happen here.
    """

    def __init__(
        self,
        config: AgentConfig | None = None,
        client: Any | None = None,
        retry_executor: RetryExecutor | None = None,
    ) -> None:
        self._config = config or AgentConfig.from_env()
        if client is None:
            if not self._config.api_key.strip():
                raise InvalidConfigurationError(
                    "OPENAI_API_KEY is required. Set it in your .env file or environment."
                )
            client = AsyncOpenAI(
                api_key=self._config.api_key,
                timeout=self._config.timeout,
                max_retries=0,
            )
        self._client = client
        self._retry = retry_executor or RetryExecutor()
        self._retry_policy = RetryPolicy(
            max_retries=self._config.max_retries,
            initial_delay=self._config.retry_delay,
            is_retryable=is_retryable_error,
        )
        self._total_tokens = 0
        self._total_cost = 0.0
        logger.info(
            "Model client initialized (model=%s, max_tokens=%d)",
            self._config.model,
            self._config.max_tokens,
        )

    # ------------------------------------------------------------------
    # Usage accounting
    # ------------------------------------------------------------------

    @property
    def total_tokens_used(self) -> int:
        return self._total_tokens

    @property
    def total_cost(self) -> float:
        return self._total_cost

    def get_usage(self) -> tuple[int, float]:
        return self._total_tokens, self._total_cost

    def reset_usage_stats(self) -> None:
        self._total_tokens = 0
        self._total_cost = 0.0
        logger.debug("Usage statistics reset")

    def get_config(self) -> AgentConfig:
        return self._config.model_copy()

    # ------------------------------------------------------------------
    # Wire format
    # ------------------------------------------------------------------

    @staticmethod
    def _to_openai_messages(messages: Sequence[Message]) -> list[dict[str, Any]]:
        return [m.to_chat_dict() for m in messages]

    @staticmethod
    def _to_openai_tools(tools: Sequence[ToolDef | dict[str, Any]]) -> list[dict[str, Any]]:
        return [t.to_tool_schema() if isinstance(t, ToolDef) else t for t in tools]

    @staticmethod
    def _parse_tool_calls(choice_message: Any) -> list[ToolCall]:
        """Map OpenAI tool_calls into ToolCall models."""
        tool_calls: list[ToolCall] = []
        for index, tc in enumerate(getattr(choice_message, "tool_calls", None) or []):
            fn = getattr(tc, "function", None)
            name = getattr(fn, "name", "") if fn is not None else ""
            raw_args = getattr(fn, "arguments", None) if fn is not None else None
            arguments: dict[str, Any] = {}
            arguments_error = None
            if isinstance(raw_args, dict):
                arguments = raw_args
            elif isinstance(raw_args, str) and raw_args.strip():
                try:
                    parsed = json.loads(raw_args)
                except ValueError:
                    parsed = None
                if isinstance(parsed, dict):
                    arguments = parsed
                else:
                    arguments_error = INVALID_ARGUMENTS_ERROR
            tool_calls.append(
                ToolCall(
                    id=getattr(tc, "id", None) or f"call_{index}",
                    name=name or "",
                    arguments=arguments,
                    arguments_error=arguments_error,
                )
            )
        return tool_calls

    def _build_params(
        self,
        messages: Sequence[Message],
        options: CompletionOptions,
        model: str,
        max_tokens: int,
        temperature: float,
    ) -> dict[str, Any]:
        params: dict[str, Any] = {
            "model": model,
            "messages": self._to_openai_messages(messages),
            "max_tokens": max_tokens,
            "temperature": temperature,
        }
        if options.tools:
            params["tools"] = self._to_openai_tools(options.tools)
            if options.tool_choice is not None:
                params["tool_choice"] = options.tool_choice
        if options.stop is not None:
            params["stop"] = options.stop
        if options.presence_penalty is not None:
            params["presence_penalty"] = options.presence_penalty
        if options.frequency_penalty is not None:
            params["frequency_penalty"] = options.frequency_penalty
        return params

    # ------------------------------------------------------------------
    # Completion
    # ------------------------------------------------------------------

    async def complete(
        self,
        messages: Sequence[Message],
        options: CompletionOptions | None = None,
    ) -> CompletionResult:
        """Run one chat completion. Raises ModelClientError on failure."""
        options = options or CompletionOptions()
        model = options.model or self._config.model
        max_tokens = options.max_tokens if options.max_tokens is not None else self._config.max_tokens
        temperature = (
            options.temperature if options.temperature is not None else self._config.temperature
        )

        budget = get_model_token_limit(model) - max_tokens
        prompt_tokens = estimate_message_tokens(messages)
        if prompt_tokens > budget:
            logger.warning(
                "Prompt of ~%d tokens exceeds budget of %d for %s, truncating",
                prompt_tokens,
                budget,
                model,
            )
            messages = truncate_messages(messages, budget)
            prompt_tokens = estimate_message_tokens(messages)

        params = self._build_params(messages, options, model, max_tokens, temperature)
        logger.debug(
            "Creating chat completion (model=%s, messages=%d, ~%d prompt tokens)",
            model,
            len(messages),
            prompt_tokens,
        )

        async def attempt() -> Any:
            try:
                return await self._client.chat.completions.create(**params)
            except Exception as exc:
                raise self._normalize_error(exc, model) from exc

        try:
            completion = await self._retry.run(attempt, self._retry_policy)
        except ModelClientError as exc:
            logger.error("Chat completion failed (model=%s): %s", model, exc.message)
            raise

        choices = getattr(completion, "choices", None) or []
        if not choices:
            raise ModelClientError("No completion choice returned from the model", kind=ErrorKind.UNKNOWN_ERROR)
        choice = choices[0]
        message = choice.message
        text = self._content_text(getattr(message, "content", None))
        tool_calls = self._parse_tool_calls(message)

        usage = self._extract_usage(completion, prompt_tokens, text, tool_calls)
        cost = calculate_cost(usage, model)
        self._total_tokens += usage.total_tokens
        self._total_cost += cost.total_cost

        finish_reason = getattr(choice, "finish_reason", None)
        logger.info(
            "Chat completion successful (model=%s, finish_reason=%s) %s",
            model,
            finish_reason,
            format_token_usage(usage, model),
        )
        return CompletionResult(
            text=text,
            tool_calls=tool_calls,
            usage=usage,
            cost=cost,
            finish_reason=finish_reason,
            model=getattr(completion, "model", None) or model,
        )

    @staticmethod
    def _content_text(content: Any) -> str | None:
        if content is None or isinstance(content, str):
            return content
        if isinstance(content, list):
            # Multi-part content; join text fragments
            return "".join(
                part.get("text", "") if isinstance(part, dict) else str(part) for part in content
            )
        return str(content)

    @staticmethod
    def _extract_usage(
        completion: Any, prompt_estimate: int, text: str | None, tool_calls: list[ToolCall]
    ) -> TokenUsage:
        """Provider usage, falling back to estimates for missing fields."""
        raw = getattr(completion, "usage", None)
        prompt = getattr(raw, "prompt_tokens", None) if raw is not None else None
        completion_tokens = getattr(raw, "completion_tokens", None) if raw is not None else None
        total = getattr(raw, "total_tokens", None) if raw is not None else None

        if not prompt:
            prompt = prompt_estimate
        if completion_tokens is None:
            completion_tokens = estimate_tokens(text)
            if tool_calls:
                completion_tokens += estimate_tokens(
                    json.dumps([tc.model_dump() for tc in tool_calls], default=str)
                )
        if not total:
            total = prompt + completion_tokens
        return TokenUsage(
            prompt_tokens=int(prompt),
            completion_tokens=int(completion_tokens),
            total_tokens=int(total),
        )

    def _normalize_error(self, error: Exception, model: str) -> ModelClientError:
        if isinstance(error, ModelClientError):
            return error
        classified = classify_error(error)
        logger.error(
            "Model provider error (kind=%s, status=%s, type=%s): %s",
            classified.kind.value,
            classified.status_code,
            classified.error_type,
            classified.message,
        )
        return ModelClientError(
            user_message_for(classified, model),
            kind=classified.kind,
            status_code=classified.status_code,
            error_type=classified.error_type,
        )
