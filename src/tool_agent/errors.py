"""Error taxonomy and provider-failure classification."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    """Closed set of failure kinds produced at the classification boundary."""

    AUTHENTICATION_FAILED = "authentication_failed"
    RATE_LIMITED = "rate_limited"
    SERVICE_UNAVAILABLE = "service_unavailable"
    MODEL_NOT_FOUND = "model_not_found"
    TRANSIENT_SERVER_ERROR = "transient_server_error"
    CLIENT_ERROR = "client_error"
    NETWORK_ERROR = "network_error"
    UNKNOWN_ERROR = "unknown_error"
    TOOL_EXECUTION_FAILED = "tool_execution_failed"
    MAX_ITERATIONS_EXCEEDED = "max_iterations_exceeded"
    INVALID_CONFIGURATION = "invalid_configuration"

    @property
    def retryable(self) -> bool:
        return self in _RETRYABLE_KINDS


_RETRYABLE_KINDS = frozenset(
    {
        ErrorKind.RATE_LIMITED,
        ErrorKind.SERVICE_UNAVAILABLE,
        ErrorKind.TRANSIENT_SERVER_ERROR,
        ErrorKind.NETWORK_ERROR,
        ErrorKind.UNKNOWN_ERROR,
    }
)

FALLBACK_MODEL = "gpt-4-turbo"

_NETWORK_PATTERN = re.compile(
    r"network|timeout|timed out|econnreset|econnrefused|connection (?:error|reset|refused|aborted)",
    re.IGNORECASE,
)


class AgentError(Exception):
    """Base class for errors raised by the tool agent."""

    kind: ErrorKind = ErrorKind.UNKNOWN_ERROR


class InvalidConfigurationError(AgentError):
    """Static configuration is invalid; raised at construction time only."""

    kind = ErrorKind.INVALID_CONFIGURATION


class ToolExecutionError(AgentError):
    """A tool call could not be completed."""

    kind = ErrorKind.TOOL_EXECUTION_FAILED

    def __init__(self, message: str, tool_name: str = "") -> None:
        super().__init__(message)
        self.tool_name = tool_name


class ModelClientError(AgentError):
    """Normalized failure of a chat-completion call."""

    def __init__(
        self,
        message: str,
        *,
        kind: ErrorKind = ErrorKind.UNKNOWN_ERROR,
        status_code: int | None = None,
        error_type: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.kind = kind
        self.status_code = status_code
        self.error_type = error_type

    @property
    def retryable(self) -> bool:
        return self.kind.retryable

    def to_dict(self) -> dict[str, Any]:
        return {
            "message": self.message,
            "status_code": self.status_code,
            "error_type": self.error_type,
            "kind": self.kind.value,
        }


@dataclass(frozen=True)
class ClassifiedError:
    """Result of classifying an arbitrary exception."""

    kind: ErrorKind
    message: str
    status_code: int | None = None
    error_type: str | None = None

    @property
    def retryable(self) -> bool:
        return self.kind.retryable


def _status_of(error: BaseException) -> int | None:
    for attr in ("status_code", "status"):
        value = getattr(error, attr, None)
        if isinstance(value, int):
            return value
    response = getattr(error, "response", None)
    value = getattr(response, "status_code", None)
    return value if isinstance(value, int) else None


def _message_of(error: BaseException) -> str:
    message = getattr(error, "message", None)
    if isinstance(message, str) and message:
        return message
    body = getattr(error, "body", None)
    if isinstance(body, dict):
        nested = body.get("message")
        if not nested and isinstance(body.get("error"), dict):
            nested = body["error"].get("message")
        if isinstance(nested, str) and nested:
            return nested
    return str(error) or type(error).__name__


def classify_error(error: BaseException) -> ClassifiedError:
    """Map any exception to an ErrorKind.

    Status codes take precedence over message patterns. Unrecognised
    failures are UNKNOWN_ERROR, which is retryable.
    """
    if isinstance(error, ModelClientError):
        return ClassifiedError(error.kind, error.message, error.status_code, error.error_type)

    status = _status_of(error)
    message = _message_of(error)
    error_type = getattr(error, "type", None)
    if not isinstance(error_type, str):
        error_type = None

    if status is not None:
        lowered = message.lower()
        if status == 401:
            kind = ErrorKind.AUTHENTICATION_FAILED
        elif status == 429:
            kind = ErrorKind.RATE_LIMITED
        elif status == 503:
            kind = ErrorKind.SERVICE_UNAVAILABLE
        elif status == 404 and ("model" in lowered or "not found" in lowered):
            kind = ErrorKind.MODEL_NOT_FOUND
        elif 500 <= status <= 599 and status != 501:
            kind = ErrorKind.TRANSIENT_SERVER_ERROR
        elif 400 <= status <= 499:
            kind = ErrorKind.CLIENT_ERROR
        else:
            kind = ErrorKind.UNKNOWN_ERROR
        return ClassifiedError(kind, message, status, error_type)

    if isinstance(error, (TimeoutError, ConnectionError)) or _NETWORK_PATTERN.search(message):
        return ClassifiedError(ErrorKind.NETWORK_ERROR, message, None, error_type)

    return ClassifiedError(ErrorKind.UNKNOWN_ERROR, message, None, error_type)


def is_retryable_error(error: BaseException) -> bool:
    """Retry predicate used by ModelClient's retry policy."""
    return classify_error(error).retryable


def user_message_for(classified: ClassifiedError, model: str) -> str:
    """User-facing text for a classified provider failure."""
    kind = classified.kind
    if kind is ErrorKind.AUTHENTICATION_FAILED:
        return "Invalid API key. Please check your OPENAI_API_KEY environment variable."
    if kind is ErrorKind.RATE_LIMITED:
        return "Rate limit exceeded. Please try again later."
    if kind is ErrorKind.SERVICE_UNAVAILABLE:
        return "OpenAI service temporarily unavailable. Please try again later."
    if kind is ErrorKind.MODEL_NOT_FOUND:
        return (
            f"Model '{model}' not found. It may not be available yet. "
            f"Please use '{FALLBACK_MODEL}' instead."
        )
    if kind is ErrorKind.NETWORK_ERROR:
        return f"Network error while contacting the model provider: {classified.message}"
    if classified.status_code is not None:
        return f"OpenAI API error: {classified.message}"
    return classified.message
