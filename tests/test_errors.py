"""Unit tests for provider error classification and user-facing messages."""
from __future__ import annotations

import unittest

import httpx
import openai

from src.tool_agent.errors import (
    FALLBACK_MODEL,
    ErrorKind,
    ModelClientError,
    classify_error,
    is_retryable_error,
    user_message_for,
)
from tests.fakes import FakeStatusError

_REQUEST = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")


class TestClassifyError(unittest.TestCase):
    def test_status_code_table(self) -> None:
        cases = [
            (401, "Incorrect API key", ErrorKind.AUTHENTICATION_FAILED, False),
            (429, "Too many requests", ErrorKind.RATE_LIMITED, True),
            (503, "Overloaded", ErrorKind.SERVICE_UNAVAILABLE, True),
            (404, "The model `gpt-9` does not exist", ErrorKind.MODEL_NOT_FOUND, False),
            (404, "Resource not found", ErrorKind.MODEL_NOT_FOUND, False),
            (404, "Gone fishing", ErrorKind.CLIENT_ERROR, False),
            (500, "Internal error", ErrorKind.TRANSIENT_SERVER_ERROR, True),
            (502, "Bad gateway", ErrorKind.TRANSIENT_SERVER_ERROR, True),
            (501, "Not implemented", ErrorKind.UNKNOWN_ERROR, True),
            (400, "Invalid request", ErrorKind.CLIENT_ERROR, False),
            (422, "Unprocessable", ErrorKind.CLIENT_ERROR, False),
        ]
        for status, message, kind, retryable in cases:
            with self.subTest(status=status, message=message):
                classified = classify_error(FakeStatusError(status, message))
                self.assertIs(classified.kind, kind)
                self.assertEqual(classified.status_code, status)
                self.assertEqual(classified.retryable, retryable)
                self.assertEqual(is_retryable_error(FakeStatusError(status, message)), retryable)

    def test_network_message_patterns(self) -> None:
        for message in ("Network unreachable", "Request timed out", "read ECONNRESET", "connect ECONNREFUSED"):
            with self.subTest(message=message):
                classified = classify_error(RuntimeError(message))
                self.assertIs(classified.kind, ErrorKind.NETWORK_ERROR)
                self.assertTrue(classified.retryable)

    def test_builtin_network_exceptions(self) -> None:
        self.assertIs(classify_error(TimeoutError()).kind, ErrorKind.NETWORK_ERROR)
        self.assertIs(classify_error(ConnectionResetError()).kind, ErrorKind.NETWORK_ERROR)

    def test_unknown_errors_are_retryable(self) -> None:
        classified = classify_error(ValueError("something odd"))
        self.assertIs(classified.kind, ErrorKind.UNKNOWN_ERROR)
        self.assertTrue(classified.retryable)

    def test_model_client_error_keeps_its_kind(self) -> None:
        error = ModelClientError("nope", kind=ErrorKind.CLIENT_ERROR, status_code=400)
        self.assertIs(classify_error(error).kind, ErrorKind.CLIENT_ERROR)
        self.assertFalse(is_retryable_error(error))

    def test_openai_sdk_exceptions(self) -> None:
        rate_limited = openai.RateLimitError(
            "Rate limit reached",
            response=httpx.Response(429, request=_REQUEST),
            body=None,
        )
        self.assertIs(classify_error(rate_limited).kind, ErrorKind.RATE_LIMITED)
        self.assertIs(
            classify_error(openai.APIConnectionError(request=_REQUEST)).kind,
            ErrorKind.NETWORK_ERROR,
        )
        self.assertIs(
            classify_error(openai.APITimeoutError(request=_REQUEST)).kind,
            ErrorKind.NETWORK_ERROR,
        )


class TestUserMessages(unittest.TestCase):
    def test_model_not_found_suggests_fallback(self) -> None:
        classified = classify_error(FakeStatusError(404, "model not found"))
        text = user_message_for(classified, "gpt-5")
        self.assertIn("gpt-5", text)
        self.assertIn(FALLBACK_MODEL, text)

    def test_authentication_mentions_api_key(self) -> None:
        text = user_message_for(classify_error(FakeStatusError(401, "bad")), "gpt-4")
        self.assertIn("OPENAI_API_KEY", text)

    def test_retryable_flags_on_kinds(self) -> None:
        self.assertFalse(ErrorKind.TOOL_EXECUTION_FAILED.retryable)
        self.assertFalse(ErrorKind.INVALID_CONFIGURATION.retryable)
        self.assertTrue(ErrorKind.NETWORK_ERROR.retryable)


if __name__ == "__main__":
    unittest.main()
