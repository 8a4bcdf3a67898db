"""Bounded retries with exponential backoff for async operations."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

from .errors import InvalidConfigurationError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """How often and how patiently to retry. Delays are in seconds.

    ``is_retryable`` is a pure predicate over the raised exception; ``None``
    retries every failure.
    """

    max_retries: int = 3
    initial_delay: float = 1.0
    max_delay: float = 30.0
    backoff_multiplier: float = 2.0
    is_retryable: Callable[[BaseException], bool] | None = None

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise InvalidConfigurationError("max_retries must be >= 0")
        if self.initial_delay < 0 or self.max_delay < 0:
            raise InvalidConfigurationError("retry delays must be >= 0")
        if self.backoff_multiplier < 1:
            raise InvalidConfigurationError("backoff_multiplier must be >= 1")

    def should_retry(self, error: BaseException) -> bool:
        return self.is_retryable is None or self.is_retryable(error)


class RetryExecutor:
    """Runs an operation up to ``max_retries + 1`` times."""

    def __init__(self, sleep: Callable[[float], Awaitable[None]] = asyncio.sleep) -> None:
        self._sleep = sleep
        self.attempts = 0

    async def run(
        self,
        operation: Callable[[], Awaitable[T]],
        policy: RetryPolicy | None = None,
    ) -> T:
        policy = policy or RetryPolicy()
        delay = policy.initial_delay
        self.attempts = 0

        while True:
            self.attempts += 1
            try:
                result = await operation()
            except Exception as exc:
                exhausted = self.attempts > policy.max_retries
                if exhausted or not policy.should_retry(exc):
                    if exhausted and policy.max_retries > 0:
                        logger.error(
                            "Operation failed after %d attempts: %s", self.attempts, exc
                        )
                    else:
                        logger.debug(
                            "Operation failed on attempt %d, not retrying: %s",
                            self.attempts,
                            exc,
                        )
                    raise

                wait = min(delay, policy.max_delay)
                logger.warning(
                    "Attempt %d/%d failed, retrying in %.2fs: %s",
                    self.attempts,
                    policy.max_retries + 1,
                    wait,
                    exc,
                )
                await self._sleep(wait)
                delay *= policy.backoff_multiplier
                continue

            if self.attempts > 1:
                logger.info("Operation succeeded after %d attempts", self.attempts)
            return result
