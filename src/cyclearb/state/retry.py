"""
Bounded retry policy for chain reads.

Failures come back as a typed FetchOutcome carrying the attempt count,
so callers branch on a value instead of unwinding exceptions.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Generic, TypeVar

from cyclearb.config.constants import (
    DEFAULT_MAX_RETRIES,
    DEFAULT_RETRY_BACKOFF_MULTIPLIER,
    DEFAULT_RETRY_BACKOFF_SECONDS,
)
from cyclearb.core.errors import NetworkError


logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(slots=True, frozen=True)
class FetchOutcome(Generic[T]):
    """Result of a retried operation: a value, or the last error."""

    value: T | None
    error: NetworkError | None
    attempts: int

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(slots=True, frozen=True)
class RetryPolicy:
    """
    Fixed attempt ceiling with exponential backoff between attempts.

    Only NetworkError is retried; anything else is a bug and propagates.
    """

    max_attempts: int = DEFAULT_MAX_RETRIES
    backoff_seconds: float = DEFAULT_RETRY_BACKOFF_SECONDS
    backoff_multiplier: float = DEFAULT_RETRY_BACKOFF_MULTIPLIER

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

    def delay_for(self, attempt: int) -> float:
        """Delay after the given (1-based) failed attempt."""
        return self.backoff_seconds * self.backoff_multiplier ** (attempt - 1)

    async def run(self, operation: Callable[[], Awaitable[T]]) -> FetchOutcome[T]:
        """
        Run `operation` until it succeeds or attempts run out.

        Args:
            operation: Zero-argument coroutine factory.

        Returns:
            Outcome with the value on success, or the last NetworkError.
        """
        last_error: NetworkError | None = None

        for attempt in range(1, self.max_attempts + 1):
            try:
                value = await operation()
            except NetworkError as e:
                last_error = e
                logger.debug(f"Attempt {attempt}/{self.max_attempts} failed: {e}")
                if attempt < self.max_attempts:
                    await asyncio.sleep(self.delay_for(attempt))
            else:
                return FetchOutcome(value=value, error=None, attempts=attempt)

        return FetchOutcome(value=None, error=last_error, attempts=self.max_attempts)
