"""
Token bucket rate limiter for JSON-RPC requests.

Public RPC endpoints throttle aggressively; a reserve sweep fires one
request per pool at once, so requests are metered client-side.
"""

import asyncio
from dataclasses import dataclass, field

from cyclearb.config.constants import DEFAULT_RPC_REQUESTS_PER_SECOND
from cyclearb.utils.time import get_timestamp_ms


@dataclass
class TokenBucket:
    """
    Token bucket implementation for rate limiting.

    Tokens are added at a constant rate up to a maximum capacity.
    Each request consumes one or more tokens.
    """

    capacity: int
    refill_rate: float  # tokens per second
    tokens: float = field(init=False)
    last_refill: int = field(init=False)  # milliseconds
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock, init=False, repr=False)

    def __post_init__(self) -> None:
        """Initialize with full bucket."""
        self.tokens = float(self.capacity)
        self.last_refill = get_timestamp_ms()

    def _refill(self) -> None:
        """Add tokens based on elapsed time."""
        now = get_timestamp_ms()
        elapsed_seconds = (now - self.last_refill) / 1000.0

        self.tokens = min(
            self.capacity,
            self.tokens + (elapsed_seconds * self.refill_rate),
        )
        self.last_refill = now

    async def acquire(self, tokens: int = 1) -> None:
        """
        Acquire tokens, waiting if necessary.

        Args:
            tokens: Number of tokens to acquire.
        """
        async with self._lock:
            self._refill()

            if self.tokens < tokens:
                wait_seconds = (tokens - self.tokens) / self.refill_rate
                await asyncio.sleep(wait_seconds)
                self._refill()

            self.tokens -= tokens

    async def try_acquire(self, tokens: int = 1) -> bool:
        """
        Try to acquire tokens without waiting.

        Args:
            tokens: Number of tokens to acquire.

        Returns:
            True if tokens were acquired, False if not enough available.
        """
        async with self._lock:
            self._refill()

            if self.tokens >= tokens:
                self.tokens -= tokens
                return True
            return False


class RateLimiter:
    """
    Request rate limiter for the RPC client.

    Burst capacity is twice the per-second rate so a full reserve sweep
    of a small catalog goes out without queueing.
    """

    def __init__(self, requests_per_second: int = DEFAULT_RPC_REQUESTS_PER_SECOND) -> None:
        """
        Initialize rate limiter.

        Args:
            requests_per_second: Sustained request ceiling.
        """
        self._bucket = TokenBucket(
            capacity=requests_per_second * 2,
            refill_rate=float(requests_per_second),
        )

    async def acquire(self, weight: int = 1) -> None:
        """Wait for permission to send `weight` requests."""
        await self._bucket.acquire(weight)

    async def try_acquire(self, weight: int = 1) -> bool:
        """Take permission only if immediately available."""
        return await self._bucket.try_acquire(weight)

    @property
    def available(self) -> float:
        """Approximate number of available request tokens."""
        return self._bucket.tokens
