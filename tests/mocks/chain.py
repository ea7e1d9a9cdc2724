"""
Mock chain reader, sink and gateway for testing.

Simulates JSON-RPC reserve reads without network calls.
"""

import asyncio
from collections import defaultdict
from collections.abc import Mapping

from cyclearb.core.errors import NetworkError
from cyclearb.core.types import (
    ArbitrageOpportunity,
    ExecutionReceipt,
    ExecutionRequest,
    ReserveSnapshot,
    StateSnapshot,
)
from cyclearb.utils.math import to_base_units


def make_snapshot(
    block: int,
    reserves: Mapping[str, tuple[float, float]],
    stale: frozenset[str] = frozenset(),
) -> StateSnapshot:
    """Build a snapshot from token-unit reserve pairs."""
    return StateSnapshot(
        block_number=block,
        reserves={
            pool_id: ReserveSnapshot(
                pool_id=pool_id, reserve_a=a, reserve_b=b, observed_block=block
            )
            for pool_id, (a, b) in reserves.items()
        },
        stale=stale,
    )


class MockChainReader:
    """
    Mock chain reader for testing.

    Serves configurable reserves with optional failures and latency.
    """

    def __init__(
        self,
        block: int = 1,
        reserves: Mapping[str, tuple[float, float]] | None = None,
        decimals: int = 18,
        latency_ms: int = 0,
    ) -> None:
        """
        Initialize mock reader.

        Args:
            block: Starting block height.
            reserves: Token-unit (reserve_a, reserve_b) per pool.
            decimals: Decimals used to encode raw reserves.
            latency_ms: Simulated latency per call in milliseconds.
        """
        self.block = block
        self.latency_ms = latency_ms
        self._decimals = decimals
        self._raw: dict[str, tuple[int, int, int]] = {}
        self._pool_failures: dict[str, int] = {}
        self.block_failures = 0

        self.block_calls = 0
        self.reserve_calls: dict[str, int] = defaultdict(int)

        for pool_id, (a, b) in (reserves or {}).items():
            self.set_reserves(pool_id, a, b)

    def set_reserves(self, pool_id: str, reserve_a: float, reserve_b: float) -> None:
        """Set token-unit reserves for a pool."""
        self._raw[pool_id] = (
            to_base_units(reserve_a, self._decimals),
            to_base_units(reserve_b, self._decimals),
            self.block,
        )

    def advance(self, blocks: int = 1) -> int:
        """Move the chain head forward."""
        self.block += blocks
        return self.block

    def fail_pool(self, pool_id: str, times: int = -1) -> None:
        """Make reserve reads of a pool fail; -1 fails forever."""
        self._pool_failures[pool_id] = times

    @property
    def total_reserve_calls(self) -> int:
        return sum(self.reserve_calls.values())

    async def _delay(self) -> None:
        if self.latency_ms:
            await asyncio.sleep(self.latency_ms / 1000)

    async def get_block_number(self) -> int:
        """Mock block height."""
        self.block_calls += 1
        await self._delay()
        if self.block_failures:
            self.block_failures -= 1
            raise NetworkError("connection reset")
        return self.block

    async def get_reserves(self, pool_id: str) -> tuple[int, int, int]:
        """Mock getReserves()."""
        self.reserve_calls[pool_id] += 1
        await self._delay()

        remaining = self._pool_failures.get(pool_id, 0)
        if remaining:
            if remaining > 0:
                self._pool_failures[pool_id] = remaining - 1
            raise NetworkError(f"timeout reading {pool_id}")

        if pool_id not in self._raw:
            raise NetworkError(f"unknown pool {pool_id}", code=-32000)
        return self._raw[pool_id]


class RecordingSink:
    """Opportunity sink that keeps records in memory."""

    def __init__(self) -> None:
        self.opportunities: list[ArbitrageOpportunity] = []
        self.closed = False

    def write(self, opportunity: ArbitrageOpportunity) -> None:
        self.opportunities.append(opportunity)

    def close(self) -> None:
        self.closed = True


class MockGateway:
    """Execution gateway with a fixed outcome."""

    def __init__(self, executed: bool = True, error: Exception | None = None) -> None:
        self._executed = executed
        self._error = error
        self.requests: list[ExecutionRequest] = []

    async def submit(self, request: ExecutionRequest) -> ExecutionReceipt:
        self.requests.append(request)
        if self._error is not None:
            raise self._error
        if self._executed:
            return ExecutionReceipt(executed=True, amount_out=request.min_amount_out)
        return ExecutionReceipt(executed=False, revert_reason="INSUFFICIENT_OUTPUT")
