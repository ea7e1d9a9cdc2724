"""
Block-aware reserve synchronization.

Each poll checks the block height first and only sweeps pool reserves
when the chain has advanced. The sweep fans out one retried request per
pool, then publishes a complete new snapshot in one step.
"""

import asyncio
import functools
import logging
from dataclasses import dataclass
from enum import Enum

from cyclearb.core.types import ChainReader, ReserveSnapshot, StateSnapshot
from cyclearb.state.retry import FetchOutcome, RetryPolicy
from cyclearb.state.snapshot import SnapshotStore
from cyclearb.strategy.graph import PoolGraph
from cyclearb.utils.math import to_token_units
from cyclearb.utils.time import LatencyTimer, get_timestamp_us


logger = logging.getLogger(__name__)


def reserve_snapshot_from_raw(
    graph: PoolGraph,
    pool_id: str,
    raw: tuple[int, int, int],
    block: int,
) -> ReserveSnapshot:
    """
    Convert raw integer reserves into token units.

    Args:
        graph: Graph holding the pool and its assets' decimals.
        pool_id: Pool the reserves belong to.
        raw: (reserve_a, reserve_b, last_update) as read from the chain.
        block: Block the reserves were observed at.

    Returns:
        ReserveSnapshot in whole-token units.
    """
    pool = graph.pool(pool_id)
    raw_a, raw_b, last_update = raw
    return ReserveSnapshot(
        pool_id=pool_id,
        reserve_a=to_token_units(raw_a, graph.asset(pool.token_a).decimals),
        reserve_b=to_token_units(raw_b, graph.asset(pool.token_b).decimals),
        observed_block=block,
        last_update=last_update,
    )


class SyncStatus(str, Enum):
    """Outcome of a poll."""

    UPDATED = "updated"
    BLOCK_UNCHANGED = "block_unchanged"
    UNAVAILABLE = "unavailable"


@dataclass(slots=True, frozen=True)
class SyncResult:
    """Snapshot after a poll and what changed relative to the previous one."""

    status: SyncStatus
    snapshot: StateSnapshot
    changed: frozenset[str]
    stale: frozenset[str]
    block_number: int
    fetch_time_ms: float = 0.0

    @property
    def has_changes(self) -> bool:
        return bool(self.changed)


class StateSynchronizer:
    """
    Fetches live reserves for every pool in the graph.

    Features:
    - Skips the reserve sweep when the block height has not advanced
    - Concurrent per-pool fetches under a bounded retry policy
    - Exhausted pools keep their previous value and are marked stale
    - Atomic snapshot publication through SnapshotStore
    """

    def __init__(
        self,
        graph: PoolGraph,
        reader: ChainReader,
        store: SnapshotStore | None = None,
        retry_policy: RetryPolicy | None = None,
    ) -> None:
        """
        Initialize synchronizer.

        Args:
            graph: Pool graph whose pools are tracked.
            reader: Chain read interface.
            store: Snapshot store to publish into.
            retry_policy: Retry policy for every chain read.
        """
        self._graph = graph
        self._reader = reader
        self._store = store or SnapshotStore()
        self._retry = retry_policy or RetryPolicy()
        self._last_block: int | None = None
        # Deduplicated, catalog order
        self._pool_ids: tuple[str, ...] = tuple(dict.fromkeys(graph.pool_ids))

    async def poll(self, cached: StateSnapshot | None = None) -> SyncResult:
        """
        Synchronize reserves with the chain.

        Args:
            cached: Snapshot to diff against; the store's current one when None.

        Returns:
            SyncResult. UNAVAILABLE and BLOCK_UNCHANGED carry the cached
            snapshot and publish nothing.
        """
        if cached is None:
            cached = self._store.current()

        with LatencyTimer() as timer:
            block_outcome = await self._retry.run(self._reader.get_block_number)

            if not block_outcome.ok or block_outcome.value is None:
                logger.warning(
                    f"Block height unavailable after {block_outcome.attempts} attempts: "
                    f"{block_outcome.error}"
                )
                return SyncResult(
                    status=SyncStatus.UNAVAILABLE,
                    snapshot=cached,
                    changed=frozenset(),
                    stale=frozenset(),
                    block_number=cached.block_number,
                )

            block = block_outcome.value
            if self._last_block is not None and block <= self._last_block:
                return SyncResult(
                    status=SyncStatus.BLOCK_UNCHANGED,
                    snapshot=cached,
                    changed=frozenset(),
                    stale=frozenset(),
                    block_number=block,
                )

            outcomes = await asyncio.gather(
                *(
                    self._retry.run(functools.partial(self._reader.get_reserves, pool_id))
                    for pool_id in self._pool_ids
                )
            )

        snapshot, changed, stale = self._build_snapshot(cached, block, outcomes)

        self._store.publish(snapshot)
        self._last_block = block

        fetch_time_ms = timer.latency_ms
        logger.debug(
            f"Block {block}: {len(changed)} changed, {len(stale)} stale, "
            f"fetched in {fetch_time_ms:.1f}ms"
        )

        return SyncResult(
            status=SyncStatus.UPDATED,
            snapshot=snapshot,
            changed=changed,
            stale=stale,
            block_number=block,
            fetch_time_ms=fetch_time_ms,
        )

    def _build_snapshot(
        self,
        cached: StateSnapshot,
        block: int,
        outcomes: list[FetchOutcome[tuple[int, int, int]]],
    ) -> tuple[StateSnapshot, frozenset[str], frozenset[str]]:
        """Merge fetch outcomes over the cached snapshot."""
        reserves = dict(cached.reserves)
        changed: set[str] = set()
        stale: set[str] = set()

        for pool_id, outcome in zip(self._pool_ids, outcomes):
            if not outcome.ok or outcome.value is None:
                stale.add(pool_id)
                logger.warning(
                    f"Pool {pool_id} stale after {outcome.attempts} attempts: {outcome.error}"
                )
                continue

            current = reserve_snapshot_from_raw(self._graph, pool_id, outcome.value, block)
            previous = cached.get(pool_id)
            if previous is None or not previous.same_reserves(current):
                changed.add(pool_id)
            reserves[pool_id] = current

        snapshot = StateSnapshot(
            block_number=block,
            reserves=reserves,
            stale=frozenset(stale),
            timestamp_us=get_timestamp_us(),
        )
        return snapshot, frozenset(changed), frozenset(stale)

    @property
    def store(self) -> SnapshotStore:
        return self._store

    @property
    def last_block(self) -> int | None:
        return self._last_block

    @property
    def pool_ids(self) -> tuple[str, ...]:
        return self._pool_ids
