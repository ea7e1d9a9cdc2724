"""State module: reserve synchronization, retry policy and snapshot store."""

from cyclearb.state.liquidity import LiquidityStats, analyze_liquidity, illiquid_pools
from cyclearb.state.retry import FetchOutcome, RetryPolicy
from cyclearb.state.snapshot import SnapshotStore
from cyclearb.state.synchronizer import StateSynchronizer, SyncResult, SyncStatus


__all__ = [
    "FetchOutcome",
    "LiquidityStats",
    "RetryPolicy",
    "SnapshotStore",
    "StateSynchronizer",
    "SyncResult",
    "SyncStatus",
    "analyze_liquidity",
    "illiquid_pools",
]
