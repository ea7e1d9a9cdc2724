"""
Pool liquidity screening.

Summarizes reserve depth across a snapshot and flags pools too shallow
to be worth optimizing.
"""

import statistics
from dataclasses import dataclass

from cyclearb.config.constants import LIQUIDITY_TOP_POOLS
from cyclearb.core.types import StateSnapshot


@dataclass(slots=True, frozen=True)
class LiquidityStats:
    """
    Liquidity distribution of the usable pools in one snapshot.

    A pool's liquidity is the sum of its two reserves in whole-token
    units.
    """

    total_pools: int = 0
    liquid_pools: int = 0
    total_liquidity: float = 0.0
    mean_liquidity: float = 0.0
    median_liquidity: float = 0.0
    max_liquidity: float = 0.0
    min_liquidity: float = 0.0
    top_pools: tuple[tuple[str, float], ...] = ()

    @property
    def illiquid_pools(self) -> int:
        return self.total_pools - self.liquid_pools


def illiquid_pools(snapshot: StateSnapshot, min_liquidity: float) -> frozenset[str]:
    """
    Pools with either reserve below `min_liquidity`.

    Stale pools are left to the staleness check. A threshold of 0 flags
    nothing.
    """
    if min_liquidity <= 0.0:
        return frozenset()
    return frozenset(
        pool_id
        for pool_id, reserve in snapshot.reserves.items()
        if pool_id not in snapshot.stale
        and (reserve.reserve_a < min_liquidity or reserve.reserve_b < min_liquidity)
    )


def analyze_liquidity(snapshot: StateSnapshot, min_liquidity: float = 0.0) -> LiquidityStats:
    """
    Compute the liquidity distribution of a snapshot.

    Args:
        snapshot: Reserve snapshot to analyze.
        min_liquidity: Per-reserve threshold for counting a pool as liquid.

    Returns:
        Liquidity stats; all zero for an empty snapshot.
    """
    depths = {
        pool_id: reserve.reserve_a + reserve.reserve_b
        for pool_id, reserve in snapshot.reserves.items()
        if pool_id not in snapshot.stale
    }
    if not depths:
        return LiquidityStats()

    shallow = illiquid_pools(snapshot, min_liquidity)
    values = list(depths.values())
    ranked = sorted(depths.items(), key=lambda item: item[1], reverse=True)

    return LiquidityStats(
        total_pools=len(depths),
        liquid_pools=len(depths) - len(shallow),
        total_liquidity=sum(values),
        mean_liquidity=statistics.mean(values),
        median_liquidity=statistics.median(values),
        max_liquidity=max(values),
        min_liquidity=min(values),
        top_pools=tuple(ranked[:LIQUIDITY_TOP_POOLS]),
    )
