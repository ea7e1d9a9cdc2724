"""
Cycle enumeration over the pool graph.

Two strategies produce CyclePaths starting and ending at the base asset:

- Bounded backtracking: exhaustive depth-limited search, run once at
  startup. Used for curated, small catalogs.
- Negative-cycle detection: hop-bounded Bellman-Ford over
  -ln(rate after fee) weights. Only yields candidates; the optimizer
  still has to confirm profitability with the exact swap formula.
"""

import logging
import math
from enum import Enum

from cyclearb.config.constants import (
    DEFAULT_LARGE_GRAPH_THRESHOLD,
    DEFAULT_MIN_RESERVE,
    MAX_CYCLE_HOPS,
    MIN_CYCLE_HOPS,
)
from cyclearb.core.errors import ConfigError
from cyclearb.core.types import CyclePath, Direction, Hop, Pool, StateSnapshot
from cyclearb.strategy.graph import PoolGraph


logger = logging.getLogger(__name__)


class EnumerationStrategy(str, Enum):
    """Cycle discovery strategy."""

    AUTO = "auto"
    BACKTRACKING = "backtracking"
    NEGATIVE_CYCLE = "negative_cycle"


def _resolve_base(graph: PoolGraph, base_asset: str, max_hops: int) -> str:
    if not MIN_CYCLE_HOPS <= max_hops <= MAX_CYCLE_HOPS:
        raise ConfigError(
            f"max_hops must be between {MIN_CYCLE_HOPS} and {MAX_CYCLE_HOPS}, got {max_hops}"
        )
    asset = graph.resolve_asset(base_asset)
    if asset is None:
        raise ConfigError(f"Base asset {base_asset} is not in the pool graph")
    return asset.address


def _make_cycle(graph: PoolGraph, base: str, hops: tuple[Hop, ...]) -> CyclePath:
    label = " -> ".join(graph.symbol(a) for a in (base, *(hop.asset_out for hop in hops)))
    return CyclePath.from_hops(base, hops, label)


def _make_hop(pool: Pool, asset_in: str) -> Hop:
    return Hop(
        pool_id=pool.address,
        direction=pool.direction_from(asset_in),
        asset_in=asset_in,
        asset_out=pool.other(asset_in),
    )


# =============================================================================
# Bounded Backtracking
# =============================================================================


def enumerate_cycles(graph: PoolGraph, base_asset: str, max_hops: int = 3) -> list[CyclePath]:
    """
    Enumerate every cycle of 3..max_hops hops through the base asset.

    A branch is pruned when it would reuse a pool, revisit a non-base
    asset, or exceed `max_hops`. Results are ordered by hop count, then
    by discovery order (which follows catalog order).

    Args:
        graph: Pool graph.
        base_asset: Base asset symbol or address.
        max_hops: Maximum cycle length (3 or 4).

    Returns:
        Duplicate-free list of cycles.

    Raises:
        ConfigError: On an unknown base asset or unsupported `max_hops`.
    """
    base = _resolve_base(graph, base_asset, max_hops)

    cycles: list[CyclePath] = []
    seen: set[tuple[tuple[str, Direction], ...]] = set()
    hops: list[Hop] = []
    used_pools: set[str] = set()
    visited: set[str] = {base}

    def extend(current: str) -> None:
        depth = len(hops) + 1
        for pool in graph.incident_pools(current):
            if pool.address in used_pools:
                continue

            hop = _make_hop(pool, current)
            nxt = hop.asset_out

            if nxt == base:
                if depth >= MIN_CYCLE_HOPS:
                    cycle = _make_cycle(graph, base, (*hops, hop))
                    if cycle.key not in seen:
                        seen.add(cycle.key)
                        cycles.append(cycle)
                continue

            if nxt in visited or depth >= max_hops:
                continue

            hops.append(hop)
            used_pools.add(pool.address)
            visited.add(nxt)
            extend(nxt)
            visited.discard(nxt)
            used_pools.discard(pool.address)
            hops.pop()

    extend(base)

    cycles.sort(key=lambda c: c.hop_count)
    logger.info(
        f"Enumerated {len(cycles)} cycles through {graph.symbol(base)} "
        f"(max {max_hops} hops)"
    )
    return cycles


# =============================================================================
# Negative-Cycle Detection
# =============================================================================


def edge_weight(
    pool: Pool,
    direction: Direction,
    snapshot: StateSnapshot,
    min_reserve: float = DEFAULT_MIN_RESERVE,
) -> float:
    """
    Log-rate weight of a hop: -ln(reserve_out * (1 - fee) / reserve_in).

    Stale, missing or drained pools weigh +inf so they never close a cycle.
    """
    if not snapshot.is_usable(pool.address):
        return math.inf
    reserves = snapshot.reserves[pool.address]
    reserve_in, reserve_out = reserves.oriented(direction)
    if reserve_in <= min_reserve or reserve_out <= min_reserve:
        return math.inf
    return -math.log(reserve_out * (1.0 - pool.fee) / reserve_in)


def find_negative_cycles(
    graph: PoolGraph,
    base_asset: str,
    max_hops: int,
    snapshot: StateSnapshot,
    min_reserve: float = DEFAULT_MIN_RESERVE,
) -> list[CyclePath]:
    """
    Detect candidate profitable cycles through the base asset.

    Runs one hop-bounded Bellman-Ford relaxation per first hop out of the
    base asset. Each level keeps the lightest simple path to every asset,
    so no pool or intermediate asset repeats within a path. Every closing
    hop back to the base with a negative total weight is a candidate.

    Args:
        graph: Pool graph.
        base_asset: Base asset symbol or address.
        max_hops: Maximum cycle length (3 or 4).
        snapshot: Reserves used to weigh the edges.
        min_reserve: Reserves at or below this are treated as drained.

    Returns:
        Duplicate-free candidates ordered by hop count, then discovery order.
    """
    base = _resolve_base(graph, base_asset, max_hops)

    candidates: list[CyclePath] = []
    seen: set[tuple[tuple[str, Direction], ...]] = set()

    for first_pool in graph.incident_pools(base):
        first_hop = _make_hop(first_pool, base)
        weight = edge_weight(first_pool, first_hop.direction, snapshot, min_reserve)
        if math.isinf(weight):
            continue

        level: dict[str, tuple[float, tuple[Hop, ...]]] = {
            first_hop.asset_out: (weight, (first_hop,)),
        }

        for depth in range(2, max_hops + 1):
            next_level: dict[str, tuple[float, tuple[Hop, ...]]] = {}

            for asset, (dist, path) in level.items():
                used = {hop.pool_id for hop in path}
                visited = {hop.asset_in for hop in path}
                visited.add(asset)

                for pool in graph.incident_pools(asset):
                    if pool.address in used:
                        continue
                    hop = _make_hop(pool, asset)
                    w = edge_weight(pool, hop.direction, snapshot, min_reserve)
                    if math.isinf(w):
                        continue
                    total = dist + w

                    if hop.asset_out == base:
                        if depth >= MIN_CYCLE_HOPS and total < 0.0:
                            cycle = _make_cycle(graph, base, (*path, hop))
                            if cycle.key not in seen:
                                seen.add(cycle.key)
                                candidates.append(cycle)
                        continue

                    if hop.asset_out in visited or depth >= max_hops:
                        continue

                    best = next_level.get(hop.asset_out)
                    if best is None or total < best[0]:
                        next_level[hop.asset_out] = (total, (*path, hop))

            level = next_level
            if not level:
                break

    candidates.sort(key=lambda c: c.hop_count)
    logger.debug(f"Negative-cycle scan found {len(candidates)} candidates")
    return candidates


# =============================================================================
# Enumerator
# =============================================================================


class CycleEnumerator:
    """
    Selects a discovery strategy and owns the cycle set.

    Backtracking results are computed once and cached for the process
    lifetime. Negative-cycle candidates depend on reserves, so they are
    recomputed on demand and interned by id: a cycle found in several
    rounds is always the same object.
    """

    def __init__(
        self,
        graph: PoolGraph,
        base_asset: str,
        max_hops: int = 3,
        strategy: EnumerationStrategy | str = EnumerationStrategy.AUTO,
        large_graph_threshold: int = DEFAULT_LARGE_GRAPH_THRESHOLD,
        min_reserve: float = DEFAULT_MIN_RESERVE,
    ) -> None:
        """
        Initialize the enumerator.

        Args:
            graph: Pool graph.
            base_asset: Base asset symbol or address.
            max_hops: Maximum cycle length (3 or 4).
            strategy: Discovery strategy; AUTO picks by pool count.
            large_graph_threshold: Pool count above which AUTO uses
                negative-cycle detection.
            min_reserve: Drained-pool threshold for edge weights.

        Raises:
            ConfigError: On an unknown base asset or unsupported `max_hops`.
        """
        self._graph = graph
        self._base = _resolve_base(graph, base_asset, max_hops)
        self._max_hops = max_hops
        self._min_reserve = min_reserve

        strategy = EnumerationStrategy(strategy)
        if strategy is EnumerationStrategy.AUTO:
            strategy = (
                EnumerationStrategy.NEGATIVE_CYCLE
                if graph.number_of_pools > large_graph_threshold
                else EnumerationStrategy.BACKTRACKING
            )
        self._strategy = strategy

        self._cycles: list[CyclePath] | None = None
        self._registry: dict[str, CyclePath] = {}

        logger.info(
            f"Cycle enumerator using {self._strategy.value} over "
            f"{graph.number_of_pools} pools"
        )

    def enumerate(self, snapshot: StateSnapshot | None = None) -> list[CyclePath]:
        """
        Get the cycles to monitor.

        Args:
            snapshot: Current reserves; required for negative-cycle detection.

        Returns:
            Cycles in deterministic order.
        """
        if self._strategy is EnumerationStrategy.BACKTRACKING:
            if self._cycles is None:
                self._cycles = enumerate_cycles(self._graph, self._base, self._max_hops)
            return list(self._cycles)

        if snapshot is None:
            raise ValueError("Negative-cycle detection needs a reserve snapshot")

        candidates = find_negative_cycles(
            self._graph, self._base, self._max_hops, snapshot, self._min_reserve
        )
        return [self._registry.setdefault(cycle.id, cycle) for cycle in candidates]

    @property
    def strategy(self) -> EnumerationStrategy:
        return self._strategy

    @property
    def is_static(self) -> bool:
        """True when the cycle set never changes after the first call."""
        return self._strategy is EnumerationStrategy.BACKTRACKING

    @property
    def base_asset(self) -> str:
        return self._base

    @property
    def max_hops(self) -> int:
        return self._max_hops

    @property
    def known_cycles(self) -> list[CyclePath]:
        """Every cycle produced so far."""
        if self._cycles is not None:
            return list(self._cycles)
        return list(self._registry.values())
