"""
Opportunity detection and change-gated evaluation.

Indexes cycles by member pool so that a round only re-optimizes the
cycles touched by pools whose reserves actually changed.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from cyclearb.core.types import ArbitrageOpportunity, CyclePath, StateSnapshot
from cyclearb.strategy.optimizer import CostParams, ProfitOptimizer
from cyclearb.utils.time import get_timestamp_us


logger = logging.getLogger(__name__)


@dataclass
class OpportunityStats:
    """Statistics for opportunity detection."""

    cycles_evaluated: int = 0
    cycles_skipped: int = 0
    computation_errors: int = 0
    opportunities_found: int = 0
    best_net_profit: float = 0.0
    best_profit_pct: float = 0.0
    avg_profit_pct: float = 0.0
    _profit_sum: float = field(default=0.0, repr=False)

    def record_opportunity(self, net_profit: float, profit_pct: float) -> None:
        """Record an emitted opportunity."""
        self.opportunities_found += 1
        self._profit_sum += profit_pct
        self.avg_profit_pct = self._profit_sum / self.opportunities_found

        if net_profit > self.best_net_profit:
            self.best_net_profit = net_profit
        if profit_pct > self.best_profit_pct:
            self.best_profit_pct = profit_pct


@dataclass(slots=True, frozen=True)
class AffectedCycles:
    """Cycles to evaluate this round, and those held back."""

    evaluate: tuple[CyclePath, ...]
    skipped: tuple[CyclePath, ...]
    illiquid: tuple[CyclePath, ...] = ()

    @property
    def skipped_count(self) -> int:
        return len(self.skipped) + len(self.illiquid)


class OpportunityDetector:
    """
    Selects and evaluates cycles affected by reserve changes.

    Features:
    - Cycle index by pool for O(changed pools) lookup
    - Stale-pool exclusion with skip reporting
    - Pending set so a skipped or abandoned change is evaluated later
    - Wraps qualifying results with the reserves they used

    A cycle stays pending from the round that selects it until `settle`
    confirms it was evaluated in a round that made its budget.
    """

    def __init__(
        self,
        optimizer: ProfitOptimizer,
        cycles: Iterable[CyclePath] = (),
        cost_params: CostParams | None = None,
    ) -> None:
        """
        Initialize opportunity detector.

        Args:
            optimizer: Profit optimizer instance.
            cycles: Cycles to monitor.
            cost_params: Cost model passed through to the optimizer.
        """
        self._optimizer = optimizer
        self._cost_params = cost_params
        self._cycles: dict[str, CyclePath] = {}
        self._cycles_by_pool: dict[str, list[CyclePath]] = {}
        self._pending: set[str] = set()
        self._stats = OpportunityStats()

        self.add_cycles(cycles)

    def add_cycles(self, cycles: Iterable[CyclePath]) -> int:
        """
        Index additional cycles; already known ids are ignored.

        Returns:
            Number of newly indexed cycles.
        """
        added = 0
        for cycle in cycles:
            if cycle.id in self._cycles:
                continue
            self._cycles[cycle.id] = cycle
            for pool_id in cycle.pool_ids:
                self._cycles_by_pool.setdefault(pool_id, []).append(cycle)
            added += 1
        return added

    def affected_cycles(
        self,
        changed: Iterable[str],
        stale: Iterable[str] = (),
        illiquid: Iterable[str] = (),
    ) -> AffectedCycles:
        """
        Get cycles whose pool set intersects the changed pools.

        Pending cycles from earlier rounds are selected as well. Cycles
        that contain a stale pool are not evaluated this round: they are
        returned as skipped and stay pending. Cycles through a pool below
        the liquidity threshold are dropped, since that pool must change
        before it qualifies again. Order follows registration order so
        that emission order is stable.

        Args:
            changed: Pool ids whose reserves changed.
            stale: Pool ids whose fetch failed this round.
            illiquid: Pool ids too shallow to optimize.

        Returns:
            Cycles to evaluate, cycles skipped for staleness and cycles
            skipped for liquidity.
        """
        stale_set = frozenset(stale)
        illiquid_set = frozenset(illiquid)
        hit: set[str] = set(self._pending)
        for pool_id in changed:
            for cycle in self._cycles_by_pool.get(pool_id, ()):
                hit.add(cycle.id)

        evaluate: list[CyclePath] = []
        skipped: list[CyclePath] = []
        shallow: list[CyclePath] = []
        for cycle_id, cycle in self._cycles.items():
            if cycle_id not in hit:
                continue
            if cycle.pool_ids & stale_set:
                skipped.append(cycle)
                self._pending.add(cycle_id)
            elif cycle.pool_ids & illiquid_set:
                shallow.append(cycle)
                self._pending.discard(cycle_id)
            else:
                evaluate.append(cycle)
                self._pending.add(cycle_id)

        self._stats.cycles_skipped += len(skipped) + len(shallow)
        return AffectedCycles(
            evaluate=tuple(evaluate), skipped=tuple(skipped), illiquid=tuple(shallow)
        )

    def defer(self, changed: Iterable[str]) -> int:
        """
        Mark every cycle through the given pools as pending.

        Used when a round is abandoned after its snapshot was published,
        so the changes it saw are evaluated by a later round.

        Returns:
            Number of pending cycles.
        """
        for pool_id in changed:
            for cycle in self._cycles_by_pool.get(pool_id, ()):
                self._pending.add(cycle.id)
        return len(self._pending)

    def settle(self, cycles: Iterable[CyclePath]) -> None:
        """Clear cycles evaluated in a round that made its budget."""
        for cycle in cycles:
            self._pending.discard(cycle.id)

    def evaluate(
        self,
        cycle: CyclePath,
        snapshot: StateSnapshot,
        fetch_time_ms: float = 0.0,
    ) -> ArbitrageOpportunity | None:
        """
        Optimize one cycle against a snapshot.

        Safe to call from worker threads: the snapshot is immutable, the
        optimizer keeps no per-call state and stats are left to
        `record_results` on the event loop.

        Raises:
            ComputationError: On degenerate reserves.
        """
        result = self._optimizer.optimize(cycle, snapshot, self._cost_params)
        if result is None:
            return None

        return ArbitrageOpportunity(
            result=result,
            block_number=snapshot.block_number,
            timestamp_us=get_timestamp_us(),
            reserves=tuple(snapshot.reserves[hop.pool_id] for hop in cycle.hops),
            fetch_time_ms=fetch_time_ms,
        )

    def record_results(
        self,
        evaluated: int,
        opportunities: Iterable[ArbitrageOpportunity],
        errors: int = 0,
    ) -> None:
        """Fold one round's evaluation outcome into the stats."""
        self._stats.cycles_evaluated += evaluated
        self._stats.computation_errors += errors
        for opportunity in opportunities:
            self._stats.record_opportunity(
                opportunity.net_profit, opportunity.profit_percentage
            )

    @property
    def cycles(self) -> list[CyclePath]:
        return list(self._cycles.values())

    @property
    def cycle_count(self) -> int:
        return len(self._cycles)

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def is_pending(self, cycle: CyclePath) -> bool:
        return cycle.id in self._pending

    def cycles_for_pool(self, pool_id: str) -> list[CyclePath]:
        return list(self._cycles_by_pool.get(pool_id, ()))

    @property
    def stats(self) -> OpportunityStats:
        return self._stats
