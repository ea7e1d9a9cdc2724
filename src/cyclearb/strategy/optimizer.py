"""
Profit optimization for constant-product cycles.

Finds the input amount that maximizes f(x) = compose_hops(x) - x with
a fixed-iteration ternary search, then gates the result on net profit
after execution cost.
"""

import logging
import math
from collections.abc import Callable
from dataclasses import dataclass

from cyclearb.config.constants import (
    DEFAULT_MIN_RESERVE,
    DEFAULT_TERNARY_SEARCH_ITERATIONS,
    DEFAULT_TRANSACTION_COST,
    GAS_UNITS_3_HOPS,
    GAS_UNITS_4_HOPS,
    GWEI_TO_MNT_MULTIPLIER,
    MAX_RESERVE_FRACTION,
    MIN_CYCLE_HOPS,
    MIN_TRADE_AMOUNT,
)
from cyclearb.core.errors import ComputationError
from cyclearb.core.types import CyclePath, OptimizationResult, StateSnapshot
from cyclearb.strategy.graph import PoolGraph


logger = logging.getLogger(__name__)


# (reserve_in, reserve_out, fee) of one hop
HopReserves = tuple[float, float, float]


def swap_output(reserve_in: float, reserve_out: float, amount_in: float, fee: float) -> float:
    """
    Output of a constant-product swap after fee.

    Args:
        reserve_in: Pool reserve of the input asset.
        reserve_out: Pool reserve of the output asset.
        amount_in: Amount sold into the pool.
        fee: Swap fee (e.g., 0.003 = 0.3%).

    Returns:
        Amount received; 0 for non-positive input or reserves.
    """
    if amount_in <= 0.0 or reserve_in <= 0.0 or reserve_out <= 0.0:
        return 0.0
    amount_after_fee = amount_in * (1.0 - fee)
    return reserve_out * amount_after_fee / (reserve_in + amount_after_fee)


def compose_hops(hops: list[HopReserves], amount_in: float) -> float:
    """Feed `amount_in` through each hop in turn."""
    amount = amount_in
    for reserve_in, reserve_out, fee in hops:
        amount = swap_output(reserve_in, reserve_out, amount, fee)
    return amount


def ternary_search(
    objective: Callable[[float], float],
    lo: float,
    hi: float,
    iterations: int,
) -> tuple[float, float]:
    """
    Maximize a unimodal function on [lo, hi].

    Each iteration discards the outer third that cannot contain the
    maximum. The iteration count is fixed, so cost is bounded and the
    result is deterministic.

    Args:
        objective: Function to maximize.
        lo: Lower bound of the domain.
        hi: Upper bound of the domain.
        iterations: Number of narrowing steps.

    Returns:
        Tuple of (argmax estimate, objective at that point).
    """
    left, right = lo, hi
    for _ in range(iterations):
        third = (right - left) / 3.0
        m1 = left + third
        m2 = right - third
        if objective(m1) < objective(m2):
            left = m1
        else:
            right = m2
    best = (left + right) / 2.0
    return best, objective(best)


@dataclass(slots=True, frozen=True)
class CostParams:
    """
    Execution cost in base-asset units.

    With a gas price set, the cost of a cycle is its gas units priced at
    that gas price. Otherwise a flat transaction cost applies, and hops
    beyond the third can carry an additional charge.
    """

    transaction_cost: float = DEFAULT_TRANSACTION_COST
    extra_hop_cost: float = 0.0
    gas_price_gwei: float | None = None
    gas_units_3_hops: int = GAS_UNITS_3_HOPS
    gas_units_4_hops: int = GAS_UNITS_4_HOPS

    def gas_units(self, hop_count: int) -> int:
        """Gas burned by a route of `hop_count` swaps."""
        if hop_count <= MIN_CYCLE_HOPS:
            return self.gas_units_3_hops
        return self.gas_units_4_hops

    def gas_cost(self, hop_count: int) -> float | None:
        """Gas cost of a route in base-asset units, or None without a gas price."""
        if self.gas_price_gwei is None:
            return None
        return self.gas_units(hop_count) * self.gas_price_gwei * GWEI_TO_MNT_MULTIPLIER

    def cost_for(self, cycle: CyclePath) -> float:
        gas = self.gas_cost(cycle.hop_count)
        if gas is not None:
            return gas
        extra_hops = max(0, cycle.hop_count - MIN_CYCLE_HOPS)
        return self.transaction_cost + self.extra_hop_cost * extra_hops


class ProfitOptimizer:
    """
    Computes optimal trade size and net profit per cycle.

    Stateless apart from configuration, so a single instance can be
    shared by concurrent worker threads.
    """

    __slots__ = ("_graph", "_cost", "_iterations", "_min_reserve")

    def __init__(
        self,
        graph: PoolGraph,
        cost: CostParams | None = None,
        iterations: int = DEFAULT_TERNARY_SEARCH_ITERATIONS,
        min_reserve: float = DEFAULT_MIN_RESERVE,
    ) -> None:
        """
        Initialize optimizer.

        Args:
            graph: Pool graph the cycles refer to.
            cost: Default execution cost model.
            iterations: Ternary search iterations.
            min_reserve: Reserves at or below this make a hop degenerate.
        """
        self._graph = graph
        self._cost = cost or CostParams()
        self._iterations = iterations
        self._min_reserve = min_reserve

    def hop_reserves(self, cycle: CyclePath, snapshot: StateSnapshot) -> list[HopReserves]:
        """
        Resolve (reserve_in, reserve_out, fee) for every hop.

        Raises:
            ComputationError: If a pool is missing, stale or drained.
        """
        hops: list[HopReserves] = []
        for hop in cycle.hops:
            if not snapshot.is_usable(hop.pool_id):
                raise ComputationError(
                    f"No fresh reserves for pool {hop.pool_id}", cycle_id=cycle.id
                )
            reserve_in, reserve_out = snapshot.reserves[hop.pool_id].oriented(hop.direction)
            if reserve_in <= self._min_reserve or reserve_out <= self._min_reserve:
                raise ComputationError(
                    f"Degenerate reserves in pool {hop.pool_id}: "
                    f"in={reserve_in}, out={reserve_out}",
                    cycle_id=cycle.id,
                )
            hops.append((reserve_in, reserve_out, self._graph.pool(hop.pool_id).fee))
        return hops

    def simulate(self, cycle: CyclePath, snapshot: StateSnapshot, amount_in: float) -> float:
        """Output of trading `amount_in` around the cycle."""
        return compose_hops(self.hop_reserves(cycle, snapshot), amount_in)

    def assess(
        self,
        cycle: CyclePath,
        optimal_input: float,
        final_output: float,
        iterations: int = 0,
        cost_params: CostParams | None = None,
    ) -> OptimizationResult:
        """
        Build the profit breakdown for a given trade.

        Args:
            cycle: Traded cycle.
            optimal_input: Base-asset amount sold into the first hop.
            final_output: Base-asset amount received from the last hop.
            iterations: Search iterations that produced the trade.
            cost_params: Cost model; the optimizer default when None.

        Returns:
            Result regardless of profitability.
        """
        cost = (cost_params or self._cost).cost_for(cycle)
        gross = final_output - optimal_input
        return OptimizationResult(
            cycle=cycle,
            optimal_input=optimal_input,
            final_output=final_output,
            gross_profit=gross,
            net_profit=gross - cost,
            cost=cost,
            iterations=iterations,
        )

    def optimize(
        self,
        cycle: CyclePath,
        snapshot: StateSnapshot,
        cost_params: CostParams | None = None,
    ) -> OptimizationResult | None:
        """
        Find the profit-maximizing input for a cycle.

        The search domain is [MIN_TRADE_AMOUNT, 0.999 * smallest hop input
        reserve]; the ceiling keeps every hop away from draining its pool.

        Args:
            cycle: Cycle to evaluate.
            snapshot: Reserve snapshot to price against.
            cost_params: Cost model; the optimizer default when None.

        Returns:
            Result with strictly positive net profit, or None.

        Raises:
            ComputationError: On degenerate reserves or non-finite values.
        """
        hops = self.hop_reserves(cycle, snapshot)

        upper = min(reserve_in for reserve_in, _, _ in hops) * MAX_RESERVE_FRACTION
        if upper <= MIN_TRADE_AMOUNT:
            raise ComputationError(
                f"Search domain collapsed (upper bound {upper})", cycle_id=cycle.id
            )

        def profit(amount_in: float) -> float:
            return compose_hops(hops, amount_in) - amount_in

        optimal_input, gross = ternary_search(
            profit, MIN_TRADE_AMOUNT, upper, self._iterations
        )
        if not (math.isfinite(optimal_input) and math.isfinite(gross)):
            raise ComputationError(
                f"Non-finite optimum x={optimal_input}, f={gross}", cycle_id=cycle.id
            )

        result = self.assess(
            cycle,
            optimal_input,
            optimal_input + gross,
            iterations=self._iterations,
            cost_params=cost_params,
        )

        if not result.is_profitable:
            return None

        logger.debug(
            f"Cycle {cycle.label or cycle.id}: input={optimal_input:.6f} "
            f"gross={result.gross_profit:.6f} net={result.net_profit:.6f}"
        )
        return result

    @property
    def iterations(self) -> int:
        return self._iterations

    @property
    def cost(self) -> CostParams:
        return self._cost
