"""
Unit tests for ProfitOptimizer.

Tests the swap formula, ternary search convergence, profit gating and
the scenario reserves.
"""

import math
import random

import pytest

from cyclearb.config.constants import JOE_MOE_POOL, MAX_RESERVE_FRACTION
from cyclearb.core.errors import ComputationError
from cyclearb.core.types import CyclePath, StateSnapshot
from cyclearb.strategy.cycles import enumerate_cycles
from cyclearb.strategy.graph import PoolGraph
from cyclearb.strategy.optimizer import (
    CostParams,
    ProfitOptimizer,
    compose_hops,
    swap_output,
    ternary_search,
)
from tests.mocks.chain import make_snapshot
from tests.mocks.data import SCENARIO_A_RESERVES


def closed_form_optimum(hops: list[tuple[float, float, float]]) -> float:
    """
    Analytic argmax of compose_hops(x) - x.

    Constant-product hops compose to y = A*x / (B + C*x); the profit
    peaks where B + C*x = sqrt(A*B).
    """
    a, b, c = 1.0, 1.0, 0.0
    for reserve_in, reserve_out, fee in hops:
        gamma = 1.0 - fee
        a, b, c = reserve_out * gamma * a, reserve_in * b, reserve_in * c + gamma * a
    return (math.sqrt(a * b) - b) / c


class TestSwapOutput:
    """Tests for the constant-product swap formula."""

    def test_basic_swap(self) -> None:
        """Test output against the formula."""
        out = swap_output(1000.0, 2000.0, 10.0, 0.003)

        expected = 2000.0 * 10.0 * 0.997 / (1000.0 + 10.0 * 0.997)
        assert out == pytest.approx(expected)

    def test_zero_fee_keeps_invariant(self) -> None:
        """Test that x*y is preserved without a fee."""
        out = swap_output(1000.0, 2000.0, 50.0, 0.0)

        assert (1000.0 + 50.0) * (2000.0 - out) == pytest.approx(1000.0 * 2000.0)

    def test_output_below_reserve(self) -> None:
        """Test that a huge trade never drains the pool."""
        assert swap_output(1000.0, 2000.0, 1e12, 0.003) < 2000.0

    @pytest.mark.parametrize(
        "reserve_in,reserve_out,amount",
        [(1000.0, 2000.0, 0.0), (1000.0, 2000.0, -1.0), (0.0, 2000.0, 1.0), (1000.0, 0.0, 1.0)],
    )
    def test_non_positive_inputs(self, reserve_in: float, reserve_out: float, amount: float) -> None:
        """Test that degenerate inputs yield zero."""
        assert swap_output(reserve_in, reserve_out, amount, 0.003) == 0.0

    def test_compose_hops(self) -> None:
        """Test that hops feed into each other."""
        hops = [(100.0, 200.0, 0.003), (300.0, 150.0, 0.003)]

        first = swap_output(100.0, 200.0, 5.0, 0.003)
        assert compose_hops(hops, 5.0) == pytest.approx(swap_output(300.0, 150.0, first, 0.003))

    def test_round_trip_through_one_pool_loses(self) -> None:
        """Test selling into a pool and buying straight back never profits."""
        rng = random.Random(2024)

        for _ in range(500):
            reserve_a = rng.uniform(1.0, 1e6)
            reserve_b = rng.uniform(1.0, 1e6)
            fee = rng.uniform(1e-4, 0.05)
            amount = reserve_a * rng.uniform(1e-6, 2.0)

            out = swap_output(reserve_a, reserve_b, amount, fee)
            back = swap_output(reserve_b - out, reserve_a + amount, out, fee)

            assert 0.0 < out < reserve_b
            assert back <= amount


class TestTernarySearch:
    """Tests for the fixed-iteration ternary search."""

    def test_converges_on_parabola(self) -> None:
        """Test convergence on a synthetic concave objective."""
        x, fx = ternary_search(lambda x: -((x - 3.7) ** 2) + 2.0, 0.0, 10.0, 100)

        assert x == pytest.approx(3.7, abs=1e-6)
        assert fx == pytest.approx(2.0, abs=1e-9)

    def test_maximum_at_boundary(self) -> None:
        """Test a monotone objective converges to the upper bound."""
        x, _ = ternary_search(lambda x: x, 0.0, 5.0, 100)

        assert x == pytest.approx(5.0, abs=1e-6)

    def test_iteration_count_bounds_evaluations(self) -> None:
        """Test that cost is fixed by the iteration count."""
        calls = 0

        def objective(x: float) -> float:
            nonlocal calls
            calls += 1
            return -x * x

        ternary_search(objective, -1.0, 1.0, 25)

        assert calls == 2 * 25 + 1


class TestProfitOptimizer:
    """Tests for ProfitOptimizer."""

    def test_matches_closed_form(
        self,
        optimizer: ProfitOptimizer,
        forward_cycle: CyclePath,
        scenario_a_snapshot: StateSnapshot,
    ) -> None:
        """Test the optimum against the analytic solution."""
        hops = optimizer.hop_reserves(forward_cycle, scenario_a_snapshot)
        expected_x = closed_form_optimum(hops)
        expected_profit = compose_hops(hops, expected_x) - expected_x

        result = optimizer.optimize(forward_cycle, scenario_a_snapshot)

        assert result is not None
        assert result.optimal_input == pytest.approx(expected_x, rel=1e-4)
        assert result.gross_profit == pytest.approx(expected_profit, rel=1e-9)
        assert result.final_output == pytest.approx(result.optimal_input + result.gross_profit)
        assert result.net_profit == pytest.approx(result.gross_profit - 0.02)
        assert result.iterations == optimizer.iterations

    def test_optimum_within_reserve_ceiling(
        self,
        optimizer: ProfitOptimizer,
        forward_cycle: CyclePath,
        scenario_a_snapshot: StateSnapshot,
    ) -> None:
        """Test the trade size stays below 99.9% of the smallest input reserve."""
        hops = optimizer.hop_reserves(forward_cycle, scenario_a_snapshot)
        ceiling = min(r_in for r_in, _, _ in hops) * MAX_RESERVE_FRACTION

        result = optimizer.optimize(forward_cycle, scenario_a_snapshot)

        assert result is not None
        assert 0.0 < result.optimal_input < ceiling

    def test_hop_orientation(
        self,
        optimizer: ProfitOptimizer,
        forward_cycle: CyclePath,
        scenario_a_snapshot: StateSnapshot,
    ) -> None:
        """Test each hop reads (reserve_in, reserve_out) along the path."""
        hops = optimizer.hop_reserves(forward_cycle, scenario_a_snapshot)

        assert [(r_in, r_out) for r_in, r_out, _ in hops] == [
            (8567.89, 15234.56),
            (9876.54, 4231.12),
            (6543.21, 12890.34),
        ]

    def test_reverse_cycle_unprofitable(
        self,
        optimizer: ProfitOptimizer,
        mantle_cycles: list[CyclePath],
        scenario_a_snapshot: StateSnapshot,
    ) -> None:
        """Test the reverse loop is gated out."""
        assert optimizer.optimize(mantle_cycles[1], scenario_a_snapshot) is None

    def test_unimodal_by_dense_sampling(
        self,
        optimizer: ProfitOptimizer,
        mantle_cycles: list[CyclePath],
    ) -> None:
        """Test the composed profit curve has a single peak on random reserves."""
        rng = random.Random(1234)

        for _ in range(25):
            snapshot = make_snapshot(
                1,
                {
                    pool_id: (rng.uniform(100.0, 50_000.0), rng.uniform(100.0, 50_000.0))
                    for pool_id in SCENARIO_A_RESERVES
                },
            )
            for cycle in mantle_cycles:
                hops = optimizer.hop_reserves(cycle, snapshot)
                upper = min(r_in for r_in, _, _ in hops) * MAX_RESERVE_FRACTION
                xs = [upper * i / 400 for i in range(1, 401)]
                profits = [compose_hops(hops, x) - x for x in xs]

                peak = profits.index(max(profits))
                rising = profits[: peak + 1]
                falling = profits[peak:]
                assert all(b >= a - 1e-9 for a, b in zip(rising, rising[1:]))
                assert all(b <= a + 1e-9 for a, b in zip(falling, falling[1:]))

    def test_degenerate_reserves_raise(
        self,
        optimizer: ProfitOptimizer,
        forward_cycle: CyclePath,
    ) -> None:
        """Test that a drained pool is a ComputationError."""
        snapshot = make_snapshot(1, {**SCENARIO_A_RESERVES, JOE_MOE_POOL: (0.0, 9876.54)})

        with pytest.raises(ComputationError) as exc_info:
            optimizer.optimize(forward_cycle, snapshot)

        assert exc_info.value.cycle_id == forward_cycle.id

    def test_missing_pool_raises(
        self,
        optimizer: ProfitOptimizer,
        forward_cycle: CyclePath,
    ) -> None:
        """Test that a pool absent from the snapshot is a ComputationError."""
        reserves = {k: v for k, v in SCENARIO_A_RESERVES.items() if k != JOE_MOE_POOL}

        with pytest.raises(ComputationError):
            optimizer.optimize(forward_cycle, make_snapshot(1, reserves))

    def test_stale_pool_raises(
        self,
        optimizer: ProfitOptimizer,
        forward_cycle: CyclePath,
    ) -> None:
        """Test that a stale pool is not priced."""
        snapshot = make_snapshot(1, SCENARIO_A_RESERVES, stale=frozenset({JOE_MOE_POOL}))

        with pytest.raises(ComputationError):
            optimizer.optimize(forward_cycle, snapshot)

    def test_cost_override(
        self,
        optimizer: ProfitOptimizer,
        forward_cycle: CyclePath,
        scenario_a_snapshot: StateSnapshot,
    ) -> None:
        """Test that a cost at the gross profit suppresses the result."""
        free = optimizer.optimize(forward_cycle, scenario_a_snapshot, CostParams(0.0))
        assert free is not None

        expensive = CostParams(transaction_cost=free.gross_profit + 1.0)
        assert optimizer.optimize(forward_cycle, scenario_a_snapshot, expensive) is None

    def test_simulate(
        self,
        optimizer: ProfitOptimizer,
        forward_cycle: CyclePath,
        scenario_a_snapshot: StateSnapshot,
    ) -> None:
        """Test simulate matches the manual hop chain."""
        amount = 10.0
        expected = swap_output(8567.89, 15234.56, amount, 0.003)
        expected = swap_output(9876.54, 4231.12, expected, 0.003)
        expected = swap_output(6543.21, 12890.34, expected, 0.003)

        assert optimizer.simulate(forward_cycle, scenario_a_snapshot, amount) == pytest.approx(
            expected
        )


class TestScenarios:
    """Profit gating on reference figures."""

    def test_scenario_a_profit_breakdown(
        self,
        optimizer: ProfitOptimizer,
        forward_cycle: CyclePath,
    ) -> None:
        """Test 0.75 in, 0.7725 out at cost 0.02 nets 0.0025 (~0.33%)."""
        result = optimizer.assess(forward_cycle, 0.75, 0.7725)

        assert result.gross_profit == pytest.approx(0.0225)
        assert result.cost == pytest.approx(0.02)
        assert result.net_profit == pytest.approx(0.0025)
        assert result.profit_percentage == pytest.approx(0.3333, abs=1e-3)
        assert result.is_profitable

    def test_scenario_b_breakdown(
        self,
        optimizer: ProfitOptimizer,
        forward_cycle: CyclePath,
    ) -> None:
        """Test gross 0.015 at cost 0.02 nets -0.005 and does not qualify."""
        result = optimizer.assess(forward_cycle, 1.0, 1.015)

        assert result.net_profit == pytest.approx(-0.005)
        assert not result.is_profitable

    def test_scenario_b_no_opportunity(
        self,
        mantle_graph: PoolGraph,
        forward_cycle: CyclePath,
        scenario_a_snapshot: StateSnapshot,
    ) -> None:
        """Test that a cost 0.005 above the best gross profit emits nothing."""
        gross = ProfitOptimizer(mantle_graph, cost=CostParams(0.0)).optimize(
            forward_cycle, scenario_a_snapshot
        )
        assert gross is not None

        optimizer = ProfitOptimizer(
            mantle_graph, cost=CostParams(transaction_cost=gross.gross_profit + 0.005)
        )

        assert optimizer.optimize(forward_cycle, scenario_a_snapshot) is None


class TestCostParams:
    """Tests for the cost model."""

    def test_fixed_cost_for_three_hops(self, forward_cycle: CyclePath) -> None:
        """Test three hops pay only the fixed cost."""
        assert CostParams(0.02, extra_hop_cost=0.01).cost_for(forward_cycle) == 0.02

    def test_extra_hop_cost(self, six_asset_graph: PoolGraph) -> None:
        """Test the fourth hop adds the per-hop charge."""
        four_hop = [c for c in enumerate_cycles(six_asset_graph, "W", 4) if c.hop_count == 4][0]

        assert CostParams(0.02, extra_hop_cost=0.01).cost_for(four_hop) == pytest.approx(0.03)

    def test_gas_price_prices_gas_units(self, forward_cycle: CyclePath) -> None:
        """Test a gas price replaces the flat cost with gas units times price."""
        cost = CostParams(0.02, gas_price_gwei=0.02, gas_units_3_hops=300_000)

        assert cost.cost_for(forward_cycle) == pytest.approx(300_000 * 0.02 * 1e-9)
        assert cost.gas_cost(3) == pytest.approx(6e-6)

    def test_gas_units_by_hop_count(self, six_asset_graph: PoolGraph) -> None:
        """Test a four-hop cycle is priced at the four-hop gas units."""
        four_hop = [c for c in enumerate_cycles(six_asset_graph, "W", 4) if c.hop_count == 4][0]
        cost = CostParams(gas_price_gwei=50.0, gas_units_3_hops=300_000, gas_units_4_hops=400_000)

        assert cost.cost_for(four_hop) == pytest.approx(400_000 * 50.0 * 1e-9)
        assert cost.gas_cost(4) > cost.gas_cost(3)  # type: ignore[operator]

    def test_no_gas_price(self) -> None:
        """Test gas cost is undefined without a gas price."""
        assert CostParams().gas_cost(3) is None

    def test_gas_cost_drives_profit(
        self,
        mantle_graph: PoolGraph,
        forward_cycle: CyclePath,
        scenario_a_snapshot: StateSnapshot,
    ) -> None:
        """Test net profit is gross profit less the gas cost."""
        cost = CostParams(transaction_cost=5.0, gas_price_gwei=100.0)
        result = ProfitOptimizer(mantle_graph, cost=cost).optimize(forward_cycle, scenario_a_snapshot)

        assert result is not None
        assert result.cost == pytest.approx(cost.gas_units_3_hops * 100.0 * 1e-9)
        assert result.net_profit == pytest.approx(result.gross_profit - result.cost)
