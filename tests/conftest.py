"""
Pytest configuration and shared fixtures.

Provides reusable test fixtures for all test modules.
"""

import pytest

from cyclearb.config.catalog import default_catalog
from cyclearb.config.constants import JOE_ADDRESS, MOE_ADDRESS, WMNT_ADDRESS
from cyclearb.core.types import Asset, CyclePath, Pool, StateSnapshot
from cyclearb.strategy.cycles import enumerate_cycles
from cyclearb.strategy.graph import PoolGraph
from cyclearb.strategy.optimizer import CostParams, ProfitOptimizer
from tests.mocks.chain import MockChainReader, make_snapshot
from tests.mocks.data import (
    ASSET_IDS,
    POOL_LINKS,
    SCENARIO_A_RESERVES,
    asset_addr,
    pool_addr,
)


# =============================================================================
# Six-Asset Graph
# =============================================================================


@pytest.fixture
def six_asset_graph() -> PoolGraph:
    """6 assets, 8 constant-product pools, one multi-edge."""
    assets = [Asset(address=asset_addr(s), symbol=s) for s in ASSET_IDS]
    pools = [
        Pool(
            address=pool_addr(name),
            token_a=asset_addr(a),
            token_b=asset_addr(b),
            fee=0.003,
            name=name,
        )
        for name, (a, b) in POOL_LINKS.items()
    ]
    return PoolGraph(assets, pools)


@pytest.fixture
def balanced_snapshot() -> StateSnapshot:
    """Every pool of the six-asset graph at a 1:1 price."""
    return make_snapshot(
        1, {pool_addr(name): (10_000.0, 10_000.0) for name in POOL_LINKS}
    )


# =============================================================================
# Mantle Scenario
# =============================================================================


@pytest.fixture
def mantle_graph() -> PoolGraph:
    """WMNT/MOE/JOE triangle from the built-in catalog."""
    return PoolGraph.build(default_catalog())


@pytest.fixture
def mantle_cycles(mantle_graph: PoolGraph) -> list[CyclePath]:
    """Forward and reverse WMNT triangle."""
    return enumerate_cycles(mantle_graph, "WMNT", 3)


@pytest.fixture
def forward_cycle(mantle_cycles: list[CyclePath]) -> CyclePath:
    """WMNT -> MOE -> JOE -> WMNT."""
    cycle = mantle_cycles[0]
    assert cycle.assets == (WMNT_ADDRESS, MOE_ADDRESS, JOE_ADDRESS, WMNT_ADDRESS)
    return cycle


@pytest.fixture
def scenario_a_snapshot() -> StateSnapshot:
    """Scenario A reserves at block 100."""
    return make_snapshot(100, SCENARIO_A_RESERVES)


@pytest.fixture
def optimizer(mantle_graph: PoolGraph) -> ProfitOptimizer:
    """Optimizer with the default 0.02 transaction cost."""
    return ProfitOptimizer(mantle_graph, cost=CostParams(transaction_cost=0.02))


@pytest.fixture
def mock_reader() -> MockChainReader:
    """Reader serving scenario A reserves at block 100."""
    return MockChainReader(block=100, reserves=SCENARIO_A_RESERVES)
