"""Strategy module for cycle discovery and profit optimization."""

from cyclearb.strategy.cycles import (
    CycleEnumerator,
    EnumerationStrategy,
    enumerate_cycles,
    find_negative_cycles,
)
from cyclearb.strategy.graph import PoolGraph
from cyclearb.strategy.opportunity import OpportunityDetector
from cyclearb.strategy.optimizer import (
    CostParams,
    ProfitOptimizer,
    swap_output,
    ternary_search,
)


__all__ = [
    "CostParams",
    "CycleEnumerator",
    "EnumerationStrategy",
    "OpportunityDetector",
    "PoolGraph",
    "ProfitOptimizer",
    "enumerate_cycles",
    "find_negative_cycles",
    "swap_output",
    "ternary_search",
]
