#!/usr/bin/env python3
"""
Latency Benchmark Script.

Measures internal latencies for the per-round critical path: cycle
discovery, profit optimization and change-gated evaluation.
"""

import random
import statistics
import sys
from pathlib import Path

# Add src to path for direct execution
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from cyclearb.config.catalog import default_catalog
from cyclearb.config.constants import (
    DEFAULT_BLOCK_TIME_SECONDS,
    JOE_MOE_POOL,
    JOE_WMNT_POOL,
    MOE_WMNT_POOL,
)
from cyclearb.core.types import Asset, Pool, ReserveSnapshot, StateSnapshot
from cyclearb.strategy.cycles import enumerate_cycles, find_negative_cycles
from cyclearb.strategy.graph import PoolGraph
from cyclearb.strategy.opportunity import OpportunityDetector
from cyclearb.strategy.optimizer import ProfitOptimizer
from cyclearb.utils.time import format_duration_us, get_timestamp_us


def _address(n: int) -> str:
    return "0x" + f"{n:040x}"


def build_dense_graph(assets: int = 12, seed: int = 7) -> tuple[PoolGraph, StateSnapshot]:
    """Fully connected graph with randomly skewed reserves."""
    rng = random.Random(seed)
    nodes = [Asset(address=_address(i + 1), symbol=f"T{i}") for i in range(assets)]

    pools: list[Pool] = []
    reserves: dict[str, ReserveSnapshot] = {}
    for i in range(assets):
        for j in range(i + 1, assets):
            address = _address(1000 + len(pools))
            pools.append(
                Pool(address=address, token_a=nodes[i].address, token_b=nodes[j].address, fee=0.003)
            )
            reserves[address] = ReserveSnapshot(
                pool_id=address,
                reserve_a=rng.uniform(5_000.0, 15_000.0),
                reserve_b=rng.uniform(5_000.0, 15_000.0),
                observed_block=1,
            )

    return PoolGraph(nodes, pools), StateSnapshot(block_number=1, reserves=reserves)


def _summarize(latencies: list[int]) -> dict[str, float]:
    return {
        "min": min(latencies),
        "max": max(latencies),
        "avg": statistics.mean(latencies),
        "p50": statistics.median(latencies),
        "p99": sorted(latencies)[int(len(latencies) * 0.99)],
    }


def benchmark_optimize(iterations: int = 10000) -> dict[str, float]:
    """Benchmark ternary search on the WMNT/MOE/JOE triangle."""
    graph = PoolGraph.build(default_catalog())
    optimizer = ProfitOptimizer(graph)
    cycle = enumerate_cycles(graph, "WMNT", 3)[0]
    snapshot = StateSnapshot(
        block_number=1,
        reserves={
            MOE_WMNT_POOL: ReserveSnapshot(MOE_WMNT_POOL, 15234.56, 8567.89, 1),
            JOE_MOE_POOL: ReserveSnapshot(JOE_MOE_POOL, 4231.12, 9876.54, 1),
            JOE_WMNT_POOL: ReserveSnapshot(JOE_WMNT_POOL, 6543.21, 12890.34, 1),
        },
    )

    latencies: list[int] = []
    for _ in range(iterations):
        start = get_timestamp_us()
        optimizer.optimize(cycle, snapshot)
        latencies.append(get_timestamp_us() - start)

    return _summarize(latencies)


def benchmark_enumeration(iterations: int = 20) -> tuple[dict[str, float], dict[str, float], int]:
    """Benchmark backtracking against hop-bounded Bellman-Ford."""
    graph, snapshot = build_dense_graph()
    base = graph.assets[0].address

    backtracking: list[int] = []
    bellman_ford: list[int] = []
    count = 0
    for _ in range(iterations):
        start = get_timestamp_us()
        count = len(enumerate_cycles(graph, base, 4))
        backtracking.append(get_timestamp_us() - start)

        start = get_timestamp_us()
        find_negative_cycles(graph, base, 4, snapshot)
        bellman_ford.append(get_timestamp_us() - start)

    return _summarize(backtracking), _summarize(bellman_ford), count


def benchmark_round(iterations: int = 20) -> tuple[dict[str, float], int]:
    """Benchmark a full-change round over every 3-hop cycle of a dense graph."""
    graph, snapshot = build_dense_graph()
    cycles = enumerate_cycles(graph, graph.assets[0].address, 3)
    detector = OpportunityDetector(ProfitOptimizer(graph), cycles)

    latencies: list[int] = []
    for _ in range(iterations):
        start = get_timestamp_us()
        affected = detector.affected_cycles(graph.pool_ids)
        for cycle in affected.evaluate:
            detector.evaluate(cycle, snapshot)
        detector.settle(affected.evaluate)
        latencies.append(get_timestamp_us() - start)

    return _summarize(latencies), len(cycles)


def format_stats(stats: dict[str, float]) -> str:
    """Format stats for display."""
    return (
        f"min={format_duration_us(int(stats['min']))}, "
        f"avg={format_duration_us(int(stats['avg']))}, "
        f"p50={format_duration_us(int(stats['p50']))}, "
        f"p99={format_duration_us(int(stats['p99']))}, "
        f"max={format_duration_us(int(stats['max']))}"
    )


def main() -> int:
    """Run all benchmarks."""
    print("=" * 70)
    print("  LATENCY BENCHMARK")
    print("=" * 70)
    print()

    # Warm up
    print("Warming up...")
    benchmark_optimize(100)
    benchmark_round(2)
    print()

    print("Running benchmarks...")
    print()

    print("1. Ternary Search, one 3-hop cycle (10,000 iterations)")
    stats = benchmark_optimize(10000)
    print(f"   {format_stats(stats)}")
    print()

    print("2. Cycle Discovery, 12 assets / 66 pools, max 4 hops (20 iterations)")
    backtracking, bellman_ford, count = benchmark_enumeration(20)
    print(f"   backtracking ({count} cycles): {format_stats(backtracking)}")
    print(f"   bellman-ford:            {format_stats(bellman_ford)}")
    print()

    print("3. Full-Change Round, every 3-hop cycle (20 iterations)")
    stats, cycle_count = benchmark_round(20)
    print(f"   {cycle_count} cycles: {format_stats(stats)}")
    print()

    print("=" * 70)
    print("  SUMMARY")
    print("=" * 70)
    print()
    print(f"Target: round < block time ({DEFAULT_BLOCK_TIME_SECONDS:.0f}s), network included")
    print()

    return 0


if __name__ == "__main__":
    sys.exit(main())
