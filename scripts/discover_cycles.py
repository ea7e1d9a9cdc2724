#!/usr/bin/env python3
"""
Cycle Discovery Script.

Builds the pool graph from the configured catalog and displays every
cycle the monitor would watch, without touching the chain.
"""

import sys
from pathlib import Path

import orjson

# Add src to path for direct execution
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from cyclearb.config.catalog import load_catalog
from cyclearb.config.settings import get_settings
from cyclearb.core.errors import ConfigError
from cyclearb.strategy.cycles import enumerate_cycles
from cyclearb.strategy.graph import PoolGraph


def main() -> int:
    """Discover and display cycles."""
    print("=" * 60)
    print("  CYCLE DISCOVERY")
    print("=" * 60)
    print()

    # Load settings and catalog
    try:
        settings = get_settings()
        catalog = load_catalog(settings.pool_catalog_path)
        graph = PoolGraph.build(catalog, default_fee=settings.dex_fee)
    except (ConfigError, ValueError) as e:
        print(f"Error loading configuration: {e}")
        return 1

    print(f"Loaded {graph.number_of_assets} assets and {graph.number_of_pools} pools")
    print()

    # Discover cycles
    print(f"Discovering cycles through {settings.base_asset} (max {settings.max_hops} hops)...")
    try:
        cycles = enumerate_cycles(graph, settings.base_asset, settings.max_hops)
    except ConfigError as e:
        print(f"Error: {e}")
        return 1

    print(f"Found {len(cycles)} cycles")
    print()

    # Display cycles
    print("=" * 60)
    print("  DISCOVERED CYCLES")
    print("=" * 60)
    print()

    for i, cycle in enumerate(cycles, 1):
        pools_str = ", ".join(graph.pool(hop.pool_id).name or hop.pool_id for hop in cycle.hops)
        print(f"{i:3}. {cycle.label}")
        print(f"     Hops:  {cycle.hop_count}")
        print(f"     Pools: {pools_str}")
        print()

    # Summary
    print("=" * 60)
    print("  SUMMARY")
    print("=" * 60)
    print()

    used_pools = set().union(*(cycle.pool_ids for cycle in cycles)) if cycles else set()
    print(f"Total cycles:  {len(cycles)}")
    print(f"Pools used:    {len(used_pools)} of {graph.number_of_pools}")
    print(f"Base asset:    {settings.base_asset}")
    print()

    # Export to JSON
    export_path = Path("cycles.json")
    export = graph.to_dict()
    export["cycles"] = [
        {
            "id": cycle.id,
            "label": cycle.label,
            "hops": [
                {
                    "pool": hop.pool_id,
                    "direction": hop.direction.value,
                    "from": graph.symbol(hop.asset_in),
                    "to": graph.symbol(hop.asset_out),
                }
                for hop in cycle.hops
            ],
        }
        for cycle in cycles
    ]
    export_path.write_bytes(orjson.dumps(export, option=orjson.OPT_INDENT_2))
    print(f"Exported to: {export_path}")

    if "--plot" in sys.argv:
        graph.visualize("pool_graph.png")

    return 0


if __name__ == "__main__":
    sys.exit(main())
