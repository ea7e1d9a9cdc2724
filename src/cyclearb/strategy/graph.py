"""
Pool graph construction.

Assets and pools live in flat, index-addressable tuples. A NetworkX
MultiGraph holds the adjacency so that two assets may be linked by
more than one pool. The graph is never mutated after construction.
"""

import logging
from collections.abc import Iterable, Sequence
from typing import Any

import networkx as nx

from cyclearb.config.catalog import PoolCatalog, PoolRecord
from cyclearb.core.errors import ConfigError
from cyclearb.core.types import Asset, Pool, PoolKind


logger = logging.getLogger(__name__)


class PoolGraph:
    """
    Static asset/pool graph.

    - Nodes are asset addresses
    - Edges are pools, keyed by pool address
    - Incident pools are returned in catalog order, which keeps cycle
      enumeration deterministic
    """

    def __init__(self, assets: Sequence[Asset], pools: Sequence[Pool]) -> None:
        """
        Initialize the graph from validated assets and pools.

        Use `build` for raw catalog records; this constructor still
        checks referential integrity.

        Args:
            assets: Known assets.
            pools: Pools between known assets.

        Raises:
            ConfigError: On unknown assets, duplicate pools or unsupported kinds.
        """
        self._assets: tuple[Asset, ...] = tuple(assets)
        self._pools: tuple[Pool, ...] = tuple(pools)

        self._asset_index: dict[str, int] = {}
        self._symbol_index: dict[str, int] = {}
        for i, asset in enumerate(self._assets):
            if asset.address in self._asset_index:
                raise ConfigError(f"Duplicate asset {asset.address}")
            self._asset_index[asset.address] = i
            self._symbol_index.setdefault(asset.symbol.upper(), i)

        self._pool_index: dict[str, int] = {}
        self._incident: dict[str, list[int]] = {asset.address: [] for asset in self._assets}
        self._graph: nx.MultiGraph = nx.MultiGraph()
        self._graph.add_nodes_from(self._asset_index)

        for i, pool in enumerate(self._pools):
            self._validate_pool(pool)
            self._pool_index[pool.address] = i
            self._incident[pool.token_a].append(i)
            self._incident[pool.token_b].append(i)
            self._graph.add_edge(pool.token_a, pool.token_b, key=pool.address, fee=pool.fee)

        logger.info(
            f"Built pool graph with {len(self._assets)} assets, {len(self._pools)} pools"
        )

    def _validate_pool(self, pool: Pool) -> None:
        if pool.address in self._pool_index:
            raise ConfigError(f"Duplicate pool {pool.address}")
        for token in (pool.token_a, pool.token_b):
            if token not in self._asset_index:
                raise ConfigError(f"Pool {pool.address} references unknown asset {token}")
        if pool.token_a == pool.token_b:
            raise ConfigError(f"Pool {pool.address} links {pool.token_a} to itself")
        if not 0.0 <= pool.fee < 1.0:
            raise ConfigError(f"Pool {pool.address} has invalid fee {pool.fee}")
        if pool.kind is not PoolKind.CONSTANT_PRODUCT:
            raise ConfigError(f"Pool {pool.address} has unsupported kind {pool.kind.value}")

    @classmethod
    def build(
        cls,
        records: PoolCatalog | Iterable[PoolRecord],
        assets: Iterable[Asset] | None = None,
        default_fee: float = 0.003,
    ) -> "PoolGraph":
        """
        Build a graph from catalog records.

        Args:
            records: A full catalog, or pool records alone.
            assets: Known assets; required when `records` is not a catalog.
            default_fee: Fee for records that do not declare one.

        Returns:
            The constructed graph.

        Raises:
            ConfigError: If a pool references an unknown asset or
                duplicates an existing pool.
        """
        if isinstance(records, PoolCatalog):
            asset_list = [
                Asset(address=a.address, symbol=a.symbol, decimals=a.decimals)
                for a in records.assets
            ]
            pool_records: Iterable[PoolRecord] = records.pools
        else:
            asset_list = list(assets or [])
            pool_records = records

        by_address = {a.address: a for a in asset_list}
        by_symbol: dict[str, Asset] = {}
        for a in asset_list:
            by_symbol.setdefault(a.symbol.upper(), a)

        def resolve(ref: str, pool_address: str) -> str:
            asset = by_address.get(ref.lower()) or by_symbol.get(ref.upper())
            if asset is None:
                raise ConfigError(f"Pool {pool_address} references unknown asset {ref}")
            return asset.address

        pools = [
            Pool(
                address=record.pool_address,
                token_a=resolve(record.token_a, record.pool_address),
                token_b=resolve(record.token_b, record.pool_address),
                fee=default_fee if record.fee is None else record.fee,
                kind=record.kind,
                name=record.name,
            )
            for record in pool_records
        ]

        return cls(asset_list, pools)

    # =========================================================================
    # Queries
    # =========================================================================

    def asset(self, address: str) -> Asset:
        """Get an asset by address."""
        try:
            return self._assets[self._asset_index[address]]
        except KeyError:
            raise KeyError(f"Unknown asset {address}") from None

    def resolve_asset(self, ref: str) -> Asset | None:
        """Find an asset by address or (case-insensitive) symbol."""
        index = self._asset_index.get(ref.lower())
        if index is None:
            index = self._symbol_index.get(ref.upper())
        return self._assets[index] if index is not None else None

    def pool(self, pool_id: str) -> Pool:
        """Get a pool by address."""
        try:
            return self._pools[self._pool_index[pool_id]]
        except KeyError:
            raise KeyError(f"Unknown pool {pool_id}") from None

    def has_pool(self, pool_id: str) -> bool:
        return pool_id in self._pool_index

    def incident_pools(self, asset: str) -> list[Pool]:
        """Get pools trading `asset`, in catalog order."""
        return [self._pools[i] for i in self._incident.get(asset, ())]

    def neighbors(self, asset: str) -> set[str]:
        """Get assets directly reachable from `asset`."""
        return set(self._graph.neighbors(asset)) if asset in self._graph else set()

    def symbol(self, asset: str) -> str:
        """Display symbol of an asset address."""
        index = self._asset_index.get(asset)
        return self._assets[index].symbol if index is not None else asset

    @property
    def assets(self) -> tuple[Asset, ...]:
        return self._assets

    @property
    def pools(self) -> tuple[Pool, ...]:
        return self._pools

    @property
    def pool_ids(self) -> tuple[str, ...]:
        return tuple(pool.address for pool in self._pools)

    @property
    def number_of_assets(self) -> int:
        return len(self._assets)

    @property
    def number_of_pools(self) -> int:
        return len(self._pools)

    @property
    def graph(self) -> nx.MultiGraph:
        """Get the underlying NetworkX graph."""
        return self._graph

    def visualize(self, output_path: str | None = None) -> None:
        """
        Draw the pool graph with assets labelled by symbol.

        Args:
            output_path: Path to save image (requires matplotlib).
        """
        try:
            import matplotlib.pyplot as plt

            plt.figure(figsize=(12, 8))
            pos = nx.spring_layout(self._graph, k=2, iterations=50, seed=7)
            nx.draw(
                self._graph,
                pos,
                labels={asset.address: asset.symbol for asset in self._assets},
                with_labels=True,
                node_color="lightblue",
                node_size=800,
                font_size=8,
            )

            if output_path:
                plt.savefig(output_path, dpi=150, bbox_inches="tight")
                logger.info(f"Saved graph visualization to {output_path}")
            else:
                plt.show()

            plt.close()

        except ImportError:
            logger.warning("matplotlib not installed, cannot visualize graph")

    def to_dict(self) -> dict[str, Any]:
        """Export the graph for inspection tools."""
        return {
            "assets": [
                {"address": a.address, "symbol": a.symbol, "decimals": a.decimals}
                for a in self._assets
            ],
            "pools": [
                {
                    "address": p.address,
                    "name": p.name,
                    "token_a": self.symbol(p.token_a),
                    "token_b": self.symbol(p.token_b),
                    "fee": p.fee,
                }
                for p in self._pools
            ],
        }
