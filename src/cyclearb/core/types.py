"""
Type definitions for the cycle arbitrage monitor.

This module contains all dataclasses, enums and Protocol definitions
used throughout the application. Topology types are frozen; reserve
state lives only in immutable snapshots that are replaced as a whole.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Protocol

from cyclearb.utils.math import safe_divide


# =============================================================================
# Enums
# =============================================================================


class PoolKind(str, Enum):
    """Pricing model of a pool."""

    CONSTANT_PRODUCT = "constant_product"
    CONCENTRATED_LIQUIDITY = "concentrated_liquidity"


class Direction(str, Enum):
    """Traversal direction of a hop through a pool."""

    A_TO_B = "a2b"
    B_TO_A = "b2a"

    @property
    def reverse(self) -> "Direction":
        return Direction.B_TO_A if self is Direction.A_TO_B else Direction.A_TO_B


# =============================================================================
# Topology Types
# =============================================================================


@dataclass(slots=True, frozen=True)
class Asset:
    """
    Token identity.

    Addresses are stored lower-cased so lookups are case-insensitive.
    """

    address: str
    symbol: str
    decimals: int = 18

    def __repr__(self) -> str:
        return f"Asset({self.symbol})"


@dataclass(slots=True, frozen=True)
class Pool:
    """
    Liquidity pool linking two assets.

    Only the structural identity is kept here. Reserves change every
    block and are held in StateSnapshot, keyed by pool address.
    """

    address: str
    token_a: str
    token_b: str
    fee: float
    kind: PoolKind = PoolKind.CONSTANT_PRODUCT
    name: str = ""

    @property
    def id(self) -> str:
        return self.address

    def contains(self, asset: str) -> bool:
        """Check if the asset is one side of the pool."""
        return asset in (self.token_a, self.token_b)

    def other(self, asset: str) -> str:
        """Get the asset on the opposite side of the pool."""
        if asset == self.token_a:
            return self.token_b
        if asset == self.token_b:
            return self.token_a
        raise KeyError(f"{asset} is not traded by pool {self.address}")

    def direction_from(self, asset: str) -> Direction:
        """Get the hop direction when entering the pool with `asset`."""
        if asset == self.token_a:
            return Direction.A_TO_B
        if asset == self.token_b:
            return Direction.B_TO_A
        raise KeyError(f"{asset} is not traded by pool {self.address}")


@dataclass(slots=True, frozen=True)
class Hop:
    """Single swap through one pool within a cycle."""

    pool_id: str
    direction: Direction
    asset_in: str
    asset_out: str

    def __repr__(self) -> str:
        return f"{self.asset_in}->{self.asset_out}({self.pool_id}:{self.direction.value})"


@dataclass(slots=True, frozen=True, eq=False)
class CyclePath:
    """
    Closed trading loop starting and ending at the base asset.

    Identity is the ordered (pool, direction) sequence: a loop and its
    reverse traversal are distinct paths over the same pool set.
    """

    id: str
    base_asset: str
    hops: tuple[Hop, ...]
    label: str = ""
    pool_ids: frozenset[str] = field(init=False)

    def __post_init__(self) -> None:
        """Compute derived fields after initialization."""
        object.__setattr__(self, "pool_ids", frozenset(hop.pool_id for hop in self.hops))

    @classmethod
    def from_hops(cls, base_asset: str, hops: tuple[Hop, ...], label: str = "") -> "CyclePath":
        """Build a path whose id is derived from its hop sequence."""
        cycle_id = "|".join(f"{hop.pool_id}:{hop.direction.value}" for hop in hops)
        return cls(id=cycle_id, base_asset=base_asset, hops=hops, label=label)

    @property
    def key(self) -> tuple[tuple[str, Direction], ...]:
        """Ordered (pool, direction) sequence."""
        return tuple((hop.pool_id, hop.direction) for hop in self.hops)

    @property
    def hop_count(self) -> int:
        return len(self.hops)

    @property
    def assets(self) -> tuple[str, ...]:
        """Assets visited in order, base asset at both ends."""
        return (self.hops[0].asset_in,) + tuple(hop.asset_out for hop in self.hops)

    def __hash__(self) -> int:
        return hash(self.id)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CyclePath):
            return NotImplemented
        return self.id == other.id


# =============================================================================
# State Types
# =============================================================================


@dataclass(slots=True, frozen=True)
class ReserveSnapshot:
    """Reserves of one pool as observed at a given block, in token units."""

    pool_id: str
    reserve_a: float
    reserve_b: float
    observed_block: int
    last_update: int = 0

    def oriented(self, direction: Direction) -> tuple[float, float]:
        """Get (reserve_in, reserve_out) for a hop direction."""
        if direction is Direction.A_TO_B:
            return self.reserve_a, self.reserve_b
        return self.reserve_b, self.reserve_a

    def same_reserves(self, other: "ReserveSnapshot") -> bool:
        """Check if the reserve pair is numerically identical."""
        return self.reserve_a == other.reserve_a and self.reserve_b == other.reserve_b


@dataclass(slots=True, frozen=True, eq=False)
class StateSnapshot:
    """
    Immutable view of every pool's reserves.

    Published as a single reference; readers holding an older snapshot
    keep a consistent view while the next one is being built.
    """

    block_number: int
    reserves: Mapping[str, ReserveSnapshot]
    stale: frozenset[str] = frozenset()
    timestamp_us: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "reserves", MappingProxyType(dict(self.reserves)))

    @classmethod
    def empty(cls) -> "StateSnapshot":
        return cls(block_number=0, reserves={})

    def get(self, pool_id: str) -> ReserveSnapshot | None:
        return self.reserves.get(pool_id)

    def is_usable(self, pool_id: str) -> bool:
        """Check if the pool has fresh reserves in this snapshot."""
        return pool_id in self.reserves and pool_id not in self.stale

    def __contains__(self, pool_id: object) -> bool:
        return pool_id in self.reserves

    def __len__(self) -> int:
        return len(self.reserves)


# =============================================================================
# Opportunity Types
# =============================================================================


@dataclass(slots=True, frozen=True)
class OptimizationResult:
    """Optimal trade size and profit of one cycle against one snapshot."""

    cycle: CyclePath
    optimal_input: float
    final_output: float
    gross_profit: float
    net_profit: float
    cost: float
    iterations: int

    @property
    def profit_percentage(self) -> float:
        """Net profit as a percentage of the input amount."""
        return safe_divide(self.net_profit, self.optimal_input) * 100.0

    @property
    def is_profitable(self) -> bool:
        return self.net_profit > 0.0


@dataclass(slots=True, frozen=True)
class ArbitrageOpportunity:
    """
    Qualifying optimization result with the state it was computed from.

    Emitted once and never revised.
    """

    result: OptimizationResult
    block_number: int
    timestamp_us: int
    reserves: tuple[ReserveSnapshot, ...]
    fetch_time_ms: float = 0.0

    @property
    def cycle(self) -> CyclePath:
        return self.result.cycle

    @property
    def net_profit(self) -> float:
        return self.result.net_profit

    @property
    def profit_percentage(self) -> float:
        return self.result.profit_percentage

    def to_record(self) -> dict[str, object]:
        """Flatten into a sink record."""
        result = self.result
        return {
            "timestamp": self.timestamp_us,
            "block_number": self.block_number,
            "cycle": result.cycle.label or result.cycle.id,
            "cycle_id": result.cycle.id,
            "optimal_input": result.optimal_input,
            "final_output": result.final_output,
            "gross_profit": result.gross_profit,
            "net_profit": result.net_profit,
            "profit_percentage": result.profit_percentage,
            "cost": result.cost,
            "reserves": {
                snap.pool_id: [snap.reserve_a, snap.reserve_b] for snap in self.reserves
            },
            "fetch_time_ms": self.fetch_time_ms,
            "iterations": result.iterations,
        }


# =============================================================================
# Execution Types
# =============================================================================


@dataclass(slots=True, frozen=True)
class ExecutionRequest:
    """Cycle submission for the revalidating on-chain executor."""

    cycle_id: str
    hops: tuple[tuple[str, Direction], ...]
    amount_in: float
    min_amount_out: float
    block_number: int = 0


@dataclass(slots=True, frozen=True)
class ExecutionReceipt:
    """Outcome of an execution request: executed or atomically reverted."""

    executed: bool
    revert_reason: str = ""
    amount_out: float = 0.0
    tx_hash: str | None = None


# =============================================================================
# Protocols (Interfaces)
# =============================================================================


class ChainReader(Protocol):
    """Protocol for chain state readers."""

    async def get_block_number(self) -> int:
        """Get the latest block height."""
        ...

    async def get_reserves(self, pool_id: str) -> tuple[int, int, int]:
        """Get raw (reserve_a, reserve_b, last_update) for a pool."""
        ...


class OpportunitySink(Protocol):
    """Protocol for append-only opportunity record sinks."""

    def write(self, opportunity: ArbitrageOpportunity) -> None:
        """Append one opportunity record."""
        ...

    def close(self) -> None:
        """Flush and release resources."""
        ...


class ExecutionGateway(Protocol):
    """Protocol for on-chain execution backends."""

    async def submit(self, request: ExecutionRequest) -> ExecutionReceipt:
        """Submit a cycle; the backend revalidates and reverts atomically."""
        ...
