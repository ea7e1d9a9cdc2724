"""Core module containing the engine, event bus, errors and type definitions."""

from cyclearb.core.errors import (
    ArbitrageError,
    ComputationError,
    ConfigError,
    NetworkError,
    StaleRoundError,
)
from cyclearb.core.event_bus import Event, EventBus, EventType
from cyclearb.core.types import (
    ArbitrageOpportunity,
    Asset,
    CyclePath,
    Direction,
    Hop,
    OptimizationResult,
    Pool,
    PoolKind,
    ReserveSnapshot,
    StateSnapshot,
)


__all__ = [
    "ArbitrageError",
    "ArbitrageOpportunity",
    "Asset",
    "ComputationError",
    "ConfigError",
    "CyclePath",
    "Direction",
    "Event",
    "EventBus",
    "EventType",
    "Hop",
    "NetworkError",
    "OptimizationResult",
    "Pool",
    "PoolKind",
    "ReserveSnapshot",
    "StaleRoundError",
    "StateSnapshot",
]
