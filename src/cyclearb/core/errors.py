"""
Error taxonomy for the monitor.

Only ConfigError is fatal; every other error is confined to a pool,
a cycle or a single round.
"""


class ArbitrageError(Exception):
    """Base exception for all monitor errors."""


class ConfigError(ArbitrageError):
    """Malformed pool catalog or configuration. Fatal at startup."""


class NetworkError(ArbitrageError):
    """Transient failure talking to the chain node."""

    def __init__(self, message: str, code: int | None = None) -> None:
        super().__init__(message)
        self.code = code


class ComputationError(ArbitrageError):
    """Degenerate reserves or a numeric domain violation for one cycle."""

    def __init__(self, message: str, cycle_id: str = "") -> None:
        super().__init__(message)
        self.cycle_id = cycle_id


class StaleRoundError(ArbitrageError):
    """A round exceeded its time budget and its results were discarded."""

    def __init__(self, block_number: int, budget_seconds: float) -> None:
        super().__init__(
            f"Round for block {block_number} exceeded its {budget_seconds:.3f}s budget"
        )
        self.block_number = block_number
        self.budget_seconds = budget_seconds
