"""
Application settings with environment variable support.

Uses Pydantic Settings for type-safe configuration with automatic
environment variable loading and validation.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from cyclearb.config.constants import (
    DEFAULT_BASE_ASSET,
    DEFAULT_BLOCK_TIME_SECONDS,
    DEFAULT_DEX_FEE,
    DEFAULT_EXTRA_HOP_COST,
    DEFAULT_LARGE_GRAPH_THRESHOLD,
    DEFAULT_MAX_HOPS,
    DEFAULT_MAX_RETRIES,
    DEFAULT_MIN_LIQUIDITY,
    DEFAULT_MIN_RESERVE,
    DEFAULT_OPPORTUNITY_LOG_PATH,
    DEFAULT_REQUEST_TIMEOUT_SECONDS,
    DEFAULT_RETRY_BACKOFF_SECONDS,
    DEFAULT_RPC_REQUESTS_PER_SECOND,
    DEFAULT_SLIPPAGE_TOLERANCE,
    DEFAULT_STATUS_INTERVAL_ROUNDS,
    DEFAULT_TERNARY_SEARCH_ITERATIONS,
    DEFAULT_TRANSACTION_COST,
    GAS_UNITS_3_HOPS,
    GAS_UNITS_4_HOPS,
    MANTLE_RPC_URL,
)


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables or a
    ``.env`` file. The RPC endpoint also accepts ``RPC_URL`` and
    ``MANTLE_RPC_URL``.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # =========================================================================
    # Chain Connection
    # =========================================================================

    rpc_endpoint: str = Field(
        default=MANTLE_RPC_URL,
        validation_alias=AliasChoices("rpc_endpoint", "rpc_url", "mantle_rpc_url"),
        description="HTTP(S) JSON-RPC endpoint of the chain node",
    )

    request_timeout_seconds: float = Field(
        default=DEFAULT_REQUEST_TIMEOUT_SECONDS,
        gt=0.0,
        le=60.0,
        description="Timeout for a single JSON-RPC request",
    )

    rpc_requests_per_second: int = Field(
        default=DEFAULT_RPC_REQUESTS_PER_SECOND,
        ge=1,
        le=1000,
        description="Client-side ceiling on JSON-RPC requests per second",
    )

    block_time_seconds: float = Field(
        default=DEFAULT_BLOCK_TIME_SECONDS,
        gt=0.0,
        le=60.0,
        description="Expected block interval; drives the polling cadence",
    )

    # =========================================================================
    # Pool Universe
    # =========================================================================

    pool_catalog_path: Path | None = Field(
        default=None,
        description="JSON pool catalog; the built-in Mantle catalog is used when unset",
    )

    base_asset: str = Field(
        default=DEFAULT_BASE_ASSET,
        min_length=1,
        description="Symbol or address of the asset every cycle starts and ends with",
    )

    dex_fee: float = Field(
        default=DEFAULT_DEX_FEE,
        ge=0.0,
        lt=1.0,
        description="Swap fee applied to catalog pools that do not declare one",
    )

    # =========================================================================
    # Cycle Search
    # =========================================================================

    max_hops: Literal[3, 4] = Field(
        default=DEFAULT_MAX_HOPS,
        description="Longest cycle to monitor (3 or 4 hops)",
    )

    enumeration_strategy: Literal["auto", "backtracking", "negative_cycle"] = Field(
        default="auto",
        description="Cycle discovery strategy",
    )

    large_graph_threshold: int = Field(
        default=DEFAULT_LARGE_GRAPH_THRESHOLD,
        ge=1,
        description="Pool count above which 'auto' switches to negative-cycle detection",
    )

    # =========================================================================
    # Profit Model
    # =========================================================================

    transaction_cost: float = Field(
        default=DEFAULT_TRANSACTION_COST,
        ge=0.0,
        description="Fixed execution cost in base-asset units",
    )

    extra_hop_cost: float = Field(
        default=DEFAULT_EXTRA_HOP_COST,
        ge=0.0,
        description="Additional cost per hop beyond the third, in base-asset units",
    )

    gas_price_gwei: float | None = Field(
        default=None,
        gt=0.0,
        description="Gas price in gwei; when set, cycle cost is derived from gas units",
    )

    gas_units_3_hops: int = Field(
        default=GAS_UNITS_3_HOPS,
        ge=1,
        description="Gas burned by a 3-hop swap route",
    )

    gas_units_4_hops: int = Field(
        default=GAS_UNITS_4_HOPS,
        ge=1,
        description="Gas burned by a 4-hop swap route",
    )

    ternary_search_iterations: int = Field(
        default=DEFAULT_TERNARY_SEARCH_ITERATIONS,
        ge=1,
        le=1000,
        description="Fixed iteration count of the trade-size search",
    )

    min_reserve: float = Field(
        default=DEFAULT_MIN_RESERVE,
        gt=0.0,
        description="Reserves at or below this value mark a pool as degenerate",
    )

    min_liquidity: float = Field(
        default=DEFAULT_MIN_LIQUIDITY,
        ge=0.0,
        description="Pools with either reserve below this are not optimized (0 disables)",
    )

    # =========================================================================
    # Synchronization
    # =========================================================================

    max_retries: int = Field(
        default=DEFAULT_MAX_RETRIES,
        ge=1,
        le=10,
        description="Attempts per pool fetch before the pool is marked stale",
    )

    retry_backoff_seconds: float = Field(
        default=DEFAULT_RETRY_BACKOFF_SECONDS,
        ge=0.0,
        le=5.0,
        description="Delay before the first retry; doubles on each further attempt",
    )

    round_budget_seconds: float | None = Field(
        default=None,
        gt=0.0,
        description="Time budget per round; defaults to the block time",
    )

    # =========================================================================
    # Execution
    # =========================================================================

    execution_enabled: bool = Field(
        default=False,
        description="Hand qualifying opportunities to the execution gate",
    )

    slippage_tolerance: float = Field(
        default=DEFAULT_SLIPPAGE_TOLERANCE,
        ge=0.0,
        lt=1.0,
        description="Accepted shortfall of the on-chain output versus the detected output",
    )

    # =========================================================================
    # Output
    # =========================================================================

    opportunity_log_path: Path = Field(
        default=Path(DEFAULT_OPPORTUNITY_LOG_PATH),
        description="Append-only opportunity record file (.csv or .jsonl)",
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging verbosity level",
    )

    log_file: Path | None = Field(
        default=None,
        description="Optional log file in addition to stdout",
    )

    status_interval_rounds: int = Field(
        default=DEFAULT_STATUS_INTERVAL_ROUNDS,
        ge=1,
        description="Rounds between status lines",
    )

    # =========================================================================
    # Performance Tuning
    # =========================================================================

    use_uvloop: bool = Field(
        default=True,
        description="Use uvloop for improved async performance",
    )

    # =========================================================================
    # Validators
    # =========================================================================

    @field_validator("rpc_endpoint", mode="after")
    @classmethod
    def validate_rpc_endpoint(cls, v: str) -> str:
        """Ensure the endpoint is an HTTP(S) URL."""
        if not v.startswith(("http://", "https://")):
            raise ValueError("RPC endpoint must be an http(s) URL")
        return v

    @field_validator("opportunity_log_path", mode="after")
    @classmethod
    def validate_log_suffix(cls, v: Path) -> Path:
        """Only CSV and JSON Lines sinks are supported."""
        if v.suffix.lower() not in (".csv", ".jsonl"):
            raise ValueError("Opportunity log must end in .csv or .jsonl")
        return v

    # =========================================================================
    # Computed Properties
    # =========================================================================

    @property
    def round_budget(self) -> float:
        """Seconds a round may take before it is abandoned."""
        if self.round_budget_seconds is not None:
            return self.round_budget_seconds
        return self.block_time_seconds


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses LRU cache to ensure settings are loaded only once.
    Clear cache with `get_settings.cache_clear()` if needed.
    """
    return Settings()
