"""
Chain constants and configuration defaults.

This module contains all hardcoded values used throughout the monitor.
Values are organized by category for easy maintenance and auditing.
"""

from typing import Final


# =============================================================================
# Mantle Network
# =============================================================================

MANTLE_RPC_URL: Final[str] = "https://rpc.mantle.xyz"
MANTLE_CHAIN_ID: Final[int] = 5000

# Mantle produces a block roughly every 2 seconds
DEFAULT_BLOCK_TIME_SECONDS: Final[float] = 2.0


# =============================================================================
# Token Addresses
# =============================================================================

WMNT_ADDRESS: Final[str] = "0x78c1b0c915c4faa5fffa6cabf0219da63d7f4cb8"
MOE_ADDRESS: Final[str] = "0x4515a45337f461a11ff0fe8abf3c606ae5dc00c9"
JOE_ADDRESS: Final[str] = "0x371c7ec6d8039ff7933a2aa28eb827ffe1f52f07"

DEFAULT_TOKEN_DECIMALS: Final[int] = 18


# =============================================================================
# Pool Addresses (Merchant Moe)
# =============================================================================

MOE_WMNT_POOL: Final[str] = "0x763868612858358f62b05691db82ad35a9b3e110"
JOE_MOE_POOL: Final[str] = "0xb670d2b452d0ecc468cccfd532482d45dddde2a1"
JOE_WMNT_POOL: Final[str] = "0xefc38c1b0d60725b824ebee8d431abfbf12bc953"


# =============================================================================
# JSON-RPC
# =============================================================================

RPC_METHOD_BLOCK_NUMBER: Final[str] = "eth_blockNumber"
RPC_METHOD_CALL: Final[str] = "eth_call"
RPC_BLOCK_TAG_LATEST: Final[str] = "latest"

# keccak("getReserves()")[:4]
GET_RESERVES_SELECTOR: Final[str] = "0x0902f1ac"

# ABI words are 32 bytes (64 hex chars)
ABI_WORD_HEX_LENGTH: Final[int] = 64

DEFAULT_REQUEST_TIMEOUT_SECONDS: Final[float] = 5.0
DEFAULT_RPC_REQUESTS_PER_SECOND: Final[int] = 50


# =============================================================================
# Fees & Costs
# =============================================================================

# Uniswap V2 style 0.3% swap fee
DEFAULT_DEX_FEE: Final[float] = 0.003

# Fixed cost of submitting an arbitrage transaction, in base-asset units
DEFAULT_TRANSACTION_COST: Final[float] = 0.02

# Extra cost per hop beyond the third (4-hop paths burn more gas)
DEFAULT_EXTRA_HOP_COST: Final[float] = 0.0


# =============================================================================
# Gas
# =============================================================================

# 1 gwei = 1e-9 MNT
GWEI_TO_MNT_MULTIPLIER: Final[float] = 1e-9

# Gas burned by a swap route of 3 and 4 hops
GAS_UNITS_3_HOPS: Final[int] = 350_000
GAS_UNITS_4_HOPS: Final[int] = 450_000


# =============================================================================
# Cycle Search
# =============================================================================

MIN_CYCLE_HOPS: Final[int] = 3
MAX_CYCLE_HOPS: Final[int] = 4
DEFAULT_MAX_HOPS: Final[int] = 3

DEFAULT_BASE_ASSET: Final[str] = "WMNT"

# Pool count above which negative-cycle detection replaces exhaustive search
DEFAULT_LARGE_GRAPH_THRESHOLD: Final[int] = 64


# =============================================================================
# Optimizer
# =============================================================================

DEFAULT_TERNARY_SEARCH_ITERATIONS: Final[int] = 100

# Upper bound of the search domain as a fraction of the smallest input reserve
MAX_RESERVE_FRACTION: Final[float] = 0.999

# Lower bound of the search domain
MIN_TRADE_AMOUNT: Final[float] = 1e-9

# Reserves at or below this are treated as a drained pool
DEFAULT_MIN_RESERVE: Final[float] = 1e-10

# Pools with either reserve below this are left out of optimization (0 disables)
DEFAULT_MIN_LIQUIDITY: Final[float] = 0.0

# Pools listed by liquidity in the session summary
LIQUIDITY_TOP_POOLS: Final[int] = 10


# =============================================================================
# Synchronization
# =============================================================================

DEFAULT_MAX_RETRIES: Final[int] = 3
DEFAULT_RETRY_BACKOFF_SECONDS: Final[float] = 0.1
DEFAULT_RETRY_BACKOFF_MULTIPLIER: Final[float] = 2.0


# =============================================================================
# Execution
# =============================================================================

DEFAULT_SLIPPAGE_TOLERANCE: Final[float] = 0.005


# =============================================================================
# Output
# =============================================================================

DEFAULT_OPPORTUNITY_LOG_PATH: Final[str] = "arbitrage_opportunities.csv"

PROFIT_PRECISION: Final[int] = 8
PERCENTAGE_PRECISION: Final[int] = 4


# =============================================================================
# Logging & Telemetry
# =============================================================================

LOG_FORMAT: Final[str] = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_DATE_FORMAT: Final[str] = "%Y-%m-%d %H:%M:%S"

# Rounds between status lines
DEFAULT_STATUS_INTERVAL_ROUNDS: Final[int] = 30

# Maximum log queue size
MAX_LOG_QUEUE_SIZE: Final[int] = 10_000
