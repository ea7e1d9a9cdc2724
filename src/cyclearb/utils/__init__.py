"""Utility functions for the cycle arbitrage monitor."""

from cyclearb.utils.math import (
    EPSILON,
    format_profit,
    safe_divide,
    to_base_units,
    to_token_units,
)
from cyclearb.utils.time import (
    LatencyTimer,
    format_duration_us,
    format_timestamp_us,
    get_timestamp_ms,
    get_timestamp_us,
)


__all__ = [
    "EPSILON",
    "LatencyTimer",
    "format_duration_us",
    "format_profit",
    "format_timestamp_us",
    "get_timestamp_ms",
    "get_timestamp_us",
    "safe_divide",
    "to_base_units",
    "to_token_units",
]
