"""
Mathematical utilities for reserve and profit calculations.

Handles conversion between raw on-chain integer amounts and
token-unit floats.
"""

from typing import Final


# Epsilon for floating point comparisons
EPSILON: Final[float] = 1e-10


def safe_divide(numerator: float, denominator: float, default: float = 0.0) -> float:
    """
    Safely divide two numbers, returning default on division by zero.

    Args:
        numerator: The dividend.
        denominator: The divisor.
        default: Value to return if denominator is zero.

    Returns:
        Result of division or default value.
    """
    if abs(denominator) < EPSILON:
        return default
    return numerator / denominator


def to_token_units(raw_amount: int, decimals: int) -> float:
    """
    Convert a raw integer amount into token units.

    Args:
        raw_amount: Amount in the token's smallest unit (e.g. wei).
        decimals: Token decimal precision.

    Returns:
        Amount as a float in whole-token units.

    Example:
        >>> to_token_units(1_500_000_000_000_000_000, 18)
        1.5
    """
    return raw_amount / (10**decimals)


def to_base_units(amount: float, decimals: int) -> int:
    """
    Convert a token-unit amount into the raw integer representation.

    Args:
        amount: Amount in whole-token units.
        decimals: Token decimal precision.

    Returns:
        Amount in the token's smallest unit, rounded to nearest.
    """
    return int(round(amount * (10**decimals)))


def format_profit(profit_pct: float) -> str:
    """
    Format profit percentage for display.

    Args:
        profit_pct: Profit as percentage.

    Returns:
        Formatted string with sign.
    """
    sign = "+" if profit_pct >= 0 else ""
    return f"{sign}{profit_pct:.4f}%"
