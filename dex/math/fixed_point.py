"""Fixed-point fee arithmetic and precision helpers.

Every rate in the engine is an integer fraction of FEE_DENOMINATOR (1e10),
and every rounding goes down unless a helper says otherwise, so no caller can
extract value from rounding. Stable pools additionally normalize token
balances to 18 decimals through per-token precision multipliers.
"""

from __future__ import annotations

import math
from collections.abc import Sequence

from dex.constants import FEE_DENOMINATOR, POOL_PRECISION_DECIMALS
from dex.errors import TokenDecimalsTooHigh
from dex.safe_int import S

__all__ = [
    # Fee helpers
    "apply_fee",
    "fee_portion",
    "admin_fee_of_input",
    # Precision helpers
    "precision_multiplier",
    "normalize",
    # Integer helpers
    "isqrt",
    "div_up",
    "within1",
    "difference",
    # Constants
    "FEE_DENOMINATOR",
]

# =============================================================================
# Fee helpers
# =============================================================================


def apply_fee(amount: int, fee_rate: int) -> int:
    """Amount left after deducting a fee, rounded down.

    Formula: amount * (FEE_DENOMINATOR - fee_rate) // FEE_DENOMINATOR

    Raises:
        Underflow: If fee_rate exceeds FEE_DENOMINATOR
    """
    return (S(amount) * (S(FEE_DENOMINATOR) - fee_rate) // FEE_DENOMINATOR).value


def fee_portion(amount: int, fee_rate: int) -> int:
    """Fee charged on an amount, rounded down."""
    return (S(amount) * fee_rate // FEE_DENOMINATOR).value


def admin_fee_of_input(amount_in: int, swap_fee_rate: int, admin_fee_rate: int) -> int:
    """Admin share of the swap fee charged on a volatile pool input.

    Formula: amount_in * swap_fee * admin_fee / FEE_DENOMINATOR / FEE_DENOMINATOR
    """
    fee = S(amount_in) * swap_fee_rate * admin_fee_rate
    return (fee // FEE_DENOMINATOR // FEE_DENOMINATOR).value


# =============================================================================
# Precision helpers
# =============================================================================


def precision_multiplier(decimals: int) -> int:
    """Multiplier that lifts a token amount to 18-decimal precision.

    Raises:
        TokenDecimalsTooHigh: If decimals exceed 18
    """
    if decimals > POOL_PRECISION_DECIMALS:
        raise TokenDecimalsTooHigh(
            f"Token decimals {decimals} exceed pool precision {POOL_PRECISION_DECIMALS}"
        )
    if decimals < 0:
        raise TokenDecimalsTooHigh(f"Token decimals cannot be negative: {decimals}")
    return 10 ** (POOL_PRECISION_DECIMALS - decimals)


def normalize(balances: Sequence[int], multipliers: Sequence[int]) -> list[int]:
    """Balances scaled to 18 decimals (the xp vector of the StableSwap math)."""
    if len(balances) != len(multipliers):
        raise ValueError(
            f"Balances and multipliers length mismatch: {len(balances)} != {len(multipliers)}"
        )
    return [b * m for b, m in zip(balances, multipliers, strict=True)]


# =============================================================================
# Integer helpers
# =============================================================================


def isqrt(value: int) -> int:
    """Floor square root of a non-negative integer."""
    if value < 0:
        raise ValueError(f"isqrt of negative value: {value}")
    return math.isqrt(value)


def div_up(numerator: int, denominator: int) -> int:
    """Division rounding up."""
    return S(numerator).ceiling_div(denominator).value


def within1(a: int, b: int) -> bool:
    """True if a and b differ by at most one unit."""
    return abs(a - b) <= 1


def difference(a: int, b: int) -> int:
    """Absolute difference of two integers."""
    return abs(a - b)
