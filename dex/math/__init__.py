"""Mathematical utilities for the DEX engine.

This package provides the integer primitives behind both pool curves:
- fixed_point: fee arithmetic, precision multipliers, integer sqrt
- stable_math: StableSwap invariant and balance solvers
"""

from dex.math.fixed_point import (
    admin_fee_of_input,
    apply_fee,
    fee_portion,
    isqrt,
    normalize,
    precision_multiplier,
)
from dex.math.stable_math import SolveResult, get_d, get_y, get_y_d

__all__ = [
    "SolveResult",
    "admin_fee_of_input",
    "apply_fee",
    "fee_portion",
    "get_d",
    "get_y",
    "get_y_d",
    "isqrt",
    "normalize",
    "precision_multiplier",
]
