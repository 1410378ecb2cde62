"""LP-share accounting shared by both pool curves.

Every function rounds in the pool's favour: shares minted and amounts paid
out round down, so repeated small operations can never extract value.
"""

from __future__ import annotations

from collections.abc import Sequence

from dex.errors import InsufficientLiquidityMinted
from dex.math.fixed_point import isqrt
from dex.safe_int import S


def initial_liquidity(amount0: int, amount1: int, minimum_liquidity: int) -> int:
    """Shares minted by the first constant-product deposit.

    Formula: sqrt(amount0 * amount1) - minimum_liquidity

    Raises:
        InsufficientLiquidityMinted: If the root does not exceed the locked minimum
    """
    root = isqrt(amount0 * amount1)
    if root <= minimum_liquidity:
        raise InsufficientLiquidityMinted(
            f"Initial liquidity {root} does not exceed minimum {minimum_liquidity}"
        )
    return root - minimum_liquidity


def proportional_mint(
    amounts: Sequence[int], reserves: Sequence[int], total_supply: int
) -> int:
    """Shares minted for a deposit into a pool that already has supply.

    The smallest share ratio across tokens wins, so any excess of one token
    is donated to the pool.
    """
    return min((S(a) * total_supply // r).value for a, r in zip(amounts, reserves, strict=True))


def proportional_amounts(
    liquidity: int, balances: Sequence[int], total_supply: int
) -> list[int]:
    """Token amounts owed for burning liquidity shares."""
    return [(S(b) * liquidity // total_supply).value for b in balances]


def invariant_mint(d0: int, d_after: int, total_supply: int) -> int:
    """Shares minted when a deposit moves the invariant from d0 to d_after.

    The first deposit mints d_after itself.
    """
    if total_supply == 0:
        return d_after
    return ((S(d_after) - d0) * total_supply // d0).value


def invariant_burn(d0: int, d_after: int, total_supply: int) -> int:
    """Shares burned when a withdrawal moves the invariant from d0 to d_after."""
    return ((S(d0) - d_after) * total_supply // d0).value


__all__ = [
    "initial_liquidity",
    "invariant_burn",
    "invariant_mint",
    "proportional_amounts",
    "proportional_mint",
]
