"""Volatile (constant-product) pool routing handler."""

from __future__ import annotations

from collections.abc import Sequence

from dex.constants import MINIMUM_LIQUIDITY
from dex.errors import (
    InsufficientAAmount,
    InsufficientBAmount,
    InvalidToken,
    MintBelowMinimum,
    NotVolatilePair,
)
from dex.math.fixed_point import isqrt
from dex.pools import PoolRegistry, VolatilePool
from dex.pools.base import PoolType
from dex.pools.liquidity import proportional_amounts, proportional_mint
from dex.pools.volatile import quote
from dex.routing.handlers.base import BaseHandler


class VolatileHandler(BaseHandler):
    """Handler for volatile pool routing.

    Deposits follow the constant-product convention: the caller names a
    desired and a minimum amount per token, and the pair is topped up at the
    current reserve ratio. Missing pools are created on first deposit.
    """

    pool_type = PoolType.VOLATILE

    def quote_swap(
        self, pool: VolatilePool, token_in: str, token_out: str, amount_in: int
    ) -> int:
        return pool.get_amount_out(token_in, token_out, amount_in)

    def swap(
        self,
        pool: VolatilePool,
        token_in: str,
        token_out: str,
        amount_in: int,
        to: str,
        deadline: int,
        *,
        sender: str,
    ) -> int:
        """Swap amount_in (already held by the pool) for token_out.

        The output is priced at the reserves before the input arrived, so it
        is exactly what quote_swap returned.
        """
        amount_out = pool.get_amount_out(token_in, token_out, amount_in)
        if pool.get_token_index(token_out) == 0:
            pool.swap(amount_out, 0, to, sender=sender)
        else:
            pool.swap(0, amount_out, to, sender=sender)
        return amount_out

    # --- Liquidity ---

    def quote_add_liquidity(
        self, registry: PoolRegistry, tokens: Sequence[str], amount_desireds: Sequence[int]
    ) -> tuple[list[int], int]:
        self._check_pair(tokens, amount_desireds)
        pool = registry.get_pool(tokens, PoolType.VOLATILE)
        if pool is None or sum(pool.get_reserves()) == 0:
            amounts = list(amount_desireds)
            liquidity = max(isqrt(amounts[0] * amounts[1]) - MINIMUM_LIQUIDITY, 0)
            return amounts, liquidity

        if not isinstance(pool, VolatilePool):
            raise NotVolatilePair(f"Router: {list(tokens)} is not a VolatilePair")
        reserves = self._to_caller_order(pool, tokens, pool.get_reserves())
        amounts = self._optimal_amounts(amount_desireds, (0, 0), reserves)
        liquidity = proportional_mint(amounts, reserves, pool.total_supply)
        return amounts, liquidity

    def plan_add_liquidity(
        self,
        registry: PoolRegistry,
        tokens: Sequence[str],
        amount_desireds: Sequence[int],
        amount_mins: Sequence[int],
        *,
        sender: str,
    ) -> tuple[VolatilePool, list[int]]:
        """Find or create the pair and size the deposit.

        Raises:
            InsufficientAAmount: If the first token's optimal amount is below its minimum
            InsufficientBAmount: If the second token's optimal amount is below its minimum
        """
        self._check_pair(tokens, amount_desireds)
        self._check_lengths(tokens, amount_mins)
        pool = registry.get_pool(tokens, PoolType.VOLATILE)
        if pool is None:
            pool = registry.create_pool(tokens, PoolType.VOLATILE, sender=sender)
        if not isinstance(pool, VolatilePool):
            raise NotVolatilePair(f"Router: {list(tokens)} is not a VolatilePair")

        reserves = self._to_caller_order(pool, tokens, pool.get_reserves())
        if reserves[0] == 0 and reserves[1] == 0:
            return pool, list(amount_desireds)
        return pool, self._optimal_amounts(amount_desireds, amount_mins, reserves)

    def add_liquidity(
        self,
        pool: VolatilePool,
        tokens: Sequence[str],
        amounts: Sequence[int],
        min_liquidity: int,
        to: str,
        deadline: int,
        *,
        sender: str,
    ) -> int:
        liquidity = pool.mint(to, sender=sender)
        if liquidity < min_liquidity:
            raise MintBelowMinimum(
                f"Router: insufficient liquidity minted {liquidity} < {min_liquidity}"
            )
        return liquidity

    def quote_remove_liquidity(
        self, registry: PoolRegistry, tokens: Sequence[str], liquidity: int
    ) -> list[int]:
        pool = registry.get_pool(tokens, PoolType.VOLATILE)
        if pool is None or pool.lp_token.total_supply == 0:
            return [0] * len(tokens)
        if not isinstance(pool, VolatilePool):
            raise NotVolatilePair(f"Router: {list(tokens)} is not a VolatilePair")
        balances = self._to_caller_order(pool, tokens, pool.get_real_balance_of())
        return proportional_amounts(liquidity, balances, pool.total_supply)

    def remove_liquidity(
        self,
        pool: VolatilePool,
        tokens: Sequence[str],
        liquidity: int,
        amount_mins: Sequence[int],
        to: str,
        deadline: int,
        *,
        sender: str,
    ) -> list[int]:
        """Burn the LP pushed to the pair and check both minimums."""
        self._check_lengths(tokens, amount_mins)
        amounts = self._to_caller_order(pool, tokens, pool.burn(to, sender=sender))
        if amounts[0] < amount_mins[0]:
            raise InsufficientAAmount(f"Router: INSUFFICIENT_A_AMOUNT {amounts[0]}")
        if amounts[1] < amount_mins[1]:
            raise InsufficientBAmount(f"Router: INSUFFICIENT_B_AMOUNT {amounts[1]}")
        return amounts

    # --- Helpers ---

    def _check_pair(self, tokens: Sequence[str], amounts: Sequence[int]) -> None:
        if len(tokens) != 2:
            raise InvalidToken(f"Volatile pairs hold exactly 2 tokens, got {len(tokens)}")
        self._check_lengths(tokens, amounts)

    @staticmethod
    def _optimal_amounts(
        amount_desireds: Sequence[int], amount_mins: Sequence[int], reserves: Sequence[int]
    ) -> list[int]:
        """Largest deposit at the reserve ratio that fits the desired amounts."""
        desired_a, desired_b = amount_desireds
        min_a, min_b = amount_mins
        reserve_a, reserve_b = reserves
        optimal_b = quote(desired_a, reserve_a, reserve_b)
        if optimal_b <= desired_b:
            if optimal_b < min_b:
                raise InsufficientBAmount(f"Router: INSUFFICIENT_B_AMOUNT {optimal_b} < {min_b}")
            return [desired_a, optimal_b]
        optimal_a = quote(desired_b, reserve_b, reserve_a)
        if optimal_a < min_a:
            raise InsufficientAAmount(f"Router: INSUFFICIENT_A_AMOUNT {optimal_a} < {min_a}")
        return [optimal_a, desired_b]


__all__ = ["VolatileHandler"]
