"""Stable (StableSwap) pool routing handler."""

from __future__ import annotations

from collections.abc import Sequence

from dex.errors import NotStablePair
from dex.pools import PoolRegistry, StablePool
from dex.pools.base import PoolType
from dex.routing.handlers.base import BaseHandler


class StableHandler(BaseHandler):
    """Handler for stable pool routing.

    Stable pools are never created on demand: deposits and withdrawals
    require an existing pool whose token set matches the caller's tokens.
    Besides the shared handler interface this exposes the single-token and
    imbalanced withdrawals only stable pools support.
    """

    pool_type = PoolType.STABLE

    def resolve(self, registry: PoolRegistry, tokens: Sequence[str]) -> StablePool:
        """Stable pool holding exactly tokens.

        Raises:
            NotStablePair: If no such pool exists
        """
        pool = registry.get_pool(tokens, PoolType.STABLE)
        if not isinstance(pool, StablePool):
            raise NotStablePair(f"Router: no stable pool for {list(tokens)}")
        return pool

    def quote_swap(self, pool: StablePool, token_in: str, token_out: str, amount_in: int) -> int:
        return pool.get_amount_out(token_in, token_out, amount_in)

    def swap(
        self,
        pool: StablePool,
        token_in: str,
        token_out: str,
        amount_in: int,
        to: str,
        deadline: int,
        *,
        sender: str,
    ) -> int:
        return pool.swap(
            pool.get_token_index(token_in),
            pool.get_token_index(token_out),
            0,
            to,
            deadline,
            sender=sender,
        )

    # --- Liquidity ---

    def quote_add_liquidity(
        self, registry: PoolRegistry, tokens: Sequence[str], amount_desireds: Sequence[int]
    ) -> tuple[list[int], int]:
        pool = self.resolve(registry, tokens)
        amounts = self._to_pool_order(pool, tokens, amount_desireds)
        return list(amount_desireds), pool.calculate_token_amount(amounts, True)

    def plan_add_liquidity(
        self,
        registry: PoolRegistry,
        tokens: Sequence[str],
        amount_desireds: Sequence[int],
        amount_mins: Sequence[int],
        *,
        sender: str,
    ) -> tuple[StablePool, list[int]]:
        """Stable deposits use the desired amounts as given."""
        pool = self.resolve(registry, tokens)
        self._to_pool_order(pool, tokens, amount_desireds)
        return pool, list(amount_desireds)

    def add_liquidity(
        self,
        pool: StablePool,
        tokens: Sequence[str],
        amounts: Sequence[int],
        min_liquidity: int,
        to: str,
        deadline: int,
        *,
        sender: str,
    ) -> int:
        return pool.add_liquidity(
            self._to_pool_order(pool, tokens, amounts),
            min_liquidity,
            to,
            deadline,
            sender=sender,
        )

    def quote_remove_liquidity(
        self, registry: PoolRegistry, tokens: Sequence[str], liquidity: int
    ) -> list[int]:
        pool = registry.get_pool(tokens, PoolType.STABLE)
        if not isinstance(pool, StablePool) or pool.lp_token.total_supply == 0:
            return [0] * len(tokens)
        return self._to_caller_order(pool, tokens, pool.calculate_remove_liquidity(liquidity))

    def remove_liquidity(
        self,
        pool: StablePool,
        tokens: Sequence[str],
        liquidity: int,
        amount_mins: Sequence[int],
        to: str,
        deadline: int,
        *,
        sender: str,
    ) -> list[int]:
        amounts = pool.remove_liquidity(
            liquidity,
            self._to_pool_order(pool, tokens, amount_mins),
            to,
            deadline,
            sender=sender,
        )
        return self._to_caller_order(pool, tokens, amounts)

    # --- Stable-only withdrawals ---

    def quote_remove_liquidity_one_token(
        self, pool: StablePool, liquidity: int, token: str
    ) -> int:
        return pool.calculate_remove_liquidity_one_token(liquidity, pool.get_token_index(token))

    def remove_liquidity_one_token(
        self,
        pool: StablePool,
        liquidity: int,
        token: str,
        min_amount: int,
        to: str,
        deadline: int,
        *,
        sender: str,
    ) -> int:
        return pool.remove_liquidity_one_token(
            liquidity, pool.get_token_index(token), min_amount, to, deadline, sender=sender
        )

    def quote_remove_liquidity_imbalance(
        self, pool: StablePool, tokens: Sequence[str], amounts: Sequence[int]
    ) -> int:
        return pool.calculate_token_amount(self._to_pool_order(pool, tokens, amounts), False)

    def remove_liquidity_imbalance(
        self,
        pool: StablePool,
        tokens: Sequence[str],
        amounts: Sequence[int],
        max_burn: int,
        to: str,
        deadline: int,
        *,
        sender: str,
    ) -> int:
        return pool.remove_liquidity_imbalance(
            self._to_pool_order(pool, tokens, amounts), max_burn, to, deadline, sender=sender
        )


__all__ = ["StableHandler"]
