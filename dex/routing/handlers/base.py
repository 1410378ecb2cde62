"""Base class and protocol for pool routing handlers."""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING, Protocol

from dex.errors import AmountsMismatch, MustSupplyAllTokens
from dex.models.types import normalize_address
from dex.pools.base import PoolType

if TYPE_CHECKING:
    from dex.pools import AnyPool, PoolRegistry


class PoolHandler(Protocol):
    """Protocol for curve-specific routing handlers.

    Each handler drives one pool type on behalf of the router. Token lists
    and amounts are always in the caller's order; handlers translate to and
    from the pool's sorted order. Handlers never move the caller's tokens:
    the router pushes inputs to the pool before calling an executing method.
    """

    pool_type: PoolType

    def quote_swap(self, pool: AnyPool, token_in: str, token_out: str, amount_in: int) -> int:
        """Output of swapping amount_in through pool."""
        ...

    def swap(
        self,
        pool: AnyPool,
        token_in: str,
        token_out: str,
        amount_in: int,
        to: str,
        deadline: int,
        *,
        sender: str,
    ) -> int:
        """Execute a swap whose input was already pushed to pool."""
        ...

    def quote_add_liquidity(
        self, registry: PoolRegistry, tokens: Sequence[str], amount_desireds: Sequence[int]
    ) -> tuple[list[int], int]:
        """Amounts a deposit would use and the liquidity it would mint."""
        ...

    def plan_add_liquidity(
        self,
        registry: PoolRegistry,
        tokens: Sequence[str],
        amount_desireds: Sequence[int],
        amount_mins: Sequence[int],
        *,
        sender: str,
    ) -> tuple[AnyPool, list[int]]:
        """Resolve (or create) the pool and the amounts to push to it."""
        ...

    def add_liquidity(
        self,
        pool: AnyPool,
        tokens: Sequence[str],
        amounts: Sequence[int],
        min_liquidity: int,
        to: str,
        deadline: int,
        *,
        sender: str,
    ) -> int:
        """Mint liquidity for amounts already pushed to pool."""
        ...

    def quote_remove_liquidity(
        self, registry: PoolRegistry, tokens: Sequence[str], liquidity: int
    ) -> list[int]:
        """Amounts paid for burning liquidity (zeros if the pool is missing)."""
        ...

    def remove_liquidity(
        self,
        pool: AnyPool,
        tokens: Sequence[str],
        liquidity: int,
        amount_mins: Sequence[int],
        to: str,
        deadline: int,
        *,
        sender: str,
    ) -> list[int]:
        """Burn liquidity already pushed to pool and pay out every token."""
        ...


class BaseHandler:
    """Base class with shared handler utilities.

    Provides the caller-order/pool-order translation used by every handler.
    """

    pool_type: PoolType

    def _check_lengths(self, tokens: Sequence[str], values: Sequence[int]) -> None:
        if len(tokens) != len(values):
            raise AmountsMismatch(
                f"Tokens and amounts differ in length: {len(tokens)} != {len(values)}"
            )

    def _to_pool_order(
        self, pool: AnyPool, tokens: Sequence[str], values: Sequence[int]
    ) -> list[int]:
        """Reorder caller-ordered values into the pool's token order.

        Raises:
            AmountsMismatch: If tokens and values differ in length
            MustSupplyAllTokens: If tokens is not exactly the pool's token set
        """
        self._check_lengths(tokens, values)
        normalized = [normalize_address(t) for t in tokens]
        if sorted(normalized) != list(pool.tokens):
            raise MustSupplyAllTokens(
                f"Tokens {normalized} do not match pool tokens {list(pool.tokens)}"
            )
        by_token = dict(zip(normalized, values, strict=True))
        return [by_token[token] for token in pool.tokens]

    def _to_caller_order(
        self, pool: AnyPool, tokens: Sequence[str], values: Sequence[int]
    ) -> list[int]:
        """Reorder pool-ordered values into the caller's token order."""
        return [values[pool.get_token_index(token)] for token in tokens]


__all__ = ["BaseHandler", "PoolHandler"]
