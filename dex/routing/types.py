"""Type definitions for routing module."""

from __future__ import annotations

from dataclasses import dataclass, field

from dex.models.types import normalize_address
from dex.pools.base import PoolType


@dataclass(frozen=True)
class Route:
    """One hop of a swap path: sell from_token for to_token in pool.

    pool_type is an optional PoolType id; when given, the router checks that
    the pool is of that type before trading through it.
    """

    from_token: str
    to_token: str
    pool: str
    pool_type: int | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "from_token", normalize_address(self.from_token))
        object.__setattr__(self, "to_token", normalize_address(self.to_token))
        object.__setattr__(self, "pool", normalize_address(self.pool))


@dataclass
class HopResult:
    """Result of a single hop in a multi-hop route."""

    pool: str
    pool_type: PoolType
    input_token: str
    output_token: str
    amount_in: int
    amount_out: int


@dataclass
class SwapResult:
    """Result of executing a route."""

    amount_in: int
    amount_out: int
    hops: list[HopResult] = field(default_factory=list)

    @property
    def amounts(self) -> list[int]:
        """Amount entering each hop followed by the final output."""
        return [self.amount_in] + [hop.amount_out for hop in self.hops]

    @property
    def is_multihop(self) -> bool:
        return len(self.hops) > 1


__all__ = ["HopResult", "Route", "SwapResult"]
