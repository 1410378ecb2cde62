"""Factory functions for tokens and seeded pools.

Usage:
    from tests.helpers import make_token, seed_volatile_pool
    # or
    from tests.helpers.factories import make_token, seed_stable_pool

    dai = make_token(chain, "DAI")
    pool = seed_volatile_pool(registry, dai, 1_000 * E18, usdc, 1_000 * E6)
"""

from collections.abc import Sequence

from dex.chain import Chain, ERC20Token
from dex.constants import DEFAULT_ADMIN_FEE_RATE
from dex.pools import PoolRegistry, PoolType, StableParams, StablePool, VolatileParams, VolatilePool
from tests.helpers.constants import DEADLINE_SLACK, DEPLOYER


def make_token(chain: Chain, symbol: str, decimals: int = 18) -> ERC20Token:
    """Create a token owned (and mintable) by DEPLOYER."""
    return ERC20Token(chain, symbol, symbol, decimals, owner=DEPLOYER)


def fund(token: ERC20Token, holder: str, amount: int) -> None:
    """Mint amount of token to holder."""
    token.mint(holder, amount, sender=DEPLOYER)


def fund_and_approve(token: ERC20Token, holder: str, amount: int, spender: str) -> None:
    """Mint amount to holder and let spender move all of it."""
    fund(token, holder, amount)
    token.approve(spender, amount, sender=holder)


def deadline(chain: Chain, slack: int = DEADLINE_SLACK) -> int:
    """A deadline slack seconds after the current block timestamp."""
    return chain.timestamp + slack


def sort_by_address(*tokens: ERC20Token) -> list[ERC20Token]:
    """Tokens in pool order (ascending address)."""
    return sorted(tokens, key=lambda t: t.address)


# =============================================================================
# Volatile pools
# =============================================================================


def create_volatile_pool(
    registry: PoolRegistry,
    token_a: ERC20Token,
    token_b: ERC20Token,
    *,
    swap_fee_rate: int = 30_000_000,
    admin_fee_rate: int = DEFAULT_ADMIN_FEE_RATE,
) -> VolatilePool:
    """Register an empty volatile pool with explicit fee rates."""
    data = VolatileParams(swap_fee_rate, admin_fee_rate).encode()
    pool = registry.create_pool(
        [token_a.address, token_b.address], PoolType.VOLATILE, data, sender=DEPLOYER
    )
    assert isinstance(pool, VolatilePool)
    return pool


def seed_volatile_pool(
    registry: PoolRegistry,
    token_a: ERC20Token,
    amount_a: int,
    token_b: ERC20Token,
    amount_b: int,
    *,
    provider: str = DEPLOYER,
    swap_fee_rate: int = 30_000_000,
    admin_fee_rate: int = DEFAULT_ADMIN_FEE_RATE,
) -> VolatilePool:
    """Create a volatile pool and make provider its first liquidity provider."""
    pool = create_volatile_pool(
        registry, token_a, token_b, swap_fee_rate=swap_fee_rate, admin_fee_rate=admin_fee_rate
    )
    for token, amount in ((token_a, amount_a), (token_b, amount_b)):
        fund(token, provider, amount)
        token.transfer(pool.address, amount, sender=provider)
    pool.mint(provider, sender=provider)
    return pool


def push_and_swap(
    pool: VolatilePool, token_in: ERC20Token, amount_in: int, trader: str
) -> int:
    """Fund trader, push amount_in to the pool and take the quoted output."""
    token_out = pool.token1 if token_in.address == pool.token0 else pool.token0
    fund(token_in, trader, amount_in)
    amount_out = pool.get_amount_out(token_in.address, token_out, amount_in)
    token_in.transfer(pool.address, amount_in, sender=trader)
    if token_out == pool.token0:
        pool.swap(amount_out, 0, trader, sender=trader)
    else:
        pool.swap(0, amount_out, trader, sender=trader)
    return amount_out


# =============================================================================
# Stable pools
# =============================================================================


def create_stable_pool(
    registry: PoolRegistry,
    tokens: Sequence[ERC20Token],
    *,
    a: int = 200,
    swap_fee_rate: int = 4_000_000,
    admin_fee_rate: int = DEFAULT_ADMIN_FEE_RATE,
) -> StablePool:
    """Register an empty stable pool with explicit parameters."""
    data = StableParams(swap_fee_rate, admin_fee_rate, a).encode()
    pool = registry.create_pool([t.address for t in tokens], PoolType.STABLE, data, sender=DEPLOYER)
    assert isinstance(pool, StablePool)
    return pool


def push_and_deposit(
    pool: StablePool,
    tokens: Sequence[ERC20Token],
    amounts: Sequence[int],
    provider: str,
    min_to_mint: int = 0,
) -> int:
    """Fund provider, push amounts (in the order of tokens) and add liquidity."""
    by_address = {}
    for token, amount in zip(tokens, amounts, strict=True):
        if amount > 0:
            fund(token, provider, amount)
            token.transfer(pool.address, amount, sender=provider)
        by_address[token.address] = amount
    pool_amounts = [by_address.get(address, 0) for address in pool.tokens]
    return pool.add_liquidity(
        pool_amounts, min_to_mint, provider, deadline(pool.chain), sender=provider
    )


def seed_stable_pool(
    registry: PoolRegistry,
    tokens: Sequence[ERC20Token],
    amounts: Sequence[int],
    *,
    provider: str = DEPLOYER,
    a: int = 200,
    swap_fee_rate: int = 4_000_000,
    admin_fee_rate: int = DEFAULT_ADMIN_FEE_RATE,
) -> StablePool:
    """Create a stable pool and make provider its first liquidity provider."""
    pool = create_stable_pool(
        registry, tokens, a=a, swap_fee_rate=swap_fee_rate, admin_fee_rate=admin_fee_rate
    )
    push_and_deposit(pool, tokens, amounts, provider)
    return pool


def push_lp(pool: StablePool, holder: str, liquidity: int) -> None:
    """Transfer LP shares from holder to the pool ahead of a withdrawal."""
    pool.lp_token.transfer(pool.address, liquidity, sender=holder)


__all__ = [
    "create_stable_pool",
    "create_volatile_pool",
    "deadline",
    "fund",
    "fund_and_approve",
    "make_token",
    "push_and_deposit",
    "push_and_swap",
    "push_lp",
    "seed_stable_pool",
    "seed_volatile_pool",
    "sort_by_address",
]
