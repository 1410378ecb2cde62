"""Constant-product (volatile) pool.

The pool holds exactly two tokens and is itself the ERC20 LP token. It uses
the x * y = k formula with the swap fee charged on the input:

    amount_in_net = amount_in * (FEE_DENOMINATOR - swap_fee_rate)
    amount_out = reserve_out * amount_in_net / (reserve_in * FEE_DENOMINATOR + amount_in_net)

A share of every swap fee (admin_fee_rate of it) accrues to the registry
manager. Accrued admin fees stay in the pool's token balance but are excluded
from the reserves, so they never back LP shares and never count towards a
subsequent K-check.

Interaction model (push-then-call): callers transfer tokens to the pool first
and then call mint/swap, which measure what arrived as balance minus reserve.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING

import structlog
from eth_abi import decode, encode  # type: ignore[attr-defined]

from dex.chain.permit import PermitToken
from dex.chain.state import Chain, atomic
from dex.constants import BURN_ADDRESS, FEE_DENOMINATOR, MINIMUM_LIQUIDITY
from dex.errors import (
    DuplicateTokens,
    InsufficientInput,
    InsufficientLiquidity,
    InsufficientLiquidityBurned,
    InsufficientLiquidityMinted,
    InsufficientOutput,
    InvalidTo,
    InvalidToken,
    KInvariantViolated,
    TooFewTokens,
    TooManyTokens,
)
from dex.math.fixed_point import admin_fee_of_input
from dex.models.types import normalize_address, short_address
from dex.pools.base import ManagerSource, Pool, PoolType, SwapCallee, non_reentrant
from dex.pools.liquidity import initial_liquidity, proportional_amounts, proportional_mint
from dex.safe_int import S

if TYPE_CHECKING:
    from dex.chain.token import Token

logger = structlog.get_logger()


@dataclass(frozen=True)
class VolatileParams:
    """Creation parameters of a volatile pool, ABI-encoded as (uint256, uint256)."""

    swap_fee_rate: int
    admin_fee_rate: int

    ABI_TYPES = ("uint256", "uint256")

    def encode(self) -> bytes:
        return encode(list(self.ABI_TYPES), [self.swap_fee_rate, self.admin_fee_rate])

    @classmethod
    def decode(cls, data: bytes) -> VolatileParams:
        swap_fee_rate, admin_fee_rate = decode(list(cls.ABI_TYPES), data)
        return cls(swap_fee_rate=swap_fee_rate, admin_fee_rate=admin_fee_rate)


def constant_product_amount_out(
    amount_in: int, reserve_in: int, reserve_out: int, swap_fee_rate: int
) -> int:
    """Exact-input output of a constant-product swap, rounded down."""
    amount_in_net = S(amount_in) * (S(FEE_DENOMINATOR) - swap_fee_rate)
    numerator = amount_in_net * reserve_out
    denominator = S(reserve_in) * FEE_DENOMINATOR + amount_in_net
    return (numerator // denominator).value


def quote(amount_a: int, reserve_a: int, reserve_b: int) -> int:
    """Amount of token B worth amount_a of token A at the current reserve ratio.

    Raises:
        InsufficientInput: If amount_a is zero
        InsufficientLiquidity: If a reserve is zero
    """
    if amount_a <= 0:
        raise InsufficientInput("Quote amount must be positive")
    if reserve_a <= 0 or reserve_b <= 0:
        raise InsufficientLiquidity("Cannot quote against empty reserves")
    return (S(amount_a) * reserve_b // reserve_a).value


class VolatilePool(PermitToken, Pool):
    """Two-token constant-product pool with 112-bit reserves."""

    pool_type = PoolType.VOLATILE

    _state_fields = ("_reserve0", "_reserve1", "_admin_fee0", "_admin_fee1")

    def __init__(
        self,
        chain: Chain,
        registry: ManagerSource,
        tokens: Sequence[Token],
        swap_fee_rate: int,
        admin_fee_rate: int,
        *,
        address: str | None = None,
    ) -> None:
        if len(tokens) < 2:
            raise TooFewTokens(f"Volatile pool needs 2 tokens, got {len(tokens)}")
        if len(tokens) > 2:
            raise TooManyTokens(f"Volatile pool needs 2 tokens, got {len(tokens)}")
        ordered = sorted(tokens, key=lambda t: normalize_address(t.address))
        if normalize_address(ordered[0].address) == normalize_address(ordered[1].address):
            raise DuplicateTokens(f"Identical tokens: {ordered[0].address}")

        symbol0, symbol1 = ordered[0].symbol, ordered[1].symbol
        super().__init__(
            chain,
            f"Volatile LP {symbol0}/{symbol1}",
            f"vLP-{symbol0}-{symbol1}",
            18,
            address=address,
        )
        self._setup_pool(registry, ordered, swap_fee_rate, admin_fee_rate)
        self._reserve0 = 0
        self._reserve1 = 0
        self._admin_fee0 = 0
        self._admin_fee1 = 0

    @classmethod
    def from_init_data(
        cls,
        chain: Chain,
        registry: ManagerSource,
        tokens: Sequence[Token],
        data: bytes,
        defaults: VolatileParams,
        *,
        address: str | None = None,
    ) -> VolatilePool:
        """Build a pool from ABI-encoded VolatileParams (empty data uses defaults)."""
        params = VolatileParams.decode(data) if data else defaults
        return cls(
            chain,
            registry,
            tokens,
            params.swap_fee_rate,
            params.admin_fee_rate,
            address=address,
        )

    # --- Views ---

    @property
    def lp_token(self) -> VolatilePool:
        return self

    @property
    def token0(self) -> str:
        return self.tokens[0]

    @property
    def token1(self) -> str:
        return self.tokens[1]

    @property
    def total_admin_fee0(self) -> int:
        return self._admin_fee0

    @property
    def total_admin_fee1(self) -> int:
        return self._admin_fee1

    def get_reserves(self) -> tuple[int, int]:
        return self._reserve0, self._reserve1

    def get_real_balance_of(self) -> tuple[int, int]:
        """Token balances held by the pool minus accrued admin fees."""
        token0, token1 = self.token_contracts
        return (
            (S(token0.balance_of(self.address)) - self._admin_fee0).value,
            (S(token1.balance_of(self.address)) - self._admin_fee1).value,
        )

    def get_token_balance(self, index: int) -> int:
        return self.get_reserves()[index]

    def get_admin_balance(self, index: int) -> int:
        return (self._admin_fee0, self._admin_fee1)[index]

    def get_amount_out(self, token_in: str, token_out: str, amount_in: int) -> int:
        """Output for an exact input at the current reserves.

        Raises:
            InvalidToken: If a token is not pooled or both tokens are the same
            InsufficientInput: If amount_in is zero
            InsufficientLiquidity: If either reserve is empty
        """
        index_in = self.get_token_index(token_in)
        index_out = self.get_token_index(token_out)
        if index_in == index_out:
            raise InvalidToken(f"Cannot swap {token_in} for itself")
        if amount_in <= 0:
            raise InsufficientInput("VolatilePair: INSUFFICIENT_INPUT_AMOUNT")
        reserves = self.get_reserves()
        reserve_in, reserve_out = reserves[index_in], reserves[index_out]
        if reserve_in == 0 or reserve_out == 0:
            raise InsufficientLiquidity("VolatilePair: INSUFFICIENT_LIQUIDITY")
        return constant_product_amount_out(amount_in, reserve_in, reserve_out, self.swap_fee_rate)

    # --- Mutations ---

    @atomic
    @non_reentrant
    def mint(self, to: str, *, sender: str) -> int:
        """Mint LP shares for tokens pushed to the pool since the last update.

        The first deposit locks MINIMUM_LIQUIDITY shares at the burn address.

        Returns:
            Shares minted to to

        Raises:
            InsufficientLiquidityMinted: If the deposit is worth no shares
        """
        reserve0, reserve1 = self.get_reserves()
        balance0, balance1 = self.get_real_balance_of()
        amount0 = (S(balance0) - reserve0).value
        amount1 = (S(balance1) - reserve1).value

        total_supply = self.total_supply
        if total_supply == 0:
            liquidity = initial_liquidity(amount0, amount1, MINIMUM_LIQUIDITY)
            self._mint(BURN_ADDRESS, MINIMUM_LIQUIDITY)
        else:
            liquidity = proportional_mint((amount0, amount1), (reserve0, reserve1), total_supply)
        if liquidity <= 0:
            raise InsufficientLiquidityMinted("VolatilePair: INSUFFICIENT_LIQUIDITY_MINTED")

        self._mint(normalize_address(to), liquidity)
        self._update(balance0, balance1)

        logger.debug(
            "liquidity_added",
            pool=short_address(self.address),
            sender=short_address(sender),
            amount0=amount0,
            amount1=amount1,
            liquidity=liquidity,
        )
        return liquidity

    @atomic
    @non_reentrant
    def burn(self, to: str, *, sender: str) -> tuple[int, int]:
        """Burn the LP shares held by the pool itself and pay out both tokens.

        Returns:
            (amount0, amount1) sent to to

        Raises:
            InsufficientLiquidityBurned: If either payout rounds to zero
        """
        balance0, balance1 = self.get_real_balance_of()
        liquidity = self.balance_of(self.address)
        total_supply = self.total_supply
        if total_supply == 0:
            raise InsufficientLiquidityBurned("VolatilePair: INSUFFICIENT_LIQUIDITY_BURNED")

        amount0, amount1 = proportional_amounts(liquidity, (balance0, balance1), total_supply)
        if amount0 == 0 or amount1 == 0:
            raise InsufficientLiquidityBurned("VolatilePair: INSUFFICIENT_LIQUIDITY_BURNED")

        self._burn(self.address, liquidity)
        token0, token1 = self.token_contracts
        token0.transfer(to, amount0, sender=self.address)
        token1.transfer(to, amount1, sender=self.address)
        self._update(*self.get_real_balance_of())

        logger.debug(
            "liquidity_removed",
            pool=short_address(self.address),
            sender=short_address(sender),
            amount0=amount0,
            amount1=amount1,
            liquidity=liquidity,
        )
        return amount0, amount1

    @atomic
    @non_reentrant
    def swap(
        self,
        amount0_out: int,
        amount1_out: int,
        to: str,
        data: bytes = b"",
        *,
        sender: str,
    ) -> None:
        """Send the requested outputs, then check the inputs that arrived.

        Outputs are transferred optimistically. When data is non-empty, to
        must be a SwapCallee and is called back before the inputs are
        measured, which allows flash swaps.

        Raises:
            InsufficientOutput: If both outputs are zero
            InsufficientLiquidity: If an output is not below its reserve
            InvalidTo: If to is one of the pooled tokens
            InsufficientInput: If no input arrived
            KInvariantViolated: If the fee-adjusted product decreased
        """
        if amount0_out == 0 and amount1_out == 0:
            raise InsufficientOutput("VolatilePair: INSUFFICIENT_OUTPUT_AMOUNT")
        reserve0, reserve1 = self.get_reserves()
        if amount0_out >= reserve0 or amount1_out >= reserve1:
            raise InsufficientLiquidity("VolatilePair: INSUFFICIENT_LIQUIDITY")
        to = normalize_address(to)
        if to in self.tokens:
            raise InvalidTo("VolatilePair: INVALID_TO")

        token0, token1 = self.token_contracts
        if amount0_out > 0:
            token0.transfer(to, amount0_out, sender=self.address)
        if amount1_out > 0:
            token1.transfer(to, amount1_out, sender=self.address)
        if data:
            callee = self.chain.get_contract(to)
            if not isinstance(callee, SwapCallee):
                raise InvalidTo(f"{to} cannot receive a swap callback")
            callee.on_pool_swap(sender, amount0_out, amount1_out, data)

        balance0, balance1 = self.get_real_balance_of()
        amount0_in = balance0 - (reserve0 - amount0_out) if balance0 > reserve0 - amount0_out else 0
        amount1_in = balance1 - (reserve1 - amount1_out) if balance1 > reserve1 - amount1_out else 0
        if amount0_in == 0 and amount1_in == 0:
            raise InsufficientInput("VolatilePair: INSUFFICIENT_INPUT_AMOUNT")

        swap_fee = self.swap_fee_rate
        adjusted0 = S(balance0) * FEE_DENOMINATOR - S(amount0_in) * swap_fee
        adjusted1 = S(balance1) * FEE_DENOMINATOR - S(amount1_in) * swap_fee
        if adjusted0 * adjusted1 < S(reserve0) * reserve1 * FEE_DENOMINATOR**2:
            raise KInvariantViolated("VolatilePair: K")

        admin_fee0 = admin_fee_of_input(amount0_in, swap_fee, self.admin_fee_rate)
        admin_fee1 = admin_fee_of_input(amount1_in, swap_fee, self.admin_fee_rate)
        self._admin_fee0 += admin_fee0
        self._admin_fee1 += admin_fee1
        self._update(balance0 - admin_fee0, balance1 - admin_fee1)

        logger.debug(
            "swap_executed",
            pool=short_address(self.address),
            sender=short_address(sender),
            amount0_in=amount0_in,
            amount1_in=amount1_in,
            amount0_out=amount0_out,
            amount1_out=amount1_out,
            admin_fee0=admin_fee0,
            admin_fee1=admin_fee1,
        )

    @atomic
    @non_reentrant
    def skim(self, to: str, *, sender: str) -> tuple[int, int]:
        """Send balances above the reserves to to."""
        balance0, balance1 = self.get_real_balance_of()
        excess0 = (S(balance0) - self._reserve0).value
        excess1 = (S(balance1) - self._reserve1).value
        token0, token1 = self.token_contracts
        token0.transfer(to, excess0, sender=self.address)
        token1.transfer(to, excess1, sender=self.address)
        return excess0, excess1

    @atomic
    @non_reentrant
    def sync(self, *, sender: str) -> None:
        """Set the reserves to the current balances (minus admin fees)."""
        self._update(*self.get_real_balance_of())

    @atomic
    @non_reentrant
    def claim_fees(self, *, sender: str) -> tuple[int, int]:
        """Send accrued admin fees to the registry manager.

        Anyone may trigger the payout; the recipient is always the manager.
        """
        fee0, fee1 = self._admin_fee0, self._admin_fee1
        self._admin_fee0 = 0
        self._admin_fee1 = 0
        manager = self.registry.manager
        token0, token1 = self.token_contracts
        if fee0 > 0:
            token0.transfer(manager, fee0, sender=self.address)
        if fee1 > 0:
            token1.transfer(manager, fee1, sender=self.address)

        logger.info(
            "admin_fees_claimed",
            pool=short_address(self.address),
            manager=short_address(manager),
            fee0=fee0,
            fee1=fee1,
        )
        return fee0, fee1

    def _update(self, balance0: int, balance1: int) -> None:
        """Store new reserves.

        Raises:
            Overflow: If a balance does not fit in 112 bits
        """
        self._reserve0 = S(balance0).to_uint112()
        self._reserve1 = S(balance1).to_uint112()


__all__ = ["VolatileParams", "VolatilePool", "constant_product_amount_out", "quote"]
