"""StableSwap (stable) pool over 2-32 tokens.

Curve/Saddle invariant with amplification A:

    A * n^n * sum(x_i) + D = A * D * n^n + D^(n+1) / (n^n * prod(x_i))

Balances are stored in native token units and normalized to 18 decimals
(xp) with per-token precision multipliers before any invariant math. D is
never stored; it is recomputed from the balances on demand.

Fees:
- swaps charge swap_fee_rate on the input before solving for the output
- imbalanced deposits and withdrawals charge a per-token imbalance fee on
  the deviation of every balance from its proportional ideal
- single-token withdrawals charge the same per-token rate on the implied
  rebalancing
admin_fee_rate of every fee accrues to the registry manager and is tracked
apart from the pooled balances.

Interaction model (push-then-call): input tokens for swaps and deposits,
and LP shares for withdrawals, are transferred to the pool before the call.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING

import structlog
from eth_abi import decode, encode  # type: ignore[attr-defined]

from dex.chain.state import Chain, Contract, atomic
from dex.constants import (
    A_PRECISION,
    FEE_DENOMINATOR,
    IMBALANCE_FEE_SCALE,
    MAX_A,
    MAX_LOOP_LIMIT,
    MAX_POOLED_TOKENS,
    MIN_POOLED_TOKENS,
    PRICE_PRECISION,
)
from dex.errors import (
    AmountsMismatch,
    BelowMinAmount,
    BurntAmountZero,
    CannotMintZero,
    DMustIncrease,
    DuplicateTokens,
    ExceedsMaxBurn,
    InsufficientInput,
    InsufficientLiquidity,
    InsufficientOutput,
    InvalidAmplification,
    InvalidToken,
    MintBelowMinimum,
    MustSupplyAllTokens,
    TooFewTokens,
    TooManyTokens,
    WithdrawExceedsAvailable,
)
from dex.math.fixed_point import apply_fee, fee_portion, normalize, precision_multiplier
from dex.math.stable_math import fee_per_token, get_d, get_y, get_y_d, imbalance_fees
from dex.models.types import normalize_address, short_address
from dex.pools.base import ManagerSource, Pool, PoolType, ensure_deadline, non_reentrant
from dex.pools.liquidity import invariant_burn, invariant_mint, proportional_amounts
from dex.pools.lp_token import LPToken
from dex.safe_int import S

if TYPE_CHECKING:
    from dex.chain.token import Token

logger = structlog.get_logger()


@dataclass(frozen=True)
class StableParams:
    """Creation parameters of a stable pool, ABI-encoded as (uint256, uint256, uint256)."""

    swap_fee_rate: int
    admin_fee_rate: int
    a: int

    ABI_TYPES = ("uint256", "uint256", "uint256")

    def encode(self) -> bytes:
        return encode(list(self.ABI_TYPES), [self.swap_fee_rate, self.admin_fee_rate, self.a])

    @classmethod
    def decode(cls, data: bytes) -> StableParams:
        swap_fee_rate, admin_fee_rate, a = decode(list(cls.ABI_TYPES), data)
        return cls(swap_fee_rate=swap_fee_rate, admin_fee_rate=admin_fee_rate, a=a)


@dataclass(frozen=True)
class LiquidityChange:
    """A deposit or imbalanced withdrawal, computed but not yet applied.

    Attributes:
        balances: Pooled balances after the change
        admin_fees: Admin fee accrued per token by the change
        lp_amount: LP shares minted (deposit) or burned (withdrawal)
    """

    balances: tuple[int, ...]
    admin_fees: tuple[int, ...]
    lp_amount: int


@dataclass(frozen=True)
class SwapQuote:
    """Output of a swap and the admin share of its input fee."""

    amount_out: int
    admin_fee: int


@dataclass(frozen=True)
class SingleTokenWithdrawal:
    """Output of a single-token withdrawal and the admin share of its fee."""

    amount: int
    admin_fee: int


class StablePool(Contract, Pool):
    """Multi-asset StableSwap pool with a separate LP token."""

    pool_type = PoolType.STABLE

    _state_fields = ("_balances", "_admin_fees")

    def __init__(
        self,
        chain: Chain,
        registry: ManagerSource,
        tokens: Sequence[Token],
        swap_fee_rate: int,
        admin_fee_rate: int,
        a: int,
        *,
        address: str | None = None,
        imbalance_fee_scale: int = IMBALANCE_FEE_SCALE,
        max_iterations: int = MAX_LOOP_LIMIT,
    ) -> None:
        if len(tokens) < MIN_POOLED_TOKENS:
            raise TooFewTokens(f"Stable pool needs at least {MIN_POOLED_TOKENS} tokens")
        if len(tokens) > MAX_POOLED_TOKENS:
            raise TooManyTokens(
                f"Stable pool supports at most {MAX_POOLED_TOKENS} tokens, got {len(tokens)}"
            )
        ordered = sorted(tokens, key=lambda t: normalize_address(t.address))
        addresses = [normalize_address(t.address) for t in ordered]
        if len(set(addresses)) != len(addresses):
            raise DuplicateTokens(f"Duplicate tokens in {addresses}")
        if not 0 < a < MAX_A:
            raise InvalidAmplification(f"A must be in (0, {MAX_A}), got {a}")
        multipliers = tuple(precision_multiplier(t.decimals) for t in ordered)

        super().__init__(chain, address)
        self._setup_pool(registry, ordered, swap_fee_rate, admin_fee_rate)
        self._a_precise = a * A_PRECISION
        self._multipliers = multipliers
        self._imbalance_fee_scale = imbalance_fee_scale
        self._max_iterations = max_iterations
        self._balances = [0] * len(ordered)
        self._admin_fees = [0] * len(ordered)

        symbols = "-".join(t.symbol for t in ordered)
        self._lp_token = LPToken(
            chain, f"Stable LP {symbols}", f"sLP-{symbols}", minter=self.address
        )

    @classmethod
    def from_init_data(
        cls,
        chain: Chain,
        registry: ManagerSource,
        tokens: Sequence[Token],
        data: bytes,
        defaults: StableParams,
        *,
        address: str | None = None,
        imbalance_fee_scale: int = IMBALANCE_FEE_SCALE,
        max_iterations: int = MAX_LOOP_LIMIT,
    ) -> StablePool:
        """Build a pool from ABI-encoded StableParams (empty data uses defaults)."""
        params = StableParams.decode(data) if data else defaults
        return cls(
            chain,
            registry,
            tokens,
            params.swap_fee_rate,
            params.admin_fee_rate,
            params.a,
            address=address,
            imbalance_fee_scale=imbalance_fee_scale,
            max_iterations=max_iterations,
        )

    # =========================================================================
    # Views
    # =========================================================================

    @property
    def lp_token(self) -> LPToken:
        return self._lp_token

    @property
    def multipliers(self) -> tuple[int, ...]:
        return self._multipliers

    @property
    def balances(self) -> tuple[int, ...]:
        return tuple(self._balances)

    @property
    def n_tokens(self) -> int:
        return len(self._balances)

    def get_a(self) -> int:
        return self._a_precise // A_PRECISION

    def get_a_precise(self) -> int:
        return self._a_precise

    def get_token(self, index: int) -> str:
        return self.tokens[self._check_index(index)]

    def get_token_balance(self, index: int) -> int:
        return self._balances[self._check_index(index)]

    def get_admin_balance(self, index: int) -> int:
        return self._admin_fees[self._check_index(index)]

    def get_d(self) -> int:
        """Current invariant D of the pooled balances."""
        return self._invariant(self._balances)

    def get_virtual_price(self) -> int:
        """Value of one LP share in normalized units, scaled by 1e18 (0 when empty)."""
        total_supply = self._lp_token.total_supply
        if total_supply == 0:
            return 0
        return (S(self.get_d()) * PRICE_PRECISION // total_supply).value

    def get_amount_out(self, token_in: str, token_out: str, amount_in: int) -> int:
        index_in = self.get_token_index(token_in)
        index_out = self.get_token_index(token_out)
        return self.calculate_swap(index_in, index_out, amount_in)

    def calculate_swap(self, token_index_from: int, token_index_to: int, dx: int) -> int:
        """Output of swapping dx of token_index_from for token_index_to."""
        return self._quote_swap(token_index_from, token_index_to, dx).amount_out

    def calculate_token_amount(self, amounts: Sequence[int], deposit: bool) -> int:
        """LP shares minted by a deposit, or burned by an imbalanced withdrawal.

        Mirrors add_liquidity / remove_liquidity_imbalance exactly, including
        imbalance fees and the extra unit burned on withdrawals.
        """
        if deposit:
            return self._plan_deposit(amounts).lp_amount
        return self._plan_imbalanced_withdrawal(amounts).lp_amount

    def calculate_remove_liquidity(self, liquidity: int) -> list[int]:
        """Token amounts paid for burning liquidity shares proportionally."""
        total_supply = self._lp_token.total_supply
        if liquidity > total_supply or total_supply == 0:
            raise WithdrawExceedsAvailable(
                f"Cannot exceed total supply: {liquidity} > {total_supply}"
            )
        return proportional_amounts(liquidity, self._balances, total_supply)

    def calculate_remove_liquidity_one_token(self, liquidity: int, token_index: int) -> int:
        """Amount of one token paid for burning liquidity shares."""
        return self._plan_single_token_withdrawal(liquidity, token_index).amount

    # =========================================================================
    # Mutations
    # =========================================================================

    @atomic
    @non_reentrant
    def swap(
        self,
        token_index_from: int,
        token_index_to: int,
        min_dy: int,
        to: str,
        deadline: int,
        *,
        sender: str,
    ) -> int:
        """Swap the tokens pushed to the pool for token_index_to.

        Returns:
            Amount of token_index_to sent to to

        Raises:
            DeadlineNotMet: If the deadline has passed
            InsufficientInput: If nothing was pushed
            BelowMinAmount: If the output is below min_dy
            InsufficientOutput: If the output rounds to zero
        """
        ensure_deadline(self.chain, deadline)
        dx = self._surplus(self._check_index(token_index_from))
        if dx == 0:
            raise InsufficientInput("No input tokens transferred to the pool")
        quote = self._quote_swap(token_index_from, token_index_to, dx)
        if quote.amount_out < min_dy:
            raise BelowMinAmount(f"dy < minAmount: {quote.amount_out} < {min_dy}")
        if quote.amount_out == 0:
            raise InsufficientOutput("Swap output rounds to zero")

        self._balances[token_index_from] += dx - quote.admin_fee
        self._admin_fees[token_index_from] += quote.admin_fee
        self._balances[token_index_to] = (
            S(self._balances[token_index_to]) - quote.amount_out
        ).value
        self.token_contracts[token_index_to].transfer(to, quote.amount_out, sender=self.address)

        logger.debug(
            "swap_executed",
            pool=short_address(self.address),
            sender=short_address(sender),
            token_in=token_index_from,
            token_out=token_index_to,
            amount_in=dx,
            amount_out=quote.amount_out,
            admin_fee=quote.admin_fee,
        )
        return quote.amount_out

    @atomic
    @non_reentrant
    def add_liquidity(
        self,
        amounts: Sequence[int],
        min_to_mint: int,
        to: str,
        deadline: int,
        *,
        sender: str,
    ) -> int:
        """Deposit the pushed amounts and mint LP shares to to.

        Returns:
            LP shares minted

        Raises:
            AmountsMismatch: If amounts does not cover every token
            InsufficientInput: If an amount was not pushed to the pool
            MustSupplyAllTokens: If a first deposit omits a token
            DMustIncrease: If the deposit does not increase D
            MintBelowMinimum: If fewer than min_to_mint shares would be minted
            CannotMintZero: If no shares would be minted
        """
        ensure_deadline(self.chain, deadline)
        self._check_length(amounts)
        for index, amount in enumerate(amounts):
            if self._surplus(index) < amount:
                raise InsufficientInput(
                    f"Token {self.tokens[index]}: {amount} not transferred to the pool"
                )

        change = self._plan_deposit(amounts)
        if change.lp_amount < min_to_mint:
            raise MintBelowMinimum(
                f"Couldn't mint min requested: {change.lp_amount} < {min_to_mint}"
            )
        self._apply(change)
        self._lp_token.mint(to, change.lp_amount, sender=self.address)

        logger.debug(
            "liquidity_added",
            pool=short_address(self.address),
            sender=short_address(sender),
            amounts=list(amounts),
            liquidity=change.lp_amount,
        )
        return change.lp_amount

    @atomic
    @non_reentrant
    def remove_liquidity(
        self,
        liquidity: int,
        min_amounts: Sequence[int],
        to: str,
        deadline: int,
        *,
        sender: str,
    ) -> list[int]:
        """Burn pushed LP shares for a proportional share of every token.

        Raises:
            WithdrawExceedsAvailable: If liquidity exceeds the total supply
            BelowMinAmount: If any amount is below its minimum
        """
        ensure_deadline(self.chain, deadline)
        self._check_length(min_amounts)
        amounts = self.calculate_remove_liquidity(liquidity)
        for index, (amount, minimum) in enumerate(zip(amounts, min_amounts, strict=True)):
            if amount < minimum:
                raise BelowMinAmount(
                    f"amounts[{index}] < minAmounts[{index}]: {amount} < {minimum}"
                )

        self._burn_pushed_lp(liquidity, to)
        for index, amount in enumerate(amounts):
            self._balances[index] -= amount
            if amount > 0:
                self.token_contracts[index].transfer(to, amount, sender=self.address)

        logger.debug(
            "liquidity_removed",
            pool=short_address(self.address),
            sender=short_address(sender),
            amounts=amounts,
            liquidity=liquidity,
        )
        return amounts

    @atomic
    @non_reentrant
    def remove_liquidity_one_token(
        self,
        liquidity: int,
        token_index: int,
        min_amount: int,
        to: str,
        deadline: int,
        *,
        sender: str,
    ) -> int:
        """Burn pushed LP shares for a single token.

        Raises:
            WithdrawExceedsAvailable: If liquidity exceeds the supply or the
                normalized balance of the token
            BelowMinAmount: If the amount is below min_amount
        """
        ensure_deadline(self.chain, deadline)
        withdrawal = self._plan_single_token_withdrawal(liquidity, token_index)
        if withdrawal.amount < min_amount:
            raise BelowMinAmount(f"dy < minAmount: {withdrawal.amount} < {min_amount}")

        self._burn_pushed_lp(liquidity, to)
        self._balances[token_index] = (
            S(self._balances[token_index]) - withdrawal.amount - withdrawal.admin_fee
        ).value
        self._admin_fees[token_index] += withdrawal.admin_fee
        if withdrawal.amount > 0:
            self.token_contracts[token_index].transfer(to, withdrawal.amount, sender=self.address)

        logger.debug(
            "liquidity_removed",
            pool=short_address(self.address),
            sender=short_address(sender),
            token=token_index,
            amount=withdrawal.amount,
            liquidity=liquidity,
        )
        return withdrawal.amount

    @atomic
    @non_reentrant
    def remove_liquidity_imbalance(
        self,
        amounts: Sequence[int],
        max_burn: int,
        to: str,
        deadline: int,
        *,
        sender: str,
    ) -> int:
        """Withdraw exact token amounts, burning as few pushed LP shares as needed.

        Returns:
            LP shares burned

        Raises:
            WithdrawExceedsAvailable: If an amount exceeds its pooled balance
            BurntAmountZero: If the withdrawal is worth no shares
            ExceedsMaxBurn: If more than max_burn shares would be burned
        """
        ensure_deadline(self.chain, deadline)
        change = self._plan_imbalanced_withdrawal(amounts)
        if change.lp_amount > max_burn:
            raise ExceedsMaxBurn(f"tokenAmount > maxBurnAmount: {change.lp_amount} > {max_burn}")

        self._burn_pushed_lp(change.lp_amount, to)
        self._apply(change)
        for index, amount in enumerate(amounts):
            if amount > 0:
                self.token_contracts[index].transfer(to, amount, sender=self.address)

        logger.debug(
            "liquidity_removed",
            pool=short_address(self.address),
            sender=short_address(sender),
            amounts=list(amounts),
            liquidity=change.lp_amount,
        )
        return change.lp_amount

    @atomic
    @non_reentrant
    def claim_fees(self, *, sender: str) -> tuple[int, ...]:
        """Send every accrued admin fee to the registry manager."""
        fees = tuple(self._admin_fees)
        self._admin_fees = [0] * self.n_tokens
        manager = self.registry.manager
        for token, fee in zip(self.token_contracts, fees, strict=True):
            if fee > 0:
                token.transfer(manager, fee, sender=self.address)

        logger.info(
            "admin_fees_claimed",
            pool=short_address(self.address),
            manager=short_address(manager),
            fees=list(fees),
        )
        return fees

    # =========================================================================
    # Pure planning (shared by the quotes and the mutations)
    # =========================================================================

    def _quote_swap(self, index_from: int, index_to: int, dx: int) -> SwapQuote:
        self._check_index(index_from)
        self._check_index(index_to)
        if index_from == index_to:
            raise InvalidToken("Can't swap a token for itself")
        if dx <= 0:
            raise InsufficientInput("Swap input must be positive")
        if any(balance == 0 for balance in self._balances):
            raise InsufficientLiquidity("Pool has no liquidity")

        dx_net = apply_fee(dx, self.swap_fee_rate)
        admin_fee = fee_portion(dx - dx_net, self.admin_fee_rate)

        xp = self._xp(self._balances)
        x = xp[index_from] + dx_net * self._multipliers[index_from]
        y = get_y(
            self._a_precise,
            index_from,
            index_to,
            x,
            xp,
            max_iterations=self._max_iterations,
        ).unwrap("Y")
        if xp[index_to] <= y + 1:
            return SwapQuote(amount_out=0, admin_fee=admin_fee)
        dy = (xp[index_to] - y - 1) // self._multipliers[index_to]
        return SwapQuote(amount_out=dy, admin_fee=admin_fee)

    def _plan_deposit(self, amounts: Sequence[int]) -> LiquidityChange:
        self._check_length(amounts)
        total_supply = self._lp_token.total_supply
        old_balances = list(self._balances)

        if total_supply == 0:
            if all(amount == 0 for amount in amounts):
                raise CannotMintZero("LPToken: cannot mint 0")
            if any(amount == 0 for amount in amounts):
                raise MustSupplyAllTokens("Must supply all tokens in pool")
            d0 = 0
        else:
            d0 = self._invariant(old_balances)

        new_balances = [old + amount for old, amount in zip(old_balances, amounts, strict=True)]
        d1 = self._invariant(new_balances)
        if d1 <= d0:
            raise DMustIncrease(f"D should increase: {d0} -> {d1}")

        if total_supply == 0:
            return LiquidityChange(
                balances=tuple(new_balances),
                admin_fees=(0,) * self.n_tokens,
                lp_amount=invariant_mint(d0, d1, total_supply),
            )

        fees = imbalance_fees(
            old_balances, new_balances, d0, d1, self._fee_per_token(), FEE_DENOMINATOR
        )
        admin_fees = tuple(fee_portion(fee, self.admin_fee_rate) for fee in fees)
        stored = tuple((S(b) - f).value for b, f in zip(new_balances, admin_fees, strict=True))
        d2 = self._invariant([(S(b) - f).value for b, f in zip(new_balances, fees, strict=True)])
        return LiquidityChange(
            balances=stored,
            admin_fees=admin_fees,
            lp_amount=invariant_mint(d0, d2, total_supply),
        )

    def _plan_imbalanced_withdrawal(self, amounts: Sequence[int]) -> LiquidityChange:
        self._check_length(amounts)
        total_supply = self._lp_token.total_supply
        if total_supply == 0:
            raise WithdrawExceedsAvailable("Pool has no liquidity")
        old_balances = list(self._balances)
        for index, (balance, amount) in enumerate(zip(old_balances, amounts, strict=True)):
            if amount > balance:
                raise WithdrawExceedsAvailable(
                    f"Cannot withdraw more than available: token {index} {amount} > {balance}"
                )

        new_balances = [old - amount for old, amount in zip(old_balances, amounts, strict=True)]
        d0 = self._invariant(old_balances)
        d1 = self._invariant(new_balances)
        fees = imbalance_fees(
            old_balances, new_balances, d0, d1, self._fee_per_token(), FEE_DENOMINATOR
        )
        admin_fees = tuple(fee_portion(fee, self.admin_fee_rate) for fee in fees)
        stored = tuple((S(b) - f).value for b, f in zip(new_balances, admin_fees, strict=True))
        d2 = self._invariant([(S(b) - f).value for b, f in zip(new_balances, fees, strict=True)])

        burn = invariant_burn(d0, d2, total_supply)
        if burn == 0:
            raise BurntAmountZero("Burnt amount cannot be zero")
        return LiquidityChange(balances=stored, admin_fees=admin_fees, lp_amount=burn + 1)

    def _plan_single_token_withdrawal(self, liquidity: int, index: int) -> SingleTokenWithdrawal:
        self._check_index(index)
        if liquidity <= 0:
            raise InsufficientInput("Liquidity to burn must be positive")
        total_supply = self._lp_token.total_supply
        if liquidity > total_supply:
            raise WithdrawExceedsAvailable(
                f"Withdraw exceeds available: {liquidity} > total supply {total_supply}"
            )

        xp = self._xp(self._balances)
        if liquidity > xp[index]:
            raise WithdrawExceedsAvailable(
                f"Withdraw exceeds available: {liquidity} > balance {xp[index]}"
            )
        d0 = self._invariant(self._balances)
        d1 = (S(d0) - S(liquidity) * d0 // total_supply).value
        new_y = get_y_d(
            self._a_precise, index, xp, d1, max_iterations=self._max_iterations
        ).unwrap("Y")

        rate = self._fee_per_token()
        xp_reduced = []
        for i, x in enumerate(xp):
            if i == index:
                expected = S(x) * d1 // d0 - new_y
            else:
                expected = S(x) - S(x) * d1 // d0
            xp_reduced.append((S(x) - expected * rate // FEE_DENOMINATOR).value)

        y_reduced = get_y_d(
            self._a_precise, index, xp_reduced, d1, max_iterations=self._max_iterations
        ).unwrap("Y")
        multiplier = self._multipliers[index]
        dy = ((S(xp_reduced[index]) - y_reduced - 1) // multiplier).value
        dy_fee = ((S(xp[index]) - new_y) // multiplier - dy).value
        return SingleTokenWithdrawal(
            amount=dy,
            admin_fee=fee_portion(dy_fee, self.admin_fee_rate),
        )

    # =========================================================================
    # Helpers
    # =========================================================================

    def _xp(self, balances: Sequence[int]) -> list[int]:
        return normalize(balances, self._multipliers)

    def _invariant(self, balances: Sequence[int]) -> int:
        return get_d(
            self._xp(balances), self._a_precise, max_iterations=self._max_iterations
        ).unwrap("D")

    def _fee_per_token(self) -> int:
        return fee_per_token(self.swap_fee_rate, self.n_tokens, self._imbalance_fee_scale)

    def _surplus(self, index: int) -> int:
        """Tokens held above the pooled balance and the accrued admin fee."""
        held = self.token_contracts[index].balance_of(self.address)
        return (S(held) - self._balances[index] - self._admin_fees[index]).value

    def _apply(self, change: LiquidityChange) -> None:
        self._balances = list(change.balances)
        for index, fee in enumerate(change.admin_fees):
            self._admin_fees[index] += fee

    def _burn_pushed_lp(self, liquidity: int, refund_to: str) -> None:
        """Burn liquidity from the LP held by the pool, returning any excess."""
        held = self._lp_token.balance_of(self.address)
        if held < liquidity:
            raise InsufficientInput(f"Pool holds {held} LP shares, {liquidity} required")
        self._lp_token.burn(self.address, liquidity, sender=self.address)
        if held > liquidity:
            self._lp_token.transfer(refund_to, held - liquidity, sender=self.address)

    def _check_index(self, index: int) -> int:
        if not 0 <= index < self.n_tokens:
            raise InvalidToken(f"Token index {index} out of range for {self.n_tokens} tokens")
        return index

    def _check_length(self, amounts: Sequence[int]) -> None:
        if len(amounts) != self.n_tokens:
            raise AmountsMismatch(
                f"Amounts must match pooled tokens: {len(amounts)} != {self.n_tokens}"
            )


__all__ = ["LiquidityChange", "StableParams", "StablePool"]
