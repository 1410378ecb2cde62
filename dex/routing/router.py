"""Router: multi-hop swaps and liquidity management across both curves.

The router is a stateless ledger contract. It never keeps custody of tokens
or native value between calls:

- swap inputs are pulled from the caller straight into the first pool, and
  each pool pays the next pool (or the final recipient) directly;
- deposits are pulled from the caller straight into the pool;
- LP shares are pulled from the caller into the pool that burns them;
- wrapped-native legs pass through the router only for as long as it takes
  to wrap or unwrap them.

Every entry point runs in a ledger transaction, checks its deadline first
(Expired) and dispatches per pool type through the HandlerRegistry
(InvalidPairType for unknown types).
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

import structlog

from dex.chain.state import Chain, Contract, atomic
from dex.chain.token import Token, WrappedNative
from dex.errors import (
    AMMError,
    AmountsMismatch,
    DuplicateTokens,
    ExceedsMaxBurn,
    Expired,
    InsufficientInput,
    InsufficientOutputAmount,
    InvalidPairType,
    InvalidPath,
    InvalidToken,
    NotStablePair,
    NotVolatilePair,
    ValueMismatch,
)
from dex.models.types import UINT256_MAX, ZERO_ADDRESS, normalize_address, short_address
from dex.pools import AnyPool, PoolRegistry, PoolType, VolatilePool
from dex.routing.handlers import PoolHandler, StableHandler
from dex.routing.registry import HandlerRegistry, build_default_registry
from dex.routing.types import HopResult, Route, SwapResult

logger = structlog.get_logger()


@dataclass(frozen=True)
class _ResolvedHop:
    route: Route
    pool: AnyPool
    handler: PoolHandler


class Router(Contract):
    """Entry point for traders and liquidity providers.

    Args:
        chain: Ledger the router is deployed on
        registry: Pool registry used to find and create pools
        weth: Wrapped native token used by the *_eth entry points
        handlers: Handler registry; defaults to both built-in curves
    """

    def __init__(
        self,
        chain: Chain,
        registry: PoolRegistry,
        weth: WrappedNative,
        handlers: HandlerRegistry | None = None,
        *,
        address: str | None = None,
    ) -> None:
        super().__init__(chain, address)
        self.registry = registry
        self.weth = weth
        self.handlers = handlers if handlers is not None else build_default_registry()

    # =========================================================================
    # Views
    # =========================================================================

    def pair_for(self, tokens: Sequence[str], pool_type: int) -> tuple[str, bool]:
        """Address the pool for tokens would have, and whether it exists.

        Never raises: malformed input yields (ZERO_ADDRESS, False).
        """
        try:
            address = self.registry.pool_address(tokens, pool_type)
        except (DuplicateTokens, InvalidToken, InvalidPairType):
            return ZERO_ADDRESS, False
        return address, self.registry.is_pool(address)

    def get_reserves(self, tokens: Sequence[str]) -> tuple[int, int]:
        """Volatile reserves in the order of tokens; zeros if the pair does not exist."""
        pool = self.registry.get_pool(tokens, PoolType.VOLATILE)
        if not isinstance(pool, VolatilePool):
            return 0, 0
        reserves = pool.get_reserves()
        first, second = (reserves[pool.get_token_index(token)] for token in tokens)
        return first, second

    def get_amounts_out_path(self, amount_in: int, routes: Sequence[Route]) -> list[int]:
        """Amount entering every hop of routes, followed by the final output.

        Raises:
            InvalidPath: If routes is empty, not continuous or reuses a pool
            InvalidPairType: If a hop's pool is not a registered pool
        """
        amounts = [amount_in]
        for hop in self._resolve_routes(routes):
            amounts.append(
                hop.handler.quote_swap(
                    hop.pool, hop.route.from_token, hop.route.to_token, amounts[-1]
                )
            )
        return amounts

    def get_amounts_out(self, amount_in: int, routes: Sequence[Route]) -> int:
        return self.get_amounts_out_path(amount_in, routes)[-1]

    def quote_add_liquidity(
        self, pool_type: int, tokens: Sequence[str], amount_desireds: Sequence[int]
    ) -> tuple[list[int], int]:
        """Amounts a deposit would use and the liquidity it would mint."""
        handler = self.handlers.require(pool_type)
        return handler.quote_add_liquidity(self.registry, tokens, amount_desireds)

    def quote_remove_liquidity(
        self, pool_type: int, tokens: Sequence[str], liquidity: int
    ) -> list[int]:
        """Amounts paid in the order of tokens for burning liquidity."""
        handler = self.handlers.require(pool_type)
        return handler.quote_remove_liquidity(self.registry, tokens, liquidity)

    def quote_remove_liquidity_one_token(
        self, tokens: Sequence[str], liquidity: int, token: str
    ) -> int:
        handler = self._stable_handler()
        pool = handler.resolve(self.registry, tokens)
        return handler.quote_remove_liquidity_one_token(pool, liquidity, token)

    def quote_remove_liquidity_imbalance(
        self, tokens: Sequence[str], amounts: Sequence[int]
    ) -> int:
        """LP shares burned to withdraw exactly amounts (in the order of tokens)."""
        handler = self._stable_handler()
        pool = handler.resolve(self.registry, tokens)
        return handler.quote_remove_liquidity_imbalance(pool, tokens, amounts)

    # =========================================================================
    # Swaps
    # =========================================================================

    @atomic
    def swap(
        self,
        routes: Sequence[Route],
        amount_in: int,
        amount_out_min: int,
        to: str,
        deadline: int,
        *,
        sender: str,
    ) -> SwapResult:
        """Sell exactly amount_in along routes.

        Raises:
            Expired: If the deadline has passed
            InsufficientInput: If amount_in is zero
            InvalidPath: If routes is empty, not continuous or reuses a pool
            InvalidPairType: If a hop's pool is not a registered pool
            NotVolatilePair: If a hop declared volatile resolves to another type
            NotStablePair: If a hop declared stable resolves to another type
            InsufficientOutputAmount: If the output is below amount_out_min
        """
        self._ensure_deadline(deadline)
        hops = self._prepare_swap(routes, amount_in)
        self._token(hops[0].route.from_token).transfer_from(
            sender, hops[0].pool.address, amount_in, sender=self.address
        )
        result = self._execute(hops, amount_in, to, deadline)
        self._check_output(result, amount_out_min)
        self._log_route(result, sender, to)
        return result

    @atomic
    def swap_eth(
        self,
        routes: Sequence[Route],
        amount_in: int,
        amount_out_min: int,
        to: str,
        deadline: int,
        *,
        sender: str,
        value: int = 0,
    ) -> SwapResult:
        """Swap with native value on either end of the route.

        When the first hop sells the wrapped native token, value is wrapped
        and must equal amount_in. When the last hop buys it, the output is
        unwrapped and paid to to as native value.

        Raises:
            ValueMismatch: If value does not match what the route consumes
        """
        self._ensure_deadline(deadline)
        hops = self._prepare_swap(routes, amount_in)
        wrap_in = hops[0].route.from_token == self.weth.address
        unwrap_out = hops[-1].route.to_token == self.weth.address
        if wrap_in and value != amount_in:
            raise ValueMismatch(f"Router: value {value} != amount_in {amount_in}")
        if not wrap_in and value != 0:
            raise ValueMismatch(f"Router: route does not start at WETH, value {value} != 0")

        first_pool = hops[0].pool.address
        if wrap_in:
            self._wrap(sender, value)
            self.weth.transfer(first_pool, amount_in, sender=self.address)
        else:
            self._token(hops[0].route.from_token).transfer_from(
                sender, first_pool, amount_in, sender=self.address
            )

        result = self._execute(hops, amount_in, self.address if unwrap_out else to, deadline)
        self._check_output(result, amount_out_min)
        if unwrap_out:
            self._unwrap(to, result.amount_out)
        self._log_route(result, sender, to)
        return result

    # =========================================================================
    # Liquidity: deposits
    # =========================================================================

    @atomic
    def add_liquidity(
        self,
        pool_type: int,
        tokens: Sequence[str],
        amount_desireds: Sequence[int],
        amount_mins: Sequence[int],
        min_liquidity: int,
        to: str,
        deadline: int,
        *,
        sender: str,
    ) -> tuple[list[int], int]:
        """Deposit into the pool of pool_type holding tokens.

        Volatile pairs are created when missing and topped up at the reserve
        ratio; stable pools must exist and take every token.

        Returns:
            (amounts deposited in the order of tokens, liquidity minted)

        Raises:
            InsufficientAAmount: If a volatile deposit's first token falls below its minimum
            InsufficientBAmount: If a volatile deposit's second token falls below its minimum
            NotStablePair: If no stable pool holds tokens
            MustSupplyAllTokens: If tokens do not cover the stable pool
            MintBelowMinimum: If less than min_liquidity would be minted
        """
        self._ensure_deadline(deadline)
        handler = self.handlers.require(pool_type)
        pool, amounts = handler.plan_add_liquidity(
            self.registry, tokens, amount_desireds, amount_mins, sender=self.address
        )
        for token, amount in zip(tokens, amounts, strict=True):
            if amount > 0:
                self._token(token).transfer_from(sender, pool.address, amount, sender=self.address)
        liquidity = handler.add_liquidity(
            pool, tokens, amounts, min_liquidity, to, deadline, sender=self.address
        )
        return amounts, liquidity

    @atomic
    def add_liquidity_eth(
        self,
        pool_type: int,
        tokens: Sequence[str],
        amount_desireds: Sequence[int],
        amount_mins: Sequence[int],
        min_liquidity: int,
        to: str,
        deadline: int,
        *,
        sender: str,
        value: int,
    ) -> tuple[list[int], int]:
        """add_liquidity with the wrapped-native leg paid in native value.

        value must equal the desired wrapped-native amount; whatever the
        deposit does not use is refunded to sender.

        Raises:
            AmountsMismatch: If amount_desireds and tokens differ in length
            InvalidToken: If tokens does not include the wrapped native token
            ValueMismatch: If value differs from the desired native amount
        """
        self._ensure_deadline(deadline)
        if len(amount_desireds) != len(tokens):
            raise AmountsMismatch(
                f"Tokens and amounts differ in length: {len(tokens)} != {len(amount_desireds)}"
            )
        weth_index = self._weth_index(tokens)
        if value != amount_desireds[weth_index]:
            raise ValueMismatch(
                f"Router: value {value} != desired amount {amount_desireds[weth_index]}"
            )
        handler = self.handlers.require(pool_type)
        pool, amounts = handler.plan_add_liquidity(
            self.registry, tokens, amount_desireds, amount_mins, sender=self.address
        )
        for index, (token, amount) in enumerate(zip(tokens, amounts, strict=True)):
            if index == weth_index:
                self.chain.transfer_native(sender, self.address, value)
                if amount > 0:
                    self.weth.deposit(sender=self.address, value=amount)
                    self.weth.transfer(pool.address, amount, sender=self.address)
                if value > amount:
                    self.chain.transfer_native(self.address, sender, value - amount)
            elif amount > 0:
                self._token(token).transfer_from(sender, pool.address, amount, sender=self.address)
        liquidity = handler.add_liquidity(
            pool, tokens, amounts, min_liquidity, to, deadline, sender=self.address
        )
        return amounts, liquidity

    # =========================================================================
    # Liquidity: proportional withdrawals
    # =========================================================================

    @atomic
    def remove_liquidity(
        self,
        pool_type: int,
        tokens: Sequence[str],
        liquidity: int,
        amount_mins: Sequence[int],
        to: str,
        deadline: int,
        *,
        sender: str,
    ) -> list[int]:
        """Burn liquidity for every pooled token, amounts in the order of tokens."""
        self._ensure_deadline(deadline)
        handler = self.handlers.require(pool_type)
        pool = self._require_pool(tokens, pool_type)
        pool.lp_token.transfer_from(sender, pool.address, liquidity, sender=self.address)
        return handler.remove_liquidity(
            pool, tokens, liquidity, amount_mins, to, deadline, sender=self.address
        )

    @atomic
    def remove_liquidity_eth(
        self,
        pool_type: int,
        tokens: Sequence[str],
        liquidity: int,
        amount_mins: Sequence[int],
        to: str,
        deadline: int,
        *,
        sender: str,
    ) -> list[int]:
        """remove_liquidity paying the wrapped-native leg as native value."""
        self._weth_index(tokens)
        amounts = self.remove_liquidity(
            pool_type, tokens, liquidity, amount_mins, self.address, deadline, sender=sender
        )
        self._forward(tokens, amounts, to)
        return amounts

    @atomic
    def remove_liquidity_with_permit(
        self,
        pool_type: int,
        tokens: Sequence[str],
        liquidity: int,
        amount_mins: Sequence[int],
        to: str,
        deadline: int,
        approve_max: bool,
        v: int,
        r: int,
        s: int,
        *,
        sender: str,
    ) -> list[int]:
        """remove_liquidity after approving the router with a signed permit."""
        pool = self._require_pool(tokens, pool_type)
        self._permit(pool, sender, liquidity, deadline, approve_max, v, r, s)
        return self.remove_liquidity(
            pool_type, tokens, liquidity, amount_mins, to, deadline, sender=sender
        )

    @atomic
    def remove_liquidity_eth_with_permit(
        self,
        pool_type: int,
        tokens: Sequence[str],
        liquidity: int,
        amount_mins: Sequence[int],
        to: str,
        deadline: int,
        approve_max: bool,
        v: int,
        r: int,
        s: int,
        *,
        sender: str,
    ) -> list[int]:
        pool = self._require_pool(tokens, pool_type)
        self._permit(pool, sender, liquidity, deadline, approve_max, v, r, s)
        return self.remove_liquidity_eth(
            pool_type, tokens, liquidity, amount_mins, to, deadline, sender=sender
        )

    # =========================================================================
    # Liquidity: stable-only withdrawals
    # =========================================================================

    @atomic
    def remove_liquidity_one_token(
        self,
        tokens: Sequence[str],
        liquidity: int,
        token: str,
        min_amount: int,
        to: str,
        deadline: int,
        *,
        sender: str,
    ) -> int:
        """Burn liquidity of the stable pool holding tokens for a single token.

        Raises:
            NotStablePair: If no stable pool holds tokens
            BelowMinAmount: If the payout is below min_amount
        """
        self._ensure_deadline(deadline)
        handler = self._stable_handler()
        pool = handler.resolve(self.registry, tokens)
        pool.lp_token.transfer_from(sender, pool.address, liquidity, sender=self.address)
        return handler.remove_liquidity_one_token(
            pool, liquidity, token, min_amount, to, deadline, sender=self.address
        )

    @atomic
    def remove_liquidity_one_token_eth(
        self,
        tokens: Sequence[str],
        liquidity: int,
        token: str,
        min_amount: int,
        to: str,
        deadline: int,
        *,
        sender: str,
    ) -> int:
        """Single-token withdrawal of the wrapped native token, paid as native value."""
        if normalize_address(token) != self.weth.address:
            raise InvalidToken(f"Router: {token} is not WETH")
        amount = self.remove_liquidity_one_token(
            tokens, liquidity, token, min_amount, self.address, deadline, sender=sender
        )
        self._unwrap(to, amount)
        return amount

    @atomic
    def remove_liquidity_one_token_with_permit(
        self,
        tokens: Sequence[str],
        liquidity: int,
        token: str,
        min_amount: int,
        to: str,
        deadline: int,
        approve_max: bool,
        v: int,
        r: int,
        s: int,
        *,
        sender: str,
    ) -> int:
        pool = self._stable_handler().resolve(self.registry, tokens)
        self._permit(pool, sender, liquidity, deadline, approve_max, v, r, s)
        return self.remove_liquidity_one_token(
            tokens, liquidity, token, min_amount, to, deadline, sender=sender
        )

    @atomic
    def remove_liquidity_one_token_eth_with_permit(
        self,
        tokens: Sequence[str],
        liquidity: int,
        token: str,
        min_amount: int,
        to: str,
        deadline: int,
        approve_max: bool,
        v: int,
        r: int,
        s: int,
        *,
        sender: str,
    ) -> int:
        pool = self._stable_handler().resolve(self.registry, tokens)
        self._permit(pool, sender, liquidity, deadline, approve_max, v, r, s)
        return self.remove_liquidity_one_token_eth(
            tokens, liquidity, token, min_amount, to, deadline, sender=sender
        )

    @atomic
    def remove_liquidity_imbalance(
        self,
        tokens: Sequence[str],
        amounts: Sequence[int],
        max_burn: int,
        to: str,
        deadline: int,
        *,
        sender: str,
    ) -> int:
        """Withdraw exact amounts from the stable pool holding tokens.

        Only the LP shares actually needed are pulled from sender.

        Returns:
            LP shares burned

        Raises:
            NotStablePair: If no stable pool holds tokens
            ExceedsMaxBurn: If more than max_burn shares would be burned
        """
        self._ensure_deadline(deadline)
        handler = self._stable_handler()
        pool = handler.resolve(self.registry, tokens)
        burn = handler.quote_remove_liquidity_imbalance(pool, tokens, amounts)
        if burn > max_burn:
            raise ExceedsMaxBurn(f"Router: burn {burn} exceeds max {max_burn}")
        pool.lp_token.transfer_from(sender, pool.address, burn, sender=self.address)
        return handler.remove_liquidity_imbalance(
            pool, tokens, amounts, burn, to, deadline, sender=self.address
        )

    @atomic
    def remove_liquidity_imbalance_eth(
        self,
        tokens: Sequence[str],
        amounts: Sequence[int],
        max_burn: int,
        to: str,
        deadline: int,
        *,
        sender: str,
    ) -> int:
        self._weth_index(tokens)
        burned = self.remove_liquidity_imbalance(
            tokens, amounts, max_burn, self.address, deadline, sender=sender
        )
        self._forward(tokens, amounts, to)
        return burned

    @atomic
    def remove_liquidity_imbalance_with_permit(
        self,
        tokens: Sequence[str],
        amounts: Sequence[int],
        max_burn: int,
        to: str,
        deadline: int,
        approve_max: bool,
        v: int,
        r: int,
        s: int,
        *,
        sender: str,
    ) -> int:
        pool = self._stable_handler().resolve(self.registry, tokens)
        self._permit(pool, sender, max_burn, deadline, approve_max, v, r, s)
        return self.remove_liquidity_imbalance(
            tokens, amounts, max_burn, to, deadline, sender=sender
        )

    @atomic
    def remove_liquidity_imbalance_eth_with_permit(
        self,
        tokens: Sequence[str],
        amounts: Sequence[int],
        max_burn: int,
        to: str,
        deadline: int,
        approve_max: bool,
        v: int,
        r: int,
        s: int,
        *,
        sender: str,
    ) -> int:
        pool = self._stable_handler().resolve(self.registry, tokens)
        self._permit(pool, sender, max_burn, deadline, approve_max, v, r, s)
        return self.remove_liquidity_imbalance_eth(
            tokens, amounts, max_burn, to, deadline, sender=sender
        )

    # =========================================================================
    # Helpers
    # =========================================================================

    def _ensure_deadline(self, deadline: int) -> None:
        if deadline < self.chain.timestamp:
            raise Expired(f"Router: EXPIRED at {deadline}, now {self.chain.timestamp}")

    def _prepare_swap(self, routes: Sequence[Route], amount_in: int) -> list[_ResolvedHop]:
        if amount_in <= 0:
            raise InsufficientInput("Router: INSUFFICIENT_INPUT_AMOUNT")
        return self._resolve_routes(routes)

    def _resolve_routes(self, routes: Sequence[Route]) -> list[_ResolvedHop]:
        """Validate a route and look up every hop's pool and handler."""
        if not routes:
            raise InvalidPath("Router: empty route")
        hops: list[_ResolvedHop] = []
        for index, route in enumerate(routes):
            if index > 0 and routes[index - 1].to_token != route.from_token:
                raise InvalidPath(
                    f"Router: hop {index} starts at {route.from_token}, "
                    f"previous hop ends at {routes[index - 1].to_token}"
                )
            hop = self._resolve_hop(route)
            # Each pool at most once: hop quotes read pre-trade state
            if any(seen.pool is hop.pool for seen in hops):
                raise InvalidPath(f"Router: route visits pool {hop.pool.address} twice")
            hops.append(hop)
        return hops

    def _resolve_hop(self, route: Route) -> _ResolvedHop:
        pool = self.registry.get_pool_by_address(route.pool)
        if pool is None:
            raise InvalidPairType(f"Router: {route.pool} is not a pool")
        if route.pool_type is not None and pool.pool_type != route.pool_type:
            raise self._type_mismatch(route.pool_type, route.pool)
        if not (pool.has_token(route.from_token) and pool.has_token(route.to_token)):
            raise InvalidPath(
                f"Router: pool {route.pool} does not trade {route.from_token} -> {route.to_token}"
            )
        if route.from_token == route.to_token:
            raise InvalidPath(f"Router: hop sells {route.from_token} for itself")
        return _ResolvedHop(route=route, pool=pool, handler=self.handlers.require(pool.pool_type))

    def _execute(
        self, hops: Sequence[_ResolvedHop], amount_in: int, to: str, deadline: int
    ) -> SwapResult:
        """Run hops whose first input is already held by the first pool."""
        amount = amount_in
        results = []
        for index, hop in enumerate(hops):
            recipient = hops[index + 1].pool.address if index + 1 < len(hops) else to
            amount_out = hop.handler.swap(
                hop.pool,
                hop.route.from_token,
                hop.route.to_token,
                amount,
                recipient,
                deadline,
                sender=self.address,
            )
            results.append(
                HopResult(
                    pool=hop.pool.address,
                    pool_type=hop.pool.pool_type,
                    input_token=hop.route.from_token,
                    output_token=hop.route.to_token,
                    amount_in=amount,
                    amount_out=amount_out,
                )
            )
            amount = amount_out
        return SwapResult(amount_in=amount_in, amount_out=amount, hops=results)

    def _check_output(self, result: SwapResult, amount_out_min: int) -> None:
        if result.amount_out < amount_out_min:
            raise InsufficientOutputAmount(
                f"Router: INSUFFICIENT_OUTPUT_AMOUNT {result.amount_out} < {amount_out_min}"
            )

    def _log_route(self, result: SwapResult, sender: str, to: str) -> None:
        logger.info(
            "route_executed",
            sender=short_address(sender),
            to=short_address(to),
            hops=len(result.hops),
            pools=[short_address(hop.pool) for hop in result.hops],
            amount_in=result.amount_in,
            amount_out=result.amount_out,
        )

    def _require_pool(self, tokens: Sequence[str], pool_type: int) -> AnyPool:
        self.handlers.require(pool_type)
        pool = self.registry.get_pool(tokens, pool_type)
        if pool is None:
            raise self._type_mismatch(pool_type, str(list(tokens)))
        return pool

    @staticmethod
    def _type_mismatch(pool_type: int, subject: str) -> AMMError:
        if pool_type == PoolType.VOLATILE:
            return NotVolatilePair(f"Router: {subject} is not a VolatilePair")
        if pool_type == PoolType.STABLE:
            return NotStablePair(f"Router: {subject} is not a StablePair")
        return InvalidPairType(f"Router: invalid pair type {pool_type}")

    def _stable_handler(self) -> StableHandler:
        handler = self.handlers.require(PoolType.STABLE)
        if not isinstance(handler, StableHandler):
            raise InvalidPairType(f"Router: no stable handler registered, got {handler!r}")
        return handler

    def _token(self, address: str) -> Token:
        contract = self.chain.get_contract(address)
        if not isinstance(contract, Token):
            raise InvalidToken(f"Router: {address} is not a token")
        return contract

    def _weth_index(self, tokens: Sequence[str]) -> int:
        normalized = [normalize_address(t) for t in tokens]
        if self.weth.address not in normalized:
            raise InvalidToken("Router: tokens do not include WETH")
        return normalized.index(self.weth.address)

    def _wrap(self, sender: str, value: int) -> None:
        self.chain.transfer_native(sender, self.address, value)
        self.weth.deposit(sender=self.address, value=value)

    def _unwrap(self, to: str, amount: int) -> None:
        self.weth.withdraw(amount, sender=self.address)
        self.chain.transfer_native(self.address, to, amount)

    def _forward(self, tokens: Sequence[str], amounts: Sequence[int], to: str) -> None:
        """Pay out tokens the router received, unwrapping the native leg."""
        for token, amount in zip(tokens, amounts, strict=True):
            if amount == 0:
                continue
            if normalize_address(token) == self.weth.address:
                self._unwrap(to, amount)
            else:
                self._token(token).transfer(to, amount, sender=self.address)

    def _permit(
        self,
        pool: AnyPool,
        owner: str,
        amount: int,
        deadline: int,
        approve_max: bool,
        v: int,
        r: int,
        s: int,
    ) -> None:
        value = UINT256_MAX if approve_max else amount
        pool.lp_token.permit(owner, self.address, value, deadline, v, r, s)


__all__ = ["Router"]
