"""Abstract pool interface shared by both curves.

Pools are ledger contracts that also mix in Pool, which provides:
- the PoolType discriminant the router dispatches on
- the reentrancy guard (an explicit UNLOCKED/LOCKED state machine)
- token bookkeeping, fee-rate validation and the manager-gated fee setters
"""

from __future__ import annotations

import functools
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterator, Sequence
from contextlib import contextmanager
from enum import Enum, IntEnum
from typing import TYPE_CHECKING, Any, ClassVar, Protocol, TypeVar, cast, runtime_checkable

import structlog

from dex.chain.state import atomic
from dex.constants import MAX_ADMIN_FEE, MAX_SWAP_FEE
from dex.errors import (
    AdminFeeTooHigh,
    DeadlineNotMet,
    InvalidToken,
    Locked,
    NotManager,
    SwapFeeTooHigh,
)
from dex.models.types import normalize_address, short_address

if TYPE_CHECKING:
    from dex.chain.permit import PermitToken
    from dex.chain.state import Chain
    from dex.chain.token import Token

logger = structlog.get_logger()

F = TypeVar("F", bound=Callable[..., Any])


class PoolType(IntEnum):
    """Curve discriminant. Values match the registry's pool-type ids."""

    VOLATILE = 1
    STABLE = 2


class LockState(Enum):
    UNLOCKED = "unlocked"
    LOCKED = "locked"


class ReentrancyGuard:
    """Per-pool lock held for the duration of a state-mutating call."""

    def __init__(self, owner: str) -> None:
        self._owner = owner
        self._state = LockState.UNLOCKED

    @property
    def state(self) -> LockState:
        return self._state

    @contextmanager
    def hold(self) -> Iterator[None]:
        """Acquire the lock, releasing it on every exit path.

        Raises:
            Locked: If the lock is already held
        """
        if self._state is LockState.LOCKED:
            raise Locked(f"Pool {self._owner} is locked")
        self._state = LockState.LOCKED
        try:
            yield
        finally:
            self._state = LockState.UNLOCKED


def non_reentrant(method: F) -> F:
    """Hold the pool's reentrancy guard while the method runs."""

    @functools.wraps(method)
    def wrapper(self: Pool, *args: Any, **kwargs: Any) -> Any:
        with self._guard.hold():
            return method(self, *args, **kwargs)

    return cast(F, wrapper)


class ManagerSource(Protocol):
    """Anything that names the fee manager (the pool registry)."""

    @property
    def manager(self) -> str: ...


@runtime_checkable
class SwapCallee(Protocol):
    """Contract that receives a flash-swap callback from a volatile pool."""

    def on_pool_swap(self, sender: str, amount0_out: int, amount1_out: int, data: bytes) -> None:
        """Called after outputs are sent and before the K-check."""
        ...


def ensure_deadline(chain: Chain, deadline: int) -> None:
    """Raises DeadlineNotMet if the block timestamp is past deadline."""
    if chain.timestamp > deadline:
        raise DeadlineNotMet(f"Deadline {deadline} not met at {chain.timestamp}")


def validate_fee_rates(swap_fee_rate: int, admin_fee_rate: int) -> None:
    if not 0 <= swap_fee_rate <= MAX_SWAP_FEE:
        raise SwapFeeTooHigh(f"Swap fee {swap_fee_rate} is greater than the maximum {MAX_SWAP_FEE}")
    if not 0 <= admin_fee_rate <= MAX_ADMIN_FEE:
        raise AdminFeeTooHigh(
            f"Admin fee {admin_fee_rate} is greater than the maximum {MAX_ADMIN_FEE}"
        )


class Pool(ABC):
    """Mixin for ledger contracts that implement a pool curve.

    Concrete pools are also Contracts; ``address`` and ``chain`` come from
    there. Token order is the ascending address order fixed at creation.
    """

    pool_type: ClassVar[PoolType]

    _state_fields = ("_swap_fee_rate", "_admin_fee_rate")

    address: str
    chain: Chain

    def _setup_pool(
        self,
        registry: ManagerSource,
        tokens: Sequence[Token],
        swap_fee_rate: int,
        admin_fee_rate: int,
    ) -> None:
        validate_fee_rates(swap_fee_rate, admin_fee_rate)
        self.registry = registry
        self._token_contracts: tuple[Token, ...] = tuple(tokens)
        self._token_index = {normalize_address(t.address): i for i, t in enumerate(tokens)}
        self._swap_fee_rate = swap_fee_rate
        self._admin_fee_rate = admin_fee_rate
        self._guard = ReentrancyGuard(self.address)

    # --- Views ---

    @property
    def tokens(self) -> tuple[str, ...]:
        return tuple(normalize_address(t.address) for t in self._token_contracts)

    @property
    def token_contracts(self) -> tuple[Token, ...]:
        return self._token_contracts

    @property
    def swap_fee_rate(self) -> int:
        return self._swap_fee_rate

    @property
    def admin_fee_rate(self) -> int:
        return self._admin_fee_rate

    @property
    def lock_state(self) -> LockState:
        return self._guard.state

    def get_token_index(self, token: str) -> int:
        """Index of token in the pool's token order.

        Raises:
            InvalidToken: If the token is not pooled
        """
        index = self._token_index.get(normalize_address(token))
        if index is None:
            raise InvalidToken(f"Token {token} not in pool {self.address}")
        return index

    def has_token(self, token: str) -> bool:
        return normalize_address(token) in self._token_index

    @property
    @abstractmethod
    def lp_token(self) -> PermitToken:
        """Token representing shares of this pool."""

    @abstractmethod
    def get_amount_out(self, token_in: str, token_out: str, amount_in: int) -> int:
        """Output amount for an exact input, after fees."""

    @abstractmethod
    def get_token_balance(self, index: int) -> int:
        """Pooled balance of a token, excluding accrued admin fees."""

    @abstractmethod
    def get_admin_balance(self, index: int) -> int:
        """Admin fees accrued for a token and not yet claimed."""

    @abstractmethod
    def claim_fees(self, *, sender: str) -> tuple[int, ...]:
        """Send accrued admin fees to the manager."""

    # --- Manager-gated configuration ---

    def _only_manager(self, sender: str) -> None:
        if normalize_address(sender) != normalize_address(self.registry.manager):
            raise NotManager(f"{sender} is not manager")

    @atomic
    def set_swap_fee_rate(self, swap_fee_rate: int, *, sender: str) -> None:
        """Update the swap fee rate (manager only, at most MAX_SWAP_FEE)."""
        self._only_manager(sender)
        validate_fee_rates(swap_fee_rate, self._admin_fee_rate)
        self._swap_fee_rate = swap_fee_rate
        logger.info(
            "fee_rate_updated",
            pool=short_address(self.address),
            fee="swap",
            rate=swap_fee_rate,
        )

    @atomic
    def set_admin_fee_rate(self, admin_fee_rate: int, *, sender: str) -> None:
        """Update the admin fee rate (manager only, at most MAX_ADMIN_FEE)."""
        self._only_manager(sender)
        validate_fee_rates(self._swap_fee_rate, admin_fee_rate)
        self._admin_fee_rate = admin_fee_rate
        logger.info(
            "fee_rate_updated",
            pool=short_address(self.address),
            fee="admin",
            rate=admin_fee_rate,
        )


__all__ = [
    "LockState",
    "ManagerSource",
    "Pool",
    "PoolType",
    "ReentrancyGuard",
    "SwapCallee",
    "ensure_deadline",
    "non_reentrant",
    "validate_fee_rates",
]
