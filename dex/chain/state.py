"""In-memory ledger the pools and the router execute against.

The Chain holds native balances, the block timestamp and every deployed
contract. Contracts declare which attributes make up their mutable state in
``_state_fields``; a ledger transaction snapshots those attributes for every
contract on entry and restores them if the call raises, which gives every
state-mutating entry point all-or-nothing semantics at every nesting level.

Usage:
    class Counter(Contract):
        _state_fields = ("count",)

        def __init__(self, chain: Chain) -> None:
            super().__init__(chain)
            self.count = 0

        @atomic
        def bump(self) -> None:
            self.count += 1
            raise RuntimeError  # count is back to its previous value
"""

from __future__ import annotations

import copy
import functools
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Any, ClassVar, TypeVar, cast

from dex.errors import InsufficientBalance
from dex.models.types import normalize_address

F = TypeVar("F", bound=Callable[..., Any])

# First address handed out by Chain.new_address()
_ADDRESS_SEED = 0x1000

# Default block timestamp (2023-11-14)
DEFAULT_TIMESTAMP = 1_700_000_000


class Contract:
    """Base class for anything deployed on the ledger.

    Subclasses list their mutable attributes in ``_state_fields``. Fields of
    every class in the MRO are combined, so a subclass only lists what it adds.
    State values must be plain data (ints, strings, containers of those);
    references to other contracts are held outside the state fields.
    """

    _state_fields: ClassVar[tuple[str, ...]] = ()

    def __init__(self, chain: Chain, address: str | None = None) -> None:
        self.chain = chain
        self.address = normalize_address(address) if address else chain.new_address()
        chain.register(self)

    @classmethod
    def state_fields(cls) -> tuple[str, ...]:
        """All state fields declared along the MRO, base classes first."""
        fields: list[str] = []
        for klass in reversed(cls.__mro__):
            for name in klass.__dict__.get("_state_fields", ()):
                if name not in fields:
                    fields.append(name)
        return tuple(fields)

    def snapshot_state(self) -> dict[str, Any]:
        return {name: copy.deepcopy(getattr(self, name)) for name in self.state_fields()}

    def restore_state(self, state: dict[str, Any]) -> None:
        for name, value in state.items():
            setattr(self, name, value)


class Chain:
    """Ledger of native balances, contracts and the current block timestamp."""

    def __init__(self, chain_id: int = 1, timestamp: int = DEFAULT_TIMESTAMP) -> None:
        self.chain_id = chain_id
        self.timestamp = timestamp
        self._native: dict[str, int] = {}
        self._contracts: dict[str, Contract] = {}
        self._address_counter = _ADDRESS_SEED

    # --- Addresses and contracts ---

    def new_address(self) -> str:
        """Allocate a fresh, never-used address."""
        while True:
            address = f"0x{self._address_counter:040x}"
            self._address_counter += 1
            if address not in self._contracts:
                return address

    def register(self, contract: Contract) -> None:
        if contract.address in self._contracts:
            raise ValueError(f"Address already in use: {contract.address}")
        self._contracts[contract.address] = contract

    def get_contract(self, address: str) -> Contract | None:
        return self._contracts.get(normalize_address(address))

    def is_contract(self, address: str) -> bool:
        return normalize_address(address) in self._contracts

    # --- Native balances ---

    def native_balance_of(self, address: str) -> int:
        return self._native.get(normalize_address(address), 0)

    def mint_native(self, to: str, amount: int) -> None:
        """Credit native value out of thin air (genesis allocation)."""
        if amount < 0:
            raise ValueError(f"Native amount cannot be negative: {amount}")
        to = normalize_address(to)
        self._native[to] = self._native.get(to, 0) + amount

    def transfer_native(self, sender: str, to: str, amount: int) -> None:
        """Move native value between two addresses.

        Raises:
            InsufficientBalance: If sender holds less than amount
        """
        if amount < 0:
            raise ValueError(f"Native amount cannot be negative: {amount}")
        sender = normalize_address(sender)
        to = normalize_address(to)
        balance = self._native.get(sender, 0)
        if balance < amount:
            raise InsufficientBalance(f"Native balance {balance} < {amount} for {sender}")
        self._native[sender] = balance - amount
        self._native[to] = self._native.get(to, 0) + amount

    # --- Time ---

    def advance_time(self, seconds: int) -> int:
        """Move the block timestamp forward and return the new value."""
        if seconds < 0:
            raise ValueError(f"Cannot move time backwards: {seconds}")
        self.timestamp += seconds
        return self.timestamp

    # --- Transactions ---

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """Run a block of calls atomically.

        On any exception the native balances, the set of deployed contracts
        and every contract's state fields are restored to their values at
        entry, then the exception propagates.
        """
        snapshot = self._snapshot()
        try:
            yield
        except BaseException:
            self._restore(snapshot)
            raise

    def _snapshot(self) -> tuple[dict[str, int], dict[str, Contract], dict[str, dict[str, Any]]]:
        states = {address: c.snapshot_state() for address, c in self._contracts.items()}
        return dict(self._native), dict(self._contracts), states

    def _restore(
        self, snapshot: tuple[dict[str, int], dict[str, Contract], dict[str, dict[str, Any]]]
    ) -> None:
        native, contracts, states = snapshot
        self._native = native
        self._contracts = contracts
        for address, state in states.items():
            contracts[address].restore_state(state)


def atomic(method: F) -> F:
    """Run a contract method inside a ledger transaction."""

    @functools.wraps(method)
    def wrapper(self: Contract, *args: Any, **kwargs: Any) -> Any:
        with self.chain.transaction():
            return method(self, *args, **kwargs)

    return cast(F, wrapper)


__all__ = ["Chain", "Contract", "atomic", "DEFAULT_TIMESTAMP"]
