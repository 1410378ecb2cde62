"""Token capability and in-memory ERC20 implementations.

Pools and the router only depend on the Token protocol. ERC20Token is the
reference implementation used by simulations and tests; WrappedNative adds
deposit/withdraw against the chain's native balances.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from dex.chain.state import Chain, Contract, atomic
from dex.errors import (
    InsufficientAllowance,
    InsufficientBalance,
    InvalidAmount,
    NotMinter,
    Overflow,
)
from dex.models.types import UINT256_MAX, normalize_address


@runtime_checkable
class Token(Protocol):
    """What the engine needs from a token."""

    address: str
    symbol: str
    decimals: int

    def balance_of(self, holder: str) -> int:
        """Balance held by an address."""
        ...

    def allowance(self, owner: str, spender: str) -> int:
        """Amount spender may move on behalf of owner."""
        ...

    def transfer(self, to: str, amount: int, *, sender: str) -> bool:
        """Move amount from sender to to."""
        ...

    def transfer_from(self, owner: str, to: str, amount: int, *, sender: str) -> bool:
        """Move amount from owner to to, spending sender's allowance."""
        ...

    def approve(self, spender: str, amount: int, *, sender: str) -> bool:
        """Set spender's allowance over sender's balance."""
        ...


class ERC20Token(Contract):
    """Fungible token with balances, allowances and owner-gated minting.

    An allowance of UINT256_MAX is treated as infinite and never decreases.
    """

    _state_fields = ("_balances", "_allowances", "_total_supply")

    def __init__(
        self,
        chain: Chain,
        name: str,
        symbol: str,
        decimals: int = 18,
        *,
        owner: str | None = None,
        address: str | None = None,
    ) -> None:
        super().__init__(chain, address)
        self.name = name
        self.symbol = symbol
        self.decimals = decimals
        self.owner = normalize_address(owner) if owner else None
        self._balances: dict[str, int] = {}
        self._allowances: dict[tuple[str, str], int] = {}
        self._total_supply = 0

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.symbol}, {self.address})"

    # --- Views ---

    @property
    def total_supply(self) -> int:
        return self._total_supply

    def balance_of(self, holder: str) -> int:
        return self._balances.get(normalize_address(holder), 0)

    def allowance(self, owner: str, spender: str) -> int:
        return self._allowances.get((normalize_address(owner), normalize_address(spender)), 0)

    # --- Mutations ---

    def approve(self, spender: str, amount: int, *, sender: str) -> bool:
        self._approve(normalize_address(sender), normalize_address(spender), amount)
        return True

    def transfer(self, to: str, amount: int, *, sender: str) -> bool:
        self._transfer(normalize_address(sender), normalize_address(to), amount)
        return True

    @atomic
    def transfer_from(self, owner: str, to: str, amount: int, *, sender: str) -> bool:
        owner = normalize_address(owner)
        spender = normalize_address(sender)
        current = self.allowance(owner, spender)
        if current != UINT256_MAX:
            if current < amount:
                raise InsufficientAllowance(
                    f"{self.symbol}: allowance {current} < {amount} for {spender}"
                )
            self._approve(owner, spender, current - amount)
        self._transfer(owner, normalize_address(to), amount)
        return True

    def mint(self, to: str, amount: int, *, sender: str) -> None:
        """Create new tokens for to.

        Raises:
            NotMinter: If sender is not the token owner
        """
        if self.owner is None or normalize_address(sender) != self.owner:
            raise NotMinter(f"{self.symbol}: {sender} may not mint")
        self._mint(normalize_address(to), amount)

    # --- Internal accounting ---

    def _approve(self, owner: str, spender: str, amount: int) -> None:
        _check_amount(amount)
        self._allowances[(owner, spender)] = amount

    def _transfer(self, sender: str, to: str, amount: int) -> None:
        _check_amount(amount)
        balance = self._balances.get(sender, 0)
        if balance < amount:
            raise InsufficientBalance(f"{self.symbol}: balance {balance} < {amount} for {sender}")
        self._balances[sender] = balance - amount
        self._balances[to] = self._balances.get(to, 0) + amount

    def _mint(self, to: str, amount: int) -> None:
        _check_amount(amount)
        if self._total_supply + amount > UINT256_MAX:
            raise Overflow(f"{self.symbol}: total supply would exceed uint256")
        self._total_supply += amount
        self._balances[to] = self._balances.get(to, 0) + amount

    def _burn(self, holder: str, amount: int) -> None:
        _check_amount(amount)
        balance = self._balances.get(holder, 0)
        if balance < amount:
            raise InsufficientBalance(f"{self.symbol}: burn {amount} exceeds balance {balance}")
        self._balances[holder] = balance - amount
        self._total_supply -= amount


class WrappedNative(ERC20Token):
    """ERC20 wrapper around the chain's native value (WETH-style)."""

    def __init__(
        self,
        chain: Chain,
        name: str = "Wrapped Ether",
        symbol: str = "WETH",
        *,
        address: str | None = None,
    ) -> None:
        super().__init__(chain, name, symbol, 18, address=address)

    @atomic
    def deposit(self, *, sender: str, value: int) -> None:
        """Lock value native units from sender and mint the same amount."""
        sender = normalize_address(sender)
        self.chain.transfer_native(sender, self.address, value)
        self._mint(sender, value)

    @atomic
    def withdraw(self, amount: int, *, sender: str) -> None:
        """Burn amount from sender and release the same native value."""
        sender = normalize_address(sender)
        self._burn(sender, amount)
        self.chain.transfer_native(self.address, sender, amount)


def _check_amount(amount: int) -> None:
    if not isinstance(amount, int) or amount < 0 or amount > UINT256_MAX:
        raise InvalidAmount(f"Token amount must be a uint256, got {amount!r}")


__all__ = ["Token", "ERC20Token", "WrappedNative"]
