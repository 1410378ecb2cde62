"""LP share token for stable pools."""

from __future__ import annotations

from dex.chain.permit import PermitToken
from dex.chain.state import Chain
from dex.errors import CannotMintZero, NotMinter, SendToSelf
from dex.models.types import normalize_address


class LPToken(PermitToken):
    """Permit-enabled share token that only its pool may mint or burn.

    Tokens can never be sent to the LP token's own address, where they would
    be stuck.
    """

    def __init__(self, chain: Chain, name: str, symbol: str, *, minter: str) -> None:
        super().__init__(chain, name, symbol, 18, owner=minter)
        self._minter = normalize_address(minter)

    @property
    def minter(self) -> str:
        return self._minter

    def transfer(self, to: str, amount: int, *, sender: str) -> bool:
        self._reject_self(to)
        return super().transfer(to, amount, sender=sender)

    def transfer_from(self, owner: str, to: str, amount: int, *, sender: str) -> bool:
        self._reject_self(to)
        return super().transfer_from(owner, to, amount, sender=sender)

    def mint(self, to: str, amount: int, *, sender: str) -> None:
        """Mint shares to to.

        Raises:
            NotMinter: If sender is not the pool
            CannotMintZero: If amount is zero
        """
        self._only_minter(sender)
        if amount == 0:
            raise CannotMintZero(f"{self.symbol}: cannot mint 0")
        self._reject_self(to)
        self._mint(normalize_address(to), amount)

    def burn(self, holder: str, amount: int, *, sender: str) -> None:
        """Destroy shares held by holder (pool only)."""
        self._only_minter(sender)
        self._burn(normalize_address(holder), amount)

    def _only_minter(self, sender: str) -> None:
        if normalize_address(sender) != self.minter:
            raise NotMinter(f"{self.symbol}: {sender} is not the minter")

    def _reject_self(self, to: str) -> None:
        if normalize_address(to) == self.address:
            raise SendToSelf(f"{self.symbol}: cannot send to itself")
