"""EIP-712 permits for LP tokens.

A permit lets an owner approve a spender with an off-ledger signature. The
signed struct is

    Permit(address owner, address spender, uint256 chainId, uint256 value,
           uint256 nonce, uint256 deadline)

under the domain (name, version, chainId, verifyingContract). Each owner has
a nonce that a valid permit consumes exactly once, so a signature can never
be replayed.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import structlog
from eth_account import Account
from eth_account.messages import encode_typed_data
from eth_keys.exceptions import BadSignature
from eth_keys.exceptions import ValidationError as KeyValidationError

from dex.chain.state import Chain, atomic
from dex.chain.token import ERC20Token
from dex.constants import PERMIT_VERSION
from dex.errors import InvalidSignature, PermitExpired
from dex.models.types import normalize_address

logger = structlog.get_logger()

PERMIT_TYPES: dict[str, list[dict[str, str]]] = {
    "EIP712Domain": [
        {"name": "name", "type": "string"},
        {"name": "version", "type": "string"},
        {"name": "chainId", "type": "uint256"},
        {"name": "verifyingContract", "type": "address"},
    ],
    "Permit": [
        {"name": "owner", "type": "address"},
        {"name": "spender", "type": "address"},
        {"name": "chainId", "type": "uint256"},
        {"name": "value", "type": "uint256"},
        {"name": "nonce", "type": "uint256"},
        {"name": "deadline", "type": "uint256"},
    ],
}


@dataclass(frozen=True)
class PermitSignature:
    """Recoverable ECDSA signature over a permit."""

    v: int
    r: int
    s: int


def build_permit_typed_data(
    *,
    name: str,
    version: str,
    chain_id: int,
    verifying_contract: str,
    owner: str,
    spender: str,
    value: int,
    nonce: int,
    deadline: int,
) -> dict[str, Any]:
    """Full EIP-712 message for a permit, ready for encode_typed_data."""
    return {
        "types": PERMIT_TYPES,
        "primaryType": "Permit",
        "domain": {
            "name": name,
            "version": version,
            "chainId": chain_id,
            "verifyingContract": normalize_address(verifying_contract),
        },
        "message": {
            "owner": normalize_address(owner),
            "spender": normalize_address(spender),
            "chainId": chain_id,
            "value": value,
            "nonce": nonce,
            "deadline": deadline,
        },
    }


def sign_permit(private_key: str | bytes, typed_data: dict[str, Any]) -> PermitSignature:
    """Sign permit typed data with a private key."""
    signed = Account.sign_message(encode_typed_data(full_message=typed_data), private_key)
    return PermitSignature(v=signed.v, r=signed.r, s=signed.s)


def recover_permit_signer(typed_data: dict[str, Any], signature: PermitSignature) -> str | None:
    """Address that signed the typed data, or None for a malformed signature."""
    signable = encode_typed_data(full_message=typed_data)
    try:
        signer = Account.recover_message(signable, vrs=(signature.v, signature.r, signature.s))
    except (BadSignature, KeyValidationError, ValueError) as err:
        logger.debug("permit_signature_malformed", error=str(err))
        return None
    return normalize_address(signer)


class PermitToken(ERC20Token):
    """ERC20 token that accepts EIP-712 signed approvals."""

    _state_fields = ("_nonces",)

    version = PERMIT_VERSION

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
        super().__init__(chain, name, symbol, decimals, owner=owner, address=address)
        self._nonces: dict[str, int] = {}

    def nonces(self, owner: str) -> int:
        """Next permit nonce for owner."""
        return self._nonces.get(normalize_address(owner), 0)

    def permit_typed_data(
        self,
        owner: str,
        spender: str,
        value: int,
        deadline: int,
        nonce: int | None = None,
    ) -> dict[str, Any]:
        """Typed data a permit for this token must sign (current nonce by default)."""
        return build_permit_typed_data(
            name=self.name,
            version=self.version,
            chain_id=self.chain.chain_id,
            verifying_contract=self.address,
            owner=owner,
            spender=spender,
            value=value,
            nonce=self.nonces(owner) if nonce is None else nonce,
            deadline=deadline,
        )

    @atomic
    def permit(
        self,
        owner: str,
        spender: str,
        value: int,
        deadline: int,
        v: int,
        r: int,
        s: int,
    ) -> None:
        """Approve spender for value on owner's behalf using owner's signature.

        Raises:
            PermitExpired: If deadline is before the current block timestamp
            InvalidSignature: If the signature does not recover to owner for
                the current nonce
        """
        owner = normalize_address(owner)
        if deadline < self.chain.timestamp:
            raise PermitExpired(f"{self.symbol}: permit expired at {deadline}")

        typed_data = self.permit_typed_data(owner, spender, value, deadline)
        signer = recover_permit_signer(typed_data, PermitSignature(v=v, r=r, s=s))
        if signer is None or signer != owner:
            raise InvalidSignature(f"{self.symbol}: permit signature does not match {owner}")

        self._nonces[owner] = self.nonces(owner) + 1
        self._approve(owner, normalize_address(spender), value)


__all__ = [
    "PERMIT_TYPES",
    "PermitSignature",
    "PermitToken",
    "build_permit_typed_data",
    "recover_permit_signer",
    "sign_permit",
]
