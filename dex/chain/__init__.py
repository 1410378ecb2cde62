"""Ledger primitives: chain state, tokens and permits."""

from dex.chain.permit import PermitSignature, PermitToken, sign_permit
from dex.chain.state import Chain, Contract, atomic
from dex.chain.token import ERC20Token, Token, WrappedNative

__all__ = [
    "Chain",
    "Contract",
    "ERC20Token",
    "PermitSignature",
    "PermitToken",
    "Token",
    "WrappedNative",
    "atomic",
    "sign_permit",
]
