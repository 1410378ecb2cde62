"""Shared types and API data structures.

API models live in dex.models.api and are imported from there directly.
"""

from dex.models.types import UINT256_MAX, ZERO_ADDRESS, Address, Uint256, normalize_address

__all__ = [
    "Address",
    "UINT256_MAX",
    "Uint256",
    "ZERO_ADDRESS",
    "normalize_address",
]
