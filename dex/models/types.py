"""Address and amount types shared by the ledger and the HTTP models.

Addresses are kept as lowercase 0x-prefixed hex everywhere inside the engine;
amounts cross the API boundary as uint256 decimal strings.
"""

from typing import Annotated, Any

from eth_utils import is_hex_address
from pydantic import BeforeValidator, Field

UINT256_MAX = 2**256 - 1

# Also the sink for the locked minimum liquidity
ZERO_ADDRESS = "0x" + "0" * 40


def validate_uint256(value: Any) -> str:
    """Coerce an int or decimal string to a canonical uint256 string.

    Raises:
        ValueError: If value is not an integer in [0, 2^256 - 1]
    """
    if isinstance(value, str):
        try:
            amount = int(value)
        except ValueError as err:
            raise ValueError(f"Uint256 must be a decimal integer string: '{value}'") from err
    elif isinstance(value, int) and not isinstance(value, bool):
        amount = value
    else:
        raise ValueError(f"Uint256 must be string or int, got {type(value).__name__}")

    if not 0 <= amount <= UINT256_MAX:
        raise ValueError(f"Uint256 out of range: {value}")
    return str(amount)


Address = Annotated[str, Field(pattern=r"^0x[a-fA-F0-9]{40}$")]

Uint256 = Annotated[
    str,
    BeforeValidator(validate_uint256),
    Field(description="256-bit unsigned integer as decimal string"),
]


def is_valid_address(address: Any) -> bool:
    """Whether address is 0x followed by exactly 40 hex digits (any case)."""
    return isinstance(address, str) and address[:2] == "0x" and is_hex_address(address)


def normalize_address(address: str, *, validate: bool = False) -> str:
    """Lowercase an address and make sure it carries the 0x prefix.

    Raises:
        ValueError: If validate is set and the result is not a valid address
    """
    normalized = address.lower()
    if normalized[:2] != "0x":
        normalized = f"0x{normalized}"
    if validate and not is_valid_address(normalized):
        raise ValueError(f"Invalid address: {address}")
    return normalized


def short_address(address: str) -> str:
    """Last 8 hex characters of an address, for log lines."""
    return address[-8:]
