"""Protocol constants for the DEX engine.

Centralizes fee denominators, curve parameters and well-known addresses.
"""

from dex.models.types import ZERO_ADDRESS, is_valid_address

# Fee rates are expressed in parts per FEE_DENOMINATOR (1e10 = 100%)
FEE_DENOMINATOR = 10**10

# Swap fee may not exceed 1% of the input
MAX_SWAP_FEE = 10**8

# Admin fee is a share of the swap fee and may take all of it
MAX_ADMIN_FEE = 10**10

# Locked forever on the first volatile mint
MINIMUM_LIQUIDITY = 1000

# Reserves of the volatile pool are 112-bit magnitudes
UINT112_MAX = 2**112 - 1

# StableSwap amplification is stored multiplied by A_PRECISION
A_PRECISION = 100
MAX_A = 10**6

# Newton iteration cap for get_d / get_y / get_y_d
MAX_LOOP_LIMIT = 256

# Stable pools normalize every balance to 18 decimals
POOL_PRECISION_DECIMALS = 18

# Virtual price is expressed with 18 decimals
PRICE_PRECISION = 10**18

MIN_POOLED_TOKENS = 2
MAX_POOLED_TOKENS = 32

# Divisor in the per-token imbalance fee: swap_fee * n / (scale * (n - 1))
IMBALANCE_FEE_SCALE = 4

# Defaults applied when a pool is created without explicit parameters
DEFAULT_SWAP_FEE_RATE = 30_000_000
DEFAULT_ADMIN_FEE_RATE = 5_000_000_000
DEFAULT_AMPLIFICATION = 10_000

# EIP-712 domain version used by every permit-enabled LP token
PERMIT_VERSION = "1"

BURN_ADDRESS = ZERO_ADDRESS


def _validate_token_address(name: str, address: str) -> str:
    """Validate and return a token address.

    Raises:
        ValueError: If the address is invalid
    """
    if not is_valid_address(address):
        raise ValueError(f"Invalid {name} address: {address} (must be 0x + 40 hex chars)")
    return address


# Canonical wrapped native token per chain id (lowercase for consistency)
WRAPPED_NATIVE = {
    1: _validate_token_address("WETH", "0xc02aaa39b223fe8d0a0e5c4f27ead9083c756cc2"),
    5: _validate_token_address("WETH (goerli)", "0xb4fbf271143f4fbf7b91a5ded31805e42b2208d6"),
    56: _validate_token_address("WBNB", "0xbb4cdb9cbd36b01bd1cbaebf2de08d9173bc095c"),
    137: _validate_token_address("WMATIC", "0x0d500b1d8e8ef31e21c99d1db9a6444d3adf1270"),
    42161: _validate_token_address("WETH (arbitrum)", "0x82af49447d8a07e3bd95bd0d56f35241523fbab1"),
}
