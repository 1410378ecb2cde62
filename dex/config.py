"""Protocol configuration for the DEX engine."""

from __future__ import annotations

import os
from dataclasses import dataclass

from dex.constants import (
    DEFAULT_ADMIN_FEE_RATE,
    DEFAULT_AMPLIFICATION,
    DEFAULT_SWAP_FEE_RATE,
    IMBALANCE_FEE_SCALE,
    MAX_LOOP_LIMIT,
)


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError as err:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from err


@dataclass(frozen=True)
class ProtocolConfig:
    """Centralized configuration for pool creation and curve math.

    Attributes:
        chain_id: Chain id used in permit domains and for the wrapped native token
        default_swap_fee_rate: Swap fee applied when a pool is created without
            explicit parameters (parts per 1e10)
        default_admin_fee_rate: Share of the swap fee accrued for the manager
            (parts per 1e10)
        default_amplification: Amplification coefficient for stable pools
            created without explicit parameters
        imbalance_fee_scale: Divisor in the per-token imbalance fee
            swap_fee * n / (scale * (n - 1))
        max_iterations: Newton iteration cap for the stable invariant solvers
    """

    chain_id: int = 1
    default_swap_fee_rate: int = DEFAULT_SWAP_FEE_RATE
    default_admin_fee_rate: int = DEFAULT_ADMIN_FEE_RATE
    default_amplification: int = DEFAULT_AMPLIFICATION
    imbalance_fee_scale: int = IMBALANCE_FEE_SCALE
    max_iterations: int = MAX_LOOP_LIMIT

    @classmethod
    def from_env(cls) -> ProtocolConfig:
        """Build a configuration from DEX_* environment variables.

        Unset variables fall back to the defaults above.
        """
        return cls(
            chain_id=_env_int("DEX_CHAIN_ID", cls.chain_id),
            default_swap_fee_rate=_env_int("DEX_DEFAULT_SWAP_FEE_RATE", cls.default_swap_fee_rate),
            default_admin_fee_rate=_env_int(
                "DEX_DEFAULT_ADMIN_FEE_RATE", cls.default_admin_fee_rate
            ),
            default_amplification=_env_int(
                "DEX_DEFAULT_AMPLIFICATION", cls.default_amplification
            ),
            imbalance_fee_scale=_env_int("DEX_IMBALANCE_FEE_SCALE", cls.imbalance_fee_scale),
            max_iterations=_env_int("DEX_MAX_ITERATIONS", cls.max_iterations),
        )


# Default configuration instance
DEFAULT_PROTOCOL_CONFIG = ProtocolConfig()


@dataclass(frozen=True)
class ServerConfig:
    """Bind address and reload mode for the HTTP API.

    Rate limiting is left to the reverse proxy in front of the server.
    """

    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = False

    @classmethod
    def from_env(cls) -> ServerConfig:
        """Read DEX_HOST, DEX_PORT and DEX_DEBUG."""
        host = os.environ.get("DEX_HOST", "").strip() or cls.host
        debug = os.environ.get("DEX_DEBUG", "").strip().lower() in ("true", "1", "yes")
        return cls(host=host, port=_env_int("DEX_PORT", cls.port), debug=debug)
