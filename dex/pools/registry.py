"""Pool registry: creation, deterministic addressing and lookup.

The registry is the single source of truth for which pools exist. A pool is
identified by its pool type and its (sorted) token set; its address is
derived from those with keccak256, so callers can compute where a pool lives
before it has been created.

Creation parameters arrive ABI-encoded, as they would in a factory call:
- volatile: (uint256 swap_fee_rate, uint256 admin_fee_rate)
- stable:   (uint256 swap_fee_rate, uint256 admin_fee_rate, uint256 a)
Empty data falls back to the defaults of the registry's ProtocolConfig.
"""

from __future__ import annotations

from collections.abc import Sequence

import structlog
from eth_abi import encode  # type: ignore[attr-defined]
from eth_utils import keccak

from dex.chain.state import Chain, Contract, atomic
from dex.chain.token import Token
from dex.config import DEFAULT_PROTOCOL_CONFIG, ProtocolConfig
from dex.errors import DuplicateTokens, InvalidPairType, InvalidToken, PoolAlreadyExists
from dex.models.types import is_valid_address, normalize_address, short_address
from dex.pools.base import PoolType
from dex.pools.stable import StableParams, StablePool
from dex.pools.types import AnyPool
from dex.pools.volatile import VolatileParams, VolatilePool

logger = structlog.get_logger()

PoolKey = tuple[int, tuple[str, ...]]


def sort_tokens(tokens: Sequence[str]) -> tuple[str, ...]:
    """Normalize and sort token addresses.

    Raises:
        DuplicateTokens: If a token appears twice
    """
    ordered = tuple(sorted(normalize_address(t) for t in tokens))
    if len(set(ordered)) != len(ordered):
        raise DuplicateTokens(f"Duplicate tokens in {list(tokens)}")
    return ordered


def parse_pool_type(pool_type: int) -> PoolType:
    """Map a raw pool-type id to PoolType.

    Raises:
        InvalidPairType: If the id is unknown
    """
    try:
        return PoolType(pool_type)
    except ValueError as err:
        raise InvalidPairType(f"Router: invalid pair type {pool_type}") from err


class PoolRegistry(Contract):
    """Registry of every pool, keyed by (pool type, sorted tokens).

    The manager receives admin fees and may change pool fee rates.
    """

    _state_fields = ("_pools", "_pool_keys")

    def __init__(
        self,
        chain: Chain,
        manager: str,
        config: ProtocolConfig = DEFAULT_PROTOCOL_CONFIG,
        *,
        address: str | None = None,
    ) -> None:
        super().__init__(chain, address)
        self._manager = normalize_address(manager)
        self.config = config
        self._pools: dict[PoolKey, str] = {}
        self._pool_keys: dict[str, PoolKey] = {}

    @property
    def manager(self) -> str:
        return self._manager

    @property
    def default_volatile_params(self) -> VolatileParams:
        return VolatileParams(
            swap_fee_rate=self.config.default_swap_fee_rate,
            admin_fee_rate=self.config.default_admin_fee_rate,
        )

    @property
    def default_stable_params(self) -> StableParams:
        return StableParams(
            swap_fee_rate=self.config.default_swap_fee_rate,
            admin_fee_rate=self.config.default_admin_fee_rate,
            a=self.config.default_amplification,
        )

    # --- Lookup ---

    def pool_address(self, tokens: Sequence[str], pool_type: int) -> str:
        """Deterministic address of the pool for tokens and pool_type.

        Does not require the pool to exist or the pool type to be known.

        Raises:
            DuplicateTokens: If a token appears twice
            InvalidToken: If a token is not a well-formed address
            InvalidPairType: If pool_type is negative
        """
        ordered = sort_tokens(tokens)
        malformed = [token for token in ordered if not is_valid_address(token)]
        if malformed:
            raise InvalidToken(f"Malformed token addresses: {malformed}")
        if int(pool_type) < 0:
            raise InvalidPairType(f"Invalid pool type: {pool_type}")
        digest = keccak(
            encode(
                ["address", "uint256", "address[]"],
                [self.address, int(pool_type), list(ordered)],
            )
        )
        return "0x" + digest[-20:].hex()

    def get_pool(self, tokens: Sequence[str], pool_type: int) -> AnyPool | None:
        """Pool for a token set and pool type, or None if it does not exist."""
        try:
            key = (int(pool_type), sort_tokens(tokens))
        except DuplicateTokens:
            return None
        address = self._pools.get(key)
        return self.get_pool_by_address(address) if address else None

    def get_pool_by_address(self, address: str) -> AnyPool | None:
        if normalize_address(address) not in self._pool_keys:
            return None
        contract = self.chain.get_contract(address)
        return contract if isinstance(contract, VolatilePool | StablePool) else None

    def is_pool(self, address: str) -> bool:
        return normalize_address(address) in self._pool_keys

    def all_pools(self) -> list[AnyPool]:
        pools = [self.get_pool_by_address(address) for address in self._pool_keys]
        return [pool for pool in pools if pool is not None]

    def __len__(self) -> int:
        return len(self._pools)

    # --- Creation ---

    @atomic
    def create_pool(
        self,
        tokens: Sequence[str],
        pool_type: int,
        data: bytes = b"",
        *,
        sender: str,
    ) -> AnyPool:
        """Create and register a pool.

        Args:
            tokens: Token addresses in any order
            pool_type: PoolType id
            data: ABI-encoded creation parameters, or empty for defaults
            sender: Caller creating the pool

        Returns:
            The new pool

        Raises:
            InvalidPairType: If pool_type is unknown
            DuplicateTokens: If a token appears twice
            PoolAlreadyExists: If the pool is already registered
            InvalidToken: If an address is not a token contract
        """
        kind = parse_pool_type(pool_type)
        ordered = sort_tokens(tokens)
        key = (int(kind), ordered)
        if key in self._pools:
            raise PoolAlreadyExists(f"Pool {kind.name} for {list(ordered)} already exists")

        token_contracts = [self._resolve_token(address) for address in ordered]
        address = self.pool_address(ordered, kind)
        pool: AnyPool
        if kind is PoolType.VOLATILE:
            pool = VolatilePool.from_init_data(
                self.chain,
                self,
                token_contracts,
                data,
                self.default_volatile_params,
                address=address,
            )
        else:
            pool = StablePool.from_init_data(
                self.chain,
                self,
                token_contracts,
                data,
                self.default_stable_params,
                address=address,
                imbalance_fee_scale=self.config.imbalance_fee_scale,
                max_iterations=self.config.max_iterations,
            )

        self._pools[key] = pool.address
        self._pool_keys[pool.address] = key
        logger.info(
            "pool_created",
            pool=short_address(pool.address),
            pool_type=kind.name,
            tokens=[short_address(t) for t in ordered],
            swap_fee_rate=pool.swap_fee_rate,
            admin_fee_rate=pool.admin_fee_rate,
            sender=short_address(sender),
        )
        return pool

    def _resolve_token(self, address: str) -> Token:
        contract = self.chain.get_contract(address)
        if not isinstance(contract, Token):
            raise InvalidToken(f"{address} is not a token contract")
        return contract


__all__ = ["PoolRegistry", "parse_pool_type", "sort_tokens"]
