"""Wiring of a complete engine: ledger, pool registry, wrapped native token, router.

deploy() is what tests and the HTTP API use to get a ready-to-use engine.
The default deployment reads its ProtocolConfig from the environment.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache

import structlog

from dex.chain import Chain, WrappedNative
from dex.config import DEFAULT_PROTOCOL_CONFIG, ProtocolConfig
from dex.constants import WRAPPED_NATIVE
from dex.models.types import short_address
from dex.pools import PoolRegistry
from dex.routing import Router

logger = structlog.get_logger()


@dataclass
class Deployment:
    """Contracts of one deployed engine, all on the same chain."""

    chain: Chain
    manager: str
    registry: PoolRegistry
    weth: WrappedNative
    router: Router


def deploy(
    config: ProtocolConfig = DEFAULT_PROTOCOL_CONFIG,
    *,
    chain: Chain | None = None,
    manager: str | None = None,
) -> Deployment:
    """Deploy a registry, a wrapped native token and a router.

    The wrapped native token sits at its canonical address when the chain id
    has one in WRAPPED_NATIVE.

    Args:
        config: Protocol defaults for pools created through the registry
        chain: Ledger to deploy on (a fresh one for config.chain_id if None)
        manager: Fee manager of the registry (a fresh address if None)

    Returns:
        The deployed contracts
    """
    chain = chain if chain is not None else Chain(chain_id=config.chain_id)
    manager = manager if manager is not None else chain.new_address()
    registry = PoolRegistry(chain, manager, config)
    weth = WrappedNative(chain, address=WRAPPED_NATIVE.get(chain.chain_id))
    router = Router(chain, registry, weth)
    logger.info(
        "engine_deployed",
        chain_id=chain.chain_id,
        manager=short_address(manager),
        registry=short_address(registry.address),
        weth=short_address(weth.address),
        router=short_address(router.address),
    )
    return Deployment(chain=chain, manager=manager, registry=registry, weth=weth, router=router)


@lru_cache(maxsize=1)
def get_default_deployment() -> Deployment:
    """Process-wide engine configured from DEX_* environment variables."""
    return deploy(ProtocolConfig.from_env())


def get_default_router() -> Router:
    return get_default_deployment().router


__all__ = ["Deployment", "deploy", "get_default_deployment", "get_default_router"]
