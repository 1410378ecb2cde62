"""Pytest configuration and fixtures."""

import pytest

from dex.chain import Chain, ERC20Token, WrappedNative
from dex.engine import Deployment, deploy
from dex.pools import PoolRegistry
from dex.routing import Router
from tests.helpers import MANAGER, make_token


@pytest.fixture
def chain() -> Chain:
    """A fresh mainnet ledger at the default timestamp."""
    return Chain()


@pytest.fixture
def deployment(chain: Chain) -> Deployment:
    """Registry, WETH and router deployed on the test chain."""
    return deploy(chain=chain, manager=MANAGER)


@pytest.fixture
def registry(deployment: Deployment) -> PoolRegistry:
    return deployment.registry


@pytest.fixture
def router(deployment: Deployment) -> Router:
    return deployment.router


@pytest.fixture
def weth(deployment: Deployment) -> WrappedNative:
    return deployment.weth


# =============================================================================
# Tokens
# =============================================================================


@pytest.fixture
def dai(chain: Chain) -> ERC20Token:
    """18-decimal stablecoin."""
    return make_token(chain, "DAI", 18)


@pytest.fixture
def usdc(chain: Chain) -> ERC20Token:
    """6-decimal stablecoin."""
    return make_token(chain, "USDC", 6)


@pytest.fixture
def usdt(chain: Chain) -> ERC20Token:
    """6-decimal stablecoin."""
    return make_token(chain, "USDT", 6)


@pytest.fixture
def uni(chain: Chain) -> ERC20Token:
    """18-decimal volatile token."""
    return make_token(chain, "UNI", 18)


@pytest.fixture
def wbtc(chain: Chain) -> ERC20Token:
    """8-decimal volatile token."""
    return make_token(chain, "WBTC", 8)
