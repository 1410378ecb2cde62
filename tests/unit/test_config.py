"""Tests for ProtocolConfig and engine deployment."""

import pytest

from dex.config import DEFAULT_PROTOCOL_CONFIG, ProtocolConfig, ServerConfig
from dex.constants import (
    DEFAULT_ADMIN_FEE_RATE,
    DEFAULT_AMPLIFICATION,
    DEFAULT_SWAP_FEE_RATE,
    IMBALANCE_FEE_SCALE,
    MAX_LOOP_LIMIT,
    WRAPPED_NATIVE,
)
from dex.engine import deploy
from tests.helpers import MANAGER

ENV_VARS = [
    "DEX_CHAIN_ID",
    "DEX_DEFAULT_SWAP_FEE_RATE",
    "DEX_DEFAULT_ADMIN_FEE_RATE",
    "DEX_DEFAULT_AMPLIFICATION",
    "DEX_IMBALANCE_FEE_SCALE",
    "DEX_MAX_ITERATIONS",
]


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestProtocolConfig:
    """Tests for configuration defaults and environment overrides."""

    def test_defaults(self):
        config = ProtocolConfig()
        assert config.chain_id == 1
        assert config.default_swap_fee_rate == DEFAULT_SWAP_FEE_RATE
        assert config.default_admin_fee_rate == DEFAULT_ADMIN_FEE_RATE
        assert config.default_amplification == DEFAULT_AMPLIFICATION
        assert config.imbalance_fee_scale == IMBALANCE_FEE_SCALE == 4
        assert config.max_iterations == MAX_LOOP_LIMIT == 256
        assert config == DEFAULT_PROTOCOL_CONFIG

    def test_from_env_without_variables(self, clean_env):
        assert ProtocolConfig.from_env() == ProtocolConfig()

    def test_from_env_overrides(self, clean_env):
        clean_env.setenv("DEX_CHAIN_ID", "5")
        clean_env.setenv("DEX_DEFAULT_SWAP_FEE_RATE", "4000000")
        clean_env.setenv("DEX_DEFAULT_AMPLIFICATION", "200")
        clean_env.setenv("DEX_IMBALANCE_FEE_SCALE", "2")
        config = ProtocolConfig.from_env()
        assert config.chain_id == 5
        assert config.default_swap_fee_rate == 4_000_000
        assert config.default_amplification == 200
        assert config.imbalance_fee_scale == 2
        assert config.default_admin_fee_rate == DEFAULT_ADMIN_FEE_RATE

    def test_blank_variable_uses_default(self, clean_env):
        clean_env.setenv("DEX_MAX_ITERATIONS", "  ")
        assert ProtocolConfig.from_env().max_iterations == MAX_LOOP_LIMIT

    def test_non_integer_variable_raises(self, clean_env):
        clean_env.setenv("DEX_DEFAULT_ADMIN_FEE_RATE", "half")
        with pytest.raises(ValueError, match="DEX_DEFAULT_ADMIN_FEE_RATE"):
            ProtocolConfig.from_env()

    def test_frozen(self):
        config = ProtocolConfig()
        with pytest.raises(AttributeError):
            config.chain_id = 10  # type: ignore[misc]


class TestDeploy:
    """Tests for wiring a complete engine."""

    def test_deploy_wires_contracts(self, chain):
        deployment = deploy(chain=chain, manager=MANAGER)
        assert deployment.registry.manager == MANAGER
        assert deployment.router.registry is deployment.registry
        assert deployment.router.weth is deployment.weth
        assert chain.get_contract(deployment.router.address) is deployment.router

    def test_weth_at_canonical_address(self, chain):
        deployment = deploy(chain=chain, manager=MANAGER)
        assert deployment.weth.address == WRAPPED_NATIVE[1]

    def test_fresh_chain_uses_config_chain_id(self):
        deployment = deploy(ProtocolConfig(chain_id=31337))
        assert deployment.chain.chain_id == 31337
        assert deployment.registry.config.chain_id == 31337
        assert deployment.manager.startswith("0x")


class TestServerConfig:
    """Tests for the API server settings."""

    @pytest.fixture
    def server_env(self, monkeypatch):
        for name in ("DEX_HOST", "DEX_PORT", "DEX_DEBUG"):
            monkeypatch.delenv(name, raising=False)
        return monkeypatch

    def test_defaults(self, server_env):
        assert ServerConfig.from_env() == ServerConfig(host="0.0.0.0", port=8000, debug=False)

    def test_overrides(self, server_env):
        server_env.setenv("DEX_HOST", "127.0.0.1")
        server_env.setenv("DEX_PORT", "9000")
        server_env.setenv("DEX_DEBUG", "Yes")
        assert ServerConfig.from_env() == ServerConfig(host="127.0.0.1", port=9000, debug=True)

    def test_bad_port(self, server_env):
        server_env.setenv("DEX_PORT", "http")
        with pytest.raises(ValueError, match="DEX_PORT"):
            ServerConfig.from_env()
