"""Tests for HandlerRegistry dispatch."""

import pytest

from dex.errors import InvalidPairType
from dex.pools import PoolType
from dex.routing import HandlerRegistry, build_default_registry
from dex.routing.handlers import StableHandler, VolatileHandler


class TestHandlerRegistry:
    """Tests for registering and looking up handlers."""

    def test_register_and_get(self):
        registry = HandlerRegistry()
        handler = VolatileHandler()
        registry.register(PoolType.VOLATILE, handler, type_name="volatile")
        assert registry.get_handler(PoolType.VOLATILE) is handler
        assert registry.get_handler(1) is handler
        assert registry.get_type_name(1) == "volatile"

    def test_unregistered_type(self):
        """Known pool types without a handler are not dispatchable."""
        registry = HandlerRegistry()
        assert registry.get_handler(PoolType.STABLE) is None
        assert not registry.is_registered(PoolType.STABLE)
        with pytest.raises(InvalidPairType):
            registry.require(PoolType.STABLE)

    @pytest.mark.parametrize("raw", [0, 3, 99])
    def test_unknown_type_ids(self, raw):
        registry = build_default_registry()
        assert registry.get_handler(raw) is None
        assert registry.get_type_name(raw) == "unknown"
        with pytest.raises(InvalidPairType):
            registry.require(raw)

    def test_default_registry_has_both_curves(self):
        registry = build_default_registry()
        assert registry.pool_types == [PoolType.VOLATILE, PoolType.STABLE]
        assert isinstance(registry.require(PoolType.VOLATILE), VolatileHandler)
        assert isinstance(registry.require(PoolType.STABLE), StableHandler)
        assert registry.get_type_name(PoolType.STABLE) == "stable"

    def test_register_replaces_handler(self):
        registry = build_default_registry()
        replacement = StableHandler()
        registry.register(PoolType.STABLE, replacement, type_name="stable-v2")
        assert registry.require(PoolType.STABLE) is replacement
        assert registry.get_type_name(PoolType.STABLE) == "stable-v2"
