"""Centralized registry for pool routing handlers.

The router never inspects pool classes directly: every route hop and
liquidity call is dispatched through the handler registered for the hop's
PoolType. Adding a curve means registering one more handler.
"""

from __future__ import annotations

from dex.errors import InvalidPairType
from dex.pools.base import PoolType
from dex.routing.handlers import PoolHandler, StableHandler, VolatileHandler


class HandlerRegistry:
    """Registry mapping pool types to their routing handlers.

    Usage:
        registry = HandlerRegistry()
        registry.register(PoolType.VOLATILE, VolatileHandler(), type_name="volatile")

        # Later in routing code:
        handler = registry.require(pool.pool_type)
    """

    def __init__(self) -> None:
        """Initialize an empty handler registry."""
        self._handlers: dict[PoolType, PoolHandler] = {}
        self._type_names: dict[PoolType, str] = {}

    def register(
        self,
        pool_type: PoolType,
        handler: PoolHandler,
        type_name: str = "unknown",
    ) -> None:
        """Register a handler for a pool type.

        Args:
            pool_type: The pool type id the handler serves
            handler: The PoolHandler implementation for this pool type
            type_name: Human-readable name for logging (e.g., "volatile")
        """
        self._handlers[pool_type] = handler
        self._type_names[pool_type] = type_name

    def get_handler(self, pool_type: int) -> PoolHandler | None:
        """Get handler for a pool type id, or None if none is registered."""
        try:
            return self._handlers.get(PoolType(pool_type))
        except ValueError:
            return None

    def require(self, pool_type: int) -> PoolHandler:
        """Get handler for a pool type id.

        Raises:
            InvalidPairType: If no handler is registered for pool_type
        """
        handler = self.get_handler(pool_type)
        if handler is None:
            raise InvalidPairType(f"Router: invalid pair type {pool_type}")
        return handler

    def get_type_name(self, pool_type: int) -> str:
        """Human-readable pool type name, "unknown" if not registered."""
        try:
            return self._type_names.get(PoolType(pool_type), "unknown")
        except ValueError:
            return "unknown"

    def is_registered(self, pool_type: int) -> bool:
        return self.get_handler(pool_type) is not None

    @property
    def pool_types(self) -> list[PoolType]:
        return sorted(self._handlers)


def build_default_registry() -> HandlerRegistry:
    """Handler registry with both built-in curves registered."""
    registry = HandlerRegistry()
    registry.register(PoolType.VOLATILE, VolatileHandler(), type_name="volatile")
    registry.register(PoolType.STABLE, StableHandler(), type_name="stable")
    return registry


__all__ = ["HandlerRegistry", "build_default_registry"]
