"""Pool type definitions.

Provides the AnyPool union type for use throughout the codebase.
"""

from typing import TypeAlias

from dex.pools.stable import StablePool
from dex.pools.volatile import VolatilePool

# Union type for all pool types
AnyPool: TypeAlias = VolatilePool | StablePool

__all__ = ["AnyPool", "StablePool", "VolatilePool"]
