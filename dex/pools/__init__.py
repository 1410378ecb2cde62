"""Pool management package.

Provides both pool curves and the PoolRegistry that creates and finds them.
"""

from .base import LockState, Pool, PoolType
from .lp_token import LPToken
from .registry import PoolRegistry
from .stable import StableParams, StablePool
from .types import AnyPool
from .volatile import VolatileParams, VolatilePool

__all__ = [
    "AnyPool",
    "LPToken",
    "LockState",
    "Pool",
    "PoolRegistry",
    "PoolType",
    "StableParams",
    "StablePool",
    "VolatileParams",
    "VolatilePool",
]
