"""Pool-specific routing handlers.

Each handler implements routing logic for one pool type:
- VolatileHandler: constant-product pairs, created on first deposit
- StableHandler: StableSwap pools, including single-token and imbalanced withdrawals

The PoolHandler protocol defines the common interface for all handlers.
"""

from dex.routing.handlers.base import PoolHandler
from dex.routing.handlers.stable import StableHandler
from dex.routing.handlers.volatile import VolatileHandler

__all__ = [
    "PoolHandler",
    "StableHandler",
    "VolatileHandler",
]
