"""Trade and liquidity routing.

Module structure:
- router.py: Router contract (swaps, deposits, withdrawals, native wrapping, permits)
- types.py: Route, HopResult and SwapResult dataclasses
- handlers/: Curve-specific routing handlers (volatile, stable)
- registry.py: HandlerRegistry for PoolType dispatch
"""

from dex.routing.registry import HandlerRegistry, build_default_registry
from dex.routing.router import Router
from dex.routing.types import HopResult, Route, SwapResult

__all__ = [
    "HandlerRegistry",
    "HopResult",
    "Route",
    "Router",
    "SwapResult",
    "build_default_registry",
]
