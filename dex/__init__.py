"""Dual-curve DEX engine: volatile and stable AMM pools with a multi-hop router."""

from dex.engine import Deployment, deploy, get_default_router

__version__ = "0.1.0"
__all__ = ["Deployment", "deploy", "get_default_router", "__version__"]
