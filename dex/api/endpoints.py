"""API endpoints: pool state and read-only quotes.

Engine errors raised by quotes propagate to the AMMError handler in
dex.api.main, which turns them into 400 responses.
"""

import structlog
from fastapi import APIRouter, Depends, HTTPException

from dex.engine import get_default_router
from dex.models.api import (
    AddLiquidityQuoteRequest,
    AddLiquidityQuoteResponse,
    AmountsOutRequest,
    AmountsOutResponse,
    PoolInfo,
    PoolListResponse,
    RemoveLiquidityImbalanceQuoteRequest,
    RemoveLiquidityImbalanceQuoteResponse,
    RemoveLiquidityOneTokenQuoteRequest,
    RemoveLiquidityOneTokenQuoteResponse,
    RemoveLiquidityQuoteRequest,
    RemoveLiquidityQuoteResponse,
)
from dex.models.types import is_valid_address
from dex.routing import Router

logger = structlog.get_logger()

router = APIRouter()


def get_router() -> Router:
    """Dependency provider for the engine router.

    Override this in tests to inject a router with seeded pools:
        app.dependency_overrides[get_router] = lambda: test_router

    Returns:
        The router whose registry and pools the API serves.
    """
    return get_default_router()


@router.get("/pools")
async def list_pools(engine: Router = Depends(get_router)) -> PoolListResponse:
    """All registered pools with their balances and fee settings."""
    pools = [PoolInfo.from_pool(pool) for pool in engine.registry.all_pools()]
    logger.debug("pools_listed", pool_count=len(pools))
    return PoolListResponse(pools=pools)


@router.get("/pools/{address}")
async def get_pool(address: str, engine: Router = Depends(get_router)) -> PoolInfo:
    """State of a single pool.

    Returns 404 when address is not a registered pool.
    """
    if not is_valid_address(address):
        raise HTTPException(status_code=404, detail=f"Invalid pool address: {address}")
    pool = engine.registry.get_pool_by_address(address)
    if pool is None:
        raise HTTPException(status_code=404, detail=f"Pool not found: {address}")
    return PoolInfo.from_pool(pool)


@router.post("/quote/amounts-out")
async def quote_amounts_out(
    request: AmountsOutRequest, engine: Router = Depends(get_router)
) -> AmountsOutResponse:
    """Amounts along a swap route for an exact input."""
    routes = [route.to_route() for route in request.routes]
    amounts = engine.get_amounts_out_path(int(request.amount_in), routes)
    return AmountsOutResponse(amounts=[str(a) for a in amounts], amount_out=str(amounts[-1]))


@router.post("/quote/add-liquidity")
async def quote_add_liquidity(
    request: AddLiquidityQuoteRequest, engine: Router = Depends(get_router)
) -> AddLiquidityQuoteResponse:
    amounts, liquidity = engine.quote_add_liquidity(
        request.pool_type, request.tokens, [int(a) for a in request.amount_desireds]
    )
    return AddLiquidityQuoteResponse(amounts=[str(a) for a in amounts], liquidity=str(liquidity))


@router.post("/quote/remove-liquidity")
async def quote_remove_liquidity(
    request: RemoveLiquidityQuoteRequest, engine: Router = Depends(get_router)
) -> RemoveLiquidityQuoteResponse:
    amounts = engine.quote_remove_liquidity(
        request.pool_type, request.tokens, int(request.liquidity)
    )
    return RemoveLiquidityQuoteResponse(amounts=[str(a) for a in amounts])


@router.post("/quote/remove-liquidity-one-token")
async def quote_remove_liquidity_one_token(
    request: RemoveLiquidityOneTokenQuoteRequest, engine: Router = Depends(get_router)
) -> RemoveLiquidityOneTokenQuoteResponse:
    amount = engine.quote_remove_liquidity_one_token(
        request.tokens, int(request.liquidity), request.token
    )
    return RemoveLiquidityOneTokenQuoteResponse(amount=str(amount))


@router.post("/quote/remove-liquidity-imbalance")
async def quote_remove_liquidity_imbalance(
    request: RemoveLiquidityImbalanceQuoteRequest, engine: Router = Depends(get_router)
) -> RemoveLiquidityImbalanceQuoteResponse:
    burn_amount = engine.quote_remove_liquidity_imbalance(
        request.tokens, [int(a) for a in request.amounts]
    )
    return RemoveLiquidityImbalanceQuoteResponse(burn_amount=str(burn_amount))
