"""Pydantic models for the HTTP quote API.

Amounts travel as uint256 decimal strings, addresses as 0x-prefixed hex.
Field names are camelCase on the wire; models also accept snake_case.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from dex.models.types import Address, Uint256
from dex.pools import AnyPool, StablePool
from dex.routing.types import Route


class RouteModel(BaseModel):
    """One hop of a swap route."""

    from_token: Address = Field(alias="from", description="Token sold in this hop")
    to_token: Address = Field(alias="to", description="Token bought in this hop")
    pool: Address = Field(description="Pool traded through")
    pool_type: int | None = Field(
        default=None,
        alias="poolType",
        description="Expected pool type (1 volatile, 2 stable); checked when given",
    )

    model_config = {"populate_by_name": True}

    def to_route(self) -> Route:
        return Route(self.from_token, self.to_token, self.pool, self.pool_type)


class AmountsOutRequest(BaseModel):
    amount_in: Uint256 = Field(alias="amountIn")
    routes: list[RouteModel] = Field(min_length=1)

    model_config = {"populate_by_name": True}


class AmountsOutResponse(BaseModel):
    amounts: list[Uint256] = Field(description="Amount entering each hop, then the final output")
    amount_out: Uint256 = Field(alias="amountOut")

    model_config = {"populate_by_name": True}


class AddLiquidityQuoteRequest(BaseModel):
    pool_type: int = Field(alias="poolType")
    tokens: list[Address]
    amount_desireds: list[Uint256] = Field(alias="amountDesireds")

    model_config = {"populate_by_name": True}


class AddLiquidityQuoteResponse(BaseModel):
    amounts: list[Uint256]
    liquidity: Uint256


class RemoveLiquidityQuoteRequest(BaseModel):
    pool_type: int = Field(alias="poolType")
    tokens: list[Address]
    liquidity: Uint256

    model_config = {"populate_by_name": True}


class RemoveLiquidityQuoteResponse(BaseModel):
    amounts: list[Uint256]


class RemoveLiquidityOneTokenQuoteRequest(BaseModel):
    tokens: list[Address]
    liquidity: Uint256
    token: Address


class RemoveLiquidityOneTokenQuoteResponse(BaseModel):
    amount: Uint256


class RemoveLiquidityImbalanceQuoteRequest(BaseModel):
    tokens: list[Address]
    amounts: list[Uint256]


class RemoveLiquidityImbalanceQuoteResponse(BaseModel):
    burn_amount: Uint256 = Field(alias="burnAmount")

    model_config = {"populate_by_name": True}


class PoolInfo(BaseModel):
    """Snapshot of a pool's public state."""

    address: Address
    pool_type: int = Field(alias="poolType")
    tokens: list[Address]
    balances: list[Uint256] = Field(description="Reserves (volatile) or pooled balances (stable)")
    admin_balances: list[Uint256] = Field(alias="adminBalances")
    swap_fee_rate: int = Field(alias="swapFeeRate")
    admin_fee_rate: int = Field(alias="adminFeeRate")
    lp_token: Address = Field(alias="lpToken")
    total_supply: Uint256 = Field(alias="totalSupply")
    amplification: int | None = Field(default=None, description="A (stable pools only)")
    virtual_price: Uint256 | None = Field(default=None, alias="virtualPrice")

    model_config = {"populate_by_name": True}

    @classmethod
    def from_pool(cls, pool: AnyPool) -> PoolInfo:
        n_tokens = len(pool.tokens)
        extra: dict[str, int | str] = {}
        if isinstance(pool, StablePool):
            extra = {"amplification": pool.get_a(), "virtual_price": str(pool.get_virtual_price())}
        return cls(
            address=pool.address,
            pool_type=int(pool.pool_type),
            tokens=list(pool.tokens),
            balances=[str(pool.get_token_balance(i)) for i in range(n_tokens)],
            admin_balances=[str(pool.get_admin_balance(i)) for i in range(n_tokens)],
            swap_fee_rate=pool.swap_fee_rate,
            admin_fee_rate=pool.admin_fee_rate,
            lp_token=pool.lp_token.address,
            total_supply=str(pool.lp_token.total_supply),
            **extra,
        )


class PoolListResponse(BaseModel):
    pools: list[PoolInfo]


class ErrorResponse(BaseModel):
    """Body returned for rejected engine calls."""

    error: str = Field(description="Error class name, e.g. InsufficientLiquidity")
    detail: str


__all__ = [
    "AddLiquidityQuoteRequest",
    "AddLiquidityQuoteResponse",
    "AmountsOutRequest",
    "AmountsOutResponse",
    "ErrorResponse",
    "PoolInfo",
    "PoolListResponse",
    "RemoveLiquidityImbalanceQuoteRequest",
    "RemoveLiquidityImbalanceQuoteResponse",
    "RemoveLiquidityOneTokenQuoteRequest",
    "RemoveLiquidityOneTokenQuoteResponse",
    "RemoveLiquidityQuoteRequest",
    "RemoveLiquidityQuoteResponse",
    "RouteModel",
]
