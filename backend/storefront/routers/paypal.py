"""DAO Coin checkout routes (PayPal)."""

from typing import Annotated

from fastapi import APIRouter, Depends

from storefront.dependencies import get_coin_checkout_service, get_principal
from storefront.schemas.coins import CaptureCoinOrderRequest, CaptureCoinOrderResponse, CreateCoinOrderRequest, CreateCoinOrderResponse
from storefront.services.coin_checkout_service import CoinCheckoutService
from storefront.services.principal import Principal

router = APIRouter(prefix="/paypal", tags=["paypal"])


@router.post("/create-order", response_model=CreateCoinOrderResponse)
async def create_order(
    req: CreateCoinOrderRequest,
    principal: Annotated[Principal, Depends(get_principal)],
    checkout: Annotated[CoinCheckoutService, Depends(get_coin_checkout_service)],
):
    created = await checkout.create_order(
        principal.owner_id,
        amount=req.amount,
        shard=req.shard,
        packages=req.packages,
        coupon_code=req.coupon_code,
    )
    return CreateCoinOrderResponse(order_id=created.order_id, shard=created.shard)


@router.post("/capture-order", response_model=CaptureCoinOrderResponse)
async def capture_order(
    req: CaptureCoinOrderRequest,
    principal: Annotated[Principal, Depends(get_principal)],
    checkout: Annotated[CoinCheckoutService, Depends(get_coin_checkout_service)],
):
    """Capture an approved coin order and credit it to the player on the chosen shard."""
    result = await checkout.capture_order(principal.owner_id, order_id=req.order_id, shard=req.shard)
    return CaptureCoinOrderResponse(
        credited_units=result.credited_units,
        base_units=result.base_units,
        bonus_units=result.bonus_units,
        coupon_code=result.coupon_code,
        transaction_id=result.transaction_id,
        shard=result.shard,
    )
