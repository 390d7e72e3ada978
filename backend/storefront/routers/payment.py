"""Generic shop-item checkout routes."""

from typing import Annotated

from fastapi import APIRouter, Depends

from storefront.dependencies import get_item_checkout_service, get_principal
from storefront.schemas.payment import CaptureItemOrderRequest, CaptureItemOrderResponse, CreateItemOrderRequest, CreateItemOrderResponse
from storefront.services.autorenew_service import ItemCheckoutService
from storefront.services.principal import Principal

router = APIRouter(prefix="/payment", tags=["payment"])


@router.post("/create-order", response_model=CreateItemOrderResponse)
async def create_order(
    req: CreateItemOrderRequest,
    principal: Annotated[Principal, Depends(get_principal)],
    checkout: Annotated[ItemCheckoutService, Depends(get_item_checkout_service)],
):
    created = await checkout.create_order(
        principal.owner_id,
        item_type=req.item_type,
        amount=req.amount,
        description=req.description,
        shard=req.shard,
    )
    return CreateItemOrderResponse(order_id=created.order_id, approval_url=created.approval_url)


@router.post("/capture-order", response_model=CaptureItemOrderResponse)
async def capture_order(
    req: CaptureItemOrderRequest,
    principal: Annotated[Principal, Depends(get_principal)],
    checkout: Annotated[ItemCheckoutService, Depends(get_item_checkout_service)],
):
    captured = await checkout.capture_order(principal.owner_id, token=req.token, shard=req.shard)
    return CaptureItemOrderResponse(order_id=captured.order_id, item_type=captured.item_type)
