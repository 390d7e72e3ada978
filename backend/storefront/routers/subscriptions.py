"""Qi boost subscription routes."""

from typing import Annotated

from fastapi import APIRouter, Depends

from storefront.dependencies import get_principal, get_query_shard, get_subscription_service
from storefront.schemas.subscriptions import (
    ActivatedSubscription,
    CaptureSubscriptionOrderRequest,
    CaptureSubscriptionOrderResponse,
    CreateSubscriptionOrderRequest,
    CreateSubscriptionOrderResponse,
    SubscriptionStatusResponse,
    SubscriptionSummary,
)
from storefront.services.principal import Principal
from storefront.services.subscription_service import SubscriptionService

router = APIRouter(prefix="/subscriptions", tags=["subscriptions"])


@router.post("/create-order", response_model=CreateSubscriptionOrderResponse)
async def create_order(
    req: CreateSubscriptionOrderRequest,
    principal: Annotated[Principal, Depends(get_principal)],
    subscriptions: Annotated[SubscriptionService, Depends(get_subscription_service)],
):
    created = await subscriptions.create_order(
        principal.owner_id,
        tier_id=req.tier_id,
        months=req.months,
        amount=req.amount,
        shard=req.shard,
    )
    return CreateSubscriptionOrderResponse(order_id=created.order_id, approval_url=created.approval_url)


@router.post("/capture-order", response_model=CaptureSubscriptionOrderResponse)
async def capture_order(
    req: CaptureSubscriptionOrderRequest,
    principal: Annotated[Principal, Depends(get_principal)],
    subscriptions: Annotated[SubscriptionService, Depends(get_subscription_service)],
):
    subscription, tier = await subscriptions.capture_order(principal.owner_id, token=req.token, shard=req.shard)
    return CaptureSubscriptionOrderResponse(
        subscription=ActivatedSubscription(
            tier_name=tier.name,
            boost_percent=tier.qi_boost_percent,
            months=subscription.duration_months,
            expires_at=subscription.expires_at,
        )
    )


@router.get("/status", response_model=SubscriptionStatusResponse)
async def subscription_status(
    principal: Annotated[Principal, Depends(get_principal)],
    subscriptions: Annotated[SubscriptionService, Depends(get_subscription_service)],
    shard: Annotated[str | None, Depends(get_query_shard)],
):
    current = await subscriptions.get_active(principal.owner_id, shard)
    if current is None:
        return SubscriptionStatusResponse(has_active_subscription=False)
    return SubscriptionStatusResponse(
        has_active_subscription=True,
        subscription=SubscriptionSummary(
            tier=current.tier,
            tier_name=current.tier_name,
            qi_boost_percent=current.qi_boost_percent,
            expires_at=current.expires_at,
        ),
    )
