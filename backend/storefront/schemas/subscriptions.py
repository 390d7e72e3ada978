"""Subscription checkout schemas."""

from datetime import datetime
from typing import Any

from store_common.utils import JsonModel
from storefront.schemas.common import ShardScopedRequest


class CreateSubscriptionOrderRequest(ShardScopedRequest):
    tier_id: Any = None
    months: Any = None
    amount: Any = None


class CreateSubscriptionOrderResponse(JsonModel):
    order_id: str
    approval_url: str


class CaptureSubscriptionOrderRequest(ShardScopedRequest):
    token: Any = None


class ActivatedSubscription(JsonModel):
    tier_name: str
    boost_percent: int
    months: int
    expires_at: datetime


class CaptureSubscriptionOrderResponse(JsonModel):
    success: bool = True
    subscription: ActivatedSubscription


class SubscriptionSummary(JsonModel):
    tier: int
    tier_name: str
    qi_boost_percent: int
    expires_at: datetime


class SubscriptionStatusResponse(JsonModel):
    has_active_subscription: bool
    subscription: SubscriptionSummary | None = None
