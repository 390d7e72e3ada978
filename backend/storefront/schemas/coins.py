"""DAO Coin checkout schemas (PayPal)."""

from typing import Any

from pydantic import Field

from store_common.utils import JsonModel
from storefront.schemas.common import ShardScopedRequest
from storefront.services.pricing_service import PackageSelection


class CreateCoinOrderRequest(ShardScopedRequest):
    amount: Any = None
    coupon_code: Any = None
    packages: list[PackageSelection] | None = None


class CreateCoinOrderResponse(JsonModel):
    order_id: str
    shard: str


class CaptureCoinOrderRequest(ShardScopedRequest):
    order_id: Any = None


class CaptureCoinOrderResponse(JsonModel):
    success: bool = True
    credited_units: int = Field(..., description="Base plus bonus coins credited")
    base_units: int
    bonus_units: int
    coupon_code: str | None = None
    transaction_id: str
    shard: str
