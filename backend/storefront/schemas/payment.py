"""Generic shop-item checkout schemas."""

from typing import Any

from store_common.utils import JsonModel
from storefront.schemas.common import ShardScopedRequest


class CreateItemOrderRequest(ShardScopedRequest):
    item_type: Any = None
    amount: Any = None
    description: str | None = None


class CreateItemOrderResponse(JsonModel):
    order_id: str
    approval_url: str


class CaptureItemOrderRequest(ShardScopedRequest):
    token: Any = None


class CaptureItemOrderResponse(JsonModel):
    status: str = "success"
    message: str = "Payment completed successfully"
    order_id: str
    item_type: str
