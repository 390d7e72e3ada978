"""Coupon preview schemas."""

from datetime import datetime
from typing import Any

from store_common.utils import JsonModel


class ValidateCouponRequest(JsonModel):
    code: Any = None
    amount: Any = None


class CouponTimeRemaining(JsonModel):
    days: int
    hours: int
    valid_until: datetime


class ValidateCouponResponse(JsonModel):
    """``valid: false`` responses carry only ``error``."""

    valid: bool
    code: str | None = None
    bonus_percentage: int | None = None
    min_purchase: float | None = None
    time_remaining: CouponTimeRemaining | None = None
    error: str | None = None
