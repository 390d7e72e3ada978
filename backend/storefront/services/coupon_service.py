"""Coupon preview for the checkout page. Nothing here reserves or consumes a coupon."""

from __future__ import annotations

import math
from collections.abc import Callable
from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel

from ledger_db.crud.payments import CouponDAO
from ledger_db.db import ShardRegistry
from store_common.utils import get_logger, get_now
from storefront.errors import StoreErrors
from storefront.services.pricing_service import coupon_rejection
from storefront.services.sanitizer import normalize_coupon_code, parse_amount

logger = get_logger()

UNKNOWN_COUPON = "Invalid or expired coupon code"


class TimeRemaining(BaseModel):
    days: int
    hours: int
    valid_until: datetime


class CouponPreview(BaseModel):
    valid: bool
    code: str | None = None
    bonus_percentage: int | None = None
    min_purchase: Decimal | None = None
    time_remaining: TimeRemaining | None = None
    error: str | None = None


def time_remaining(valid_until: datetime, now: datetime) -> TimeRemaining:
    seconds = (valid_until - now).total_seconds()
    return TimeRemaining(days=math.ceil(seconds / 86400), hours=math.ceil(seconds / 3600), valid_until=valid_until)


class CouponService:
    def __init__(self, shards: ShardRegistry, coupon_dao: CouponDAO, clock: Callable[[], datetime] = get_now) -> None:
        self.shards = shards
        self.coupon_dao = coupon_dao
        self._clock = clock

    async def preview(self, *, code: Any, amount: Any) -> CouponPreview:
        normalized = normalize_coupon_code(code)
        if normalized is None:
            raise StoreErrors.Input.COUPON_CODE_REQUIRED.create()
        value = parse_amount(amount)
        if value is None or value <= 0:
            raise StoreErrors.Input.INVALID_AMOUNT.create(message="Valid purchase amount required")

        now = self._clock()
        async with self.shards.primary.new_session() as db:
            coupon = await self.coupon_dao.find_active(db, normalized, now)

        if coupon is None:
            return CouponPreview(valid=False, error=UNKNOWN_COUPON)

        rejection = coupon_rejection(coupon, value)
        if rejection is not None:
            logger.debug("Coupon preview rejected", coupon_code=normalized, reason=rejection)
            return CouponPreview(valid=False, error=rejection)

        return CouponPreview(
            valid=True,
            code=coupon.code,
            bonus_percentage=coupon.bonus_percentage,
            min_purchase=coupon.min_purchase_amount,
            time_remaining=time_remaining(coupon.valid_until, now),
        )
