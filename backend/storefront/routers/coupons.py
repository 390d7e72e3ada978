from typing import Annotated

from fastapi import APIRouter, Depends

from storefront.dependencies import get_coupon_service, get_session_principal
from storefront.schemas.coupons import CouponTimeRemaining, ValidateCouponRequest, ValidateCouponResponse
from storefront.services.coupon_service import CouponService
from storefront.services.principal import Principal

router = APIRouter(prefix="/coupons", tags=["coupons"])


@router.post("/validate", response_model=ValidateCouponResponse, response_model_exclude_none=True)
async def validate_coupon(
    req: ValidateCouponRequest,
    _principal: Annotated[Principal, Depends(get_session_principal)],
    coupons: Annotated[CouponService, Depends(get_coupon_service)],
):
    """Preview a coupon for an amount. An unusable coupon is a 200 with ``valid: false``."""
    preview = await coupons.preview(code=req.code, amount=req.amount)
    if not preview.valid:
        return ValidateCouponResponse(valid=False, error=preview.error)
    time_remaining = preview.time_remaining
    return ValidateCouponResponse(
        valid=True,
        code=preview.code,
        bonus_percentage=preview.bonus_percentage,
        min_purchase=float(preview.min_purchase) if preview.min_purchase is not None else None,
        time_remaining=CouponTimeRemaining(
            days=time_remaining.days,
            hours=time_remaining.hours,
            valid_until=time_remaining.valid_until,
        )
        if time_remaining
        else None,
    )
