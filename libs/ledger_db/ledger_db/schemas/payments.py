"""Pydantic schemas for order metadata, coupons and the coin transaction log."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field


class PackageLine(BaseModel):
    """One line of a package order, as frozen into the order metadata."""

    id: str
    type: str
    coins: int
    price: Decimal
    quantity: int


class OrderMetadataCreate(BaseModel):
    order_id: str
    user_id: str
    amount: Decimal
    base_coins: int
    bonus_coins: int = 0
    coupon_code: str | None = None
    bonus_percentage: int = 0
    packages: list[PackageLine] | None = None
    created_at: datetime
    expires_at: datetime


class OrderMetadataEntry(BaseModel):
    order_id: str
    user_id: str
    amount: Decimal
    base_coins: int
    bonus_coins: int
    coupon_code: str | None = None
    bonus_percentage: int
    packages: list[PackageLine] | None = None
    created_at: datetime
    expires_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @property
    def total_coins(self) -> int:
        return self.base_coins + self.bonus_coins


class CouponEntry(BaseModel):
    id: int
    code: str
    bonus_percentage: int
    min_purchase_amount: Decimal
    max_uses: int | None = None
    current_uses: int
    valid_from: datetime
    valid_until: datetime
    active: bool

    model_config = ConfigDict(from_attributes=True)

    @property
    def is_exhausted(self) -> bool:
        return self.max_uses is not None and self.current_uses >= self.max_uses


class TransactionCreate(BaseModel):
    user_id: str
    amount: int = Field(..., gt=0)
    description: str
    coupon_code: str | None = None
    bonus_coins: int = 0
    package_type: str | None = None
    provider_order_id: str
    created_at: datetime


class TransactionEntry(BaseModel):
    id: int
    user_id: str
    amount: int
    type: str
    description: str
    coupon_code: str | None = None
    bonus_coins: int
    package_type: str | None = None
    provider_order_id: str | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
