"""Pydantic schemas for subscriptions and AutoRenew unlocks."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict


class SubscriptionCreate(BaseModel):
    user_id: str
    tier: int
    tier_name: str
    qi_boost_percent: int
    duration_months: int
    price_paid: Decimal
    payment_id: str
    expires_at: datetime
    created_at: datetime


class SubscriptionEntry(BaseModel):
    id: int
    user_id: str
    tier: int
    tier_name: str
    qi_boost_percent: int
    duration_months: int
    price_paid: Decimal
    payment_id: str
    expires_at: datetime
    is_active: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AutorenewEntry(BaseModel):
    id: int
    user_id: str
    payment_id: str
    is_active: bool
    created_at: datetime
    last_renewed_at: datetime

    model_config = ConfigDict(from_attributes=True)
