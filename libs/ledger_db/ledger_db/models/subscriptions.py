"""Subscription and AutoRenew unlock models (one set per shard)."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import Boolean, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from ledger_db.db import Base
from store_common.db.db_utils import DateTimeUTC


class PlayerSubscription(Base):
    __tablename__ = "player_subscriptions"
    __table_args__ = (UniqueConstraint("payment_id"),)

    id: Mapped[int] = mapped_column(Integer(), primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    tier: Mapped[int] = mapped_column(Integer(), nullable=False)
    tier_name: Mapped[str] = mapped_column(String(50), nullable=False)
    qi_boost_percent: Mapped[int] = mapped_column(Integer(), nullable=False)
    duration_months: Mapped[int] = mapped_column(Integer(), nullable=False)
    price_paid: Mapped[Decimal] = mapped_column(nullable=False)
    payment_id: Mapped[str] = mapped_column(String(100), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTimeUTC(), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean(), nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTimeUTC(), server_default=func.current_timestamp())


class AutorenewPurchase(Base):
    __tablename__ = "autorenew_purchases"
    __table_args__ = (UniqueConstraint("user_id", "payment_id"),)

    id: Mapped[int] = mapped_column(Integer(), primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    payment_id: Mapped[str] = mapped_column(String(100), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean(), nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTimeUTC(), server_default=func.current_timestamp())
    last_renewed_at: Mapped[datetime] = mapped_column(DateTimeUTC(), server_default=func.current_timestamp())
