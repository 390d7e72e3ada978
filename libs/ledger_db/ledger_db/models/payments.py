"""Payment-related database models.

Order metadata holds the server-decided terms of a provider order until it is captured.
The transaction log is append-only; ``provider_order_id`` is unique so a second credit for the
same provider order can never commit on a shard.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import StrEnum
from typing import Any

from sqlalchemy import Boolean, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from ledger_db.db import Base
from store_common.db.db_utils import DateTimeUTC, JsonB


class TransactionType(StrEnum):
    WEB_PURCHASE = "web_purchase"


class OrderMetadata(Base):
    __tablename__ = "paypal_order_metadata"

    order_id: Mapped[str] = mapped_column(String(50), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    base_coins: Mapped[int] = mapped_column(Integer(), nullable=False)
    bonus_coins: Mapped[int] = mapped_column(Integer(), nullable=False, default=0)
    coupon_code: Mapped[str | None] = mapped_column(String(50), nullable=True)
    bonus_percentage: Mapped[int] = mapped_column(Integer(), nullable=False, default=0)
    packages: Mapped[list[dict[str, Any]] | None] = mapped_column(JsonB, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTimeUTC(), server_default=func.current_timestamp())
    expires_at: Mapped[datetime] = mapped_column(DateTimeUTC(), nullable=False, index=True)


class Coupon(Base):
    __tablename__ = "dao_coupons"

    id: Mapped[int] = mapped_column(Integer(), primary_key=True, autoincrement=True)
    code: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    bonus_percentage: Mapped[int] = mapped_column(Integer(), nullable=False, default=100)
    min_purchase_amount: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("10.00"))
    max_uses: Mapped[int | None] = mapped_column(Integer(), nullable=True)
    current_uses: Mapped[int] = mapped_column(Integer(), nullable=False, default=0)
    valid_from: Mapped[datetime] = mapped_column(DateTimeUTC(), server_default=func.current_timestamp())
    valid_until: Mapped[datetime] = mapped_column(DateTimeUTC(), nullable=False)
    active: Mapped[bool] = mapped_column(Boolean(), nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTimeUTC(), server_default=func.current_timestamp())


class DaoTransaction(Base):
    __tablename__ = "dao_transactions"
    __table_args__ = (UniqueConstraint("provider_order_id"),)

    id: Mapped[int] = mapped_column(Integer(), primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    amount: Mapped[int] = mapped_column(Integer(), nullable=False)
    type: Mapped[str] = mapped_column(String(50), nullable=False, default=TransactionType.WEB_PURCHASE)
    description: Mapped[str] = mapped_column(Text(), nullable=False)
    coupon_code: Mapped[str | None] = mapped_column(String(50), nullable=True)
    bonus_coins: Mapped[int] = mapped_column(Integer(), nullable=False, default=0)
    package_type: Mapped[str | None] = mapped_column(String(255), nullable=True)
    # Null on rows written before the column existed; those are still matched through the description
    provider_order_id: Mapped[str | None] = mapped_column(String(50), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTimeUTC(), server_default=func.current_timestamp())
