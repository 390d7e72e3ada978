"""DAOs for order metadata, coupons and the coin transaction log."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import delete, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ledger_db.models.payments import Coupon, DaoTransaction, OrderMetadata, TransactionType
from ledger_db.schemas.payments import CouponEntry, OrderMetadataCreate, OrderMetadataEntry, TransactionCreate, TransactionEntry
from store_common.utils import get_logger

logger = get_logger()


class OrderMetadataDAO:
    async def create(self, db: AsyncSession, *, obj_in: OrderMetadataCreate) -> OrderMetadataEntry:
        row = OrderMetadata(
            order_id=obj_in.order_id,
            user_id=obj_in.user_id,
            amount=obj_in.amount,
            base_coins=obj_in.base_coins,
            bonus_coins=obj_in.bonus_coins,
            coupon_code=obj_in.coupon_code,
            bonus_percentage=obj_in.bonus_percentage,
            packages=[line.model_dump(mode="json") for line in obj_in.packages] if obj_in.packages else None,
            created_at=obj_in.created_at,
            expires_at=obj_in.expires_at,
        )
        db.add(row)
        await db.commit()
        return OrderMetadataEntry.model_validate(row)

    async def get_live(self, db: AsyncSession, order_id: str, now: datetime) -> OrderMetadataEntry | None:
        """Metadata for the order, unless it has expired."""
        result = await db.execute(
            select(OrderMetadata).where(OrderMetadata.order_id == order_id, OrderMetadata.expires_at > now)
        )
        row = result.scalar_one_or_none()
        return OrderMetadataEntry.model_validate(row) if row else None

    async def delete(self, db: AsyncSession, order_id: str) -> bool:
        result = await db.execute(delete(OrderMetadata).where(OrderMetadata.order_id == order_id))
        await db.commit()
        return result.rowcount > 0  # type: ignore[attr-defined]

    async def delete_expired(self, db: AsyncSession, now: datetime) -> int:
        result = await db.execute(delete(OrderMetadata).where(OrderMetadata.expires_at < now))
        await db.commit()
        return result.rowcount  # type: ignore[attr-defined]


class CouponDAO:
    async def find_active(self, db: AsyncSession, code: str, now: datetime) -> CouponEntry | None:
        """An active coupon inside its validity window. Usage limits and minimums are left to the caller."""
        result = await db.execute(
            select(Coupon).where(
                Coupon.code == code,
                Coupon.active.is_(True),
                Coupon.valid_from <= now,
                Coupon.valid_until >= now,
            )
        )
        row = result.scalar_one_or_none()
        return CouponEntry.model_validate(row) if row else None

    async def increment_uses(self, db: AsyncSession, code: str) -> None:
        """Runs inside the caller's ledger transaction; does not commit."""
        await db.execute(
            update(Coupon)
            .where(Coupon.code == code)
            .values(current_uses=Coupon.current_uses + 1)
            .execution_options(synchronize_session=False)
        )


class TransactionLogDAO:
    async def find_by_order(self, db: AsyncSession, provider_order_id: str) -> TransactionEntry | None:
        """The credit already written for a provider order, if any.

        Older rows only carry the order id inside the description, so both are matched.
        """
        result = await db.execute(
            select(DaoTransaction)
            .where(
                or_(
                    DaoTransaction.provider_order_id == provider_order_id,
                    DaoTransaction.description.like(f"%PayPal Order {provider_order_id}%"),
                )
            )
            .limit(1)
        )
        row = result.scalar_one_or_none()
        return TransactionEntry.model_validate(row) if row else None

    async def add(self, db: AsyncSession, *, obj_in: TransactionCreate) -> TransactionEntry:
        """Runs inside the caller's ledger transaction; flushes but does not commit."""
        row = DaoTransaction(
            user_id=obj_in.user_id,
            amount=obj_in.amount,
            type=TransactionType.WEB_PURCHASE,
            description=obj_in.description,
            coupon_code=obj_in.coupon_code,
            bonus_coins=obj_in.bonus_coins,
            package_type=obj_in.package_type,
            provider_order_id=obj_in.provider_order_id,
            created_at=obj_in.created_at,
        )
        db.add(row)
        await db.flush()
        return TransactionEntry.model_validate(row)
