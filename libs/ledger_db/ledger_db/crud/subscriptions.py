"""DAOs for subscriptions and AutoRenew unlocks."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from ledger_db.models.subscriptions import AutorenewPurchase, PlayerSubscription
from ledger_db.schemas.subscriptions import AutorenewEntry, SubscriptionCreate, SubscriptionEntry


class SubscriptionDAO:
    """Subscription rows for one shard.

    ``deactivate_all`` and ``add`` do not commit so the swap from the old row to the new one is atomic.
    """

    async def get_active(self, db: AsyncSession, user_id: str, now: datetime, *, lock: bool = False) -> SubscriptionEntry | None:
        """The latest unexpired active subscription; ``lock`` holds it until the transaction ends."""
        stmt = (
            select(PlayerSubscription)
            .where(
                PlayerSubscription.user_id == user_id,
                PlayerSubscription.is_active.is_(True),
                PlayerSubscription.expires_at > now,
            )
            .order_by(PlayerSubscription.expires_at.desc())
            .limit(1)
        )
        if lock:
            stmt = stmt.with_for_update()
        result = await db.execute(stmt)
        row = result.scalar_one_or_none()
        return SubscriptionEntry.model_validate(row) if row else None

    async def find_by_payment(self, db: AsyncSession, payment_id: str) -> SubscriptionEntry | None:
        result = await db.execute(select(PlayerSubscription).where(PlayerSubscription.payment_id == payment_id))
        row = result.scalar_one_or_none()
        return SubscriptionEntry.model_validate(row) if row else None

    async def deactivate_all(self, db: AsyncSession, user_id: str) -> None:
        await db.execute(
            update(PlayerSubscription)
            .where(PlayerSubscription.user_id == user_id, PlayerSubscription.is_active.is_(True))
            .values(is_active=False)
            .execution_options(synchronize_session=False)
        )

    async def add(self, db: AsyncSession, *, obj_in: SubscriptionCreate) -> SubscriptionEntry:
        row = PlayerSubscription(
            user_id=obj_in.user_id,
            tier=obj_in.tier,
            tier_name=obj_in.tier_name,
            qi_boost_percent=obj_in.qi_boost_percent,
            duration_months=obj_in.duration_months,
            price_paid=obj_in.price_paid,
            payment_id=obj_in.payment_id,
            expires_at=obj_in.expires_at,
            is_active=True,
            created_at=obj_in.created_at,
        )
        db.add(row)
        await db.flush()
        return SubscriptionEntry.model_validate(row)


class AutorenewDAO:
    async def upsert_active(self, db: AsyncSession, *, user_id: str, payment_id: str, now: datetime) -> AutorenewEntry:
        """Insert the unlock, or re-activate it if this payment was already recorded."""
        insert = pg_insert if db.get_bind().dialect.name == "postgresql" else sqlite_insert
        stmt = insert(AutorenewPurchase).values(
            user_id=user_id,
            payment_id=payment_id,
            is_active=True,
            created_at=now,
            last_renewed_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[AutorenewPurchase.user_id, AutorenewPurchase.payment_id],
            set_={"is_active": True, "last_renewed_at": now},
        )
        await db.execute(stmt)
        await db.commit()

        result = await db.execute(
            select(AutorenewPurchase)
            .where(AutorenewPurchase.user_id == user_id, AutorenewPurchase.payment_id == payment_id)
            .execution_options(populate_existing=True)
        )
        return AutorenewEntry.model_validate(result.scalar_one())

    async def has_active(self, db: AsyncSession, user_id: str) -> bool:
        result = await db.execute(
            select(AutorenewPurchase.id)
            .where(AutorenewPurchase.user_id == user_id, AutorenewPurchase.is_active.is_(True))
            .limit(1)
        )
        return result.scalar_one_or_none() is not None
