"""Balance and subscription mutations, one database transaction per call on the target shard."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ledger_db.crud.payments import CouponDAO, TransactionLogDAO
from ledger_db.crud.player import PlayerDAO
from ledger_db.crud.subscriptions import SubscriptionDAO
from ledger_db.db import ShardRegistry
from ledger_db.schemas.payments import TransactionCreate, TransactionEntry
from ledger_db.schemas.player import PlayerBalance
from ledger_db.schemas.subscriptions import SubscriptionCreate, SubscriptionEntry
from store_common.core.app_error import AppException
from store_common.utils import add_months, get_logger
from storefront.errors import StoreErrors, processing_failed
from storefront.services.catalog import SubscriptionTier

logger = get_logger()


class CoinCredit(BaseModel):
    order_id: str
    owner_id: str
    base_coins: int
    bonus_coins: int = 0
    coupon_code: str | None = None
    description: str
    package_type: str | None = None

    @property
    def total_coins(self) -> int:
        return self.base_coins + self.bonus_coins


class CreditResult(BaseModel):
    transaction: TransactionEntry
    balance: PlayerBalance


def extended_expiry(current: SubscriptionEntry | None, months: int, now: datetime) -> datetime:
    """Unused time is kept: an active subscription is extended from its own expiry."""
    start = current.expires_at if current is not None and current.expires_at > now else now
    return add_months(start, months)


class LedgerService:
    def __init__(
        self,
        shards: ShardRegistry,
        player_dao: PlayerDAO,
        coupon_dao: CouponDAO,
        transaction_dao: TransactionLogDAO,
        subscription_dao: SubscriptionDAO,
    ) -> None:
        self.shards = shards
        self.player_dao = player_dao
        self.coupon_dao = coupon_dao
        self.transaction_dao = transaction_dao
        self.subscription_dao = subscription_dao

    async def apply_credit(self, shard: str, credit: CoinCredit, now: datetime) -> CreditResult:
        """Lock the player, add the coins, count the coupon use and log the transaction, atomically."""
        async with self.shards.get(shard).new_session() as db:
            try:
                player = await self.player_dao.lock(db, credit.owner_id)
                if player is None:
                    raise StoreErrors.Capture.PLAYER_NOT_FOUND.create(details={"shard": shard})

                balance = await self.player_dao.credit(db, credit.owner_id, credit.total_coins)
                if balance is None:
                    raise StoreErrors.Capture.PLAYER_NOT_FOUND.create(details={"shard": shard})

                if credit.coupon_code:
                    await self.coupon_dao.increment_uses(db, credit.coupon_code)

                transaction = await self.transaction_dao.add(
                    db,
                    obj_in=TransactionCreate(
                        user_id=credit.owner_id,
                        amount=credit.total_coins,
                        description=credit.description,
                        coupon_code=credit.coupon_code,
                        bonus_coins=credit.bonus_coins,
                        package_type=credit.package_type,
                        provider_order_id=credit.order_id,
                        created_at=now,
                    ),
                )
                await db.commit()
            except AppException:
                await self._rollback(db, credit.order_id)
                raise
            except IntegrityError as e:
                await self._rollback(db, credit.order_id)
                logger.warning("Transaction already logged for order", order_id=credit.order_id, shard=shard)
                raise StoreErrors.Capture.ALREADY_PROCESSED.create(details={"order_id": credit.order_id}, cause=e) from e
            except Exception as e:
                await self._rollback(db, credit.order_id)
                logger.exception("Ledger transaction failed", order_id=credit.order_id, shard=shard)
                raise processing_failed(credit.order_id, cause=e) from e

        logger.info(
            "Coins credited",
            order_id=credit.order_id,
            owner_id=credit.owner_id,
            shard=shard,
            base_coins=credit.base_coins,
            bonus_coins=credit.bonus_coins,
            balance=balance.dao_coins,
        )
        return CreditResult(transaction=transaction, balance=balance)

    async def activate_subscription(
        self,
        shard: str,
        *,
        owner_id: str,
        tier: SubscriptionTier,
        months: int,
        price_paid: Decimal,
        payment_id: str,
        now: datetime,
    ) -> SubscriptionEntry:
        """Replace the owner's active subscription with one that ends ``months`` after the old expiry (or now)."""
        async with self.shards.get(shard).new_session() as db:
            try:
                if await self.subscription_dao.find_by_payment(db, payment_id) is not None:
                    raise StoreErrors.Capture.ALREADY_PROCESSED.create(details={"payment_id": payment_id})

                current = await self.subscription_dao.get_active(db, owner_id, now, lock=True)
                expires_at = extended_expiry(current, months, now)

                await self.subscription_dao.deactivate_all(db, owner_id)
                subscription = await self.subscription_dao.add(
                    db,
                    obj_in=SubscriptionCreate(
                        user_id=owner_id,
                        tier=tier.id,
                        tier_name=tier.name,
                        qi_boost_percent=tier.qi_boost_percent,
                        duration_months=months,
                        price_paid=price_paid,
                        payment_id=payment_id,
                        expires_at=expires_at,
                        created_at=now,
                    ),
                )
                await db.commit()
            except AppException:
                await self._rollback(db, payment_id)
                raise
            except IntegrityError as e:
                await self._rollback(db, payment_id)
                raise StoreErrors.Capture.ALREADY_PROCESSED.create(details={"payment_id": payment_id}, cause=e) from e
            except Exception as e:
                await self._rollback(db, payment_id)
                logger.exception("Subscription activation failed", payment_id=payment_id, shard=shard)
                raise processing_failed(payment_id, cause=e) from e

        logger.info(
            "Subscription activated",
            owner_id=owner_id,
            shard=shard,
            tier=tier.name,
            months=months,
            extended=current is not None,
            expires_at=expires_at.isoformat(),
        )
        return subscription

    async def _rollback(self, db: AsyncSession, reference: str) -> None:
        """A failed rollback is logged; the error that caused it is the one surfaced."""
        try:
            await db.rollback()
        except Exception as e:
            logger.error("Rollback failed", reference=reference, exc_info=e)
