"""Authoritative terms of a coin order, kept on the primary shard between create and capture."""

from __future__ import annotations

from datetime import datetime, timedelta

from ledger_db.crud.payments import OrderMetadataDAO
from ledger_db.db import ShardRegistry
from ledger_db.schemas.payments import OrderMetadataCreate, OrderMetadataEntry
from store_common.utils import get_logger
from storefront.services.pricing_service import CoinQuote

logger = get_logger()

METADATA_TTL = timedelta(hours=1)


class OrderMetadataStore:
    """Every call opens its own short-lived session on the primary shard.

    A failure here therefore never leaves a target-shard transaction open.
    """

    def __init__(self, shards: ShardRegistry, metadata_dao: OrderMetadataDAO) -> None:
        self.shards = shards
        self.metadata_dao = metadata_dao

    async def create(self, *, order_id: str, owner_id: str, quote: CoinQuote, now: datetime) -> OrderMetadataEntry:
        async with self.shards.primary.new_session() as db:
            return await self.metadata_dao.create(
                db,
                obj_in=OrderMetadataCreate(
                    order_id=order_id,
                    user_id=owner_id,
                    amount=quote.amount,
                    base_coins=quote.base_coins,
                    bonus_coins=quote.bonus_coins,
                    coupon_code=quote.coupon_code,
                    bonus_percentage=quote.bonus_percentage,
                    packages=quote.packages,
                    created_at=now,
                    expires_at=now + METADATA_TTL,
                ),
            )

    async def consume(self, order_id: str, now: datetime) -> OrderMetadataEntry | None:
        """Read the live row. Deleting it is left to the caller, after the ledger commit."""
        async with self.shards.primary.new_session() as db:
            return await self.metadata_dao.get_live(db, order_id, now)

    async def delete(self, order_id: str) -> None:
        """Best effort; an undeleted row simply expires."""
        try:
            async with self.shards.primary.new_session() as db:
                await self.metadata_dao.delete(db, order_id)
        except Exception as e:
            logger.warning("Failed to delete order metadata", order_id=order_id, exc_info=e)

    async def sweep_expired(self, now: datetime) -> None:
        try:
            async with self.shards.primary.new_session() as db:
                deleted = await self.metadata_dao.delete_expired(db, now)
            if deleted:
                logger.debug("Swept expired order metadata", count=deleted)
        except Exception as e:
            logger.warning("Failed to sweep expired order metadata", exc_info=e)
