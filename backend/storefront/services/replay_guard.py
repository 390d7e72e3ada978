"""Duplicate capture detection against the target shard's transaction log."""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from ledger_db.crud.payments import TransactionLogDAO
from store_common.utils import get_logger
from storefront.errors import StoreErrors

logger = get_logger()


class ReplayGuard:
    """Runs before the provider capture and before the ledger transaction.

    The unique ``provider_order_id`` on the log closes the window between this check and the
    ledger commit; the ledger maps that violation to the same conflict.
    """

    def __init__(self, transaction_dao: TransactionLogDAO) -> None:
        self.transaction_dao = transaction_dao

    async def check(self, db: AsyncSession, *, order_id: str, owner_id: str) -> None:
        existing = await self.transaction_dao.find_by_order(db, order_id)
        if existing is None:
            return
        if existing.user_id == owner_id:
            logger.warning("Duplicate capture attempt", order_id=order_id)
            raise StoreErrors.Capture.ALREADY_PROCESSED.create(details={"order_id": order_id})
        logger.error("Order ID collision detected", order_id=order_id, owner_id=owner_id)
        raise StoreErrors.Capture.INVALID_ORDER.create()
