"""Failure paths of the ledger transaction: nothing is half-applied."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import TYPE_CHECKING, Any

import pytest
import pytest_asyncio
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ledger_db.crud.payments import CouponDAO, TransactionLogDAO
from ledger_db.crud.player import PlayerDAO
from ledger_db.crud.subscriptions import SubscriptionDAO
from ledger_db.models import Coupon, DaoTransaction, Player
from ledger_db.schemas.payments import TransactionCreate, TransactionEntry
from store_common.core.app_error import AppException
from storefront.errors import StoreErrors
from storefront.services.ledger_service import CoinCredit, LedgerService

if TYPE_CHECKING:
    from conftest import Store

OWNER = "111222333444555666"
ORDER_ID = "5LEDGER00001X"


class BrokenTransactionLogDAO(TransactionLogDAO):
    async def add(self, db: AsyncSession, *, obj_in: TransactionCreate) -> TransactionEntry:
        raise RuntimeError("connection reset")


def _ledger(store: Store, transaction_dao: TransactionLogDAO) -> LedgerService:
    return LedgerService(store.shards, PlayerDAO(), CouponDAO(), transaction_dao, SubscriptionDAO())


def _credit(**fields: Any) -> CoinCredit:
    values: dict[str, Any] = {
        "order_id": ORDER_ID,
        "owner_id": OWNER,
        "base_coins": 20,
        "description": f"Web purchase - PayPal Order {ORDER_ID} - $20.00",
    }
    values.update(fields)
    return CoinCredit(**values)


async def _transactions(store: Store) -> list[DaoTransaction]:
    async with store.shards.get("S0").new_session() as db:
        return list((await db.execute(select(DaoTransaction))).scalars())


@pytest_asyncio.fixture
async def player(seed: Callable[..., Awaitable[None]], make_player: Callable[..., Player]) -> str:
    await seed("S0", make_player(OWNER, dao_coins=5, dao_coins_spent=5))
    return OWNER


class TestApplyCredit:
    @pytest.mark.asyncio
    async def test_credit_updates_balance_and_lifetime_spend(self, store: Store, player: str, now: datetime, get_player: Any) -> None:
        result = await _ledger(store, TransactionLogDAO()).apply_credit("S0", _credit(bonus_coins=10), now)

        assert result.transaction.amount == 30
        assert result.transaction.provider_order_id == ORDER_ID
        stored = await get_player("S0", player)
        assert (stored.dao_coins, stored.dao_coins_spent) == (35, 35)

    @pytest.mark.asyncio
    async def test_failed_step_rolls_back_and_names_the_order(self, store: Store, player: str, now: datetime, get_player: Any) -> None:
        with pytest.raises(AppException) as exc_info:
            await _ledger(store, BrokenTransactionLogDAO()).apply_credit("S0", _credit(), now)

        assert StoreErrors.Capture.PROCESSING_FAILED.is_(exc_info.value)
        assert exc_info.value.http_status == 500
        assert ORDER_ID in str(exc_info.value)
        assert isinstance(exc_info.value.cause, RuntimeError)
        stored = await get_player("S0", player)
        assert (stored.dao_coins, stored.dao_coins_spent) == (5, 5)
        assert await _transactions(store) == []

    @pytest.mark.asyncio
    async def test_failed_step_does_not_count_the_coupon(
        self,
        store: Store,
        player: str,
        now: datetime,
        seed: Callable[..., Awaitable[None]],
        make_coupon: Callable[..., Coupon],
    ) -> None:
        await seed("S0", make_coupon("HALF"))

        with pytest.raises(AppException):
            await _ledger(store, BrokenTransactionLogDAO()).apply_credit("S0", _credit(bonus_coins=10, coupon_code="HALF"), now)

        async with store.shards.get("S0").new_session() as db:
            coupon = (await db.execute(select(Coupon).where(Coupon.code == "HALF"))).scalar_one()
        assert coupon.current_uses == 0

    @pytest.mark.asyncio
    async def test_order_already_logged_is_a_conflict(
        self,
        store: Store,
        player: str,
        now: datetime,
        seed: Callable[..., Awaitable[None]],
        get_player: Any,
    ) -> None:
        # the description does not mention the order, so only the unique order id catches it
        await seed("S0", DaoTransaction(user_id=OWNER, amount=20, description="Manual adjustment", bonus_coins=0, provider_order_id=ORDER_ID))

        with pytest.raises(AppException) as exc_info:
            await _ledger(store, TransactionLogDAO()).apply_credit("S0", _credit(), now)

        assert StoreErrors.Capture.ALREADY_PROCESSED.is_(exc_info.value)
        assert exc_info.value.http_status == 409
        assert (await get_player("S0", player)).dao_coins == 5
        assert len(await _transactions(store)) == 1

    @pytest.mark.asyncio
    async def test_missing_player(self, store: Store, now: datetime) -> None:
        with pytest.raises(AppException) as exc_info:
            await _ledger(store, TransactionLogDAO()).apply_credit("S0", _credit(), now)

        assert StoreErrors.Capture.PLAYER_NOT_FOUND.is_(exc_info.value)
        assert await _transactions(store) == []
