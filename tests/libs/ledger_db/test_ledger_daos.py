"""DAO behaviour against a real (SQLite) database."""

from collections.abc import AsyncGenerator
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from pathlib import Path

import pytest
import pytest_asyncio
from sqlalchemy.exc import IntegrityError

import ledger_db.models  # noqa: F401
from ledger_db.crud.payments import OrderMetadataDAO, TransactionLogDAO
from ledger_db.crud.player import PlayerDAO
from ledger_db.crud.subscriptions import AutorenewDAO, SubscriptionDAO
from ledger_db.db import Base
from ledger_db.models import DaoTransaction, Player
from ledger_db.schemas.payments import OrderMetadataCreate, PackageLine, TransactionCreate
from ledger_db.schemas.subscriptions import SubscriptionCreate
from store_common.db.db import Db, DBConfig

NOW = datetime(2026, 3, 15, 12, 0, tzinfo=UTC)
OWNER = "111222333444555666"


@pytest_asyncio.fixture
async def db(tmp_path: Path) -> AsyncGenerator[Db]:
    database = Db(DBConfig(driver="sqlite+aiosqlite", db_name=str(tmp_path / "ledger.db")), label="S0")
    await database.start()
    async with database.engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield database
    await database.stop()


def _metadata(order_id: str, expires_at: datetime) -> OrderMetadataCreate:
    return OrderMetadataCreate(
        order_id=order_id,
        user_id=OWNER,
        amount=Decimal("160.00"),
        base_coins=200,
        packages=[PackageLine(id="pkg1", type="Starter", coins=50, price=Decimal("40"), quantity=2)],
        created_at=NOW,
        expires_at=expires_at,
    )


def _transaction(order_id: str) -> TransactionCreate:
    return TransactionCreate(
        user_id=OWNER,
        amount=20,
        description=f"Web purchase - PayPal Order {order_id} - $20.00",
        provider_order_id=order_id,
        created_at=NOW,
    )


def _subscription(payment_id: str, *, tier: int, expires_at: datetime) -> SubscriptionCreate:
    return SubscriptionCreate(
        user_id=OWNER,
        tier=tier,
        tier_name="Tier",
        qi_boost_percent=100,
        duration_months=1,
        price_paid=Decimal("5.00"),
        payment_id=payment_id,
        expires_at=expires_at,
        created_at=NOW,
    )


class TestOrderMetadataDAO:
    @pytest.mark.asyncio
    async def test_live_rows_round_trip_packages(self, db: Db) -> None:
        dao = OrderMetadataDAO()
        async with db.new_session() as session:
            await dao.create(session, obj_in=_metadata("5LIVE0000001X", NOW + timedelta(hours=1)))
            entry = await dao.get_live(session, "5LIVE0000001X", NOW)

        assert entry is not None
        assert entry.total_coins == 200
        assert entry.packages == [PackageLine(id="pkg1", type="Starter", coins=50, price=Decimal("40"), quantity=2)]

    @pytest.mark.asyncio
    async def test_expired_rows_are_invisible_and_swept(self, db: Db) -> None:
        dao = OrderMetadataDAO()
        async with db.new_session() as session:
            await dao.create(session, obj_in=_metadata("5OLD00000001X", NOW - timedelta(minutes=1)))
            await dao.create(session, obj_in=_metadata("5LIVE0000001X", NOW + timedelta(hours=1)))

            assert await dao.get_live(session, "5OLD00000001X", NOW) is None
            assert await dao.delete_expired(session, NOW) == 1
            assert await dao.delete(session, "5LIVE0000001X")
            assert not await dao.delete(session, "5LIVE0000001X")


class TestTransactionLogDAO:
    @pytest.mark.asyncio
    async def test_provider_order_id_is_unique(self, db: Db) -> None:
        dao = TransactionLogDAO()
        async with db.new_session() as session:
            await dao.add(session, obj_in=_transaction("5TEST0000001X"))
            await session.commit()

        async with db.new_session() as session:
            with pytest.raises(IntegrityError):
                await dao.add(session, obj_in=_transaction("5TEST0000001X"))

    @pytest.mark.asyncio
    async def test_find_by_order_matches_legacy_description(self, db: Db) -> None:
        async with db.new_session() as session:
            session.add(DaoTransaction(user_id=OWNER, amount=20, description="Web purchase - PayPal Order 5LEGACY00001X - $20.00", bonus_coins=0))
            await session.commit()

            found = await TransactionLogDAO().find_by_order(session, "5LEGACY00001X")
            missing = await TransactionLogDAO().find_by_order(session, "5OTHER000001X")

        assert found is not None
        assert found.provider_order_id is None
        assert missing is None


class TestPlayerDAO:
    @pytest.mark.asyncio
    async def test_credit_adds_to_balance_and_lifetime_total(self, db: Db) -> None:
        dao = PlayerDAO()
        async with db.new_session() as session:
            session.add(Player(id=OWNER, dao_coins=5, dao_coins_spent=100, qi=0, prestige=0, spirit_stones=0))
            await session.commit()

            assert await dao.lock(session, OWNER) is not None
            balance = await dao.credit(session, OWNER, 30)
            await session.commit()

            assert await dao.credit(session, "missing", 30) is None

        assert balance is not None
        assert (balance.dao_coins, balance.dao_coins_spent) == (35, 130)


class TestSubscriptionDAO:
    @pytest.mark.asyncio
    async def test_get_active_ignores_expired_and_inactive(self, db: Db) -> None:
        dao = SubscriptionDAO()
        async with db.new_session() as session:
            await dao.add(session, obj_in=_subscription("PAY1", tier=4, expires_at=NOW - timedelta(days=1)))
            await dao.add(session, obj_in=_subscription("PAY2", tier=2, expires_at=NOW + timedelta(days=3)))
            await session.commit()

            active = await dao.get_active(session, OWNER, NOW)
            assert active is not None
            assert active.payment_id == "PAY2"

            await dao.deactivate_all(session, OWNER)
            await session.commit()
            assert await dao.get_active(session, OWNER, NOW) is None
            assert await dao.find_by_payment(session, "PAY2") is not None


class TestAutorenewDAO:
    @pytest.mark.asyncio
    async def test_upsert_reactivates_and_touches_renewal(self, db: Db) -> None:
        dao = AutorenewDAO()
        async with db.new_session() as session:
            first = await dao.upsert_active(session, user_id=OWNER, payment_id="PAY-1", now=NOW)
            later = NOW + timedelta(days=30)
            second = await dao.upsert_active(session, user_id=OWNER, payment_id="PAY-1", now=later)

            assert await dao.has_active(session, OWNER)
            assert not await dao.has_active(session, "someone-else")

        assert second.id == first.id
        assert second.created_at == NOW
        assert second.last_renewed_at == later
