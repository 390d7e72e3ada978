"""Coin checkout end to end: fake PayPal, two SQLite shards, real DAOs."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta
from decimal import Decimal
from typing import TYPE_CHECKING, Any

import pytest
import pytest_asyncio
from sqlalchemy import select

from ledger_db.models import Coupon, DaoTransaction, OrderMetadata, Player
from store_common.core.app_error import AppException
from storefront.errors import StoreErrors
from storefront.services.pricing_service import PackageSelection

if TYPE_CHECKING:
    from conftest import Store

OWNER = "111222333444555666"


async def _transactions(store: Store, label: str) -> list[DaoTransaction]:
    async with store.shards.get(label).new_session() as db:
        return list((await db.execute(select(DaoTransaction))).scalars())


async def _metadata(store: Store, order_id: str) -> OrderMetadata | None:
    async with store.shards.primary.new_session() as db:
        return await db.get(OrderMetadata, order_id)


@pytest_asyncio.fixture
async def funded_owner(seed: Callable[..., Awaitable[None]], make_player: Callable[..., Player]) -> str:
    await seed("S0", make_player(OWNER, dao_coins=5))
    await seed("DS1", make_player(OWNER, dao_coins=0))
    return OWNER


class TestCreateOrder:
    @pytest.mark.asyncio
    async def test_stores_server_priced_metadata(self, store: Store) -> None:
        created = await store.coin_checkout.create_order(OWNER, amount="20")

        assert created.shard == "S0"
        assert created.approval_url.endswith(created.order_id)
        payload = store.paypal.created_payloads()[0]
        assert payload["purchase_units"][0]["custom_id"] == f"dao_coins:{OWNER}:S0"
        assert payload["purchase_units"][0]["description"] == "20 DAO Coins"

        metadata = await _metadata(store, created.order_id)
        assert metadata is not None
        assert metadata.user_id == OWNER
        assert metadata.amount == Decimal("20.00")
        assert (metadata.base_coins, metadata.bonus_coins) == (20, 0)

    @pytest.mark.asyncio
    async def test_unknown_shard_falls_back_to_primary(self, store: Store) -> None:
        created = await store.coin_checkout.create_order(OWNER, amount="20", shard="S9")
        assert created.shard == "S0"

    @pytest.mark.asyncio
    async def test_invalid_amount_never_reaches_paypal(self, store: Store) -> None:
        with pytest.raises(AppException) as exc_info:
            await store.coin_checkout.create_order(OWNER, amount="0.50")

        assert StoreErrors.Input.INVALID_AMOUNT.is_(exc_info.value)
        assert store.paypal.requests == []

    @pytest.mark.asyncio
    async def test_packages_are_frozen_into_metadata(self, store: Store) -> None:
        created = await store.coin_checkout.create_order(
            OWNER,
            amount="160",
            packages=[PackageSelection(id="pkg1", quantity=2), PackageSelection(id="pkg2", quantity=1)],
        )

        metadata = await _metadata(store, created.order_id)
        assert metadata is not None
        assert metadata.base_coins == 200
        assert metadata.packages is not None
        assert [line["id"] for line in metadata.packages] == ["pkg1", "pkg2"]


class TestCaptureOrder:
    @pytest.mark.asyncio
    async def test_credits_the_target_shard_once(self, store: Store, funded_owner: str, get_player: Any) -> None:
        created = await store.coin_checkout.create_order(funded_owner, amount="20")

        result = await store.coin_checkout.capture_order(funded_owner, order_id=created.order_id, shard="S0")

        assert (result.credited_units, result.base_units, result.bonus_units) == (20, 20, 0)
        assert result.transaction_id == created.order_id
        assert result.shard == "S0"

        player = await get_player("S0", funded_owner)
        assert player.dao_coins == 25
        transactions = await _transactions(store, "S0")
        assert len(transactions) == 1
        assert transactions[0].provider_order_id == created.order_id
        assert transactions[0].amount == 20
        assert transactions[0].description == f"Web purchase - PayPal Order {created.order_id} - $20.00"
        assert await _metadata(store, created.order_id) is None

    @pytest.mark.asyncio
    async def test_second_capture_is_a_conflict_and_changes_nothing(self, store: Store, funded_owner: str, get_player: Any) -> None:
        created = await store.coin_checkout.create_order(funded_owner, amount="20")
        await store.coin_checkout.capture_order(funded_owner, order_id=created.order_id, shard="S0")

        with pytest.raises(AppException) as exc_info:
            await store.coin_checkout.capture_order(funded_owner, order_id=created.order_id, shard="S0")

        assert StoreErrors.Capture.ALREADY_PROCESSED.is_(exc_info.value)
        assert exc_info.value.http_status == 409
        assert store.paypal.capture_calls == 1
        assert (await get_player("S0", funded_owner)).dao_coins == 25
        assert len(await _transactions(store, "S0")) == 1

    @pytest.mark.asyncio
    async def test_credit_lands_only_on_the_selected_shard(self, store: Store, funded_owner: str, get_player: Any) -> None:
        created = await store.coin_checkout.create_order(funded_owner, amount="20", shard="DS1")

        result = await store.coin_checkout.capture_order(funded_owner, order_id=created.order_id, shard="DS1")

        assert result.shard == "DS1"
        assert (await get_player("DS1", funded_owner)).dao_coins == 20
        assert (await get_player("S0", funded_owner)).dao_coins == 5
        assert await _transactions(store, "S0") == []
        assert len(await _transactions(store, "DS1")) == 1

    @pytest.mark.asyncio
    async def test_lost_capture_response_still_credits_exactly_once(self, store: Store, funded_owner: str, get_player: Any) -> None:
        created = await store.coin_checkout.create_order(funded_owner, amount="20")
        store.paypal.lose_capture_response.add(created.order_id)

        result = await store.coin_checkout.capture_order(funded_owner, order_id=created.order_id, shard="S0")
        assert result.credited_units == 20

        with pytest.raises(AppException) as exc_info:
            await store.coin_checkout.capture_order(funded_owner, order_id=created.order_id, shard="S0")
        assert StoreErrors.Capture.ALREADY_PROCESSED.is_(exc_info.value)

        assert (await get_player("S0", funded_owner)).dao_coins == 25
        assert len(await _transactions(store, "S0")) == 1

    @pytest.mark.asyncio
    async def test_missing_metadata(self, store: Store, funded_owner: str) -> None:
        store.paypal.add_approved_order("5EXTERNAL00001X", custom_id=f"dao_coins:{funded_owner}:S0", value="20.00")

        with pytest.raises(AppException) as exc_info:
            await store.coin_checkout.capture_order(funded_owner, order_id="5EXTERNAL00001X", shard="S0")

        assert StoreErrors.Capture.ORDER_DATA_NOT_FOUND.is_(exc_info.value)
        assert exc_info.value.http_status == 404
        assert store.paypal.capture_calls == 0

    @pytest.mark.asyncio
    async def test_expired_metadata_fails_closed(self, store: Store, funded_owner: str, now: datetime, get_player: Any) -> None:
        created = await store.coin_checkout.create_order(funded_owner, amount="20")
        store.coin_checkout._clock = lambda: now + timedelta(hours=1, minutes=1)

        with pytest.raises(AppException) as exc_info:
            await store.coin_checkout.capture_order(funded_owner, order_id=created.order_id, shard="S0")

        assert StoreErrors.Capture.ORDER_DATA_NOT_FOUND.is_(exc_info.value)
        assert exc_info.value.http_status == 404
        assert store.paypal.capture_calls == 0
        assert (await get_player("S0", funded_owner)).dao_coins == 5
        assert await _transactions(store, "S0") == []

    @pytest.mark.asyncio
    async def test_owner_mismatch_is_rejected_before_capture(self, store: Store, funded_owner: str) -> None:
        created = await store.coin_checkout.create_order(funded_owner, amount="20")

        with pytest.raises(AppException) as exc_info:
            await store.coin_checkout.capture_order("999888777666555444", order_id=created.order_id, shard="S0")

        assert StoreErrors.Auth.OWNER_MISMATCH.is_(exc_info.value)
        assert exc_info.value.http_status == 403
        assert store.paypal.capture_calls == 0
        assert await _metadata(store, created.order_id) is not None

    @pytest.mark.asyncio
    async def test_paid_amount_mismatch_credits_nothing(self, store: Store, funded_owner: str, get_player: Any) -> None:
        created = await store.coin_checkout.create_order(funded_owner, amount="20")
        store.paypal.paid_override[created.order_id] = "19.00"

        with pytest.raises(AppException) as exc_info:
            await store.coin_checkout.capture_order(funded_owner, order_id=created.order_id, shard="S0")

        assert StoreErrors.Capture.AMOUNT_VERIFICATION_FAILED.is_(exc_info.value)
        assert (await get_player("S0", funded_owner)).dao_coins == 5
        assert await _transactions(store, "S0") == []
        assert await _metadata(store, created.order_id) is None

    @pytest.mark.asyncio
    async def test_player_missing_on_target_shard(self, store: Store) -> None:
        created = await store.coin_checkout.create_order(OWNER, amount="20")

        with pytest.raises(AppException) as exc_info:
            await store.coin_checkout.capture_order(OWNER, order_id=created.order_id, shard="S0")

        assert StoreErrors.Capture.PLAYER_NOT_FOUND.is_(exc_info.value)
        assert await _transactions(store, "S0") == []

    @pytest.mark.asyncio
    async def test_legacy_log_row_from_another_owner_blocks_capture(
        self, store: Store, funded_owner: str, seed: Callable[..., Awaitable[None]]
    ) -> None:
        created = await store.coin_checkout.create_order(funded_owner, amount="20")
        await seed(
            "S0",
            DaoTransaction(
                user_id="someone-else",
                amount=20,
                description=f"Web purchase - PayPal Order {created.order_id} - $20.00",
                bonus_coins=0,
            ),
        )

        with pytest.raises(AppException) as exc_info:
            await store.coin_checkout.capture_order(funded_owner, order_id=created.order_id, shard="S0")

        assert StoreErrors.Capture.INVALID_ORDER.is_(exc_info.value)
        assert store.paypal.capture_calls == 0


class TestCoupons:
    @pytest.mark.asyncio
    async def test_coupon_bonus_is_credited_and_counted(
        self,
        store: Store,
        funded_owner: str,
        seed: Callable[..., Awaitable[None]],
        make_coupon: Callable[..., Coupon],
        get_player: Any,
    ) -> None:
        await seed("S0", make_coupon("HALF"))

        created = await store.coin_checkout.create_order(funded_owner, amount="20", coupon_code="half")
        result = await store.coin_checkout.capture_order(funded_owner, order_id=created.order_id, shard="S0")

        assert (result.base_units, result.bonus_units, result.credited_units) == (20, 10, 30)
        assert result.coupon_code == "HALF"
        assert (await get_player("S0", funded_owner)).dao_coins == 35

        transactions = await _transactions(store, "S0")
        assert transactions[0].coupon_code == "HALF"
        assert transactions[0].bonus_coins == 10
        assert transactions[0].description.endswith("(Coupon: HALF, Bonus: +10 coins)")
        async with store.shards.get("S0").new_session() as db:
            coupon = (await db.execute(select(Coupon).where(Coupon.code == "HALF"))).scalar_one()
        assert coupon.current_uses == 1

    @pytest.mark.asyncio
    async def test_coupon_below_minimum_gives_no_bonus(
        self,
        store: Store,
        funded_owner: str,
        seed: Callable[..., Awaitable[None]],
        make_coupon: Callable[..., Coupon],
    ) -> None:
        await seed("S0", make_coupon("HALF"))

        created = await store.coin_checkout.create_order(funded_owner, amount="5", coupon_code="HALF")
        result = await store.coin_checkout.capture_order(funded_owner, order_id=created.order_id, shard="S0")

        assert (result.base_units, result.bonus_units) == (5, 0)
        assert result.coupon_code is None

    @pytest.mark.asyncio
    async def test_coupon_is_usable_up_to_its_last_instant(
        self,
        store: Store,
        funded_owner: str,
        now: datetime,
        seed: Callable[..., Awaitable[None]],
        make_coupon: Callable[..., Coupon],
    ) -> None:
        await seed("S0", make_coupon("EDGE", valid_until=now))

        created = await store.coin_checkout.create_order(funded_owner, amount="20", coupon_code="EDGE")
        result = await store.coin_checkout.capture_order(funded_owner, order_id=created.order_id, shard="S0")

        assert (result.base_units, result.bonus_units) == (20, 10)
        assert result.coupon_code == "EDGE"
