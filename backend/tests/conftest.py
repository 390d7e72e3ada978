"""Shared fixtures: two SQLite shards, a fake PayPal speaking the Orders v2 wire format, and wired services."""

from __future__ import annotations

import json
from collections.abc import AsyncGenerator, Awaitable, Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from pathlib import Path
from typing import Any

import httpx
import pytest
import pytest_asyncio

import ledger_db.models  # noqa: F401  # registers every table on Base.metadata
from ledger_db.crud.payments import CouponDAO, OrderMetadataDAO, TransactionLogDAO
from ledger_db.crud.player import PlayerDAO
from ledger_db.crud.subscriptions import AutorenewDAO, SubscriptionDAO
from ledger_db.db import Base, ShardRegistry
from ledger_db.models import Coupon, Player
from store_common.core.config_service import AuthSection, ConfigService, PayPalSection
from store_common.db.db import DBConfig
from storefront.service_container import Services
from storefront.services.autorenew_service import AutorenewService, ItemCheckoutService
from storefront.services.coin_checkout_service import CoinCheckoutService
from storefront.services.coupon_service import CouponService
from storefront.services.ledger_service import LedgerService
from storefront.services.order_metadata_store import OrderMetadataStore
from storefront.services.paypal_gateway import PayPalGateway
from storefront.services.player_service import PlayerService
from storefront.services.pricing_service import PricingService
from storefront.services.rate_limiter import InMemoryRateLimiter
from storefront.services.replay_guard import ReplayGuard
from storefront.services.subscription_service import SubscriptionService

SHARD_LABELS = ("S0", "DS1")
PUBLIC_BASE_URL = "https://shop.test"
SESSION_SECRET = "test-session-secret"
ADMIN_KEY = "test-admin-key"


class FakePayPal:
    """In-memory PayPal: orders created through it are approved at once and captured on request.

    ``lose_capture_response`` simulates a capture that succeeded at PayPal but whose response
    never arrived, so the next capture call sees ``ORDER_ALREADY_CAPTURED``.
    """

    def __init__(self) -> None:
        self.orders: dict[str, dict[str, Any]] = {}
        self.requests: list[httpx.Request] = []
        self.token_status = 200
        self.lose_capture_response: set[str] = set()
        self.decline_capture: set[str] = set()
        self.paid_override: dict[str, str] = {}
        self.omit_approve_link = False
        self._sequence = 0

    def gateway(self) -> PayPalGateway:
        return PayPalGateway(PayPalSection(client_id="client-id", client_secret="client-secret"), transport=httpx.MockTransport(self.handler))

    @property
    def capture_calls(self) -> int:
        return sum(1 for request in self.requests if request.url.path.endswith("/capture"))

    @property
    def create_calls(self) -> int:
        return sum(1 for request in self.requests if request.method == "POST" and request.url.path == "/v2/checkout/orders")

    def created_payloads(self) -> list[dict[str, Any]]:
        return [
            json.loads(request.content)
            for request in self.requests
            if request.method == "POST" and request.url.path == "/v2/checkout/orders"
        ]

    def add_approved_order(self, order_id: str, *, custom_id: str, value: str) -> None:
        """An order approved by the buyer but created outside this process."""
        self.orders[order_id] = {
            "id": order_id,
            "status": "APPROVED",
            "purchase_units": [{"custom_id": custom_id, "amount": {"currency_code": "USD", "value": value}}],
            "links": [],
        }

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if path == "/v1/oauth2/token":
            if self.token_status != 200:
                return httpx.Response(self.token_status, json={"error": "invalid_client"})
            return httpx.Response(200, json={"access_token": "test-access-token", "token_type": "Bearer", "expires_in": 32400})

        if path == "/v2/checkout/orders" and request.method == "POST":
            return self._create(json.loads(request.content))

        parts = path.split("/")
        order = self.orders.get(parts[4]) if len(parts) > 4 else None
        if order is None:
            return httpx.Response(404, json={"name": "RESOURCE_NOT_FOUND", "details": [{"issue": "INVALID_RESOURCE_ID"}]})

        if path.endswith("/capture"):
            return self._capture(order)
        return httpx.Response(200, json=order)

    def _create(self, payload: dict[str, Any]) -> httpx.Response:
        self._sequence += 1
        order_id = f"5TEST{self._sequence:07d}X"
        unit = payload["purchase_units"][0]
        links = [{"href": f"https://api-m.sandbox.paypal.com/v2/checkout/orders/{order_id}", "rel": "self", "method": "GET"}]
        if not self.omit_approve_link:
            links.append({"href": f"https://www.sandbox.paypal.com/checkoutnow?token={order_id}", "rel": "approve", "method": "GET"})
        self.orders[order_id] = {
            "id": order_id,
            "status": "APPROVED",
            "purchase_units": [{"custom_id": unit["custom_id"], "description": unit["description"], "amount": unit["amount"]}],
            "links": links,
        }
        return httpx.Response(201, json={"id": order_id, "status": "CREATED", "links": links})

    def _capture(self, order: dict[str, Any]) -> httpx.Response:
        order_id = order["id"]
        if order_id in self.decline_capture:
            return httpx.Response(422, json={"name": "UNPROCESSABLE_ENTITY", "debug_id": "dbg1", "details": [{"issue": "INSTRUMENT_DECLINED"}]})
        if order["status"] == "COMPLETED" or order_id in self.lose_capture_response:
            self._complete(order)
            return httpx.Response(422, json={"name": "UNPROCESSABLE_ENTITY", "debug_id": "dbg2", "details": [{"issue": "ORDER_ALREADY_CAPTURED"}]})
        self._complete(order)
        return httpx.Response(201, json=order)

    def _complete(self, order: dict[str, Any]) -> None:
        unit = order["purchase_units"][0]
        value = self.paid_override.get(order["id"], unit["amount"]["value"])
        order["status"] = "COMPLETED"
        unit["payments"] = {
            "captures": [
                {
                    "id": f"CAP{order['id']}",
                    "status": "COMPLETED",
                    "amount": {"currency_code": "USD", "value": value},
                    "custom_id": unit["custom_id"],
                }
            ]
        }


@dataclass
class Store:
    """Domain services wired against the test shards and the fake PayPal."""

    shards: ShardRegistry
    paypal: FakePayPal
    gateway: PayPalGateway
    coin_checkout: CoinCheckoutService
    subscriptions: SubscriptionService
    autorenew: AutorenewService
    item_checkout: ItemCheckoutService
    coupons: CouponService
    players: PlayerService
    ledger: LedgerService
    metadata_store: OrderMetadataStore


@pytest.fixture
def now() -> datetime:
    return datetime(2026, 3, 15, 12, 0, tzinfo=UTC)


@pytest.fixture
def paypal() -> FakePayPal:
    return FakePayPal()


@pytest_asyncio.fixture
async def shards(tmp_path: Path) -> AsyncGenerator[ShardRegistry]:
    registry = ShardRegistry(
        {label: DBConfig(driver="sqlite+aiosqlite", db_name=str(tmp_path / f"{label}.db")) for label in SHARD_LABELS},
        primary=SHARD_LABELS[0],
    )
    await registry.start()
    for label in registry.labels:
        async with registry.get(label).engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
    yield registry
    await registry.stop()


@pytest.fixture
def seed(shards: ShardRegistry) -> Callable[..., Awaitable[None]]:
    async def _seed(label: str, *rows: Any) -> None:
        async with shards.get(label).new_session() as db:
            db.add_all(rows)
            await db.commit()

    return _seed


@pytest.fixture
def get_player(shards: ShardRegistry) -> Callable[[str, str], Awaitable[Player | None]]:
    async def _get(label: str, player_id: str) -> Player | None:
        async with shards.get(label).new_session() as db:
            return await db.get(Player, player_id)

    return _get


@pytest.fixture
def make_player() -> Callable[..., Player]:
    def _make(player_id: str, **fields: Any) -> Player:
        values: dict[str, Any] = {"dao_coins": 0, "dao_coins_spent": 0, "qi": 0, "prestige": 0, "spirit_stones": 0}
        values.update(fields)
        return Player(id=player_id, **values)

    return _make


@pytest.fixture
def make_coupon(now: datetime) -> Callable[..., Coupon]:
    """Active coupon (50%, $10 minimum, unlimited) valid from yesterday until 2 days 5 hours from ``now``."""

    def _make(code: str, **fields: Any) -> Coupon:
        values: dict[str, Any] = {
            "bonus_percentage": 50,
            "min_purchase_amount": Decimal("10.00"),
            "max_uses": None,
            "current_uses": 0,
            "valid_from": now - timedelta(days=1),
            "valid_until": now + timedelta(days=2, hours=5),
            "active": True,
        }
        values.update(fields)
        return Coupon(code=code, **values)

    return _make


@pytest.fixture
def store(shards: ShardRegistry, paypal: FakePayPal, now: datetime) -> Store:
    def clock() -> datetime:
        return now

    gateway = paypal.gateway()
    player_dao = PlayerDAO()
    coupon_dao = CouponDAO()
    transaction_dao = TransactionLogDAO()
    subscription_dao = SubscriptionDAO()
    rate_limiter = InMemoryRateLimiter(max_requests=100)

    ledger = LedgerService(shards, player_dao, coupon_dao, transaction_dao, subscription_dao)
    metadata_store = OrderMetadataStore(shards, OrderMetadataDAO())
    coin_checkout = CoinCheckoutService(
        shards=shards,
        gateway=gateway,
        pricing_service=PricingService(coupon_dao),
        metadata_store=metadata_store,
        replay_guard=ReplayGuard(transaction_dao),
        ledger_service=ledger,
        rate_limiter=rate_limiter,
        public_base_url=PUBLIC_BASE_URL,
        clock=clock,
    )
    subscriptions = SubscriptionService(
        shards=shards,
        gateway=gateway,
        ledger_service=ledger,
        subscription_dao=subscription_dao,
        rate_limiter=rate_limiter,
        public_base_url=PUBLIC_BASE_URL,
        clock=clock,
    )
    autorenew = AutorenewService(shards, AutorenewDAO(), clock=clock)
    item_checkout = ItemCheckoutService(
        shards=shards,
        gateway=gateway,
        autorenew_service=autorenew,
        coin_checkout_service=coin_checkout,
        rate_limiter=rate_limiter,
        public_base_url=PUBLIC_BASE_URL,
        clock=clock,
    )
    return Store(
        shards=shards,
        paypal=paypal,
        gateway=gateway,
        coin_checkout=coin_checkout,
        subscriptions=subscriptions,
        autorenew=autorenew,
        item_checkout=item_checkout,
        coupons=CouponService(shards, coupon_dao, clock=clock),
        players=PlayerService(shards, player_dao),
        ledger=ledger,
        metadata_store=metadata_store,
    )


@pytest.fixture
def services(shards: ShardRegistry, paypal: FakePayPal) -> Services:
    """The real container, built on the test shards and the fake PayPal."""

    class _TestServices(Services):
        def _create_config_service(self) -> ConfigService:
            config = ConfigService()
            config.auth = AuthSection(session_secret=SESSION_SECRET, allow_client_asserted=True, admin_api_key=ADMIN_KEY)
            return config

        def _create_shard_registry(self, config_service: ConfigService) -> ShardRegistry:
            return shards

        def _create_paypal_gateway(self, config_service: ConfigService) -> PayPalGateway:
            return paypal.gateway()

    return _TestServices()
