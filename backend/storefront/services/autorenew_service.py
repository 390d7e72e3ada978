"""AutoRenew unlocks and the generic shop-item checkout that sells them."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime
from decimal import Decimal
from enum import StrEnum
from typing import Any

from pydantic import BaseModel

from ledger_db.crud.subscriptions import AutorenewDAO
from ledger_db.db import ShardRegistry
from ledger_db.schemas.subscriptions import AutorenewEntry
from store_common.core.request_context import RequestContext
from store_common.utils import get_logger, get_now
from storefront.errors import StoreErrors
from storefront.services.catalog import PRICE_TOLERANCE
from storefront.services.coin_checkout_service import CoinCheckoutService
from storefront.services.paypal_gateway import PayPalGateway, verify_completed_capture
from storefront.services.rate_limiter import RateLimiter
from storefront.services.sanitizer import sanitize_amount, sanitize_order_id

logger = get_logger()

AUTORENEW_PRICE = Decimal("5.00")


class ItemType(StrEnum):
    AUTORENEW = "autorenew"
    DAO_COINS = "dao_coins"


def resolve_item(raw: Any) -> ItemType:
    try:
        return ItemType(raw)
    except ValueError as e:
        raise StoreErrors.Input.INVALID_ITEM.create(details={"item_type": str(raw)[:50]}, cause=e) from e


class ItemCorrelation(BaseModel):
    item: ItemType
    owner_id: str
    suffix: str = ""

    def encode(self) -> str:
        return f"{self.item}:{self.owner_id}:{self.suffix}"

    @classmethod
    def decode(cls, custom_id: str | None) -> ItemCorrelation:
        parts = (custom_id or "").split(":")
        if len(parts) < 2 or not parts[1]:
            logger.error("Order has no usable correlation id", custom_id=custom_id)
            raise StoreErrors.Capture.INVALID_ORDER.create(message="Invalid payment data")
        return cls(item=resolve_item(parts[0]), owner_id=parts[1], suffix=parts[2] if len(parts) > 2 else "")


class ItemOrderCreated(BaseModel):
    order_id: str
    approval_url: str


class ItemCaptured(BaseModel):
    order_id: str
    item_type: ItemType


class AutorenewService:
    def __init__(self, shards: ShardRegistry, autorenew_dao: AutorenewDAO, clock: Callable[[], datetime] = get_now) -> None:
        self.shards = shards
        self.autorenew_dao = autorenew_dao
        self._clock = clock

    async def has_purchased(self, owner_id: str, shard: str | None = None) -> bool:
        async with self.shards.get(shard).new_session() as db:
            return await self.autorenew_dao.has_active(db, owner_id)

    async def activate(self, owner_id: str, payment_id: str, shard: str | None = None) -> AutorenewEntry:
        label = self.shards.resolve(shard)
        async with self.shards.get(label).new_session() as db:
            entry = await self.autorenew_dao.upsert_active(db, user_id=owner_id, payment_id=payment_id, now=self._clock())
        logger.info("AutoRenew activated", owner_id=owner_id, payment_id=payment_id, shard=label)
        return entry


class ItemCheckoutService:
    """Checkout for shop items that are not coin packages or subscriptions.

    Coin items are handed to ``CoinCheckoutService`` so they are priced and credited the same
    way as orders placed from the coin page.
    """

    def __init__(
        self,
        shards: ShardRegistry,
        gateway: PayPalGateway,
        autorenew_service: AutorenewService,
        coin_checkout_service: CoinCheckoutService,
        rate_limiter: RateLimiter,
        public_base_url: str,
        clock: Callable[[], datetime] = get_now,
    ) -> None:
        self.shards = shards
        self.gateway = gateway
        self.autorenew_service = autorenew_service
        self.coin_checkout_service = coin_checkout_service
        self.rate_limiter = rate_limiter
        self.public_base_url = public_base_url
        self._clock = clock

    async def create_order(
        self,
        owner_id: str,
        *,
        item_type: Any,
        amount: Any,
        description: str | None = None,
        shard: str | None = None,
    ) -> ItemOrderCreated:
        item = resolve_item(item_type)
        if item == ItemType.DAO_COINS:
            created = await self.coin_checkout_service.create_order(owner_id, amount=amount, shard=shard)
            return ItemOrderCreated(order_id=created.order_id, approval_url=created.approval_url)

        await self.rate_limiter.enforce(owner_id)
        value = sanitize_amount(amount)
        if abs(value - AUTORENEW_PRICE) >= PRICE_TOLERANCE:
            logger.warning("AutoRenew price mismatch", submitted=str(value))
            raise StoreErrors.Checkout.PRICE_MISMATCH.create(message="Price mismatch", details={"expected": str(AUTORENEW_PRICE)})

        label = self.shards.resolve(shard)
        RequestContext.update(owner_id=owner_id, shard=label)
        correlation = ItemCorrelation(item=item, owner_id=owner_id, suffix=str(int(self._clock().timestamp() * 1000)))
        created = await self.gateway.create_order(
            amount=AUTORENEW_PRICE,
            description=description or "DaoVerse AutoRenew Unlock",
            custom_id=correlation.encode(),
            return_url=f"{self.public_base_url}/payment/return",
            cancel_url=f"{self.public_base_url}/shop/{item}",
        )
        logger.info("Item order created", order_id=created.id, item_type=str(item), shard=label)
        return ItemOrderCreated(order_id=created.id, approval_url=created.approve_url)

    async def capture_order(self, owner_id: str, *, token: Any, shard: str | None = None) -> ItemCaptured:
        """Capture an approved item order and deliver the item.

        The order is read before capture so the item and owner are known (and checked) before
        any funds move.
        """
        order_id = sanitize_order_id(token)
        RequestContext.update(owner_id=owner_id, order_id=order_id)

        order = await self.gateway.get_order(order_id)
        correlation = ItemCorrelation.decode(order.custom_id)
        if correlation.owner_id != owner_id:
            logger.error("Item order belongs to another owner", order_id=order_id)
            raise StoreErrors.Auth.OWNER_MISMATCH.create()

        if correlation.item == ItemType.DAO_COINS:
            await self.coin_checkout_service.capture_order(owner_id, order_id=order_id, shard=correlation.suffix or shard)
            return ItemCaptured(order_id=order_id, item_type=correlation.item)

        result = await self.gateway.capture_order(order_id)
        _, paid = verify_completed_capture(result.order)
        if abs(paid - AUTORENEW_PRICE) >= PRICE_TOLERANCE:
            logger.error("Item order paid amount mismatch", order_id=order_id, paid=str(paid))
            raise StoreErrors.Capture.AMOUNT_VERIFICATION_FAILED.create()

        await self.autorenew_service.activate(owner_id, order_id, shard)
        logger.info("Item order captured", order_id=order_id, item_type=str(correlation.item), already_captured=result.already_captured)
        return ItemCaptured(order_id=order_id, item_type=correlation.item)
