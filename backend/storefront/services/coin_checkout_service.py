"""DAO Coin purchases: create a PayPal order from server-side pricing, then capture it into the ledger.

Create: rate limit, sanitize, price, create the PayPal order, store its metadata.
Capture: read metadata, check for a replay, capture, verify the amount, credit the shard,
then delete the metadata.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel

from ledger_db.db import ShardRegistry
from ledger_db.schemas.payments import OrderMetadataEntry
from store_common.core.request_context import RequestContext
from store_common.utils import get_logger, get_now
from storefront.errors import StoreErrors, processing_failed
from storefront.services.catalog import PRICE_TOLERANCE
from storefront.services.ledger_service import CoinCredit, LedgerService
from storefront.services.order_metadata_store import OrderMetadataStore
from storefront.services.paypal_gateway import PayPalGateway, verify_completed_capture
from storefront.services.pricing_service import PackageSelection, PricingService
from storefront.services.rate_limiter import RateLimiter
from storefront.services.replay_guard import ReplayGuard
from storefront.services.sanitizer import MIN_ORDER_ID_LENGTH, sanitize_amount, sanitize_order_id, strip_identifier

logger = get_logger()


class CoinOrderCreated(BaseModel):
    order_id: str
    shard: str
    approval_url: str


class CoinCaptureResult(BaseModel):
    credited_units: int
    base_units: int
    bonus_units: int
    coupon_code: str | None = None
    transaction_id: str
    shard: str


def transaction_description(order_id: str, metadata: OrderMetadataEntry, paid: Decimal) -> str:
    description = f"Web purchase - PayPal Order {order_id} - ${paid:.2f}"
    if metadata.bonus_coins > 0 and metadata.coupon_code:
        description += f" (Coupon: {metadata.coupon_code}, Bonus: +{metadata.bonus_coins} coins)"
    return description


class CoinCheckoutService:
    def __init__(
        self,
        shards: ShardRegistry,
        gateway: PayPalGateway,
        pricing_service: PricingService,
        metadata_store: OrderMetadataStore,
        replay_guard: ReplayGuard,
        ledger_service: LedgerService,
        rate_limiter: RateLimiter,
        public_base_url: str,
        clock: Callable[[], datetime] = get_now,
    ) -> None:
        self.shards = shards
        self.gateway = gateway
        self.pricing_service = pricing_service
        self.metadata_store = metadata_store
        self.replay_guard = replay_guard
        self.ledger_service = ledger_service
        self.rate_limiter = rate_limiter
        self.public_base_url = public_base_url
        self._clock = clock

    async def create_order(
        self,
        owner_id: str,
        *,
        amount: Any,
        shard: str | None = None,
        packages: list[PackageSelection] | None = None,
        coupon_code: Any = None,
    ) -> CoinOrderCreated:
        await self.rate_limiter.enforce(owner_id)
        value = sanitize_amount(amount)
        label = self.shards.resolve(shard)
        now = self._clock()
        RequestContext.update(owner_id=owner_id, shard=label)

        async with self.shards.get(label).new_session() as db:
            quote = await self.pricing_service.quote(db, amount=value, now=now, packages=packages, coupon_code=coupon_code)

        created = await self.gateway.create_order(
            amount=quote.amount,
            description=quote.describe(),
            custom_id=f"dao_coins:{owner_id}:{label}",
            return_url=f"{self.public_base_url}/success",
            cancel_url=f"{self.public_base_url}/payment",
        )

        order_id = strip_identifier(created.id)
        if len(order_id) < MIN_ORDER_ID_LENGTH:
            logger.error("Invalid PayPal order ID format", order_id=created.id)
            raise StoreErrors.PayPal.UPSTREAM_PROTOCOL_ERROR.create()

        await self.metadata_store.create(order_id=order_id, owner_id=owner_id, quote=quote, now=now)
        await self.metadata_store.sweep_expired(now)

        logger.info(
            "Coin order created",
            order_id=order_id,
            shard=label,
            amount=str(quote.amount),
            base_coins=quote.base_coins,
            bonus_coins=quote.bonus_coins,
            coupon_code=quote.coupon_code,
        )
        return CoinOrderCreated(order_id=order_id, shard=label, approval_url=created.approve_url)

    async def capture_order(self, owner_id: str, *, order_id: Any, shard: str | None = None) -> CoinCaptureResult:
        order_id = sanitize_order_id(order_id)
        label = self.shards.resolve(shard)
        now = self._clock()
        RequestContext.update(owner_id=owner_id, shard=label, order_id=order_id)

        metadata = await self.metadata_store.consume(order_id, now)

        async with self.shards.get(label).new_session() as db:
            await self.replay_guard.check(db, order_id=order_id, owner_id=owner_id)

        if metadata is None:
            logger.error("Order metadata not found", order_id=order_id)
            raise StoreErrors.Capture.ORDER_DATA_NOT_FOUND.create()
        if metadata.user_id != owner_id:
            logger.error("Order belongs to another owner", order_id=order_id)
            raise StoreErrors.Auth.OWNER_MISMATCH.create()

        result = await self.gateway.capture_order(order_id)
        _, paid = verify_completed_capture(result.order)

        if abs(metadata.amount - paid) >= PRICE_TOLERANCE:
            logger.error("Payment amount mismatch", order_id=order_id, expected=str(metadata.amount), actual=str(paid))
            await self.metadata_store.delete(order_id)
            raise StoreErrors.Capture.AMOUNT_VERIFICATION_FAILED.create()

        if metadata.total_coins <= 0:
            logger.error("Invalid DAO coins calculation", order_id=order_id, base_coins=metadata.base_coins, bonus_coins=metadata.bonus_coins)
            raise processing_failed(order_id)

        package_type = ", ".join(line.type for line in metadata.packages) if metadata.packages else None
        credit = await self.ledger_service.apply_credit(
            label,
            CoinCredit(
                order_id=order_id,
                owner_id=owner_id,
                base_coins=metadata.base_coins,
                bonus_coins=metadata.bonus_coins,
                coupon_code=metadata.coupon_code,
                description=transaction_description(order_id, metadata, paid),
                package_type=package_type,
            ),
            now,
        )
        await self.metadata_store.delete(order_id)

        logger.info(
            "Coin order captured",
            order_id=order_id,
            shard=label,
            credited=metadata.total_coins,
            already_captured=result.already_captured,
            transaction=credit.transaction.id,
        )
        return CoinCaptureResult(
            credited_units=metadata.total_coins,
            base_units=metadata.base_coins,
            bonus_units=metadata.bonus_coins,
            coupon_code=metadata.coupon_code,
            transaction_id=order_id,
            shard=label,
        )
