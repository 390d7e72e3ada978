"""Qi boost subscriptions bought through PayPal."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime
from typing import Any

from pydantic import BaseModel

from ledger_db.crud.subscriptions import SubscriptionDAO
from ledger_db.db import ShardRegistry
from ledger_db.schemas.subscriptions import SubscriptionEntry
from store_common.core.request_context import RequestContext
from store_common.utils import get_logger, get_now
from storefront.errors import StoreErrors
from storefront.services.catalog import DURATION_DISCOUNTS, PRICE_TOLERANCE, SUBSCRIPTION_TIERS, SubscriptionTier, subscription_price
from storefront.services.ledger_service import LedgerService
from storefront.services.paypal_gateway import PayPalGateway, verify_completed_capture
from storefront.services.rate_limiter import RateLimiter
from storefront.services.sanitizer import parse_amount, sanitize_order_id

logger = get_logger()

CUSTOM_ID_PREFIX = "subscription"


class SubscriptionOrderCreated(BaseModel):
    order_id: str
    approval_url: str


class SubscriptionCorrelation(BaseModel):
    """What the PayPal ``custom_id`` of a subscription order says was bought."""

    tier_id: int
    months: int
    owner_id: str
    shard: str | None = None

    def encode(self) -> str:
        return f"{CUSTOM_ID_PREFIX}:{self.tier_id}:{self.months}:{self.owner_id}:{self.shard or ''}"

    @classmethod
    def decode(cls, custom_id: str | None) -> SubscriptionCorrelation:
        if not custom_id or not custom_id.startswith(f"{CUSTOM_ID_PREFIX}:"):
            raise StoreErrors.Capture.INVALID_ORDER.create(message="Invalid order data")
        parts = custom_id.split(":")
        if len(parts) < 4 or not parts[1].isdigit() or not parts[2].isdigit():
            raise StoreErrors.Capture.INVALID_ORDER.create(message="Invalid order data")
        shard = parts[4] if len(parts) > 4 and parts[4] else None
        return cls(tier_id=int(parts[1]), months=int(parts[2]), owner_id=parts[3], shard=shard)


def resolve_tier(tier_id: Any) -> SubscriptionTier:
    if isinstance(tier_id, bool) or not isinstance(tier_id, int) or tier_id not in SUBSCRIPTION_TIERS:
        raise StoreErrors.Checkout.INVALID_TIER.create()
    return SUBSCRIPTION_TIERS[tier_id]


def resolve_months(months: Any) -> int:
    if isinstance(months, bool) or not isinstance(months, int) or months not in DURATION_DISCOUNTS:
        raise StoreErrors.Checkout.INVALID_DURATION.create()
    return months


def order_description(tier: SubscriptionTier, months: int) -> str:
    return f"DaoVerse {tier.name} Subscription - {months} Month{'s' if months > 1 else ''}"


class SubscriptionService:
    def __init__(
        self,
        shards: ShardRegistry,
        gateway: PayPalGateway,
        ledger_service: LedgerService,
        subscription_dao: SubscriptionDAO,
        rate_limiter: RateLimiter,
        public_base_url: str,
        clock: Callable[[], datetime] = get_now,
    ) -> None:
        self.shards = shards
        self.gateway = gateway
        self.ledger_service = ledger_service
        self.subscription_dao = subscription_dao
        self.rate_limiter = rate_limiter
        self.public_base_url = public_base_url
        self._clock = clock

    async def get_active(self, owner_id: str, shard: str | None = None) -> SubscriptionEntry | None:
        async with self.shards.get(shard).new_session() as db:
            return await self.subscription_dao.get_active(db, owner_id, self._clock())

    async def create_order(self, owner_id: str, *, tier_id: Any, months: Any, amount: Any, shard: str | None = None) -> SubscriptionOrderCreated:
        await self.rate_limiter.enforce(owner_id)
        tier = resolve_tier(tier_id)
        months = resolve_months(months)
        label = self.shards.resolve(shard)
        RequestContext.update(owner_id=owner_id, shard=label)

        expected = subscription_price(tier, months)
        submitted = parse_amount(amount)
        if submitted is None or abs(submitted - expected) >= PRICE_TOLERANCE:
            logger.warning("Subscription price mismatch", tier=tier.id, months=months, expected=str(expected), submitted=str(amount))
            raise StoreErrors.Checkout.PRICE_MISMATCH.create(message="Price mismatch", details={"expected": str(expected)})

        current = await self.get_active(owner_id, label)
        if current is not None and tier.id < current.tier:
            logger.info("Subscription downgrade rejected", current_tier=current.tier, requested_tier=tier.id)
            raise StoreErrors.Checkout.DOWNGRADE_NOT_ALLOWED.create(details={"current_tier": current.tier})

        correlation = SubscriptionCorrelation(tier_id=tier.id, months=months, owner_id=owner_id, shard=label)
        created = await self.gateway.create_order(
            amount=expected,
            description=order_description(tier, months),
            custom_id=correlation.encode(),
            return_url=f"{self.public_base_url}/shop/subscriptions/return",
            cancel_url=f"{self.public_base_url}/shop/subscriptions",
        )
        logger.info("Subscription order created", order_id=created.id, tier=tier.name, months=months, shard=label)
        return SubscriptionOrderCreated(order_id=created.id, approval_url=created.approve_url)

    async def capture_order(self, owner_id: str, *, token: Any, shard: str | None = None) -> tuple[SubscriptionEntry, SubscriptionTier]:
        """Capture the approved order and activate (or extend) the subscription it paid for.

        The shard and terms come from the order's ``custom_id``, not from the request.
        """
        order_id = sanitize_order_id(token)
        RequestContext.update(owner_id=owner_id, order_id=order_id)

        result = await self.gateway.capture_order(order_id)
        capture, paid = verify_completed_capture(result.order)

        correlation = SubscriptionCorrelation.decode(result.order.custom_id)
        if correlation.owner_id != owner_id:
            logger.error("Subscription order belongs to another owner", order_id=order_id)
            raise StoreErrors.Auth.OWNER_MISMATCH.create(message="User mismatch")

        tier = resolve_tier(correlation.tier_id)
        months = resolve_months(correlation.months)
        label = self.shards.resolve(correlation.shard or shard)
        RequestContext.update(shard=label)

        subscription = await self.ledger_service.activate_subscription(
            label,
            owner_id=owner_id,
            tier=tier,
            months=months,
            price_paid=paid,
            payment_id=capture.id,
            now=self._clock(),
        )
        logger.info("Subscription order captured", order_id=order_id, already_captured=result.already_captured)
        return subscription, tier
