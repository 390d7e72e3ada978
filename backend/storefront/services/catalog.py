"""Fixed price tables: coin packages, subscription tiers and duration discounts."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from pydantic import BaseModel

from storefront.services.sanitizer import CENT


class CoinPackage(BaseModel):
    id: str
    type: str
    coins: int
    price: Decimal


class SubscriptionTier(BaseModel):
    id: int
    name: str
    qi_boost_percent: int
    price_per_month: Decimal


PACKAGES: dict[str, CoinPackage] = {
    package.id: package
    for package in (
        CoinPackage(id="pkg1", type="Starter", coins=50, price=Decimal("40")),
        CoinPackage(id="pkg2", type="Popular", coins=100, price=Decimal("80")),
        CoinPackage(id="pkg3", type="Great Value", coins=150, price=Decimal("125")),
        CoinPackage(id="pkg4", type="Ultimate", coins=200, price=Decimal("150")),
    )
}

SUBSCRIPTION_TIERS: dict[int, SubscriptionTier] = {
    tier.id: tier
    for tier in (
        SubscriptionTier(id=1, name="Cultivator", qi_boost_percent=100, price_per_month=Decimal("5")),
        SubscriptionTier(id=2, name="Dao Seeker", qi_boost_percent=200, price_per_month=Decimal("10")),
        SubscriptionTier(id=3, name="Immortal", qi_boost_percent=400, price_per_month=Decimal("15")),
        SubscriptionTier(id=4, name="Divine", qi_boost_percent=800, price_per_month=Decimal("22")),
    )
}

# months -> discount percent
DURATION_DISCOUNTS: dict[int, int] = {1: 0, 6: 10, 12: 20}

MIN_PACKAGE_QUANTITY = 1
MAX_PACKAGE_QUANTITY = 100
# two amounts that differ by a cent or more do not match
PRICE_TOLERANCE = Decimal("0.01")


def subscription_price(tier: SubscriptionTier, months: int) -> Decimal:
    base = tier.price_per_month * months
    discount = base * DURATION_DISCOUNTS.get(months, 0) / 100
    return (base - discount).quantize(CENT, rounding=ROUND_HALF_UP)
