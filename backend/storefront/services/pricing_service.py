"""Server-side pricing of coin orders.

The client's total is only ever checked against the catalog, never used to decide how many
coins an order is worth.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from ledger_db.crud.payments import CouponDAO
from ledger_db.schemas.payments import CouponEntry, PackageLine
from store_common.utils import get_logger
from storefront.errors import StoreErrors
from storefront.services.catalog import MAX_PACKAGE_QUANTITY, MIN_PACKAGE_QUANTITY, PACKAGES, PRICE_TOLERANCE
from storefront.services.sanitizer import normalize_coupon_code

logger = get_logger()


class PackageSelection(BaseModel):
    id: str
    quantity: Any = None


class CoinQuote(BaseModel):
    amount: Decimal
    base_coins: int
    bonus_coins: int = 0
    coupon: CouponEntry | None = None
    packages: list[PackageLine] | None = None

    @property
    def total_coins(self) -> int:
        return self.base_coins + self.bonus_coins

    @property
    def coupon_code(self) -> str | None:
        return self.coupon.code if self.coupon else None

    @property
    def bonus_percentage(self) -> int:
        return self.coupon.bonus_percentage if self.coupon else 0

    def describe(self) -> str:
        description = f"{self.base_coins} DAO Coins"
        if self.bonus_coins > 0 and self.coupon:
            description += f" + {self.bonus_coins} Bonus ({self.coupon.code})"
        if self.packages:
            count = len(self.packages)
            description += f" ({count} package{'s' if count > 1 else ''})"
        return description


def coupon_bonus(base_coins: int, bonus_percentage: int) -> int:
    return base_coins * bonus_percentage // 100


def coupon_rejection(coupon: CouponEntry, amount: Decimal) -> str | None:
    """Why an otherwise active coupon cannot be used for this amount, or None if it can."""
    if amount < coupon.min_purchase_amount:
        return f"Minimum purchase of ${coupon.min_purchase_amount:.2f} required for this coupon"
    if coupon.is_exhausted:
        return "This coupon has reached its usage limit"
    return None


def _parse_quantity(raw: Any) -> int | None:
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw
    if isinstance(raw, str) and raw.strip().isdigit():
        return int(raw.strip())
    return None


class PricingService:
    def __init__(self, coupon_dao: CouponDAO) -> None:
        self.coupon_dao = coupon_dao

    def price_packages(self, selections: list[PackageSelection], amount: Decimal) -> tuple[int, list[PackageLine]]:
        """Base coins and frozen package lines; the catalog total must equal ``amount`` within a cent."""
        total_price = Decimal("0")
        base_coins = 0
        lines: list[PackageLine] = []

        for selection in selections:
            package = PACKAGES.get(selection.id)
            if package is None:
                raise StoreErrors.Checkout.INVALID_PACKAGE.create(message=f"Invalid package ID: {selection.id}")

            quantity = _parse_quantity(selection.quantity)
            if quantity is None or not MIN_PACKAGE_QUANTITY <= quantity <= MAX_PACKAGE_QUANTITY:
                raise StoreErrors.Checkout.INVALID_QUANTITY.create(message=f"Invalid quantity for package {selection.id}")

            total_price += package.price * quantity
            base_coins += package.coins * quantity
            lines.append(PackageLine(id=package.id, type=package.type, coins=package.coins, price=package.price, quantity=quantity))

        if abs(total_price - amount) >= PRICE_TOLERANCE:
            logger.warning("Package price mismatch", expected=str(total_price), submitted=str(amount))
            raise StoreErrors.Checkout.PRICE_MISMATCH.create(details={"expected": str(total_price)})

        return base_coins, lines

    async def quote(
        self,
        db: AsyncSession,
        *,
        amount: Decimal,
        now: datetime,
        packages: list[PackageSelection] | None = None,
        coupon_code: Any = None,
    ) -> CoinQuote:
        code = normalize_coupon_code(coupon_code)

        if packages:
            if code:
                raise StoreErrors.Checkout.COUPON_NOT_ALLOWED.create()
            base_coins, lines = self.price_packages(packages, amount)
            return CoinQuote(amount=amount, base_coins=base_coins, packages=lines)

        base_coins = int(amount)
        if not code:
            return CoinQuote(amount=amount, base_coins=base_coins)

        coupon = await self.coupon_dao.find_active(db, code, now)
        if coupon is None:
            logger.info("Coupon ignored, not found or not active", coupon_code=code)
            return CoinQuote(amount=amount, base_coins=base_coins)

        rejection = coupon_rejection(coupon, amount)
        if rejection is not None:
            logger.info("Coupon ignored", coupon_code=code, reason=rejection)
            return CoinQuote(amount=amount, base_coins=base_coins)

        return CoinQuote(
            amount=amount,
            base_coins=base_coins,
            bonus_coins=coupon_bonus(base_coins, coupon.bonus_percentage),
            coupon=coupon,
        )
