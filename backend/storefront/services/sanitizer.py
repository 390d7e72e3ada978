"""Validation of user-supplied identifiers, amounts and codes.

Nothing is silently coerced: an identifier with a character outside ``[A-Za-z0-9_-]`` is
treated as tampering and rejected, and an amount that would change when rounded to cents is
rejected rather than rounded.
"""

from __future__ import annotations

import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from storefront.errors import StoreErrors

MIN_AMOUNT = Decimal("1")
MAX_AMOUNT = Decimal("10000")
MIN_ORDER_ID_LENGTH = 10
CENT = Decimal("0.01")

_DISALLOWED = re.compile(r"[^A-Za-z0-9_-]")


def strip_identifier(raw: str) -> str:
    return _DISALLOWED.sub("", raw)


def sanitize_owner_id(raw: Any) -> str:
    if not isinstance(raw, str) or not raw:
        raise StoreErrors.Auth.INVALID_SESSION.create()
    sanitized = strip_identifier(raw)
    if not sanitized or sanitized != raw:
        raise StoreErrors.Auth.INVALID_SESSION.create(details={"reason": "unexpected characters in identifier"})
    return sanitized


def sanitize_order_id(raw: Any) -> str:
    if not isinstance(raw, str) or not raw:
        raise StoreErrors.Input.INVALID_ORDER_ID.create(message="Order ID required")
    sanitized = strip_identifier(raw)
    if sanitized != raw or len(sanitized) < MIN_ORDER_ID_LENGTH:
        raise StoreErrors.Input.INVALID_ORDER_ID.create()
    return sanitized


def parse_amount(raw: Any) -> Decimal | None:
    """The amount as a Decimal, or None when it is not a finite number."""
    if isinstance(raw, bool) or not isinstance(raw, (str, int, float, Decimal)):
        return None
    try:
        value = Decimal(str(raw).strip())
    except InvalidOperation:
        return None
    if not value.is_finite():
        return None
    return value


def is_amount_in_bounds(value: Decimal) -> bool:
    return MIN_AMOUNT <= value <= MAX_AMOUNT


def sanitize_amount(raw: Any) -> Decimal:
    """A client amount in dollars, within [1, 10000] and with at most two decimals."""
    value = parse_amount(raw)
    if value is None:
        raise StoreErrors.Input.INVALID_AMOUNT.create(message="Invalid amount format")
    if not is_amount_in_bounds(value):
        raise StoreErrors.Input.INVALID_AMOUNT.create(message=f"Amount must be between ${MIN_AMOUNT} and ${MAX_AMOUNT}")
    rounded = value.quantize(CENT, rounding=ROUND_HALF_UP)
    if rounded != value:
        raise StoreErrors.Input.INVALID_AMOUNT.create(message="Amount cannot have more than 2 decimal places")
    return rounded


def normalize_coupon_code(raw: Any) -> str | None:
    if not isinstance(raw, str):
        return None
    code = raw.strip().upper()
    return code or None


def format_amount(value: Decimal) -> str:
    """Provider wire format: a decimal string with exactly two fraction digits."""
    return f"{value.quantize(CENT, rounding=ROUND_HALF_UP):.2f}"
