"""PayPal Orders v2 payloads.

Only the fields the storefront reads are modelled; a response that does not fit is an
``UPSTREAM_PROTOCOL_ERROR``, never a half-parsed dict.
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, Field

ALREADY_CAPTURED_ISSUE = "ORDER_ALREADY_CAPTURED"


class PayPalStatus(StrEnum):
    CREATED = "CREATED"
    APPROVED = "APPROVED"
    COMPLETED = "COMPLETED"
    PENDING = "PENDING"
    DECLINED = "DECLINED"


class AccessToken(BaseModel):
    access_token: str
    token_type: str = "Bearer"
    expires_in: int = 0


class PayPalLink(BaseModel):
    href: str
    rel: str
    method: str | None = None


class PayPalAmount(BaseModel):
    currency_code: str = "USD"
    value: str


class PayPalCapture(BaseModel):
    id: str
    status: str
    amount: PayPalAmount | None = None
    custom_id: str | None = None


class PayPalPayments(BaseModel):
    captures: list[PayPalCapture] = Field(default_factory=list)


class PayPalPurchaseUnit(BaseModel):
    reference_id: str | None = None
    description: str | None = None
    custom_id: str | None = None
    amount: PayPalAmount | None = None
    payments: PayPalPayments | None = None


class PayPalOrder(BaseModel):
    id: str
    status: str
    purchase_units: list[PayPalPurchaseUnit] = Field(default_factory=list)
    links: list[PayPalLink] = Field(default_factory=list)

    @property
    def approve_url(self) -> str | None:
        return next((link.href for link in self.links if link.rel == "approve"), None)

    @property
    def first_unit(self) -> PayPalPurchaseUnit | None:
        return self.purchase_units[0] if self.purchase_units else None

    @property
    def first_capture(self) -> PayPalCapture | None:
        unit = self.first_unit
        if unit is None or unit.payments is None or not unit.payments.captures:
            return None
        return unit.payments.captures[0]

    @property
    def custom_id(self) -> str | None:
        """The correlation id, preferring the one echoed on the capture."""
        capture = self.first_capture
        if capture is not None and capture.custom_id:
            return capture.custom_id
        unit = self.first_unit
        return unit.custom_id if unit is not None else None


class PayPalErrorDetail(BaseModel):
    issue: str | None = None
    description: str | None = None


class PayPalErrorBody(BaseModel):
    name: str | None = None
    message: str | None = None
    debug_id: str | None = None
    details: list[PayPalErrorDetail] = Field(default_factory=list)

    @property
    def issue(self) -> str | None:
        return self.details[0].issue if self.details else None


class CreatedOrder(BaseModel):
    id: str
    status: str
    approve_url: str


class CaptureResult(BaseModel):
    """A captured order. ``already_captured`` marks an order captured by an earlier call, re-read from PayPal."""

    order: PayPalOrder
    already_captured: bool = False
