"""PayPalGateway encapsulates all PayPal Orders v2 calls.

Each operation authenticates with the client-credentials grant, then creates, reads or
captures one order. Every provider failure leaves this module as an ``AppException`` from
``StoreErrors.PayPal``; raw provider bodies are only logged.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, override

import httpx
from pydantic import BaseModel, ValidationError

from store_common.core.config_service import PayPalSection
from store_common.core.lifecycle import Lifecycle
from store_common.utils import SerializationError, decode_json, get_logger
from storefront.errors import StoreErrors
from storefront.schemas.paypal import (
    ALREADY_CAPTURED_ISSUE,
    AccessToken,
    CaptureResult,
    CreatedOrder,
    PayPalCapture,
    PayPalErrorBody,
    PayPalOrder,
    PayPalStatus,
)
from storefront.services.sanitizer import format_amount, is_amount_in_bounds, parse_amount

logger = get_logger()

TOKEN_PATH = "/v1/oauth2/token"
ORDERS_PATH = "/v2/checkout/orders"


def _parse[M: BaseModel](model: type[M], response: httpx.Response, operation: str) -> M:
    try:
        return model.model_validate(decode_json(response.content))
    except (SerializationError, ValidationError) as e:
        logger.error("Unexpected PayPal response shape", operation=operation, status_code=response.status_code, body=response.text[:2000])
        raise StoreErrors.PayPal.UPSTREAM_PROTOCOL_ERROR.create(details={"operation": operation}, cause=e) from e


def _error_body(response: httpx.Response) -> PayPalErrorBody:
    try:
        return PayPalErrorBody.model_validate(decode_json(response.content))
    except (SerializationError, ValidationError):
        return PayPalErrorBody(message=response.text[:2000])


class PayPalGateway(Lifecycle):
    _client: httpx.AsyncClient

    def __init__(self, config: PayPalSection, transport: httpx.AsyncBaseTransport | None = None) -> None:
        super().__init__()
        self.config = config
        self._client = httpx.AsyncClient(base_url=config.base_url, timeout=config.timeout_seconds, transport=transport)

    @property
    def is_configured(self) -> bool:
        return self.config.is_configured

    @override
    async def _start(self) -> None:
        if not self.config.is_configured:
            logger.warning("PayPal credentials are not configured; payment endpoints will fail", mode=self.config.mode)

    @override
    async def _stop(self) -> None:
        await self._client.aclose()

    async def _send(self, method: str, url: str, operation: str, **kwargs: Any) -> httpx.Response:
        try:
            return await self._client.request(method, url, **kwargs)
        except httpx.TimeoutException as e:
            logger.error("PayPal request timed out", operation=operation, timeout_seconds=self.config.timeout_seconds)
            raise StoreErrors.PayPal.UPSTREAM_TIMEOUT.create(details={"operation": operation}, cause=e) from e
        except httpx.HTTPError as e:
            logger.exception("PayPal request failed", operation=operation)
            raise StoreErrors.PayPal.UPSTREAM_ERROR.create(details={"operation": operation}, cause=e) from e

    async def get_access_token(self) -> str:
        if not self.config.is_configured:
            logger.error("PayPal credentials not configured")
            raise StoreErrors.PayPal.NOT_CONFIGURED.create()

        response = await self._send(
            "POST",
            TOKEN_PATH,
            "token",
            auth=(self.config.client_id, self.config.client_secret),
            data={"grant_type": "client_credentials"},
        )
        if not response.is_success:
            logger.error("PayPal token request rejected", status_code=response.status_code, body=response.text[:2000])
            raise StoreErrors.PayPal.UPSTREAM_AUTH_FAILED.create()
        return _parse(AccessToken, response, "token").access_token

    async def create_order(
        self,
        *,
        amount: Decimal,
        description: str,
        custom_id: str,
        return_url: str,
        cancel_url: str,
    ) -> CreatedOrder:
        token = await self.get_access_token()
        payload = {
            "intent": "CAPTURE",
            "purchase_units": [
                {
                    "amount": {"currency_code": "USD", "value": format_amount(amount)},
                    "description": description,
                    "custom_id": custom_id,
                }
            ],
            "application_context": {
                "brand_name": self.config.brand_name,
                "user_action": "PAY_NOW",
                "return_url": return_url,
                "cancel_url": cancel_url,
            },
        }
        response = await self._send("POST", ORDERS_PATH, "create", headers={"Authorization": f"Bearer {token}"}, json=payload)
        if not response.is_success:
            logger.error("PayPal order creation failed", status_code=response.status_code, body=response.text[:2000])
            raise StoreErrors.PayPal.UPSTREAM_ERROR.create(message="Failed to create payment order")

        order = _parse(PayPalOrder, response, "create")
        approve_url = order.approve_url
        if not approve_url:
            logger.error("PayPal order has no approve link", order_id=order.id)
            raise StoreErrors.PayPal.UPSTREAM_PROTOCOL_ERROR.create(message="Failed to get payment URL")

        logger.info("PayPal order created", order_id=order.id, status=order.status, amount=format_amount(amount))
        return CreatedOrder(id=order.id, status=order.status, approve_url=approve_url)

    async def _get_order(self, token: str, order_id: str) -> PayPalOrder:
        response = await self._send("GET", f"{ORDERS_PATH}/{order_id}", "get", headers={"Authorization": f"Bearer {token}"})
        if not response.is_success:
            logger.error("PayPal order lookup failed", order_id=order_id, status_code=response.status_code, body=response.text[:2000])
            raise StoreErrors.PayPal.UPSTREAM_ERROR.create(message="Payment verification failed")
        return _parse(PayPalOrder, response, "get")

    async def get_order(self, order_id: str) -> PayPalOrder:
        token = await self.get_access_token()
        return await self._get_order(token, order_id)

    async def capture_order(self, order_id: str) -> CaptureResult:
        """Capture the order.

        ``ORDER_ALREADY_CAPTURED`` counts as success: the order is re-read so the caller still
        gets the capture that an earlier, interrupted call produced.
        """
        token = await self.get_access_token()
        response = await self._send(
            "POST",
            f"{ORDERS_PATH}/{order_id}/capture",
            "capture",
            headers={"Authorization": f"Bearer {token}"},
            json={},
        )
        if response.is_success:
            return CaptureResult(order=_parse(PayPalOrder, response, "capture"))

        error = _error_body(response)
        if error.issue == ALREADY_CAPTURED_ISSUE:
            logger.info("PayPal order already captured, re-reading order", order_id=order_id)
            return CaptureResult(order=await self._get_order(token, order_id), already_captured=True)

        logger.error(
            "PayPal capture failed",
            order_id=order_id,
            status_code=response.status_code,
            name=error.name,
            issue=error.issue,
            debug_id=error.debug_id,
        )
        raise StoreErrors.PayPal.CAPTURE_FAILED.create(details={"order_id": order_id})


def verify_completed_capture(order: PayPalOrder) -> tuple[PayPalCapture, Decimal]:
    """The first capture of a completed order and its amount, re-checked against the accepted bounds."""
    if order.status != PayPalStatus.COMPLETED:
        logger.error("PayPal order not completed", order_id=order.id, status=order.status)
        raise StoreErrors.Capture.PAYMENT_NOT_COMPLETED.create()

    if order.first_unit is None:
        logger.error("PayPal order has no purchase units", order_id=order.id)
        raise StoreErrors.PayPal.UPSTREAM_PROTOCOL_ERROR.create(message="Invalid payment data")

    capture = order.first_capture
    if capture is None or capture.amount is None:
        logger.error("PayPal order has no capture data", order_id=order.id)
        raise StoreErrors.PayPal.UPSTREAM_PROTOCOL_ERROR.create(message="Invalid payment data")

    paid = parse_amount(capture.amount.value)
    if paid is None or not is_amount_in_bounds(paid):
        logger.error("Invalid amount in PayPal capture", order_id=order.id, amount=capture.amount.value)
        raise StoreErrors.PayPal.UPSTREAM_PROTOCOL_ERROR.create(message="Invalid payment amount")

    if capture.status != PayPalStatus.COMPLETED:
        logger.error("PayPal capture not completed", order_id=order.id, capture_status=capture.status)
        raise StoreErrors.Capture.PAYMENT_NOT_COMPLETED.create()

    return capture, paid
