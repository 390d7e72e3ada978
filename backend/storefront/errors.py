"""Error registry for the storefront.

Every failure that reaches a client is one of these; the exception handler renders
``{scope, code, message, details}`` with the configured HTTP status.
"""

from store_common.core.app_error import AppException, ErrorConfig


class StoreErrors:
    class Input:
        INVALID_AMOUNT = ErrorConfig(scope="input", code="invalid_amount", default_message="Invalid amount", http_status=400)
        INVALID_ORDER_ID = ErrorConfig(scope="input", code="invalid_order_id", default_message="Invalid order ID format", http_status=400)
        INVALID_ITEM = ErrorConfig(scope="input", code="invalid_item", default_message="Invalid purchase type", http_status=400)
        COUPON_CODE_REQUIRED = ErrorConfig(scope="input", code="coupon_code_required", default_message="Coupon code required", http_status=400)
        MISSING_FIELDS = ErrorConfig(scope="input", code="missing_fields", default_message="Missing required fields", http_status=400)

    class Auth:
        UNAUTHENTICATED = ErrorConfig(scope="auth", code="unauthenticated", default_message="Unauthorized", http_status=401)
        INVALID_SESSION = ErrorConfig(scope="auth", code="invalid_session", default_message="Invalid user session", http_status=401)
        OWNER_MISMATCH = ErrorConfig(scope="auth", code="owner_mismatch", default_message="Unauthorized payment", http_status=403)
        ADMIN_REQUIRED = ErrorConfig(scope="auth", code="admin_required", default_message="Admin access required", http_status=403)
        RATE_LIMITED = ErrorConfig(
            scope="auth",
            code="rate_limited",
            default_message="Too many requests. Please wait a moment and try again.",
            http_status=429,
            retryable=True,
        )

    class Checkout:
        INVALID_PACKAGE = ErrorConfig(scope="checkout", code="invalid_package", default_message="Invalid package ID", http_status=400)
        INVALID_QUANTITY = ErrorConfig(scope="checkout", code="invalid_quantity", default_message="Invalid package quantity", http_status=400)
        PRICE_MISMATCH = ErrorConfig(
            scope="checkout",
            code="price_mismatch",
            default_message="Package price mismatch. Please refresh and try again.",
            http_status=400,
        )
        COUPON_NOT_ALLOWED = ErrorConfig(
            scope="checkout",
            code="coupon_not_allowed",
            default_message="Coupon codes cannot be used with package purchases",
            http_status=400,
        )
        INVALID_TIER = ErrorConfig(scope="checkout", code="invalid_tier", default_message="Invalid subscription tier", http_status=400)
        INVALID_DURATION = ErrorConfig(scope="checkout", code="invalid_duration", default_message="Invalid duration", http_status=400)
        DOWNGRADE_NOT_ALLOWED = ErrorConfig(
            scope="checkout",
            code="downgrade_not_allowed",
            default_message="You cannot purchase a lower tier while a higher tier subscription is active",
            http_status=400,
        )

    class Capture:
        PAYMENT_NOT_COMPLETED = ErrorConfig(scope="capture", code="payment_not_completed", default_message="Payment not completed", http_status=400)
        AMOUNT_VERIFICATION_FAILED = ErrorConfig(
            scope="capture",
            code="amount_verification_failed",
            default_message="Payment amount verification failed",
            http_status=400,
        )
        INVALID_ORDER = ErrorConfig(scope="capture", code="invalid_order", default_message="Invalid order", http_status=400)
        ALREADY_PROCESSED = ErrorConfig(
            scope="capture",
            code="already_processed",
            default_message="This order has already been processed",
            http_status=409,
        )
        ORDER_DATA_NOT_FOUND = ErrorConfig(
            scope="capture",
            code="order_data_not_found",
            default_message="Order data not found. Please try creating a new order.",
            http_status=404,
        )
        PLAYER_NOT_FOUND = ErrorConfig(scope="capture", code="player_not_found", default_message="Player not found", http_status=404)
        PROCESSING_FAILED = ErrorConfig(
            scope="capture",
            code="processing_failed",
            default_message="Failed to process payment. Please contact support.",
            http_status=500,
        )

    class PayPal:
        NOT_CONFIGURED = ErrorConfig(scope="paypal", code="not_configured", default_message="Payment system not configured", http_status=500)
        UPSTREAM_ERROR = ErrorConfig(scope="paypal", code="upstream_error", default_message="Payment provider error", http_status=500, retryable=True)
        UPSTREAM_AUTH_FAILED = ErrorConfig(scope="paypal", code="upstream_auth_failed", default_message="Payment authentication failed", http_status=500)
        UPSTREAM_PROTOCOL_ERROR = ErrorConfig(scope="paypal", code="upstream_protocol_error", default_message="Invalid payment response", http_status=500)
        CAPTURE_FAILED = ErrorConfig(scope="paypal", code="capture_failed", default_message="Payment capture failed", http_status=500)
        UPSTREAM_TIMEOUT = ErrorConfig(
            scope="paypal",
            code="upstream_timeout",
            default_message="Payment verification timeout. Please contact support if payment was deducted.",
            http_status=504,
        )


def processing_failed(order_id: str, cause: BaseException | None = None) -> AppException:
    """The generic ledger failure; carries the order id so support can reconcile by hand."""
    return StoreErrors.Capture.PROCESSING_FAILED.create(
        message=f"Failed to process payment. Please contact support with order ID: {order_id}",
        details={"order_id": order_id},
        cause=cause,
    )
