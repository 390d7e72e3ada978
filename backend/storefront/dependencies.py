import hmac
from typing import Annotated, Any

from fastapi import Depends, Header, Query, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from store_common.core.request_context import RequestContext
from store_common.utils import get_logger
from storefront.errors import StoreErrors
from storefront.service_container import Services
from storefront.services.autorenew_service import AutorenewService, ItemCheckoutService
from storefront.services.coin_checkout_service import CoinCheckoutService
from storefront.services.coupon_service import CouponService
from storefront.services.player_service import PlayerService
from storefront.services.principal import Principal
from storefront.services.subscription_service import SubscriptionService

logger = get_logger()

# Security scheme; a missing or non-bearer header falls through to the asserted id
optional_security = HTTPBearer(auto_error=False)

ASSERTED_ID_KEYS = ("ownerId", "discordId")


def get_services() -> Services:
    return Services.instance()


def get_coin_checkout_service(services: Annotated[Services, Depends(get_services)]) -> CoinCheckoutService:
    return services.coin_checkout_service


def get_subscription_service(services: Annotated[Services, Depends(get_services)]) -> SubscriptionService:
    return services.subscription_service


def get_item_checkout_service(services: Annotated[Services, Depends(get_services)]) -> ItemCheckoutService:
    return services.item_checkout_service


def get_autorenew_service(services: Annotated[Services, Depends(get_services)]) -> AutorenewService:
    return services.autorenew_service


def get_coupon_service(services: Annotated[Services, Depends(get_services)]) -> CouponService:
    return services.coupon_service


def get_player_service(services: Annotated[Services, Depends(get_services)]) -> PlayerService:
    return services.player_service


def _as_identifier(value: Any) -> str | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return str(value)
    if isinstance(value, str) and value:
        return value
    return None


async def get_asserted_owner_id(request: Request) -> str | None:
    """Owner id the client claims, from the query string or the JSON body."""
    for key in ASSERTED_ID_KEYS:
        if value := request.query_params.get(key):
            return value

    if request.method not in ("POST", "PUT", "PATCH"):
        return None
    try:
        body = await request.json()
    except ValueError:
        return None
    if not isinstance(body, dict):
        return None
    for key in ASSERTED_ID_KEYS:
        if (value := _as_identifier(body.get(key))) is not None:
            return value
    return None


def get_optional_principal(
    services: Annotated[Services, Depends(get_services)],
    asserted_id: Annotated[str | None, Depends(get_asserted_owner_id)],
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(optional_security)] = None,
) -> Principal | None:
    principal = services.principal_resolver.resolve(
        bearer_token=credentials.credentials if credentials else None,
        asserted_id=asserted_id,
    )
    if principal is not None:
        RequestContext.update(owner_id=principal.owner_id)
    return principal


def get_principal(principal: Annotated[Principal | None, Depends(get_optional_principal)]) -> Principal:
    if principal is None:
        raise StoreErrors.Auth.UNAUTHENTICATED.create()
    return principal


def get_session_principal(principal: Annotated[Principal, Depends(get_principal)]) -> Principal:
    """Only a verified session; a client-asserted id is not enough."""
    if not principal.is_session:
        raise StoreErrors.Auth.UNAUTHENTICATED.create()
    return principal


def get_query_shard(
    shard: Annotated[str | None, Query()] = None,
    server: Annotated[str | None, Query()] = None,
) -> str | None:
    return shard or server


def require_admin_key(
    services: Annotated[Services, Depends(get_services)],
    x_admin_key: Annotated[str | None, Header(alias="X-Admin-Key")] = None,
) -> None:
    expected = services.config_service.auth.admin_api_key
    if not expected or not x_admin_key or not hmac.compare_digest(expected, x_admin_key):
        logger.warning("Rejected admin request", has_key=bool(x_admin_key), admin_enabled=bool(expected))
        raise StoreErrors.Auth.ADMIN_REQUIRED.create()
