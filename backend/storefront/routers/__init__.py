from typing import Annotated

from fastapi import APIRouter, Depends

from store_common.core.config_service import settings
from storefront.dependencies import get_services
from storefront.schemas.health import HealthCheckResponse
from storefront.service_container import Services

from .autorenew import router as autorenew_router
from .coupons import router as coupons_router
from .payment import router as payment_router
from .paypal import router as paypal_router
from .subscriptions import router as subscriptions_router
from .user import router as user_router

router = APIRouter()


@router.get("/health")
async def health_check(services: Annotated[Services, Depends(get_services)]) -> HealthCheckResponse:
    """Health check endpoint for monitoring and testing"""
    return HealthCheckResponse(
        status="healthy",
        service="storefront",
        environment=services.config_service.get_environment(),
        shards=services.shard_registry.labels,
    )


# Include route definitions
router.include_router(paypal_router, prefix=settings.API_PREFIX)
router.include_router(subscriptions_router, prefix=settings.API_PREFIX)
router.include_router(payment_router, prefix=settings.API_PREFIX)
router.include_router(autorenew_router, prefix=settings.API_PREFIX)
router.include_router(coupons_router, prefix=settings.API_PREFIX)
router.include_router(user_router, prefix=settings.API_PREFIX)
