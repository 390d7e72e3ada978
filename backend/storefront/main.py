from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from store_common.core.config_service import settings
from store_common.core.request_context import RequestContext
from store_common.logging import setup_logging
from store_common.utils import get_logger
from storefront.middleware.logging_middleware import RequestLoggingMiddleware
from storefront.routers import router as api_router
from storefront.service_container import Services
from storefront.utils.fastapi_utils import install_exception_handlers

# ProcessorFormatter has to wrap the stdlib handlers before any logger is used
setup_logging()

logger = get_logger()


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncGenerator[None, Any]:
    services = Services.instance()
    await services.start()

    yield

    logger.info("Application shutting down")
    await services.stop()


app = FastAPI(
    title=settings.PROJECT_NAME,
    description="DaoVerse storefront: DAO Coins, subscriptions and AutoRenew paid through PayPal",
    version="1.0.0",
    openapi_url=f"{settings.API_PREFIX}/openapi.json",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# 1. Request logging middleware
app.add_middleware(RequestLoggingMiddleware)

# 2. CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.BACKEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Outermost: every log line of the request carries its RequestContext
class RequestContextMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        with RequestContext.context() as request_context:
            request_context.endpoint = f"{request.method} {request.url.path}"
            return await call_next(request)


app.add_middleware(RequestContextMiddleware)

install_exception_handlers(app)

app.include_router(api_router)


if __name__ == "__main__":
    import uvicorn

    from store_common.core.config_service import ConfigService

    config_service = ConfigService()
    host = config_service.get("host", "0.0.0.0")
    port = config_service.get("port", 5000)

    logger.info("Starting application server", host=host, port=port, environment=config_service.get_environment())

    uvicorn.run(app, host=host, port=port)
