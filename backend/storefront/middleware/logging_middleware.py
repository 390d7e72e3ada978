"""Middleware for logging HTTP requests and responses."""

import time
from collections.abc import Awaitable, Callable
from typing import Any

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from store_common.core.request_context import RequestContext
from store_common.utils import SerializationError, decode_json, get_logger

logger = get_logger()

MAX_LOGGED_BODY = 1000


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs each request's start and outcome with its timing.

    Request ids come from the surrounding ``RequestContext`` so these lines join the ones the
    handlers write.
    """

    def __init__(self, app: ASGIApp) -> None:
        super().__init__(app)

    async def dispatch(self, request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
        request_context = RequestContext.get_or_none()
        req_logger = logger.bind(request_id=request_context.request_id) if request_context else logger

        request_path = request.url.path
        request_method = request.method
        request_body = await self._read_body(request) if request_method in ("POST", "PUT", "PATCH") else None

        log_data: dict[str, Any] = {
            "type": "request_started",
            "client_ip": request.client.host if request.client else "unknown",
            "method": request_method,
            "path": request_path,
            "query_params": str(request.query_params),
        }
        if request_body is not None:
            log_data["request_body"] = request_body

        # GET requests are mostly status polling
        if request_method == "GET":
            req_logger.debug(f"Request started: {request_method} {request_path}", **log_data)
        else:
            req_logger.info(f"Request started: {request_method} {request_path}", **log_data)

        start_time = time.perf_counter()
        try:
            response: Response = await call_next(request)
        except Exception as e:
            req_logger.error(
                f"Request failed: {request_method} {request_path}",
                type="request_failed",
                method=request_method,
                path=request_path,
                error=str(e),
                process_time_ms=int((time.perf_counter() - start_time) * 1000),
                exc_info=True,
            )
            raise

        response_log_data = {
            "type": "request_completed",
            "method": request_method,
            "path": request_path,
            "status_code": response.status_code,
            "process_time_ms": int((time.perf_counter() - start_time) * 1000),
        }
        if response.status_code == 422 and request_body is not None:
            req_logger.warning(f"Validation error: {request_method} {request_path} - {response.status_code}", request_body=request_body, **response_log_data)
        elif request_method == "GET" and 200 <= response.status_code < 300:
            req_logger.debug(f"Request completed: {request_method} {request_path} - {response.status_code}", **response_log_data)
        else:
            req_logger.info(f"Request completed: {request_method} {request_path} - {response.status_code}", **response_log_data)
        return response

    @staticmethod
    async def _read_body(request: Request) -> Any:
        body_bytes = await request.body()
        if not body_bytes:
            return None
        try:
            return decode_json(body_bytes)
        except SerializationError:
            body_str = body_bytes.decode("utf-8", errors="replace")
            return body_str[:MAX_LOGGED_BODY] + "..." if len(body_str) > MAX_LOGGED_BODY else body_str
