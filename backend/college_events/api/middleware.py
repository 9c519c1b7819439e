"""
Request middleware for logging, timing, and request ID tracking.
"""

import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
import structlog

from college_events.core.logging import get_logger
from college_events.core.metrics import request_latency

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Binds a request id (taken from the caller's X-Request-ID when present)
    to structlog's context, then logs and times every request.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:8]
        start_time = time.perf_counter()

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )

        try:
            response = await call_next(request)
        except Exception as e:
            duration = time.perf_counter() - start_time
            request_latency.labels(method=request.method, status="500").observe(duration)
            logger.error("request_failed", error=str(e), duration_ms=round(duration * 1000, 2))
            raise

        duration = time.perf_counter() - start_time
        duration_ms = round(duration * 1000, 2)
        request_latency.labels(method=request.method, status=str(response.status_code)).observe(duration)
        logger.info("request_completed", status_code=response.status_code, duration_ms=duration_ms)

        response.headers[REQUEST_ID_HEADER] = request_id
        response.headers["X-Response-Time"] = f"{duration_ms}ms"
        return response
