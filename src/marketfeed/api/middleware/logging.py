"""Request logging middleware.

Every request gets a correlation ID (taken from ``X-Correlation-ID`` when the
caller sends one) and a fresh request ID. Both are bound to the structlog
context together with the requesting user, so every line logged by the feed
pipeline during the request can be traced back to it. Both IDs are echoed in
the response headers.

Health probes and metric scrapes are served without request logs.
"""

from __future__ import annotations

import time
from uuid import uuid4

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from marketfeed.core.logging import (
    bind_contextvars,
    clear_contextvars,
    get_logger,
    set_correlation_id,
)

logger = get_logger(__name__)

CORRELATION_ID_HEADER = "X-Correlation-ID"
REQUEST_ID_HEADER = "X-Request-ID"
USER_ID_HEADER = "X-User-ID"

QUIET_PATHS = frozenset({"/health", "/health/ready", "/metrics"})


def client_ip(request: Request) -> str | None:
    """Originating client address, honoring proxy headers."""
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    if real_ip := request.headers.get("x-real-ip"):
        return real_ip
    return request.client.host if request.client else None


class LoggingMiddleware(BaseHTTPMiddleware):
    """Bind request context for structured logs and log each request once."""

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        clear_contextvars()
        correlation_id = set_correlation_id(request.headers.get(CORRELATION_ID_HEADER) or None)
        request_id = str(uuid4())
        bind_contextvars(
            correlation_id=correlation_id,
            request_id=request_id,
            user_id=request.headers.get(USER_ID_HEADER) or None,
        )

        started = time.perf_counter()
        try:
            try:
                response = await call_next(request)
            except Exception as exc:
                logger.exception(
                    "request_failed",
                    method=request.method,
                    path=request.url.path,
                    duration_ms=self._elapsed_ms(started),
                    error_type=type(exc).__name__,
                )
                raise

            if request.url.path not in QUIET_PATHS:
                self._log_completed(request, response.status_code, self._elapsed_ms(started))
        finally:
            clear_contextvars()

        response.headers[CORRELATION_ID_HEADER] = correlation_id
        response.headers[REQUEST_ID_HEADER] = request_id
        return response

    @staticmethod
    def _elapsed_ms(started: float) -> float:
        return round((time.perf_counter() - started) * 1000, 2)

    @staticmethod
    def _log_completed(request: Request, status_code: int, duration_ms: float) -> None:
        # 4xx are the caller's problem, 5xx are ours
        if status_code >= 500:
            log = logger.error
        elif status_code >= 400:
            log = logger.warning
        else:
            log = logger.info
        log(
            "request_completed",
            method=request.method,
            path=request.url.path,
            query=str(request.query_params) or None,
            status_code=status_code,
            duration_ms=duration_ms,
            client_ip=client_ip(request),
        )
