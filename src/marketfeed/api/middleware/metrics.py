"""Metrics middleware for automatic request tracking."""

from time import perf_counter

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from marketfeed.core.metrics import active_requests, request_latency_seconds, request_total


class MetricsMiddleware(BaseHTTPMiddleware):
    """Record latency, count and concurrency of every API request.

    Health and metrics endpoints are excluded so scrapes and probes do not
    dominate the series.
    """

    EXCLUDED_PATHS = {"/metrics", "/health", "/health/ready"}

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        path = request.url.path
        if path in self.EXCLUDED_PATHS:
            return await call_next(request)

        method = request.method
        active_requests.inc()
        start_time = perf_counter()
        status = "500"

        try:
            response = await call_next(request)
            status = str(response.status_code)
            return response
        finally:
            # Route is only resolved once the request went through the router
            endpoint = self._get_endpoint(request)
            request_latency_seconds.labels(endpoint=endpoint, method=method).observe(
                perf_counter() - start_time
            )
            request_total.labels(endpoint=endpoint, method=method, status=status).inc()
            active_requests.dec()

    def _get_endpoint(self, request: Request) -> str:
        """Route pattern when matched, raw path otherwise."""
        route = request.scope.get("route")
        if route is not None:
            return str(route.path)
        return request.url.path
