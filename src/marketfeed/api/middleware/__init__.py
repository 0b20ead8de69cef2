"""FastAPI middleware components."""

from marketfeed.api.middleware.exception_handler import setup_exception_handlers
from marketfeed.api.middleware.logging import LoggingMiddleware
from marketfeed.api.middleware.metrics import MetricsMiddleware

__all__ = [
    "LoggingMiddleware",
    "MetricsMiddleware",
    "setup_exception_handlers",
]
