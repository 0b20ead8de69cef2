"""FastAPI application factory.

Run with ``uvicorn marketfeed.api.main:app``.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from marketfeed import __version__
from marketfeed.api.middleware import (
    LoggingMiddleware,
    MetricsMiddleware,
    setup_exception_handlers,
)
from marketfeed.api.routes import feed, health
from marketfeed.core.config import Settings, get_settings
from marketfeed.core.database import dispose_engine
from marketfeed.core.logging import configure_logging, get_logger
from marketfeed.core.redis import close_redis

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Release pooled storage and cache connections on shutdown."""
    logger.info("application_startup", app_name=app.title, version=app.version)
    try:
        yield
    finally:
        await close_redis()
        await dispose_engine()
        logger.info("application_shutdown")


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the feed API.

    Args:
        settings: Application settings; defaults to ``get_settings()``.
    """
    settings = settings or get_settings()
    configure_logging(
        json_logs=settings.is_production,
        log_level="DEBUG" if settings.debug else "INFO",
    )

    app = FastAPI(
        title=settings.app_name,
        version=__version__,
        description="Personalized prediction-market feed",
        docs_url=None if settings.is_production else "/docs",
        redoc_url=None,
        lifespan=lifespan,
    )

    # Added last runs first: logging binds the correlation ID before anything else
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allowed_origins,
        allow_methods=["GET", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=["X-Correlation-ID", "X-Request-ID", "Retry-After"],
    )
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(LoggingMiddleware)

    setup_exception_handlers(app)

    app.include_router(health.router, tags=["Health"])
    app.include_router(feed.router, prefix=settings.api_v1_prefix, tags=["Feed"])
    return app


app = create_app()
