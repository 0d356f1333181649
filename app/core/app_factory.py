"""Application factory for FastAPI app.

Centralizes app construction (state, middleware, handlers, routers) so tests
can build isolated apps, each with its own rate limiter.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.routes import admin_router, chat_router, health_router
from app.api.routes.chat import build_chat_service
from app.core.config import settings
from app.core.exception_handlers import setup_exception_handlers
from app.core.logging import configure_logging
from app.core.middleware import request_id_middleware
from app.core.openapi import apply_openapi_customizations
from app.core.rate_limit import build_rate_limiter

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Run the rate limiter's background sweep for the app's lifetime."""
    limiter = app.state.rate_limiter
    limiter.start()
    logger.info("app.startup", extra={"app_env": settings.app_env})
    try:
        yield
    finally:
        limiter.stop()
        logger.info("app.shutdown")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application instance.

    Returns:
        Configured FastAPI app with state, middleware, handlers and routers.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    app = FastAPI(
        title="Shield API",
        description=(
            "Rate-limited request handlers for the Harmony Shield security "
            "assistant. Callers are bucketed by API key, then by client IP; "
            "throttled requests receive HTTP 429 with Retry-After."
        ),
        version="0.1.0",
        debug=settings.app.debug,
        lifespan=lifespan,
    )

    app.state.rate_limiter = build_rate_limiter()
    app.state.chat_service = build_chat_service()

    # Middleware; CORS answers preflight requests before routing, so
    # OPTIONS never consumes rate limit quota.
    app.middleware("http")(request_id_middleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.app.cors_origins,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["authorization", "x-client-info", "x-api-key", "content-type"],
        expose_headers=["Retry-After", "X-RateLimit-Remaining", "X-RateLimit-Reset", "X-Request-ID"],
    )

    setup_exception_handlers(app)

    app.include_router(chat_router, prefix="/v1")
    app.include_router(admin_router, prefix="/v1")
    app.include_router(health_router)

    apply_openapi_customizations(app)

    return app
