"""FastAPI application factory for the security scanner API."""

from __future__ import annotations

import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI
from loguru import logger
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from riskscan import __version__
from riskscan.api.middleware import SecurityHeadersMiddleware
from riskscan.api.registry import registry

if TYPE_CHECKING:
    from riskscan.bootstrap import ScannerContainer

# Rate limiter (shared instance)
limiter = Limiter(key_func=get_remote_address)


def create_app(container: ScannerContainer | None = None) -> FastAPI:
    """Build the app. Without a container, one is built from settings at startup."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        owned = None
        if container is not None:
            registry.container = container
        elif registry.container is None:
            from config.settings import settings
            from riskscan.bootstrap import build_scanner

            owned = build_scanner(settings)
            registry.container = owned
            logger.info("[API] Scanner initialized")
        try:
            yield
        finally:
            if registry.container is not None:
                logger.info(f"[API] Shutdown stats: {registry.container.scanner.metrics.format_stats_line()}")
            if owned is not None:
                await owned.close()
                registry.container = None

    app = FastAPI(
        title="Token Risk Scanner API",
        version=__version__,
        docs_url="/api/docs" if os.getenv("RISKSCAN_DEBUG") else None,
        redoc_url=None,
        openapi_url="/api/openapi.json" if os.getenv("RISKSCAN_DEBUG") else None,
        lifespan=lifespan,
    )

    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_middleware(SecurityHeadersMiddleware)

    from riskscan.api.routers.health import router as health_router
    from riskscan.api.routers.security import router as security_router

    app.include_router(health_router)
    app.include_router(security_router)

    return app
