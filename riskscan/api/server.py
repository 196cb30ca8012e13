"""API server: runs uvicorn inside the current asyncio event loop."""

from __future__ import annotations

import uvicorn
from loguru import logger

from config.settings import settings


async def run_api_server() -> None:
    from riskscan.api.app import create_app

    app = create_app()
    config = uvicorn.Config(
        app=app,
        host=settings.api_host,
        port=settings.api_port,
        log_level="warning",
        loop="none",
    )
    server = uvicorn.Server(config)
    logger.info(f"[API] Listening on http://{settings.api_host}:{settings.api_port}")
    await server.serve()
