"""Health check."""

from __future__ import annotations

import time

from fastapi import APIRouter
from pydantic import BaseModel

from riskscan import __version__
from riskscan.api.registry import registry

router = APIRouter(prefix="/api/v1", tags=["health"])


class HealthResponse(BaseModel):
    status: str
    version: str
    uptime_sec: int
    scanner_ready: bool
    metrics: dict


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    scanner = registry.scanner
    return HealthResponse(
        status="ok" if scanner else "starting",
        version=__version__,
        uptime_sec=round(time.monotonic() - registry.started_at),
        scanner_ready=scanner is not None,
        metrics=scanner.metrics.get_summary() if scanner else {},
    )
