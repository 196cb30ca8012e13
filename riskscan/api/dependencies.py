"""FastAPI dependency injection."""

from __future__ import annotations

from fastapi import HTTPException, status

from riskscan.api.registry import registry
from riskscan.security.scanner import SecurityScanner


def get_scanner() -> SecurityScanner:
    """Return the running scanner, 503 until startup has wired it."""
    scanner = registry.scanner
    if scanner is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Scanner not initialized",
        )
    return scanner
