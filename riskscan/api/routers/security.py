"""Security check endpoints: scan, cached lookup, report, cache purge."""

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from loguru import logger
from pydantic import BaseModel, Field

from config.settings import settings
from riskscan.api.app import limiter
from riskscan.api.dependencies import get_scanner
from riskscan.security.exceptions import (
    AnalyzerTimeoutError,
    InvalidScanOptionsError,
    InvalidTokenAddressError,
    ScannerError,
    TotalDataUnavailableError,
)
from riskscan.security.models import CheckType, SecurityScanResult
from riskscan.security.report import SecurityReport, build_security_report
from riskscan.security.scanner import ScanOptions, SecurityScanner, validate_token_address

router = APIRouter(prefix="/api/v1/security", tags=["security"])


class SecurityCheckRequest(BaseModel):
    token_address: str = Field(min_length=1, max_length=64)
    market_cap: float | None = Field(default=None, ge=0)
    token_name: str | None = Field(default=None, max_length=100)
    token_symbol: str | None = Field(default=None, max_length=20)
    skip_checks: list[CheckType] = Field(default_factory=list)
    force_refresh: bool = False


class SecurityCheckResponse(BaseModel):
    success: bool = True
    data: SecurityScanResult
    cached: bool = False


class SecurityReportResponse(BaseModel):
    success: bool = True
    data: SecurityReport


class CacheClearResponse(BaseModel):
    success: bool = True
    cleared: str  # "all" or the invalidated address


def _to_http_error(e: ScannerError) -> HTTPException:
    if isinstance(e, InvalidTokenAddressError | InvalidScanOptionsError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    if isinstance(e, TotalDataUnavailableError):
        return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
    if isinstance(e, AnalyzerTimeoutError):
        return HTTPException(status_code=status.HTTP_504_GATEWAY_TIMEOUT, detail=str(e))
    logger.error(f"[API] Unexpected scanner error: {e}")
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Scan failed")


async def _run_scan(scanner: SecurityScanner, body: SecurityCheckRequest) -> tuple[SecurityScanResult, bool]:
    """Returns (result, served_from_cache)."""
    try:
        validate_token_address(body.token_address)
        if not body.force_refresh:
            cached = await scanner.get_cached(body.token_address)
            if cached is not None:
                scanner.metrics.record_cache_hit()
                return cached, True
            scanner.metrics.record_cache_miss()

        options = ScanOptions(
            market_cap=body.market_cap,
            skip_checks=frozenset(body.skip_checks),
            use_cache=False,
            token_name=body.token_name,
            token_symbol=body.token_symbol,
        )
        return await scanner.scan(body.token_address, options), False
    except ScannerError as e:
        raise _to_http_error(e) from e


@router.post("/check", response_model=SecurityCheckResponse)
@limiter.limit(settings.api_rate_limit)
async def run_security_check(
    request: Request,
    body: SecurityCheckRequest,
    scanner: SecurityScanner = Depends(get_scanner),
) -> SecurityCheckResponse:
    """Scan a token (or serve the cached scan)."""
    result, cached = await _run_scan(scanner, body)
    return SecurityCheckResponse(data=result, cached=cached)


@router.get("/check", response_model=SecurityCheckResponse)
@limiter.limit(settings.api_rate_limit)
async def get_security_check(
    request: Request,
    token_address: str = Query(min_length=1, max_length=64),
    scanner: SecurityScanner = Depends(get_scanner),
) -> SecurityCheckResponse:
    """Cached scan only, never triggers analyzers."""
    try:
        validate_token_address(token_address)
    except ScannerError as e:
        raise _to_http_error(e) from e

    cached = await scanner.get_cached(token_address)
    if cached is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No cached security check")
    return SecurityCheckResponse(data=cached, cached=True)


@router.post("/report", response_model=SecurityReportResponse)
@limiter.limit(settings.api_rate_limit)
async def get_security_report(
    request: Request,
    body: SecurityCheckRequest,
    scanner: SecurityScanner = Depends(get_scanner),
) -> SecurityReportResponse:
    result, _ = await _run_scan(scanner, body)
    return SecurityReportResponse(
        data=build_security_report(result, body.token_name, body.token_symbol)
    )


@router.delete("/cache", response_model=CacheClearResponse)
async def clear_security_cache(
    token_address: str | None = Query(default=None, max_length=64),
    scanner: SecurityScanner = Depends(get_scanner),
) -> CacheClearResponse:
    if token_address:
        await scanner.invalidate(token_address)
        return CacheClearResponse(cleared=token_address)
    await scanner.clear_cache()
    return CacheClearResponse(cleared="all")
