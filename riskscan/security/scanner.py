"""Security scan orchestrator.

Flow per scan:
  validate address -> cache hit? return -> fan out to the four analyzers
  (each under its own timeout, the whole join under a deadline) -> map each
  outcome to OK / DEGRADED / SKIPPED / FATAL -> findings + weighted risk ->
  cache write -> bundle.

A degraded analyzer is replaced by its conservative default and listed in
`degraded_analyzers`. Only an invalid address, invalid options, total data
unavailability or the overall deadline fail the scan.
"""

import asyncio
import time
import uuid
from collections.abc import Callable, Coroutine, Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any, Generic, TypeVar

from loguru import logger
from solders.pubkey import Pubkey

from riskscan.metrics import ScanMetrics
from riskscan.security.authority import AuthorityAnalyzer, default_authority_analysis
from riskscan.security.cache import ScanCache
from riskscan.security.exceptions import (
    AnalyzerError,
    AnalyzerTimeoutError,
    CacheError,
    InvalidScanOptionsError,
    InvalidTokenAddressError,
    ScannerError,
    TotalDataUnavailableError,
)
from riskscan.security.findings import count_check_results, generate_findings
from riskscan.security.holders import HolderAnalyzer, default_holder_concentration
from riskscan.security.honeypot import HoneypotAnalyzer, default_honeypot_check
from riskscan.security.liquidity import LiquidityAnalyzer, default_liquidity_analysis
from riskscan.security.models import (
    AnalyzerName,
    CheckStatus,
    CheckType,
    ContractVerification,
    SecurityCheck,
    SecurityScanResult,
    ensure_transition,
)
from riskscan.security.risk import calculate_risk_breakdown, determine_risk_level

T = TypeVar("T")

DEFAULT_ANALYZER_TIMEOUT_SEC = 15.0
DEFAULT_SCAN_TIMEOUT_SEC = 45.0


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _new_id() -> str:
    return str(uuid.uuid4())


def validate_token_address(token_address: str) -> str:
    """Base58 string decoding to exactly 32 bytes."""
    if not isinstance(token_address, str) or not token_address:
        raise InvalidTokenAddressError("Token address is required")
    try:
        Pubkey.from_string(token_address)
    except ValueError as e:
        raise InvalidTokenAddressError(f"Invalid token address: {token_address!r}") from e
    return token_address


def parse_check_types(values: Iterable[str | CheckType] | str) -> frozenset[CheckType]:
    if isinstance(values, str):
        values = (values,)
    try:
        return frozenset(CheckType(v) for v in values)
    except ValueError as e:
        allowed = ", ".join(c.value for c in CheckType)
        raise InvalidScanOptionsError(f"Unknown check type ({e}); expected one of: {allowed}") from e


@dataclass(frozen=True)
class ScanOptions:
    market_cap: float | None = None
    skip_checks: frozenset[CheckType] = field(default_factory=frozenset)
    use_cache: bool = True
    token_name: str | None = None
    token_symbol: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "skip_checks", parse_check_types(self.skip_checks))


class OutcomeStatus(StrEnum):
    OK = "ok"
    DEGRADED = "degraded"
    SKIPPED = "skipped"
    FATAL = "fatal"


@dataclass(frozen=True)
class AnalyzerOutcome(Generic[T]):
    """Settled result of one analyzer task."""

    name: AnalyzerName
    status: OutcomeStatus
    value: T | None = None
    cause: BaseException | None = None

    @classmethod
    def ok(cls, name: AnalyzerName, value: T) -> "AnalyzerOutcome[T]":
        return cls(name, OutcomeStatus.OK, value)

    @classmethod
    def degraded(cls, name: AnalyzerName, default: T, cause: BaseException) -> "AnalyzerOutcome[T]":
        return cls(name, OutcomeStatus.DEGRADED, default, cause)

    @classmethod
    def skipped(cls, name: AnalyzerName, default: T) -> "AnalyzerOutcome[T]":
        return cls(name, OutcomeStatus.SKIPPED, default)

    @classmethod
    def fatal(cls, name: AnalyzerName, cause: BaseException) -> "AnalyzerOutcome[T]":
        return cls(name, OutcomeStatus.FATAL, None, cause)


def settle(name: AnalyzerName, result: Any, default: T) -> AnalyzerOutcome[T]:
    """Map a gather(return_exceptions=True) slot to an outcome."""
    if isinstance(result, BaseException) and not isinstance(result, Exception):
        raise result
    if isinstance(result, ScannerError) and not isinstance(result, AnalyzerError):
        return AnalyzerOutcome.fatal(name, result)
    if isinstance(result, Exception):
        return AnalyzerOutcome.degraded(name, default, result)
    return AnalyzerOutcome.ok(name, result)


def _describe(exc: BaseException) -> str:
    if isinstance(exc, TimeoutError):
        return "timed out"
    return f"{type(exc).__name__}: {exc}"


class SecurityScanner:
    def __init__(
        self,
        honeypot: HoneypotAnalyzer,
        authority: AuthorityAnalyzer,
        holders: HolderAnalyzer,
        liquidity: LiquidityAnalyzer,
        cache: ScanCache,
        *,
        metrics: ScanMetrics | None = None,
        analyzer_timeout: float = DEFAULT_ANALYZER_TIMEOUT_SEC,
        scan_timeout: float = DEFAULT_SCAN_TIMEOUT_SEC,
        id_factory: Callable[[], str] = _new_id,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._honeypot = honeypot
        self._authority = authority
        self._holders = holders
        self._liquidity = liquidity
        self._cache = cache
        self._metrics = metrics or ScanMetrics()
        self._analyzer_timeout = analyzer_timeout
        self._scan_timeout = scan_timeout
        self._id_factory = id_factory
        self._clock = clock

    @property
    def metrics(self) -> ScanMetrics:
        return self._metrics

    async def scan(
        self, token_address: str, options: ScanOptions | None = None
    ) -> SecurityScanResult:
        options = options or ScanOptions()
        validate_token_address(token_address)
        skipped = options.skip_checks
        if skipped >= set(CheckType):
            raise InvalidScanOptionsError("Every check is skipped, nothing to scan")

        if options.use_cache:
            cached = await self.get_cached(token_address)
            if cached is not None:
                self._metrics.record_cache_hit()
                logger.debug(f"[SCAN] Cache hit for {token_address[:12]}")
                return cached
            self._metrics.record_cache_miss()

        status = ensure_transition(CheckStatus.PENDING, CheckStatus.RUNNING)
        started_at = self._clock()
        t0 = time.monotonic()
        logger.info(f"[SCAN] Starting {token_address[:12]} skip={sorted(skipped) or '-'}")

        try:
            outcomes = await self._fan_out(token_address, options, started_at)
        except ScannerError:
            ensure_transition(status, CheckStatus.FAILED)
            self._metrics.record_failure()
            raise

        honeypot, ownership, concentration, liquidity = (o.value for o in outcomes)
        degraded = [o.name for o in outcomes if o.status == OutcomeStatus.DEGRADED]

        now = self._clock()
        findings = generate_findings(
            honeypot,
            ownership,
            concentration,
            liquidity,
            id_factory=self._id_factory,
            now=now,
            skipped=skipped,
        )
        breakdown = calculate_risk_breakdown(
            honeypot, ownership, concentration, liquidity, now=now, skipped=skipped
        )
        risk_score = breakdown.overall
        counts = count_check_results(findings)
        verification = ContractVerification(token_address=token_address, analyzed_at=now)

        status = ensure_transition(status, CheckStatus.COMPLETED)
        security_check = SecurityCheck(
            id=self._id_factory(),
            token_address=token_address,
            risk_level=determine_risk_level(risk_score),
            risk_score=risk_score,
            status=status,
            findings=findings,
            passed_checks=counts.passed,
            failed_checks=counts.failed,
            warning_checks=counts.warning,
            total_checks=counts.total,
            security_score=100 - risk_score,
            is_contract_verified=verification.is_verified,
            is_audited=False,
            started_at=started_at,
            completed_at=self._clock(),
        )
        result = SecurityScanResult(
            security_check=security_check,
            ownership=ownership,
            concentration=concentration,
            liquidity=liquidity,
            honeypot=honeypot,
            verification=verification,
            degraded_analyzers=degraded,
        )

        # Written even when use_cache=False so a forced rescan refreshes the entry
        await self._cache_set(token_address, result)

        latency_ms = (time.monotonic() - t0) * 1000
        self._metrics.record_scan(latency_ms, [str(d) for d in degraded])
        logger.info(
            f"[SCAN] {token_address[:12]} risk={risk_score} ({security_check.risk_level}) "
            f"in {latency_ms:.0f}ms"
            + (f" degraded={[str(d) for d in degraded]}" if degraded else "")
        )
        return result

    async def _fan_out(
        self, token_address: str, options: ScanOptions, started_at: datetime
    ) -> list[AnalyzerOutcome]:
        skipped = options.skip_checks
        plan: list[tuple[AnalyzerName, Any, Coroutine[Any, Any, Any] | None]] = [
            (
                AnalyzerName.HONEYPOT,
                default_honeypot_check(token_address, analyzed_at=started_at),
                None if CheckType.HONEYPOT in skipped else self._honeypot.analyze(token_address),
            ),
            (
                AnalyzerName.AUTHORITY,
                default_authority_analysis(token_address, analyzed_at=started_at),
                None
                if {CheckType.MINT_AUTHORITY, CheckType.FREEZE_AUTHORITY} <= skipped
                else self._authority.analyze(token_address),
            ),
            (
                AnalyzerName.HOLDERS,
                default_holder_concentration(token_address, analyzed_at=started_at),
                None
                if CheckType.HOLDER_CONCENTRATION in skipped
                else self._holders.analyze(token_address),
            ),
            (
                AnalyzerName.LIQUIDITY,
                default_liquidity_analysis(token_address, analyzed_at=started_at),
                None
                if CheckType.LIQUIDITY_LOCK in skipped
                else self._liquidity.analyze(token_address, options.market_cap),
            ),
        ]

        invoked = [(name, coro) for name, _, coro in plan if coro is not None]
        try:
            results = await asyncio.wait_for(
                asyncio.gather(
                    *(self._bounded(coro) for _, coro in invoked),
                    return_exceptions=True,
                ),
                timeout=self._scan_timeout,
            )
        except TimeoutError as e:
            logger.warning(f"[SCAN] {token_address[:12]} exceeded {self._scan_timeout}s deadline")
            raise AnalyzerTimeoutError(
                f"Scan of {token_address} exceeded {self._scan_timeout}s deadline"
            ) from e

        settled = dict(zip((name for name, _ in invoked), results))
        outcomes: list[AnalyzerOutcome] = []
        for name, default, coro in plan:
            if coro is None:
                outcomes.append(AnalyzerOutcome.skipped(name, default))
                continue
            outcome = settle(name, settled[name], default)
            if outcome.status == OutcomeStatus.FATAL:
                raise outcome.cause
            if outcome.status == OutcomeStatus.DEGRADED:
                logger.warning(
                    f"[SCAN] {name} degraded for {token_address[:12]}: {_describe(outcome.cause)}"
                )
            outcomes.append(outcome)

        ran = [o for o in outcomes if o.status != OutcomeStatus.SKIPPED]
        if ran and all(o.status == OutcomeStatus.DEGRADED for o in ran):
            causes = "; ".join(f"{o.name}: {_describe(o.cause)}" for o in ran)
            raise TotalDataUnavailableError(f"No analyzer produced data for {token_address} ({causes})")

        return outcomes

    async def _bounded(self, coro: Coroutine[Any, Any, T]) -> T:
        return await asyncio.wait_for(coro, timeout=self._analyzer_timeout)

    async def get_cached(self, token_address: str) -> SecurityScanResult | None:
        try:
            return await self._cache.get(token_address)
        except CacheError as e:
            self._metrics.record_cache_error()
            logger.warning(f"[CACHE] Lookup failed for {token_address[:12]}, treating as miss: {e}")
            return None

    async def clear_cache(self) -> None:
        try:
            await self._cache.clear()
        except CacheError as e:
            self._metrics.record_cache_error()
            logger.warning(f"[CACHE] Clear failed: {e}")

    async def invalidate(self, token_address: str) -> None:
        try:
            await self._cache.invalidate(token_address)
        except CacheError as e:
            self._metrics.record_cache_error()
            logger.warning(f"[CACHE] Invalidate failed for {token_address[:12]}: {e}")

    async def _cache_set(self, token_address: str, result: SecurityScanResult) -> None:
        try:
            await self._cache.set(token_address, result)
        except CacheError as e:
            self._metrics.record_cache_error()
            logger.warning(f"[CACHE] Write skipped for {token_address[:12]}: {e}")
