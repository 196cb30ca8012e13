"""Liquidity analysis: how much liquidity exists and how much is locked.

Pools come from every configured LiquiditySource. A pool reported as locked
only counts if its locker program is on the verified allowlist (burned LP has
no locker program and counts as a permanent lock).
"""

import asyncio
import math
from collections.abc import Callable, Sequence
from datetime import UTC, datetime

from loguru import logger

from riskscan.liquidity_sources.base import LiquiditySource, LockVerifier
from riskscan.security.exceptions import LiquidityCheckError
from riskscan.security.models import LiquidityAnalysis, LiquidityPool

LOCK_EXPIRY_WARNING_DAYS = 30
LOW_LIQUIDITY_RATIO = 0.05
VERY_LOW_LIQUIDITY_USD = 10_000
LOW_LIQUIDITY_USD = 50_000


def _utcnow() -> datetime:
    return datetime.now(UTC)


def default_liquidity_analysis(
    token_address: str, analyzed_at: datetime | None = None
) -> LiquidityAnalysis:
    """Zero liquidity. Scores as maximum liquidity risk."""
    return LiquidityAnalysis(token_address=token_address, analyzed_at=analyzed_at or _utcnow())


def days_until(expires_at: datetime, now: datetime) -> int:
    """Whole days remaining, floored (negative once expired)."""
    return math.floor((expires_at - now).total_seconds() / 86400)


def dedupe_pools(pools: list[LiquidityPool]) -> list[LiquidityPool]:
    """One pool per pair address. A locked report wins, then the larger liquidity."""
    best: dict[str, LiquidityPool] = {}
    for pool in pools:
        current = best.get(pool.pair_address)
        if current is None or (pool.is_locked, pool.liquidity_usd) > (
            current.is_locked,
            current.liquidity_usd,
        ):
            best[pool.pair_address] = pool
    return list(best.values())


class LiquidityAnalyzer:
    def __init__(
        self,
        sources: Sequence[LiquiditySource],
        lock_verifier: LockVerifier,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._sources = list(sources)
        self._lock_verifier = lock_verifier
        self._clock = clock

    async def get_pools(self, token_address: str) -> list[LiquidityPool]:
        """Pools from all sources, lock claims verified, de-duplicated."""
        if not self._sources:
            raise LiquidityCheckError("No liquidity sources configured")

        results = await asyncio.gather(
            *(source.get_pools(token_address) for source in self._sources),
            return_exceptions=True,
        )

        pools: list[LiquidityPool] = []
        failed = 0
        for source, result in zip(self._sources, results):
            if isinstance(result, BaseException):
                failed += 1
                logger.warning(f"[LIQUIDITY] Source {source.name} failed for {token_address[:12]}: {result}")
                continue
            pools.extend(self._verify_lock(pool) for pool in result)

        if failed == len(self._sources):
            raise LiquidityCheckError(f"All {failed} liquidity sources failed for {token_address}")

        return dedupe_pools(pools)

    async def analyze(
        self, token_address: str, market_cap_usd: float | None = None
    ) -> LiquidityAnalysis:
        pools = await self.get_pools(token_address)

        total_usd = sum(p.liquidity_usd for p in pools)
        total_native = sum(p.liquidity_native for p in pools)
        locked_pools = [p for p in pools if p.is_locked]
        locked_usd = sum(p.liquidity_usd for p in locked_pools)

        locked_pct = min(100.0, locked_usd / total_usd * 100) if total_usd > 0 else 0.0
        expiries = [p.lock_expires_at for p in locked_pools if p.lock_expires_at is not None]
        ratio = total_usd / market_cap_usd if market_cap_usd and market_cap_usd > 0 else 0.0

        logger.debug(
            f"[LIQUIDITY] {token_address[:12]} pools={len(pools)} "
            f"total=${total_usd:,.0f} locked={locked_pct:.1f}%"
        )

        return LiquidityAnalysis(
            token_address=token_address,
            total_liquidity_usd=total_usd,
            total_liquidity_native=total_native,
            is_locked=locked_pct > 0,
            locked_pct=locked_pct,
            lock_expires_at=max(expiries) if expiries else None,
            pools=pools,
            liquidity_ratio=ratio,
            analyzed_at=self._clock(),
        )

    async def check_liquidity_lock(self, token_address: str) -> bool:
        try:
            analysis = await self.analyze(token_address)
        except LiquidityCheckError as e:
            logger.warning(f"[LIQUIDITY] Lock check failed for {token_address[:12]}: {e}")
            return False
        return analysis.is_locked

    async def get_lock_duration_days(self, token_address: str) -> int | None:
        """Longest remaining lock in days, None when nothing is time-locked."""
        try:
            pools = await self.get_pools(token_address)
        except LiquidityCheckError as e:
            logger.warning(f"[LIQUIDITY] Lock duration lookup failed for {token_address[:12]}: {e}")
            return None

        now = self._clock()
        durations = [
            days_until(p.lock_expires_at, now)
            for p in pools
            if p.is_locked and p.lock_expires_at is not None
        ]
        return max(durations) if durations else None

    def _verify_lock(self, pool: LiquidityPool) -> LiquidityPool:
        if not pool.is_locked or pool.lock_program is None:
            return pool
        if self._lock_verifier.is_verified_lock_program(pool.lock_program):
            return pool
        logger.debug(f"[LIQUIDITY] Unverified lock program {pool.lock_program[:12]} on {pool.pair_address[:12]}")
        return pool.model_copy(update={"is_locked": False, "lock_expires_at": None})


def calculate_liquidity_risk(analysis: LiquidityAnalysis, now: datetime | None = None) -> int:
    if analysis.total_liquidity_usd <= 0:
        return 100

    now = now or _utcnow()
    risk = 0

    if not analysis.is_locked:
        risk += 60
    elif analysis.locked_pct < 50:
        risk += 40
    elif analysis.locked_pct < 80:
        risk += 20

    if analysis.lock_expires_at and days_until(analysis.lock_expires_at, now) < LOCK_EXPIRY_WARNING_DAYS:
        risk += 20

    # Unknown market cap leaves the ratio at 0, which is not evidence of thin liquidity
    if 0 < analysis.liquidity_ratio < LOW_LIQUIDITY_RATIO:
        risk += 20

    if analysis.total_liquidity_usd < VERY_LOW_LIQUIDITY_USD:
        risk += 30
    elif analysis.total_liquidity_usd < LOW_LIQUIDITY_USD:
        risk += 15

    return min(100, risk)


def get_liquidity_recommendations(analysis: LiquidityAnalysis, now: datetime | None = None) -> list[str]:
    if analysis.total_liquidity_usd <= 0:
        return ["No liquidity found. Token cannot be traded on DEXs."]

    now = now or _utcnow()
    recommendations: list[str] = []

    if not analysis.is_locked:
        recommendations.append(
            "Liquidity is NOT locked. High rug pull risk, developers can drain the pool."
        )
    elif analysis.locked_pct < 50:
        recommendations.append(
            f"Only {analysis.locked_pct:.1f}% of liquidity is locked. Partial rug pull possible."
        )
    elif analysis.locked_pct >= 80:
        recommendations.append(
            f"{analysis.locked_pct:.1f}% of liquidity is locked. Good protection against rug pulls."
        )

    if analysis.lock_expires_at:
        days = days_until(analysis.lock_expires_at, now)
        if days < LOCK_EXPIRY_WARNING_DAYS:
            recommendations.append(
                f"Liquidity lock expires in {days} days. Monitor closely as expiration approaches."
            )
        elif days > 365:
            recommendations.append(f"Liquidity locked for {days // 365} years. Long-term commitment.")

    if analysis.total_liquidity_usd < VERY_LOW_LIQUIDITY_USD:
        recommendations.append(
            f"Very low liquidity (${analysis.total_liquidity_usd:,.0f}). High slippage risk."
        )
    elif analysis.total_liquidity_usd > 100_000:
        recommendations.append(f"Healthy liquidity (${analysis.total_liquidity_usd:,.0f}).")

    if analysis.liquidity_ratio > 0:
        if analysis.liquidity_ratio < LOW_LIQUIDITY_RATIO:
            recommendations.append(
                "Low liquidity-to-market-cap ratio. Price may be manipulated easily."
            )
        elif analysis.liquidity_ratio > 0.2:
            recommendations.append("Good liquidity-to-market-cap ratio. Prices are more stable.")

    return recommendations
