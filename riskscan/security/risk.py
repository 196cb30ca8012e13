"""Weighted risk aggregation.

overall = round_half_up(ownership*0.30 + concentration*0.25 + liquidity*0.30 + honeypot*0.15)

The weights and level thresholds below are the scoring policy; tests pin them.
"""

from collections.abc import Collection
from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal

from riskscan.security.authority import calculate_ownership_risk
from riskscan.security.holders import calculate_concentration_risk
from riskscan.security.honeypot import calculate_honeypot_risk
from riskscan.security.liquidity import calculate_liquidity_risk
from riskscan.security.models import (
    AuthorityAnalysis,
    CheckType,
    HolderConcentration,
    HoneypotCheck,
    LiquidityAnalysis,
    RiskLevel,
)

OWNERSHIP_WEIGHT = Decimal("0.3")
CONCENTRATION_WEIGHT = Decimal("0.25")
LIQUIDITY_WEIGHT = Decimal("0.3")
HONEYPOT_WEIGHT = Decimal("0.15")

CRITICAL_THRESHOLD = 75
HIGH_THRESHOLD = 50
MEDIUM_THRESHOLD = 25


@dataclass(frozen=True)
class RiskBreakdown:
    """Per-analyzer 0-100 sub-scores."""

    ownership: int = 0
    concentration: int = 0
    liquidity: int = 0
    honeypot: int = 0

    @property
    def overall(self) -> int:
        return calculate_overall_risk(self)


def round_half_up(value: Decimal) -> int:
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def calculate_overall_risk(breakdown: RiskBreakdown) -> int:
    # Decimal keeps x.5 boundaries exact
    weighted = (
        Decimal(breakdown.ownership) * OWNERSHIP_WEIGHT
        + Decimal(breakdown.concentration) * CONCENTRATION_WEIGHT
        + Decimal(breakdown.liquidity) * LIQUIDITY_WEIGHT
        + Decimal(breakdown.honeypot) * HONEYPOT_WEIGHT
    )
    return max(0, min(100, round_half_up(weighted)))


def determine_risk_level(risk_score: int) -> RiskLevel:
    if risk_score >= CRITICAL_THRESHOLD:
        return RiskLevel.CRITICAL
    if risk_score >= HIGH_THRESHOLD:
        return RiskLevel.HIGH
    if risk_score >= MEDIUM_THRESHOLD:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def calculate_risk_breakdown(
    honeypot: HoneypotCheck,
    ownership: AuthorityAnalysis,
    concentration: HolderConcentration,
    liquidity: LiquidityAnalysis,
    *,
    now: datetime | None = None,
    skipped: Collection[CheckType] = (),
) -> RiskBreakdown:
    """Sub-scores for one scan. A skipped check contributes 0."""
    return RiskBreakdown(
        ownership=calculate_ownership_risk(
            ownership,
            include_mint=CheckType.MINT_AUTHORITY not in skipped,
            include_freeze=CheckType.FREEZE_AUTHORITY not in skipped,
        ),
        concentration=(
            0 if CheckType.HOLDER_CONCENTRATION in skipped
            else calculate_concentration_risk(concentration)
        ),
        liquidity=(
            0 if CheckType.LIQUIDITY_LOCK in skipped
            else calculate_liquidity_risk(liquidity, now)
        ),
        honeypot=0 if CheckType.HONEYPOT in skipped else calculate_honeypot_risk(honeypot),
    )
