"""Human-facing security report: verdict, warnings and recommendations."""

from collections.abc import Callable
from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict

from riskscan.security.authority import get_authority_recommendations
from riskscan.security.holders import get_concentration_recommendations
from riskscan.security.liquidity import get_liquidity_recommendations
from riskscan.security.models import (
    AuthorityAnalysis,
    CheckResult,
    ContractVerification,
    HolderConcentration,
    HoneypotCheck,
    LiquidityAnalysis,
    RiskLevel,
    SecurityCheck,
    SecurityScanResult,
    Severity,
)

_SUMMARIES = {
    RiskLevel.LOW: "Low risk. No major red flags were found.",
    RiskLevel.MEDIUM: "Medium risk. Review the warnings before investing.",
    RiskLevel.HIGH: "High risk. Several serious issues were found.",
    RiskLevel.CRITICAL: "Critical risk. This token shows strong signs of a scam.",
}


class SecurityVerdict(BaseModel):
    model_config = ConfigDict(frozen=True)

    risk_level: RiskLevel
    risk_score: int
    is_safe: bool
    summary: str
    warnings: list[str]
    critical_issues: list[str]


class SecurityReport(BaseModel):
    model_config = ConfigDict(frozen=True)

    token_address: str
    token_name: str
    token_symbol: str
    security_check: SecurityCheck
    ownership: AuthorityAnalysis
    liquidity: LiquidityAnalysis
    concentration: HolderConcentration
    honeypot: HoneypotCheck
    verification: ContractVerification
    verdict: SecurityVerdict
    recommendations: list[str]
    degraded_analyzers: list[str]
    generated_at: datetime


def build_security_report(
    result: SecurityScanResult,
    token_name: str | None = None,
    token_symbol: str | None = None,
    clock: Callable[[], datetime] = lambda: datetime.now(UTC),
) -> SecurityReport:
    check = result.security_check
    now = clock()

    critical_issues = [
        f.title for f in check.findings if f.severity == Severity.CRITICAL and f.result == CheckResult.FAILED
    ]
    warnings = [
        f.title
        for f in check.findings
        if f.result in (CheckResult.FAILED, CheckResult.WARNING) and f.title not in critical_issues
    ]
    if result.degraded_analyzers:
        warnings.append(
            "Incomplete data: " + ", ".join(str(a) for a in result.degraded_analyzers)
            + " could not be checked and used conservative defaults."
        )

    summary = _SUMMARIES[check.risk_level]
    if critical_issues:
        summary += f" Critical issues: {', '.join(critical_issues)}."

    recommendations = (
        get_authority_recommendations(result.ownership)
        + get_concentration_recommendations(result.concentration)
        + get_liquidity_recommendations(result.liquidity, now)
    )

    return SecurityReport(
        token_address=check.token_address,
        token_name=token_name or "",
        token_symbol=token_symbol or "",
        security_check=check,
        ownership=result.ownership,
        liquidity=result.liquidity,
        concentration=result.concentration,
        honeypot=result.honeypot,
        verification=result.verification,
        verdict=SecurityVerdict(
            risk_level=check.risk_level,
            risk_score=check.risk_score,
            is_safe=check.risk_level == RiskLevel.LOW and not critical_issues,
            summary=summary,
            warnings=warnings,
            critical_issues=critical_issues,
        ),
        recommendations=recommendations,
        degraded_analyzers=[str(a) for a in result.degraded_analyzers],
        generated_at=now,
    )
