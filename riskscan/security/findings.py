"""Turn analyzer results into one severity-tagged finding per check category."""

from collections.abc import Callable, Collection
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from riskscan.security.models import (
    AuthorityAnalysis,
    CheckResult,
    CheckType,
    HolderConcentration,
    HoneypotCheck,
    LiquidityAnalysis,
    SecurityFinding,
    Severity,
)

PARTIAL_LOCK_THRESHOLD = 80.0


@dataclass
class CheckCounts:
    passed: int = 0
    failed: int = 0
    warning: int = 0
    total: int = 0


def generate_findings(
    honeypot: HoneypotCheck,
    ownership: AuthorityAnalysis,
    concentration: HolderConcentration,
    liquidity: LiquidityAnalysis,
    *,
    id_factory: Callable[[], str],
    now: datetime,
    skipped: Collection[CheckType] = (),
) -> list[SecurityFinding]:
    """Exactly five findings, in category order. Skipped categories become not_applicable."""

    def finding(
        check_type: CheckType,
        severity: Severity,
        result: CheckResult,
        title: str,
        description: str,
        details: dict[str, Any] | None = None,
        recommendation: str | None = None,
    ) -> SecurityFinding:
        return SecurityFinding(
            id=id_factory(),
            check_type=check_type,
            severity=severity,
            title=title,
            description=description,
            result=result,
            details=details,
            recommendation=recommendation,
            detected_at=now,
        )

    builders: list[tuple[CheckType, Callable[[], SecurityFinding]]] = [
        (CheckType.HONEYPOT, lambda: _honeypot_finding(finding, honeypot)),
        (CheckType.MINT_AUTHORITY, lambda: _mint_finding(finding, ownership)),
        (CheckType.FREEZE_AUTHORITY, lambda: _freeze_finding(finding, ownership)),
        (CheckType.HOLDER_CONCENTRATION, lambda: _concentration_finding(finding, concentration)),
        (CheckType.LIQUIDITY_LOCK, lambda: _liquidity_finding(finding, liquidity)),
    ]

    findings: list[SecurityFinding] = []
    for check_type, build in builders:
        if check_type in skipped:
            findings.append(
                finding(
                    check_type,
                    Severity.INFO,
                    CheckResult.NOT_APPLICABLE,
                    "Check Skipped",
                    f"The {check_type.value.replace('_', ' ')} check was skipped for this scan.",
                )
            )
        else:
            findings.append(build())
    return findings


def count_check_results(findings: list[SecurityFinding]) -> CheckCounts:
    counts = CheckCounts(total=len(findings))
    for f in findings:
        if f.result == CheckResult.PASSED:
            counts.passed += 1
        elif f.result == CheckResult.FAILED:
            counts.failed += 1
        elif f.result == CheckResult.WARNING:
            counts.warning += 1
    return counts


def _honeypot_finding(finding, honeypot: HoneypotCheck) -> SecurityFinding:
    if honeypot.is_honeypot:
        return finding(
            CheckType.HONEYPOT,
            Severity.CRITICAL,
            CheckResult.FAILED,
            "Honeypot Detected",
            "This token appears to be a honeypot. Users may not be able to sell.",
            details={
                "can_buy": honeypot.can_buy,
                "can_sell": honeypot.can_sell,
                "sell_tax": honeypot.sell_tax,
            },
            recommendation="Do not purchase this token. It is likely a scam.",
        )
    return finding(
        CheckType.HONEYPOT,
        Severity.INFO,
        CheckResult.PASSED,
        "No Honeypot Detected",
        "Token passed honeypot checks.",
    )


def _mint_finding(finding, ownership: AuthorityAnalysis) -> SecurityFinding:
    if ownership.can_mint:
        return finding(
            CheckType.MINT_AUTHORITY,
            Severity.HIGH,
            CheckResult.FAILED,
            "Mint Authority Not Renounced",
            "The owner can mint unlimited new tokens, diluting holders.",
            details={"authority": ownership.owner_address},
            recommendation="Verify if mint authority will be renounced. High inflation risk.",
        )
    return finding(
        CheckType.MINT_AUTHORITY,
        Severity.INFO,
        CheckResult.PASSED,
        "Mint Authority Renounced",
        "Token supply is fixed. No new tokens can be minted.",
    )


def _freeze_finding(finding, ownership: AuthorityAnalysis) -> SecurityFinding:
    if ownership.can_freeze:
        return finding(
            CheckType.FREEZE_AUTHORITY,
            Severity.MEDIUM,
            CheckResult.WARNING,
            "Freeze Authority Active",
            "The owner can freeze individual token accounts.",
            details={"authority": ownership.owner_address},
            recommendation="Accounts can be frozen by owner. Moderate risk.",
        )
    return finding(
        CheckType.FREEZE_AUTHORITY,
        Severity.INFO,
        CheckResult.PASSED,
        "Freeze Authority Disabled",
        "User accounts cannot be frozen.",
    )


def _concentration_finding(finding, concentration: HolderConcentration) -> SecurityFinding:
    if concentration.is_concentrated:
        severity = Severity.HIGH if concentration.largest_holder_pct > 50 else Severity.MEDIUM
        return finding(
            CheckType.HOLDER_CONCENTRATION,
            severity,
            CheckResult.WARNING,
            "High Holder Concentration",
            f"Top holders control {concentration.top10_pct:.1f}% of supply.",
            details={
                "largest_holder_pct": concentration.largest_holder_pct,
                "top10_pct": concentration.top10_pct,
                "total_holders": concentration.total_holders,
            },
            recommendation="High concentration means whales can manipulate price.",
        )
    return finding(
        CheckType.HOLDER_CONCENTRATION,
        Severity.INFO,
        CheckResult.PASSED,
        "Good Token Distribution",
        "Token holdings are well distributed.",
        details={
            "top10_pct": concentration.top10_pct,
            "total_holders": concentration.total_holders,
        },
    )


def _liquidity_finding(finding, liquidity: LiquidityAnalysis) -> SecurityFinding:
    details: dict[str, Any] = {
        "total_liquidity_usd": liquidity.total_liquidity_usd,
        "locked_pct": liquidity.locked_pct,
    }
    if not liquidity.is_locked:
        return finding(
            CheckType.LIQUIDITY_LOCK,
            Severity.CRITICAL,
            CheckResult.FAILED,
            "Liquidity Not Locked",
            "DEX liquidity is not locked. High rug pull risk.",
            details=details,
            recommendation="Do not invest. Developers can drain liquidity at any time.",
        )

    details["lock_expires_at"] = (
        liquidity.lock_expires_at.isoformat() if liquidity.lock_expires_at else None
    )
    if liquidity.locked_pct < PARTIAL_LOCK_THRESHOLD:
        return finding(
            CheckType.LIQUIDITY_LOCK,
            Severity.MEDIUM,
            CheckResult.WARNING,
            "Partially Locked Liquidity",
            f"Only {liquidity.locked_pct:.1f}% of liquidity is locked.",
            details=details,
            recommendation="Partial rug pull risk exists.",
        )
    return finding(
        CheckType.LIQUIDITY_LOCK,
        Severity.INFO,
        CheckResult.PASSED,
        "Liquidity Locked",
        f"{liquidity.locked_pct:.1f}% of liquidity is locked.",
        details=details,
    )
