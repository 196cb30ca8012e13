"""Tests for finding generation and result counting."""

from datetime import timedelta

from riskscan.security.authority import default_authority_analysis
from riskscan.security.findings import count_check_results, generate_findings
from riskscan.security.holders import default_holder_concentration
from riskscan.security.honeypot import default_honeypot_check
from riskscan.security.models import (
    AuthorityAnalysis,
    CheckResult,
    CheckType,
    HolderConcentration,
    HoneypotCheck,
    LiquidityAnalysis,
    Severity,
    SimulationResult,
)
from tests.fakes import AUTHORITY, MINT, NOW, sequential_ids


def _liquidity(locked_pct: float = 100.0, total: float = 200_000) -> LiquidityAnalysis:
    return LiquidityAnalysis(
        token_address=MINT,
        total_liquidity_usd=total,
        is_locked=locked_pct > 0,
        locked_pct=locked_pct,
        lock_expires_at=NOW + timedelta(days=400) if locked_pct > 0 else None,
        analyzed_at=NOW,
    )


def _findings(
    honeypot: HoneypotCheck | None = None,
    ownership: AuthorityAnalysis | None = None,
    concentration: HolderConcentration | None = None,
    liquidity: LiquidityAnalysis | None = None,
    skipped=(),
):
    return generate_findings(
        honeypot or default_honeypot_check(MINT, analyzed_at=NOW),
        ownership or default_authority_analysis(MINT, analyzed_at=NOW),
        concentration or default_holder_concentration(MINT, analyzed_at=NOW),
        liquidity or _liquidity(),
        id_factory=sequential_ids("f"),
        now=NOW,
        skipped=skipped,
    )


def test_clean_token_passes_everything() -> None:
    findings = _findings()

    assert [f.check_type for f in findings] == list(CheckType)
    assert all(f.result == CheckResult.PASSED for f in findings)
    assert all(f.severity == Severity.INFO for f in findings)
    assert [f.id for f in findings] == ["f-1", "f-2", "f-3", "f-4", "f-5"]
    assert all(f.detected_at == NOW for f in findings)


def test_honeypot_is_critical_failure() -> None:
    honeypot = HoneypotCheck(
        token_address=MINT,
        is_honeypot=True,
        can_sell=False,
        simulation_result=SimulationResult(success=False, error="No route"),
        analyzed_at=NOW,
    )

    finding = _findings(honeypot=honeypot)[0]

    assert finding.title == "Honeypot Detected"
    assert finding.severity == Severity.CRITICAL
    assert finding.result == CheckResult.FAILED
    assert finding.details == {"can_buy": True, "can_sell": False, "sell_tax": 0.0}


def test_active_authorities() -> None:
    ownership = AuthorityAnalysis(
        token_address=MINT,
        owner_address=AUTHORITY,
        can_mint=True,
        can_freeze=True,
        mint_renounced=False,
        freeze_renounced=False,
        analyzed_at=NOW,
    )

    _, mint, freeze, _, _ = _findings(ownership=ownership)

    assert (mint.title, mint.severity, mint.result) == (
        "Mint Authority Not Renounced", Severity.HIGH, CheckResult.FAILED,
    )
    assert mint.details == {"authority": AUTHORITY}
    assert (freeze.title, freeze.severity, freeze.result) == (
        "Freeze Authority Active", Severity.MEDIUM, CheckResult.WARNING,
    )


def test_concentration_severity_depends_on_largest_holder() -> None:
    def concentration(largest: float, top10: float) -> HolderConcentration:
        return HolderConcentration(
            token_address=MINT,
            total_holders=40,
            largest_holder_pct=largest,
            top10_pct=top10,
            top20_pct=top10,
            top50_pct=top10,
            is_concentrated=True,
            analyzed_at=NOW,
        )

    high = _findings(concentration=concentration(60.0, 90.0))[3]
    medium = _findings(concentration=concentration(20.0, 80.0))[3]

    assert high.severity == Severity.HIGH
    assert high.result == CheckResult.WARNING
    assert high.description == "Top holders control 90.0% of supply."
    assert medium.severity == Severity.MEDIUM


def test_liquidity_tiers() -> None:
    unlocked = _findings(liquidity=_liquidity(0.0))[4]
    partial = _findings(liquidity=_liquidity(79.9))[4]
    full = _findings(liquidity=_liquidity(80.0))[4]

    assert (unlocked.severity, unlocked.result) == (Severity.CRITICAL, CheckResult.FAILED)
    assert unlocked.title == "Liquidity Not Locked"
    assert (partial.severity, partial.result) == (Severity.MEDIUM, CheckResult.WARNING)
    assert (full.severity, full.result) == (Severity.INFO, CheckResult.PASSED)
    assert full.details["lock_expires_at"] == (NOW + timedelta(days=400)).isoformat()


def test_skipped_checks_become_not_applicable() -> None:
    findings = _findings(
        liquidity=_liquidity(0.0),
        skipped={CheckType.LIQUIDITY_LOCK, CheckType.FREEZE_AUTHORITY},
    )

    assert len(findings) == 5
    freeze, liquidity = findings[2], findings[4]
    for finding in (freeze, liquidity):
        assert finding.result == CheckResult.NOT_APPLICABLE
        assert finding.severity == Severity.INFO
        assert finding.title == "Check Skipped"
    assert liquidity.description == "The liquidity lock check was skipped for this scan."


def test_count_check_results() -> None:
    findings = _findings(liquidity=_liquidity(50.0), skipped={CheckType.HONEYPOT})

    counts = count_check_results(findings)

    assert counts.total == 5
    assert counts.passed == 3
    assert counts.warning == 1
    assert counts.failed == 0
