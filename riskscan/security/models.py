"""Security scan data model.

Every analyzer result is an immutable pydantic model so a bundle handed to a
caller (or sitting in the cache) can never be half-updated. The whole bundle
serializes with `model_dump(mode="json")`.
"""

from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from riskscan.security.exceptions import InvalidStatusTransitionError


class CheckType(StrEnum):
    HONEYPOT = "honeypot"
    MINT_AUTHORITY = "mint_authority"
    FREEZE_AUTHORITY = "freeze_authority"
    HOLDER_CONCENTRATION = "holder_concentration"
    LIQUIDITY_LOCK = "liquidity_lock"


class Severity(StrEnum):
    INFO = "info"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class CheckResult(StrEnum):
    PASSED = "passed"
    FAILED = "failed"
    WARNING = "warning"
    NOT_APPLICABLE = "not_applicable"


class CheckStatus(StrEnum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class RiskLevel(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class AnalyzerName(StrEnum):
    HONEYPOT = "honeypot"
    AUTHORITY = "authority"
    HOLDERS = "holders"
    LIQUIDITY = "liquidity"


_ALLOWED_TRANSITIONS: dict[CheckStatus, frozenset[CheckStatus]] = {
    CheckStatus.PENDING: frozenset({CheckStatus.RUNNING}),
    CheckStatus.RUNNING: frozenset({CheckStatus.COMPLETED, CheckStatus.FAILED}),
    CheckStatus.COMPLETED: frozenset(),
    CheckStatus.FAILED: frozenset(),
}


def ensure_transition(current: CheckStatus, target: CheckStatus) -> CheckStatus:
    """Validate a status move. Terminal states are final."""
    if target not in _ALLOWED_TRANSITIONS[current]:
        raise InvalidStatusTransitionError(f"{current} -> {target} is not allowed")
    return target


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class AuthorityAnalysis(_Frozen):
    token_address: str
    owner_address: str | None = None
    can_mint: bool
    can_freeze: bool
    can_update: bool = False
    creator_holdings_pct: float = Field(default=0.0, ge=0, le=100)
    mint_renounced: bool
    freeze_renounced: bool
    update_renounced: bool = False
    analyzed_at: datetime

    @model_validator(mode="after")
    def _renounced_matches_capability(self) -> "AuthorityAnalysis":
        if self.mint_renounced == self.can_mint:
            raise ValueError("mint_renounced must equal not can_mint")
        if self.freeze_renounced == self.can_freeze:
            raise ValueError("freeze_renounced must equal not can_freeze")
        return self

    @property
    def is_renounced(self) -> bool:
        """Fully decentralized: both mint and freeze authority gone."""
        return self.mint_renounced and self.freeze_renounced


class TopHolder(_Frozen):
    address: str
    balance: str  # raw units, string to survive JSON without precision loss
    percentage: float
    is_contract: bool = False
    label: str | None = None


class HolderConcentration(_Frozen):
    token_address: str
    total_holders: int = 0
    top10_pct: float = 0.0
    top20_pct: float = 0.0
    top50_pct: float = 0.0
    largest_holder_pct: float = 0.0
    largest_holder_address: str = ""
    is_concentrated: bool = False
    top_holders: list[TopHolder] = Field(default_factory=list, max_length=50)
    analyzed_at: datetime

    @model_validator(mode="after")
    def _prefix_sums_ordered(self) -> "HolderConcentration":
        if not (self.top10_pct <= self.top20_pct <= self.top50_pct <= 100):
            raise ValueError("expected top10_pct <= top20_pct <= top50_pct <= 100")
        if self.total_holders >= 1 and self.largest_holder_pct > self.top10_pct:
            raise ValueError("largest_holder_pct exceeds top10_pct")
        return self


class LiquidityPool(_Frozen):
    dex: str
    pair_address: str
    liquidity_usd: float = 0.0
    liquidity_native: float = 0.0
    is_locked: bool = False
    lock_expires_at: datetime | None = None
    lock_program: str | None = None


class LiquidityAnalysis(_Frozen):
    token_address: str
    total_liquidity_usd: float = 0.0
    total_liquidity_native: float = 0.0
    is_locked: bool = False
    locked_pct: float = Field(default=0.0, ge=0, le=100)
    lock_expires_at: datetime | None = None
    pools: list[LiquidityPool] = Field(default_factory=list)
    liquidity_ratio: float = Field(default=0.0, ge=0)
    analyzed_at: datetime

    @model_validator(mode="after")
    def _locked_flag_matches_pct(self) -> "LiquidityAnalysis":
        if self.is_locked != (self.locked_pct > 0):
            raise ValueError("is_locked must equal locked_pct > 0")
        return self


class SimulationResult(_Frozen):
    success: bool
    error: str | None = None
    units_consumed: int | None = None


class HoneypotCheck(_Frozen):
    token_address: str
    is_honeypot: bool = False
    can_buy: bool = True
    can_sell: bool = True
    buy_tax: float = 0.0
    sell_tax: float = 0.0
    max_tx_amount: str | None = None
    max_wallet_amount: str | None = None
    trading_enabled: bool = True
    has_blacklist: bool = False
    has_whitelist: bool = False
    simulation_result: SimulationResult
    analyzed_at: datetime


class ContractVerification(_Frozen):
    token_address: str
    is_verified: bool = False
    is_proxy: bool = False
    analyzed_at: datetime


class SecurityFinding(_Frozen):
    id: str
    check_type: CheckType
    severity: Severity
    title: str
    description: str
    result: CheckResult
    details: dict[str, Any] | None = None
    recommendation: str | None = None
    detected_at: datetime


class SecurityCheck(_Frozen):
    id: str
    token_address: str
    risk_level: RiskLevel
    risk_score: int = Field(ge=0, le=100)
    status: CheckStatus
    findings: list[SecurityFinding] = Field(default_factory=list)
    passed_checks: int = 0
    failed_checks: int = 0
    warning_checks: int = 0
    total_checks: int = 0
    security_score: int = Field(ge=0, le=100)
    is_contract_verified: bool = False
    is_audited: bool = False
    started_at: datetime
    completed_at: datetime | None = None

    @model_validator(mode="after")
    def _counts_consistent(self) -> "SecurityCheck":
        if self.total_checks != len(self.findings):
            raise ValueError("total_checks must equal the number of findings")
        if self.passed_checks + self.failed_checks + self.warning_checks > self.total_checks:
            raise ValueError("check counts exceed total_checks")
        if self.security_score != 100 - self.risk_score:
            raise ValueError("security_score must equal 100 - risk_score")
        return self


class SecurityScanResult(_Frozen):
    """Complete scan bundle: the check plus every analyzer result it was built from."""

    security_check: SecurityCheck
    ownership: AuthorityAnalysis
    concentration: HolderConcentration
    liquidity: LiquidityAnalysis
    honeypot: HoneypotCheck
    verification: ContractVerification
    degraded_analyzers: list[AnalyzerName] = Field(default_factory=list)
