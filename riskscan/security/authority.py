"""Mint / freeze / update authority analysis.

An active mint authority can inflate supply; an active freeze authority can
lock any holder's account. Both are read straight from the mint account.
"""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime

from loguru import logger

from riskscan.chain.base import ChainClient
from riskscan.chain.exceptions import ChainClientError
from riskscan.security.exceptions import AuthorityCheckError
from riskscan.security.models import AuthorityAnalysis


@dataclass
class AuthorityResult:
    is_renounced: bool
    authority: str | None = None


def _utcnow() -> datetime:
    return datetime.now(UTC)


def default_authority_analysis(
    token_address: str, analyzed_at: datetime | None = None
) -> AuthorityAnalysis:
    """Nothing active, everything renounced-consistent."""
    return AuthorityAnalysis(
        token_address=token_address,
        can_mint=False,
        can_freeze=False,
        can_update=False,
        creator_holdings_pct=0.0,
        mint_renounced=True,
        freeze_renounced=True,
        update_renounced=True,
        analyzed_at=analyzed_at or _utcnow(),
    )


class AuthorityAnalyzer:
    def __init__(self, chain: ChainClient, clock: Callable[[], datetime] = _utcnow) -> None:
        self._chain = chain
        self._clock = clock

    async def analyze(self, token_address: str) -> AuthorityAnalysis:
        try:
            mint = await self._chain.get_mint_info(token_address)
        except ChainClientError as e:
            raise AuthorityCheckError(f"Mint lookup failed for {token_address}: {e}") from e

        owner = mint.mint_authority or mint.freeze_authority
        update = await self.check_update_authority(token_address)

        creator_pct = 0.0
        if owner and mint.supply > 0:
            creator_pct = await self._creator_holdings_pct(owner, token_address, mint.supply)

        return AuthorityAnalysis(
            token_address=token_address,
            owner_address=owner,
            can_mint=mint.mint_authority_active,
            can_freeze=mint.freeze_authority_active,
            can_update=update.authority is not None,
            creator_holdings_pct=creator_pct,
            mint_renounced=not mint.mint_authority_active,
            freeze_renounced=not mint.freeze_authority_active,
            update_renounced=update.is_renounced,
            analyzed_at=self._clock(),
        )

    async def check_mint_authority(self, token_address: str) -> AuthorityResult:
        mint_authority, _ = await self._get_authorities(token_address)
        return AuthorityResult(is_renounced=mint_authority is None, authority=mint_authority)

    async def check_freeze_authority(self, token_address: str) -> AuthorityResult:
        _, freeze_authority = await self._get_authorities(token_address)
        return AuthorityResult(is_renounced=freeze_authority is None, authority=freeze_authority)

    async def get_contract_owner(self, token_address: str) -> str | None:
        """Mint authority, else freeze authority, else None (fully decentralized)."""
        mint_authority, freeze_authority = await self._get_authorities(token_address)
        return mint_authority or freeze_authority

    async def check_update_authority(self, token_address: str) -> AuthorityResult:
        """Metadata update authority.

        Not looked up: reading it needs the Metaplex metadata account, which
        this scanner does not decode yet. Reports "not updatable, not
        renounced" so neither the risk score nor the renounced flag claims
        knowledge we don't have.
        """
        return AuthorityResult(is_renounced=False, authority=None)

    async def _get_authorities(self, token_address: str) -> tuple[str | None, str | None]:
        try:
            return await self._chain.get_mint_authorities(token_address)
        except ChainClientError as e:
            raise AuthorityCheckError(f"Mint lookup failed for {token_address}: {e}") from e

    async def _creator_holdings_pct(self, owner: str, token_address: str, supply: int) -> float:
        try:
            balance = await self._chain.get_owner_token_balance(owner, token_address)
        except ChainClientError as e:
            logger.debug(f"[AUTHORITY] Creator balance lookup failed for {token_address[:12]}: {e}")
            return 0.0
        pct = balance / supply * 100
        return round(min(100.0, max(0.0, pct)), 2)


def calculate_ownership_risk(
    analysis: AuthorityAnalysis, *, include_mint: bool = True, include_freeze: bool = True
) -> int:
    """0-100. include_mint/include_freeze drop the contribution of a skipped check."""
    risk = 0
    if include_mint and analysis.can_mint:
        risk += 40
    if include_freeze and analysis.can_freeze:
        risk += 30
    if analysis.can_update:
        risk += 10

    if analysis.creator_holdings_pct > 50:
        risk += 20
    elif analysis.creator_holdings_pct > 25:
        risk += 10

    return min(100, risk)


def get_authority_recommendations(analysis: AuthorityAnalysis) -> list[str]:
    recommendations: list[str] = []

    if analysis.can_mint:
        recommendations.append(
            "Mint authority is active. The owner can create unlimited new tokens, "
            "potentially diluting your holdings."
        )
    else:
        recommendations.append("Mint authority is renounced. Token supply is fixed.")

    if analysis.can_freeze:
        recommendations.append(
            "Freeze authority is active. The owner can freeze individual accounts, "
            "preventing transfers."
        )
    else:
        recommendations.append("Freeze authority is disabled. User accounts cannot be frozen.")

    if analysis.is_renounced:
        recommendations.append("All authorities are renounced. The token is fully decentralized.")

    if analysis.creator_holdings_pct > 50:
        recommendations.append("Creator holds more than 50% of supply. High centralization risk.")

    return recommendations
