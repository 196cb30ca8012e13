"""Tests for mint / freeze authority analysis and ownership risk."""

import pytest
from pydantic import ValidationError

from riskscan.security.authority import (
    AuthorityAnalyzer,
    calculate_ownership_risk,
    default_authority_analysis,
    get_authority_recommendations,
)
from riskscan.security.exceptions import AuthorityCheckError
from riskscan.security.models import AuthorityAnalysis
from tests.fakes import AUTHORITY, MINT, NOW, FakeChainClient, build_mint_data

FREEZER = "So11111111111111111111111111111111111111112"


def _analysis(**overrides) -> AuthorityAnalysis:
    can_mint = overrides.pop("can_mint", False)
    can_freeze = overrides.pop("can_freeze", False)
    return AuthorityAnalysis(
        token_address=MINT,
        can_mint=can_mint,
        can_freeze=can_freeze,
        mint_renounced=not can_mint,
        freeze_renounced=not can_freeze,
        analyzed_at=NOW,
        **overrides,
    )


class TestAuthorityAnalyzer:
    @pytest.mark.asyncio
    async def test_active_mint_authority(self) -> None:
        chain = FakeChainClient(build_mint_data(mint_authority=AUTHORITY))

        analysis = await AuthorityAnalyzer(chain, clock=lambda: NOW).analyze(MINT)

        assert analysis.can_mint is True
        assert analysis.mint_renounced is False
        assert analysis.can_freeze is False
        assert analysis.freeze_renounced is True
        assert analysis.owner_address == AUTHORITY
        assert analysis.can_update is False
        assert analysis.update_renounced is False
        assert analysis.is_renounced is False

    @pytest.mark.asyncio
    async def test_fully_renounced(self) -> None:
        chain = FakeChainClient(build_mint_data())

        analysis = await AuthorityAnalyzer(chain).analyze(MINT)

        assert analysis.is_renounced is True
        assert analysis.owner_address is None
        assert analysis.creator_holdings_pct == 0.0
        assert "get_owner_token_balance" not in chain.calls

    @pytest.mark.asyncio
    async def test_creator_holdings_relative_to_supply(self) -> None:
        chain = FakeChainClient(
            build_mint_data(mint_authority=AUTHORITY, supply=1_000_000),
            owner_balance=333_333,
        )

        analysis = await AuthorityAnalyzer(chain).analyze(MINT)

        assert analysis.creator_holdings_pct == 33.33

    @pytest.mark.asyncio
    async def test_creator_balance_failure_counts_as_zero(self) -> None:
        chain = FakeChainClient(
            build_mint_data(freeze_authority=AUTHORITY),
            owner_balance=999,
            failing={"get_owner_token_balance"},
        )

        analysis = await AuthorityAnalyzer(chain).analyze(MINT)

        assert analysis.owner_address == AUTHORITY
        assert analysis.creator_holdings_pct == 0.0

    @pytest.mark.asyncio
    async def test_mint_lookup_failure_raises(self) -> None:
        chain = FakeChainClient(build_mint_data(), failing={"get_mint_info"})

        with pytest.raises(AuthorityCheckError):
            await AuthorityAnalyzer(chain).analyze(MINT)

    @pytest.mark.asyncio
    async def test_individual_checks(self) -> None:
        chain = FakeChainClient(build_mint_data(freeze_authority=FREEZER))
        analyzer = AuthorityAnalyzer(chain)

        mint = await analyzer.check_mint_authority(MINT)
        freeze = await analyzer.check_freeze_authority(MINT)

        assert mint.is_renounced is True
        assert mint.authority is None
        assert freeze.is_renounced is False
        assert freeze.authority == FREEZER
        assert await analyzer.get_contract_owner(MINT) == FREEZER

    @pytest.mark.asyncio
    async def test_contract_owner_prefers_mint_authority(self) -> None:
        chain = FakeChainClient(build_mint_data(mint_authority=AUTHORITY, freeze_authority=FREEZER))

        assert await AuthorityAnalyzer(chain).get_contract_owner(MINT) == AUTHORITY

    @pytest.mark.asyncio
    async def test_update_authority_unknown(self) -> None:
        result = await AuthorityAnalyzer(FakeChainClient(build_mint_data())).check_update_authority(MINT)

        assert result.is_renounced is False
        assert result.authority is None


class TestOwnershipRisk:
    def test_mint_only(self) -> None:
        assert calculate_ownership_risk(_analysis(can_mint=True)) == 40

    def test_mint_and_freeze(self) -> None:
        assert calculate_ownership_risk(_analysis(can_mint=True, can_freeze=True)) == 70

    def test_everything_capped(self) -> None:
        analysis = _analysis(can_mint=True, can_freeze=True, can_update=True, creator_holdings_pct=60)
        assert calculate_ownership_risk(analysis) == 100

    @pytest.mark.parametrize("pct, expected", [(25.0, 0), (25.01, 10), (50.0, 10), (50.01, 20)])
    def test_creator_holdings_tiers(self, pct: float, expected: int) -> None:
        assert calculate_ownership_risk(_analysis(creator_holdings_pct=pct)) == expected

    def test_skipped_checks_excluded(self) -> None:
        analysis = _analysis(can_mint=True, can_freeze=True)
        assert calculate_ownership_risk(analysis, include_mint=False) == 30
        assert calculate_ownership_risk(analysis, include_freeze=False) == 40

    def test_default_is_zero_risk(self) -> None:
        assert calculate_ownership_risk(default_authority_analysis(MINT, analyzed_at=NOW)) == 0


class TestAuthorityModel:
    def test_renounced_must_mirror_capability(self) -> None:
        with pytest.raises(ValidationError):
            AuthorityAnalysis(
                token_address=MINT,
                can_mint=True,
                can_freeze=False,
                mint_renounced=True,
                freeze_renounced=True,
                analyzed_at=NOW,
            )

    def test_creator_pct_bounded(self) -> None:
        with pytest.raises(ValidationError):
            _analysis(creator_holdings_pct=101)


def test_recommendations_for_renounced_token() -> None:
    recommendations = get_authority_recommendations(_analysis())

    assert "Mint authority is renounced. Token supply is fixed." in recommendations
    assert any("fully decentralized" in r for r in recommendations)


def test_recommendations_for_active_authorities() -> None:
    recommendations = get_authority_recommendations(
        _analysis(can_mint=True, can_freeze=True, creator_holdings_pct=75)
    )

    assert recommendations[0].startswith("Mint authority is active")
    assert recommendations[1].startswith("Freeze authority is active")
    assert recommendations[-1].startswith("Creator holds more than 50%")
