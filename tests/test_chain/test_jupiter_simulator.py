"""Tests for Jupiter quote-based buy/sell simulation."""

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from riskscan.chain.exceptions import SimulationUnavailableError
from riskscan.chain.jupiter import BUY_AMOUNT_LAMPORTS, WSOL_MINT, JupiterTradeSimulator
from tests.fakes import MINT


def _response(status_code: int, body: dict | None = None) -> MagicMock:
    resp = MagicMock()
    resp.status_code = status_code
    resp.json.return_value = body or {}
    return resp


@pytest.fixture
def jupiter() -> JupiterTradeSimulator:
    sim = JupiterTradeSimulator(max_rps=1000.0)
    sim._client = AsyncMock()
    return sim


@pytest.fixture
def no_sleep():
    with patch("riskscan.chain.jupiter.asyncio.sleep", new=AsyncMock()) as sleep:
        yield sleep


class TestSimulateSell:
    @pytest.mark.asyncio
    async def test_sellable_token(self, jupiter: JupiterTradeSimulator) -> None:
        jupiter._client.get = AsyncMock(
            return_value=_response(200, {"outAmount": "500000000", "priceImpactPct": "2.5"})
        )

        result = await jupiter.simulate_sell(MINT, decimals=9)

        assert result.success is True
        assert result.out_amount == 500_000_000
        assert result.price_impact_pct == 2.5
        assert result.error is None
        params = jupiter._client.get.await_args.kwargs["params"]
        assert params["inputMint"] == MINT
        assert params["outputMint"] == WSOL_MINT
        assert params["amount"] == str(1000 * 10**9)

    @pytest.mark.asyncio
    async def test_no_route_found(self, jupiter: JupiterTradeSimulator) -> None:
        """No route is a verdict about the token, not an outage."""
        jupiter._client.get = AsyncMock(
            return_value=_response(400, {"error": "No route found for the given input and output mints"})
        )

        result = await jupiter.simulate_sell(MINT)

        assert result.success is False
        assert "No route" in result.error

    @pytest.mark.asyncio
    async def test_zero_output_is_failure(self, jupiter: JupiterTradeSimulator) -> None:
        jupiter._client.get = AsyncMock(return_value=_response(200, {"outAmount": "0"}))

        result = await jupiter.simulate_sell(MINT)

        assert result.success is False
        assert result.error == "Zero output amount"

    @pytest.mark.asyncio
    async def test_401_raises_unavailable(self, jupiter: JupiterTradeSimulator) -> None:
        jupiter._client.get = AsyncMock(return_value=_response(401))

        with pytest.raises(SimulationUnavailableError, match="401"):
            await jupiter.simulate_sell(MINT)

    @pytest.mark.asyncio
    async def test_timeout_raises_unavailable(
        self, jupiter: JupiterTradeSimulator, no_sleep: AsyncMock
    ) -> None:
        jupiter._client.get = AsyncMock(side_effect=httpx.TimeoutException("timeout"))

        with pytest.raises(SimulationUnavailableError):
            await jupiter.simulate_sell(MINT)
        assert jupiter._client.get.await_count == 3


class TestSimulateBuy:
    @pytest.mark.asyncio
    async def test_buy_quotes_sol_to_token(self, jupiter: JupiterTradeSimulator) -> None:
        jupiter._client.get = AsyncMock(return_value=_response(200, {"outAmount": "1234"}))

        result = await jupiter.simulate_buy(MINT)

        assert result.success is True
        params = jupiter._client.get.await_args.kwargs["params"]
        assert params["inputMint"] == WSOL_MINT
        assert params["outputMint"] == MINT
        assert params["amount"] == str(BUY_AMOUNT_LAMPORTS)

    @pytest.mark.asyncio
    async def test_429_retried(self, jupiter: JupiterTradeSimulator, no_sleep: AsyncMock) -> None:
        jupiter._client.get = AsyncMock(
            side_effect=[_response(429), _response(200, {"outAmount": "10"})]
        )

        result = await jupiter.simulate_buy(MINT)

        assert result.success is True
        assert jupiter._client.get.await_count == 2


def test_api_key_sent_as_header() -> None:
    sim = JupiterTradeSimulator(api_key="secret")
    assert sim._client.headers["x-api-key"] == "secret"
