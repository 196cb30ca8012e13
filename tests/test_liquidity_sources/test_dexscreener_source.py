"""Tests for the DexScreener pair source."""

from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from riskscan.chain.jupiter import WSOL_MINT
from riskscan.liquidity_sources.base import LiquiditySourceError
from riskscan.liquidity_sources.dexscreener import DexScreenerLiquiditySource, DexScreenerPair
from tests.fakes import MINT

PAIRS = [
    {
        "chainId": "solana",
        "dexId": "raydium",
        "pairAddress": "pair-1",
        "baseToken": {"address": MINT, "symbol": "USDC"},
        "quoteToken": {"address": WSOL_MINT, "symbol": "SOL"},
        "liquidity": {"usd": 152_000.25, "base": 76_000, "quote": 506.1},
        "priceUsd": "1.00",
    },
    {
        "chainId": "solana",
        "dexId": "orca",
        "pairAddress": "pair-2",
        "baseToken": {"address": MINT},
        "quoteToken": {"address": "Es9vMFrzaCERmJfrF4H2FYD4KCoNkY11McCe8BenwNYB"},
    },
    {
        "chainId": "ethereum",
        "dexId": "uniswap",
        "pairAddress": "0xabc",
        "liquidity": {"usd": 1_000_000},
    },
]


def _response(status_code: int, body=None) -> MagicMock:
    resp = MagicMock()
    resp.status_code = status_code
    resp.headers = {}
    resp.json.return_value = body
    return resp


@pytest.fixture
def dexscreener() -> DexScreenerLiquiditySource:
    source = DexScreenerLiquiditySource(max_rps=1000.0)
    source._client = AsyncMock()
    return source


def test_native_liquidity_picks_sol_side() -> None:
    pair = DexScreenerPair.model_validate(PAIRS[0])
    assert float(pair.native_liquidity) == 506.1

    no_sol = DexScreenerPair.model_validate(PAIRS[1])
    assert no_sol.native_liquidity == Decimal(0)


@pytest.mark.asyncio
async def test_get_pools_keeps_solana_pairs_unlocked(dexscreener: DexScreenerLiquiditySource) -> None:
    dexscreener._client.get = AsyncMock(return_value=_response(200, PAIRS))

    pools = await dexscreener.get_pools(MINT)

    assert [p.pair_address for p in pools] == ["pair-1", "pair-2"]
    assert pools[0].dex == "raydium"
    assert pools[0].liquidity_usd == 152_000.25
    assert pools[0].liquidity_native == 506.1
    assert pools[1].liquidity_usd == 0.0
    assert all(p.is_locked is False for p in pools)
    dexscreener._client.get.assert_awaited_once_with(f"/token-pairs/v1/solana/{MINT}")


@pytest.mark.asyncio
async def test_wrapped_pairs_payload(dexscreener: DexScreenerLiquiditySource) -> None:
    dexscreener._client.get = AsyncMock(return_value=_response(200, {"pairs": PAIRS[:1]}))

    pairs = await dexscreener.get_token_pairs(MINT)

    assert [p.pairAddress for p in pairs] == ["pair-1"]


@pytest.mark.asyncio
async def test_http_error_raises(dexscreener: DexScreenerLiquiditySource) -> None:
    dexscreener._client.get = AsyncMock(return_value=_response(404))

    with pytest.raises(LiquiditySourceError, match="404"):
        await dexscreener.get_pools(MINT)


@pytest.mark.asyncio
async def test_429_honours_retry_after(dexscreener: DexScreenerLiquiditySource) -> None:
    limited = _response(429)
    limited.headers = {"Retry-After": "5"}
    dexscreener._client.get = AsyncMock(side_effect=[limited, _response(200, PAIRS)])

    with patch("riskscan.liquidity_sources.dexscreener.asyncio.sleep", new=AsyncMock()) as sleep:
        pools = await dexscreener.get_pools(MINT)

    assert len(pools) == 2
    sleep.assert_any_await(5.0)
