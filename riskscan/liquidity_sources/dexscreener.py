"""DexScreener pairs: liquidity only, no lock information."""

import asyncio
from decimal import Decimal

import httpx
from loguru import logger
from pydantic import BaseModel

from riskscan.chain.jupiter import WSOL_MINT
from riskscan.chain.rate_limiter import RateLimiter
from riskscan.liquidity_sources.base import LiquiditySourceError
from riskscan.security.models import LiquidityPool

BASE_URL = "https://api.dexscreener.com"
MAX_RETRIES = 3
RETRY_DELAYS = [1.0, 2.0, 4.0]


class DexScreenerToken(BaseModel):
    address: str
    symbol: str | None = None

    model_config = {"extra": "ignore"}


class DexScreenerLiquidity(BaseModel):
    usd: Decimal | None = None
    base: Decimal | None = None
    quote: Decimal | None = None

    model_config = {"extra": "ignore"}


class DexScreenerPair(BaseModel):
    chainId: str = ""
    dexId: str = ""
    pairAddress: str = ""
    baseToken: DexScreenerToken | None = None
    quoteToken: DexScreenerToken | None = None
    liquidity: DexScreenerLiquidity | None = None

    model_config = {"extra": "ignore"}

    @property
    def native_liquidity(self) -> Decimal:
        if self.liquidity is None:
            return Decimal(0)
        if self.quoteToken and self.quoteToken.address == WSOL_MINT:
            return self.liquidity.quote or Decimal(0)
        if self.baseToken and self.baseToken.address == WSOL_MINT:
            return self.liquidity.base or Decimal(0)
        return Decimal(0)


class DexScreenerLiquiditySource:
    """Async REST client for the DexScreener public API (no auth required)."""

    name = "dexscreener"

    def __init__(self, max_rps: float = 4.0, timeout: float = 10.0) -> None:
        self._client = httpx.AsyncClient(
            base_url=BASE_URL,
            timeout=timeout,
            headers={"Accept": "application/json"},
        )
        self._rate_limiter = RateLimiter(max_rps)

    async def close(self) -> None:
        await self._client.aclose()

    async def _request_with_retry(self, path: str) -> httpx.Response:
        """GET with retry on 429/timeout. Raises LiquiditySourceError when exhausted."""
        last_error = ""
        for attempt in range(MAX_RETRIES):
            delay = RETRY_DELAYS[min(attempt, len(RETRY_DELAYS) - 1)]
            await self._rate_limiter.acquire()
            try:
                response = await self._client.get(path)
            except (httpx.TimeoutException, httpx.ConnectError) as e:
                last_error = f"{type(e).__name__}: {e}"
                if attempt < MAX_RETRIES - 1:
                    logger.debug(f"[DEXSCREENER] {type(e).__name__}, retrying in {delay}s")
                    await asyncio.sleep(delay)
                continue

            if response.status_code == 429:
                last_error = "HTTP 429"
                retry_after = response.headers.get("Retry-After")
                if retry_after:
                    try:
                        delay = max(float(retry_after), delay)
                    except ValueError:
                        pass
                if attempt < MAX_RETRIES - 1:
                    logger.debug(f"[DEXSCREENER] 429 rate limited, retrying in {delay}s")
                    await asyncio.sleep(delay)
                continue

            if response.status_code != 200:
                raise LiquiditySourceError(f"DexScreener HTTP {response.status_code} for {path}")
            return response

        logger.warning(f"[DEXSCREENER] Failed after {MAX_RETRIES} attempts: {last_error}")
        raise LiquiditySourceError(f"DexScreener unavailable: {last_error}")

    async def get_token_pairs(self, token_address: str) -> list[DexScreenerPair]:
        """All Solana pairs for a token."""
        response = await self._request_with_retry(f"/token-pairs/v1/solana/{token_address}")
        data = response.json()
        if isinstance(data, list):
            raw_pairs = data
        else:
            raw_pairs = data.get("pairs", data.get("pair", []))
            if not isinstance(raw_pairs, list):
                raw_pairs = [raw_pairs] if raw_pairs else []
        return [DexScreenerPair.model_validate(p) for p in raw_pairs]

    async def get_pools(self, token_address: str) -> list[LiquidityPool]:
        pairs = await self.get_token_pairs(token_address)
        return [
            LiquidityPool(
                dex=pair.dexId or self.name,
                pair_address=pair.pairAddress,
                liquidity_usd=float(pair.liquidity.usd or 0) if pair.liquidity else 0.0,
                liquidity_native=float(pair.native_liquidity),
                is_locked=False,
            )
            for pair in pairs
            if pair.pairAddress and pair.chainId in ("", "solana")
        ]
