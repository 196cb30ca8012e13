"""Raydium API v3 pools: liquidity plus LP burn as a permanent lock."""

import asyncio
from dataclasses import dataclass
from decimal import Decimal

import httpx
from loguru import logger

from riskscan.chain.jupiter import WSOL_MINT
from riskscan.chain.rate_limiter import RateLimiter
from riskscan.liquidity_sources.base import LiquiditySourceError
from riskscan.security.models import LiquidityPool

BASE_URL = "https://api-v3.raydium.io"
PAGE_SIZE = 20
LP_BURN_LOCK_THRESHOLD = 50.0
MAX_RETRIES = 2
RETRY_DELAYS = [1.0, 3.0]


@dataclass
class RaydiumPoolInfo:
    pool_id: str = ""
    mint_a: str = ""
    mint_b: str = ""
    amount_a: Decimal = Decimal(0)
    amount_b: Decimal = Decimal(0)
    tvl: Decimal = Decimal(0)
    burn_percent: float = 0.0  # 0-100, share of LP tokens burned

    @property
    def lp_burned(self) -> bool:
        """Burned LP can never be withdrawn, so >50% burned counts as locked."""
        return self.burn_percent > LP_BURN_LOCK_THRESHOLD

    @property
    def native_amount(self) -> Decimal:
        if self.mint_a == WSOL_MINT:
            return self.amount_a
        if self.mint_b == WSOL_MINT:
            return self.amount_b
        return Decimal(0)


class RaydiumLiquiditySource:
    """Async client for Raydium API v3 (free, no key)."""

    name = "raydium"

    def __init__(self, max_rps: float = 5.0, timeout: float = 10.0) -> None:
        self._rate_limiter = RateLimiter(max_rps)
        self._client = httpx.AsyncClient(timeout=timeout)

    async def close(self) -> None:
        await self._client.aclose()

    async def get_pools(self, token_address: str) -> list[LiquidityPool]:
        pools = await self.get_pool_infos(token_address)
        return [
            LiquidityPool(
                dex=self.name,
                pair_address=p.pool_id,
                liquidity_usd=float(p.tvl),
                liquidity_native=float(p.native_amount),
                is_locked=p.lp_burned,
            )
            for p in pools
            if p.pool_id
        ]

    async def get_pool_infos(self, mint: str) -> list[RaydiumPoolInfo]:
        """All standard pools containing `mint`, highest liquidity first."""
        url = f"{BASE_URL}/pools/info/mint"
        params = {
            "mint1": mint,
            "poolType": "standard",
            "poolSortField": "liquidity",
            "sortType": "desc",
            "pageSize": str(PAGE_SIZE),
            "page": "1",
        }
        last_error = ""

        for attempt in range(MAX_RETRIES + 1):
            delay = RETRY_DELAYS[min(attempt, len(RETRY_DELAYS) - 1)]
            try:
                await self._rate_limiter.acquire()
                resp = await self._client.get(url, params=params)

                if resp.status_code == 429:
                    last_error = "HTTP 429"
                    if attempt < MAX_RETRIES:
                        logger.debug(f"[RAYDIUM] Rate limited, waiting {delay}s")
                        await asyncio.sleep(delay)
                    continue

                if resp.status_code != 200:
                    raise LiquiditySourceError(f"Raydium HTTP {resp.status_code} for {mint[:12]}")

                return parse_pools(resp.json())

            except (httpx.TimeoutException, httpx.ConnectError) as e:
                last_error = f"{type(e).__name__}: {e}"
                if attempt < MAX_RETRIES:
                    logger.debug(f"[RAYDIUM] {type(e).__name__}, retry in {delay}s")
                    await asyncio.sleep(delay)

        logger.warning(f"[RAYDIUM] Failed for {mint[:12]}: {last_error}")
        raise LiquiditySourceError(f"Raydium unavailable: {last_error}")


def parse_pools(data: dict) -> list[RaydiumPoolInfo]:
    """Parse Raydium /pools/info/mint response."""
    raw_pools = (data.get("data") or {}).get("data") or []
    return [_parse_pool(pool) for pool in raw_pools if isinstance(pool, dict)]


def _parse_pool(pool: dict) -> RaydiumPoolInfo:
    burn_pct = 0.0
    raw_burn = pool.get("burnPercent", pool.get("burn_percent"))
    if raw_burn is not None:
        try:
            burn_pct = float(raw_burn)
        except (ValueError, TypeError):
            pass

    mint_a = pool.get("mintA", {})
    mint_b = pool.get("mintB", {})

    return RaydiumPoolInfo(
        pool_id=pool.get("id", ""),
        mint_a=mint_a.get("address", "") if isinstance(mint_a, dict) else "",
        mint_b=mint_b.get("address", "") if isinstance(mint_b, dict) else "",
        amount_a=Decimal(str(pool.get("mintAmountA", 0) or 0)),
        amount_b=Decimal(str(pool.get("mintAmountB", 0) or 0)),
        tvl=Decimal(str(pool.get("tvl", 0) or 0)),
        burn_percent=burn_pct,
    )
