"""Jupiter Quote API trade simulator: buy/sell dry-runs with zero funds committed.

A swap quote is requested in both directions. No route (HTTP 400) means the
trade would fail; an unreachable or unauthorized API means we simply don't
know, and raises SimulationUnavailableError instead of returning a verdict.
"""

import asyncio

import httpx
from loguru import logger

from riskscan.chain.exceptions import SimulationUnavailableError
from riskscan.chain.models import TransferSimulation
from riskscan.chain.rate_limiter import RateLimiter

QUOTE_URL = "https://api.jup.ag/swap/v1/quote"
WSOL_MINT = "So11111111111111111111111111111111111111112"
BUY_AMOUNT_LAMPORTS = 10_000_000  # 0.01 SOL
SELL_AMOUNT_TOKENS = 1000
SLIPPAGE_BPS = "5000"  # 50% tolerance, we only care whether a route exists
MAX_RETRIES = 2
RETRY_DELAYS = [1.0, 3.0]


class JupiterTradeSimulator:
    """Async Jupiter quote client (free tier: 1 RPS, API key optional)."""

    def __init__(self, api_key: str = "", max_rps: float = 1.0, timeout: float = 10.0) -> None:
        self._rate_limiter = RateLimiter(max_rps)
        headers: dict[str, str] = {}
        if api_key:
            headers["x-api-key"] = api_key
        self._client = httpx.AsyncClient(timeout=timeout, headers=headers)

    async def close(self) -> None:
        await self._client.aclose()

    async def simulate_buy(self, mint: str) -> TransferSimulation:
        """Quote SOL -> token."""
        return await self.simulate_transfer(WSOL_MINT, mint, BUY_AMOUNT_LAMPORTS)

    async def simulate_sell(self, mint: str, decimals: int = 6) -> TransferSimulation:
        """Quote token -> SOL for a fixed token amount."""
        raw_amount = SELL_AMOUNT_TOKENS * (10 ** decimals)
        return await self.simulate_transfer(mint, WSOL_MINT, raw_amount)

    async def simulate_transfer(
        self, input_mint: str, output_mint: str, amount: int
    ) -> TransferSimulation:
        params = {
            "inputMint": input_mint,
            "outputMint": output_mint,
            "amount": str(amount),
            "slippageBps": SLIPPAGE_BPS,
        }
        last_error = ""

        for attempt in range(MAX_RETRIES + 1):
            delay = RETRY_DELAYS[min(attempt, len(RETRY_DELAYS) - 1)]
            try:
                await self._rate_limiter.acquire()
                resp = await self._client.get(QUOTE_URL, params=params)

                if resp.status_code == 429 or resp.status_code >= 500:
                    last_error = f"HTTP {resp.status_code}"
                    if attempt < MAX_RETRIES:
                        logger.debug(f"[JUPITER] Quote {last_error}, retry in {delay}s")
                        await asyncio.sleep(delay)
                    continue

                if resp.status_code == 400:
                    return TransferSimulation(success=False, error=_error_message(resp))

                if resp.status_code != 200:
                    raise SimulationUnavailableError(f"Jupiter quote HTTP {resp.status_code}")

                data = resp.json()
                out_amount = int(data.get("outAmount", 0) or 0)
                price_impact = data.get("priceImpactPct")
                return TransferSimulation(
                    success=out_amount > 0,
                    error=None if out_amount > 0 else "Zero output amount",
                    out_amount=out_amount,
                    price_impact_pct=float(price_impact) if price_impact else None,
                )

            except (httpx.TimeoutException, httpx.ConnectError) as e:
                last_error = f"{type(e).__name__}: {e}"
                if attempt < MAX_RETRIES:
                    logger.debug(f"[JUPITER] Quote {type(e).__name__}, retry in {delay}s")
                    await asyncio.sleep(delay)

        logger.warning(f"[JUPITER] Quote failed after {MAX_RETRIES + 1} attempts: {last_error}")
        raise SimulationUnavailableError(f"Jupiter quote unavailable: {last_error}")


def _error_message(resp: httpx.Response) -> str:
    try:
        data = resp.json()
    except ValueError:
        return resp.text or "No route"
    return str(data.get("error", data.get("message", "No route")))
