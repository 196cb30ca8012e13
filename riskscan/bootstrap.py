"""Wire concrete clients, analyzers and cache into a SecurityScanner."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from loguru import logger

from riskscan.chain.client import SolanaRpcClient
from riskscan.chain.jupiter import JupiterTradeSimulator
from riskscan.liquidity_sources.base import LiquiditySource, StaticLockVerifier
from riskscan.liquidity_sources.dexscreener import DexScreenerLiquiditySource
from riskscan.liquidity_sources.raydium import RaydiumLiquiditySource
from riskscan.metrics import ScanMetrics
from riskscan.security.authority import AuthorityAnalyzer
from riskscan.security.cache import create_cache
from riskscan.security.holders import HolderAnalyzer
from riskscan.security.honeypot import HoneypotAnalyzer
from riskscan.security.liquidity import LiquidityAnalyzer
from riskscan.security.scanner import SecurityScanner


@dataclass
class ScannerContainer:
    """Scanner plus everything holding a connection that must be closed."""

    scanner: SecurityScanner
    closeables: list[Any] = field(default_factory=list)

    async def close(self) -> None:
        for resource in self.closeables:
            try:
                await resource.close()
            except Exception as e:
                logger.warning(f"[SCAN] Error closing {type(resource).__name__}: {e}")


def build_scanner(settings) -> ScannerContainer:
    rpc = SolanaRpcClient(
        settings.solana_rpc_url,
        max_rps=settings.rpc_max_rps,
        timeout=settings.rpc_timeout_sec,
    )
    simulator = JupiterTradeSimulator(
        api_key=settings.jupiter_api_key,
        max_rps=settings.jupiter_max_rps,
        timeout=settings.rpc_timeout_sec,
    )

    sources: list[LiquiditySource] = []
    if settings.enable_raydium:
        sources.append(RaydiumLiquiditySource(max_rps=settings.raydium_max_rps))
    if settings.enable_dexscreener:
        sources.append(DexScreenerLiquiditySource(max_rps=settings.dexscreener_max_rps))
    if not sources:
        logger.warning("[LIQUIDITY] No liquidity sources enabled, liquidity will always degrade")

    cache = create_cache(settings)
    scanner = SecurityScanner(
        honeypot=HoneypotAnalyzer(rpc, simulator),
        authority=AuthorityAnalyzer(rpc),
        holders=HolderAnalyzer(
            rpc,
            enumeration_limit=settings.holder_enumeration_limit,
            contract_check_limit=settings.holder_contract_check_limit,
        ),
        liquidity=LiquidityAnalyzer(sources, StaticLockVerifier()),
        cache=cache,
        metrics=ScanMetrics(),
        analyzer_timeout=settings.analyzer_timeout_sec,
        scan_timeout=settings.scan_timeout_sec,
    )

    closeables: list[Any] = [rpc, simulator, *sources]
    if hasattr(cache, "close"):
        closeables.append(cache)
    return ScannerContainer(scanner=scanner, closeables=closeables)
