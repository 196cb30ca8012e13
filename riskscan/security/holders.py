"""Holder concentration analysis from raw token account balances.

Percentages are relative to the sum of balances actually observed, which is
bounded by the enumeration limit. For tokens with more accounts than the
limit this overstates concentration; it is never checked against mint
supply.
"""

import asyncio
from collections import defaultdict
from collections.abc import Callable, Mapping
from datetime import UTC, datetime

from loguru import logger

from config.known_addresses import CONTRACT_LABEL, KNOWN_HOLDER_LABELS
from riskscan.chain.base import ChainClient
from riskscan.chain.decoder import TOKEN_PROGRAMS
from riskscan.chain.exceptions import ChainClientError
from riskscan.chain.models import TokenAccountBalance
from riskscan.security.exceptions import HolderAnalysisError
from riskscan.security.models import HolderConcentration, TopHolder

MAX_TOP_HOLDERS = 50
LARGEST_HOLDER_THRESHOLD = 50.0
TOP10_THRESHOLD = 75.0
MAX_CONCURRENT_LOOKUPS = 10


def _utcnow() -> datetime:
    return datetime.now(UTC)


def default_holder_concentration(
    token_address: str, analyzed_at: datetime | None = None
) -> HolderConcentration:
    return HolderConcentration(token_address=token_address, analyzed_at=analyzed_at or _utcnow())


def aggregate_balances(accounts: list[TokenAccountBalance]) -> list[tuple[str, int]]:
    """Sum balances per owner, drop empties, sort by balance desc (address breaks ties)."""
    per_owner: dict[str, int] = defaultdict(int)
    for account in accounts:
        if account.balance > 0:
            per_owner[account.owner] += account.balance
    return sorted(per_owner.items(), key=lambda item: (-item[1], item[0]))


def _pct(part: int, total: int) -> float:
    if total <= 0:
        return 0.0
    return round(part / total * 100, 2)


class HolderAnalyzer:
    def __init__(
        self,
        chain: ChainClient,
        labels: Mapping[str, str] = KNOWN_HOLDER_LABELS,
        enumeration_limit: int = 1000,
        contract_check_limit: int = MAX_TOP_HOLDERS,
        max_concurrent_lookups: int = MAX_CONCURRENT_LOOKUPS,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._chain = chain
        self._labels = labels
        self._enumeration_limit = enumeration_limit
        self._contract_check_limit = min(contract_check_limit, MAX_TOP_HOLDERS)
        self._max_concurrent_lookups = max_concurrent_lookups
        self._clock = clock

    async def analyze(self, token_address: str) -> HolderConcentration:
        try:
            mint_account = await self._chain.get_account_info(token_address)
            if mint_account is None:
                raise HolderAnalysisError(f"Token {token_address} does not exist on chain")
            if mint_account.owner not in TOKEN_PROGRAMS:
                raise HolderAnalysisError(
                    f"{token_address} is owned by {mint_account.owner}, not a token program"
                )
            accounts = await self._chain.enumerate_token_accounts(
                token_address, self._enumeration_limit, mint_account.owner
            )
        except ChainClientError as e:
            raise HolderAnalysisError(f"Token account enumeration failed: {e}") from e

        holders = aggregate_balances(accounts)
        total = sum(balance for _, balance in holders)
        now = self._clock()

        if not holders:
            logger.debug(f"[HOLDERS] {token_address[:12]} has no funded accounts")
            return default_holder_concentration(token_address, now)

        # Prefix sums over integer balances keep top10 <= top20 <= top50 after rounding
        top10_pct = _pct(sum(b for _, b in holders[:10]), total)
        top20_pct = _pct(sum(b for _, b in holders[:20]), total)
        top50_pct = _pct(sum(b for _, b in holders[:50]), total)
        largest_address, largest_balance = holders[0]
        largest_pct = _pct(largest_balance, total)

        top_holders = await self._build_top_holders(holders[:MAX_TOP_HOLDERS], total)

        logger.debug(
            f"[HOLDERS] {token_address[:12]} holders={len(holders)} "
            f"largest={largest_pct}% top10={top10_pct}%"
        )

        return HolderConcentration(
            token_address=token_address,
            total_holders=len(holders),
            top10_pct=top10_pct,
            top20_pct=top20_pct,
            top50_pct=top50_pct,
            largest_holder_pct=largest_pct,
            largest_holder_address=largest_address,
            is_concentrated=check_holder_concentration(largest_pct, top10_pct),
            top_holders=top_holders,
            analyzed_at=now,
        )

    async def _build_top_holders(self, holders: list[tuple[str, int]], total: int) -> list[TopHolder]:
        checked = holders[:self._contract_check_limit]
        semaphore = asyncio.Semaphore(self._max_concurrent_lookups)

        async def _check_one(address: str) -> bool:
            async with semaphore:
                return await self._chain.is_executable(address)

        results = await asyncio.gather(
            *(_check_one(address) for address, _ in checked),
            return_exceptions=True,
        )

        is_contract: dict[str, bool] = {}
        for (address, _), result in zip(checked, results):
            if isinstance(result, BaseException):
                logger.debug(f"[HOLDERS] Executable check failed for {address[:12]}: {result}")
                is_contract[address] = False
            else:
                is_contract[address] = bool(result)

        top_holders: list[TopHolder] = []
        for address, balance in holders:
            contract = is_contract.get(address, False)
            label = self._labels.get(address)
            if label is None and contract:
                label = CONTRACT_LABEL
            top_holders.append(
                TopHolder(
                    address=address,
                    balance=str(balance),
                    percentage=_pct(balance, total),
                    is_contract=contract,
                    label=label,
                )
            )
        return top_holders


def calculate_top_holder_percentage(holders: list[TopHolder], top_n: int) -> float:
    """Share held by the first `top_n` holders of an already-sorted list."""
    if not holders:
        return 0.0
    return round(sum(h.percentage for h in holders[:top_n]), 2)


def check_holder_concentration(largest_pct: float, top10_pct: float) -> bool:
    return largest_pct > LARGEST_HOLDER_THRESHOLD or top10_pct > TOP10_THRESHOLD


def calculate_concentration_risk(analysis: HolderConcentration) -> int:
    risk = 0

    largest = analysis.largest_holder_pct
    if largest > 80:
        risk = 100
    elif largest > 50:
        risk = 80
    elif largest > 25:
        risk = 50
    elif largest > 10:
        risk = 25

    if analysis.top10_pct > 90:
        risk += 20
    elif analysis.top10_pct > 75:
        risk += 15
    elif analysis.top10_pct > 50:
        risk += 10

    if analysis.total_holders < 100:
        risk += 20
    elif analysis.total_holders < 500:
        risk += 10

    return min(100, risk)


def get_concentration_recommendations(analysis: HolderConcentration) -> list[str]:
    recommendations: list[str] = []
    largest = analysis.largest_holder_pct
    top10 = analysis.top10_pct

    if largest > 50:
        recommendations.append(
            f"Largest holder owns {largest:.1f}% of supply. Extreme concentration risk."
        )
    elif largest > 25:
        recommendations.append(
            f"Largest holder owns {largest:.1f}% of supply. Moderate concentration risk."
        )
    else:
        recommendations.append(f"Largest holder owns {largest:.1f}% of supply. Good distribution.")

    if top10 > 75:
        recommendations.append(
            f"Top 10 holders control {top10:.1f}% of supply. High manipulation risk."
        )
    elif top10 > 50:
        recommendations.append(f"Top 10 holders control {top10:.1f}% of supply. Moderate risk.")
    else:
        recommendations.append(f"Top 10 holders control {top10:.1f}% of supply. Well distributed.")

    if analysis.total_holders < 100:
        recommendations.append(f"Only {analysis.total_holders} holders. Very low adoption.")
    elif analysis.total_holders > 1000:
        recommendations.append(f"{analysis.total_holders} holders. Good adoption.")

    return recommendations
