"""Honeypot detection: can the token be bought AND sold?

Flow: mint must exist -> quote a buy -> quote a sell -> inspect Token2022
transfer restrictions and fees -> derive is_honeypot.

A failed quote (no route) is a honeypot signal. An unreachable simulator is
not: it raises, and the scanner substitutes the non-honeypot default so a
network outage never produces a false positive.
"""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime

from loguru import logger

from riskscan.chain.base import ChainClient, TradeSimulator
from riskscan.chain.decoder import (
    TOKEN_PROGRAM_ID,
    TOKEN_PROGRAMS,
    DecodeError,
    Token2022ExtType,
    decode_mint,
)
from riskscan.chain.models import MintInfo
from riskscan.security.exceptions import HoneypotCheckError
from riskscan.security.models import HoneypotCheck, SimulationResult

# Extensions that let a third party block or claw back transfers
_BLACKLIST_EXTENSIONS = (Token2022ExtType.TRANSFER_HOOK, Token2022ExtType.PERMANENT_DELEGATE)
# New accounts start frozen until the authority thaws them
_WHITELIST_EXTENSIONS = (Token2022ExtType.DEFAULT_ACCOUNT_STATE,)

SELL_TAX_HONEYPOT_THRESHOLD = 50.0
DEFAULT_DECIMALS = 6


@dataclass
class TransferRestrictions:
    has_blacklist: bool = False
    has_whitelist: bool = False
    max_tx_amount: str | None = None
    max_wallet_amount: str | None = None


def _utcnow() -> datetime:
    return datetime.now(UTC)


def default_honeypot_check(
    token_address: str, error: str = "Check failed", analyzed_at: datetime | None = None
) -> HoneypotCheck:
    """Non-honeypot-biased result used when the check cannot run."""
    return HoneypotCheck(
        token_address=token_address,
        simulation_result=SimulationResult(success=False, error=error),
        analyzed_at=analyzed_at or _utcnow(),
    )


def is_honeypot_verdict(
    *, can_sell: bool, sell_tax: float, trading_enabled: bool, has_blacklist: bool
) -> bool:
    return (
        not can_sell
        or sell_tax > SELL_TAX_HONEYPOT_THRESHOLD
        or not trading_enabled
        or (has_blacklist and not can_sell)
    )


def calculate_honeypot_risk(check: HoneypotCheck) -> int:
    return 100 if check.is_honeypot else 0


class HoneypotAnalyzer:
    def __init__(
        self,
        chain: ChainClient,
        simulator: TradeSimulator,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._chain = chain
        self._simulator = simulator
        self._clock = clock

    async def analyze(self, token_address: str) -> HoneypotCheck:
        """Run the full honeypot check. Raises on data failure."""
        account = await self._chain.get_account_info(token_address)
        if account is None:
            raise HoneypotCheckError("Token does not exist on chain")

        mint = _try_decode_mint(token_address, account.owner, account.data)
        now = self._clock()

        buy = await self._simulator.simulate_buy(token_address)
        if not buy.success:
            logger.info(f"[HONEYPOT] {token_address[:12]} buy simulation failed: {buy.error}")
            return HoneypotCheck(
                token_address=token_address,
                is_honeypot=True,
                can_buy=False,
                simulation_result=SimulationResult(success=False, error=buy.error),
                analyzed_at=now,
            )

        decimals = mint.decimals if mint else DEFAULT_DECIMALS
        sell = await self._simulator.simulate_sell(token_address, decimals)
        if not sell.success:
            logger.info(f"[HONEYPOT] {token_address[:12]} sell simulation failed: {sell.error}")
            return HoneypotCheck(
                token_address=token_address,
                is_honeypot=True,
                can_sell=False,
                simulation_result=SimulationResult(success=False, error=sell.error),
                analyzed_at=now,
            )

        restrictions = analyze_transfer_restrictions(account.owner, mint)
        trading_enabled = is_trading_enabled(mint, account.data)
        buy_tax, sell_tax = estimate_transfer_taxes(mint)

        is_honeypot = is_honeypot_verdict(
            can_sell=True,
            sell_tax=sell_tax,
            trading_enabled=trading_enabled,
            has_blacklist=restrictions.has_blacklist,
        )

        return HoneypotCheck(
            token_address=token_address,
            is_honeypot=is_honeypot,
            can_buy=True,
            can_sell=True,
            buy_tax=buy_tax,
            sell_tax=sell_tax,
            max_tx_amount=restrictions.max_tx_amount,
            max_wallet_amount=restrictions.max_wallet_amount,
            trading_enabled=trading_enabled,
            has_blacklist=restrictions.has_blacklist,
            has_whitelist=restrictions.has_whitelist,
            simulation_result=SimulationResult(success=True),
            analyzed_at=now,
        )


async def check_honeypot(analyzer: HoneypotAnalyzer, token_address: str) -> HoneypotCheck:
    """Like analyzer.analyze, but never raises: falls back to the non-honeypot default."""
    try:
        return await analyzer.analyze(token_address)
    except Exception as e:
        logger.warning(f"[HONEYPOT] {token_address[:12]} check failed: {e}")
        return default_honeypot_check(token_address, error=str(e))


def analyze_transfer_restrictions(owner_program: str, mint: MintInfo | None) -> TransferRestrictions:
    """Blacklist/whitelist hooks from Token2022 extensions.

    Classic SPL mints have none. Mints owned by a custom program would need
    program analysis we don't do, so they get conservative False flags.
    """
    if owner_program == TOKEN_PROGRAM_ID:
        return TransferRestrictions()

    if owner_program not in TOKEN_PROGRAMS or mint is None:
        logger.debug(f"[HONEYPOT] Custom token program {owner_program[:12]}, restrictions unknown")
        return TransferRestrictions()

    return TransferRestrictions(
        has_blacklist=any(mint.has_extension(ext) for ext in _BLACKLIST_EXTENSIONS),
        has_whitelist=any(mint.has_extension(ext) for ext in _WHITELIST_EXTENSIONS),
    )


def is_trading_enabled(mint: MintInfo | None, raw_data: bytes) -> bool:
    if mint is None:
        return len(raw_data) > 0
    return mint.is_initialized and not mint.has_extension(Token2022ExtType.NON_TRANSFERABLE)


def estimate_transfer_taxes(mint: MintInfo | None) -> tuple[float, float]:
    """(buy_tax, sell_tax) in percent. Only Token2022 transfer fees are detected."""
    if mint is None or mint.transfer_fee_bps is None:
        return 0.0, 0.0
    tax = mint.transfer_fee_bps / 100
    return tax, tax


def _try_decode_mint(token_address: str, owner_program: str, data: bytes) -> MintInfo | None:
    if owner_program not in TOKEN_PROGRAMS:
        return None
    try:
        return decode_mint(data, address=token_address, owner_program=owner_program)
    except DecodeError as e:
        raise HoneypotCheckError(f"Cannot decode mint {token_address}: {e}") from e
