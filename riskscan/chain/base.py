"""Collaborator interfaces the analyzers depend on."""

from __future__ import annotations

from typing import Protocol

from riskscan.chain.decoder import TOKEN_PROGRAM_ID
from riskscan.chain.models import AccountInfo, MintInfo, TokenAccountBalance, TransferSimulation


class ChainClient(Protocol):
    """Read-only access to Solana account state."""

    async def get_account_info(self, address: str) -> AccountInfo | None: ...

    async def get_mint_info(self, mint: str) -> MintInfo: ...

    async def get_mint_authorities(self, mint: str) -> tuple[str | None, str | None]: ...

    async def enumerate_token_accounts(
        self, mint: str, limit: int = 1000, program_id: str = TOKEN_PROGRAM_ID
    ) -> list[TokenAccountBalance]: ...

    async def is_executable(self, address: str) -> bool: ...

    async def get_owner_token_balance(self, owner: str, mint: str) -> int: ...


class TradeSimulator(Protocol):
    """Swap dry-run without committing funds."""

    async def simulate_transfer(
        self, input_mint: str, output_mint: str, amount: int
    ) -> TransferSimulation: ...

    async def simulate_buy(self, mint: str) -> TransferSimulation: ...

    async def simulate_sell(self, mint: str, decimals: int = 6) -> TransferSimulation: ...
