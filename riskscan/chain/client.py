"""Solana JSON-RPC client: mint state, token accounts, executability."""

import asyncio
import base64
from typing import Any

import httpx
from loguru import logger

from riskscan.chain.decoder import (
    TOKEN_ACCOUNT_OWNER_OFFSET,
    TOKEN_ACCOUNT_SIZE,
    TOKEN_ACCOUNT_SLICE_LEN,
    TOKEN_PROGRAM_ID,
    TOKEN_PROGRAMS,
    DecodeError,
    decode_mint,
    decode_token_account_slice,
)
from riskscan.chain.exceptions import AccountNotFoundError, ChainClientError
from riskscan.chain.models import AccountInfo, MintInfo, TokenAccountBalance
from riskscan.chain.rate_limiter import RateLimiter

MAX_RETRIES = 2
RETRY_DELAYS = [1.0, 3.0]


class SolanaRpcClient:
    """Async JSON-RPC client for a Solana node.

    Unlike the fire-and-forget data clients, every method raises
    ChainClientError on failure so the caller can tell "no data" apart
    from "clean token".
    """

    def __init__(self, rpc_url: str, max_rps: float = 10.0, timeout: float = 10.0) -> None:
        self._rpc_url = rpc_url
        self._rate_limiter = RateLimiter(max_rps)
        self._client = httpx.AsyncClient(timeout=timeout)
        self._request_id = 0

    async def close(self) -> None:
        await self._client.aclose()

    async def _call(self, method: str, params: list[Any]) -> Any:
        """Execute one JSON-RPC call with retry on 429/5xx/timeout."""
        self._request_id += 1
        payload = {
            "jsonrpc": "2.0",
            "id": self._request_id,
            "method": method,
            "params": params,
        }
        last_error = ""

        for attempt in range(MAX_RETRIES + 1):
            delay = RETRY_DELAYS[min(attempt, len(RETRY_DELAYS) - 1)]
            try:
                await self._rate_limiter.acquire()
                resp = await self._client.post(self._rpc_url, json=payload)

                if resp.status_code == 429 or resp.status_code >= 500:
                    last_error = f"HTTP {resp.status_code}"
                    if attempt < MAX_RETRIES:
                        logger.debug(f"[RPC] {method} {last_error}, retry in {delay}s")
                        await asyncio.sleep(delay)
                    continue
                if resp.status_code != 200:
                    raise ChainClientError(f"{method}: HTTP {resp.status_code}")

                data = resp.json()
                if "error" in data:
                    raise ChainClientError(f"{method}: RPC error {data['error']}")
                return data.get("result")

            except (httpx.TimeoutException, httpx.ConnectError) as e:
                last_error = f"{type(e).__name__}: {e}"
                if attempt < MAX_RETRIES:
                    logger.debug(f"[RPC] {method} {type(e).__name__}, retry in {delay}s")
                    await asyncio.sleep(delay)

        logger.warning(f"[RPC] {method} failed after {MAX_RETRIES + 1} attempts: {last_error}")
        raise ChainClientError(f"{method} failed after {MAX_RETRIES + 1} attempts: {last_error}")

    async def get_account_info(self, address: str) -> AccountInfo | None:
        """Fetch an account with base64 data. None if the account does not exist."""
        result = await self._call(
            "getAccountInfo",
            [address, {"encoding": "base64", "commitment": "confirmed"}],
        )
        value = (result or {}).get("value")
        if not value:
            return None

        raw_data = value.get("data") or [""]
        return AccountInfo(
            address=address,
            owner=value.get("owner", ""),
            executable=bool(value.get("executable", False)),
            lamports=int(value.get("lamports", 0)),
            data=base64.b64decode(raw_data[0]) if raw_data[0] else b"",
        )

    async def get_mint_info(self, mint: str) -> MintInfo:
        """Fetch and decode a mint account owned by a token program."""
        account = await self.get_account_info(mint)
        if account is None:
            raise AccountNotFoundError(f"Mint {mint} not found")
        if account.owner not in TOKEN_PROGRAMS:
            raise ChainClientError(f"{mint} is owned by {account.owner}, not a token program")

        try:
            return decode_mint(account.data, address=mint, owner_program=account.owner)
        except DecodeError as e:
            raise ChainClientError(f"Cannot decode mint {mint}: {e}") from e

    async def get_mint_authorities(self, mint: str) -> tuple[str | None, str | None]:
        """Return (mint_authority, freeze_authority); None means renounced."""
        info = await self.get_mint_info(mint)
        return info.mint_authority, info.freeze_authority

    async def enumerate_token_accounts(
        self, mint: str, limit: int = 1000, program_id: str = TOKEN_PROGRAM_ID
    ) -> list[TokenAccountBalance]:
        """List token accounts for a mint (owner + raw balance), at most `limit`.

        Only the owner/amount slice of each account is transferred.
        """
        filters: list[dict[str, Any]] = [{"memcmp": {"offset": 0, "bytes": mint}}]
        if program_id == TOKEN_PROGRAM_ID:
            # Token2022 accounts carry extensions, so only fix the size for legacy
            filters.insert(0, {"dataSize": TOKEN_ACCOUNT_SIZE})

        result = await self._call(
            "getProgramAccounts",
            [
                program_id,
                {
                    "encoding": "base64",
                    "commitment": "confirmed",
                    "filters": filters,
                    "dataSlice": {
                        "offset": TOKEN_ACCOUNT_OWNER_OFFSET,
                        "length": TOKEN_ACCOUNT_SLICE_LEN,
                    },
                },
            ],
        )

        accounts: list[TokenAccountBalance] = []
        for entry in (result or [])[:limit]:
            try:
                raw = base64.b64decode(entry["account"]["data"][0])
                owner, amount = decode_token_account_slice(raw)
            except (KeyError, IndexError, ValueError) as e:
                logger.debug(f"[RPC] Skipping undecodable token account {entry.get('pubkey')}: {e}")
                continue
            accounts.append(TokenAccountBalance(owner=owner, balance=amount))

        return accounts

    async def is_executable(self, address: str) -> bool:
        account = await self.get_account_info(address)
        return account is not None and account.executable

    async def get_owner_token_balance(self, owner: str, mint: str) -> int:
        """Sum of `owner`'s raw balances across all token accounts of `mint`."""
        result = await self._call(
            "getTokenAccountsByOwner",
            [owner, {"mint": mint}, {"encoding": "jsonParsed", "commitment": "confirmed"}],
        )
        total = 0
        for entry in (result or {}).get("value", []):
            try:
                amount = entry["account"]["data"]["parsed"]["info"]["tokenAmount"]["amount"]
                total += int(amount)
            except (KeyError, TypeError, ValueError):
                continue
        return total
