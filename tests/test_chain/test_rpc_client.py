"""Tests for the Solana JSON-RPC client (HTTP layer mocked)."""

import base64
import struct
from unittest.mock import AsyncMock, MagicMock, patch

import base58
import httpx
import pytest

from riskscan.chain.client import SolanaRpcClient
from riskscan.chain.decoder import TOKEN_2022_PROGRAM_ID, TOKEN_PROGRAM_ID
from riskscan.chain.exceptions import AccountNotFoundError, ChainClientError
from tests.fakes import AUTHORITY, MINT, build_mint_data


def _response(status_code: int = 200, body: dict | None = None) -> MagicMock:
    resp = MagicMock()
    resp.status_code = status_code
    resp.json.return_value = body if body is not None else {}
    return resp


def _account(data: bytes, owner: str = TOKEN_PROGRAM_ID, executable: bool = False) -> dict:
    return {
        "jsonrpc": "2.0",
        "id": 1,
        "result": {
            "value": {
                "owner": owner,
                "executable": executable,
                "lamports": 1_461_600,
                "data": [base64.b64encode(data).decode(), "base64"],
            }
        },
    }


def _slice_entry(owner: str, amount: int) -> dict:
    raw = base58.b58decode(owner) + struct.pack("<Q", amount)
    return {"pubkey": "acct", "account": {"data": [base64.b64encode(raw).decode(), "base64"]}}


@pytest.fixture
def rpc() -> SolanaRpcClient:
    client = SolanaRpcClient("http://rpc.test", max_rps=1000.0)
    client._client = AsyncMock()
    return client


@pytest.fixture
def no_sleep():
    with patch("riskscan.chain.client.asyncio.sleep", new=AsyncMock()) as sleep:
        yield sleep


class TestGetAccountInfo:
    @pytest.mark.asyncio
    async def test_decodes_base64_data(self, rpc: SolanaRpcClient) -> None:
        rpc._client.post = AsyncMock(return_value=_response(body=_account(b"\x01\x02", executable=True)))

        account = await rpc.get_account_info(MINT)

        assert account is not None
        assert account.data == b"\x01\x02"
        assert account.owner == TOKEN_PROGRAM_ID
        assert account.executable is True

    @pytest.mark.asyncio
    async def test_missing_account_returns_none(self, rpc: SolanaRpcClient) -> None:
        rpc._client.post = AsyncMock(return_value=_response(body={"result": {"value": None}}))

        assert await rpc.get_account_info(MINT) is None

    @pytest.mark.asyncio
    async def test_rpc_error_raises(self, rpc: SolanaRpcClient) -> None:
        body = {"error": {"code": -32602, "message": "Invalid param"}}
        rpc._client.post = AsyncMock(return_value=_response(body=body))

        with pytest.raises(ChainClientError, match="RPC error"):
            await rpc.get_account_info(MINT)

    @pytest.mark.asyncio
    async def test_client_error_status_not_retried(self, rpc: SolanaRpcClient) -> None:
        rpc._client.post = AsyncMock(return_value=_response(403))

        with pytest.raises(ChainClientError, match="403"):
            await rpc.get_account_info(MINT)
        assert rpc._client.post.await_count == 1


class TestRetry:
    @pytest.mark.asyncio
    async def test_429_then_success(self, rpc: SolanaRpcClient, no_sleep: AsyncMock) -> None:
        rpc._client.post = AsyncMock(
            side_effect=[_response(429), _response(body={"result": {"value": None}})]
        )

        assert await rpc.get_account_info(MINT) is None
        assert rpc._client.post.await_count == 2
        no_sleep.assert_any_await(1.0)

    @pytest.mark.asyncio
    async def test_exhausted_retries_raise(self, rpc: SolanaRpcClient, no_sleep: AsyncMock) -> None:
        rpc._client.post = AsyncMock(return_value=_response(503))

        with pytest.raises(ChainClientError, match="failed after 3 attempts"):
            await rpc.get_account_info(MINT)
        assert rpc._client.post.await_count == 3

    @pytest.mark.asyncio
    async def test_timeout_retried_then_raises(self, rpc: SolanaRpcClient, no_sleep: AsyncMock) -> None:
        rpc._client.post = AsyncMock(side_effect=httpx.TimeoutException("timed out"))

        with pytest.raises(ChainClientError, match="TimeoutException"):
            await rpc.get_account_info(MINT)
        assert rpc._client.post.await_count == 3


class TestGetMintInfo:
    @pytest.mark.asyncio
    async def test_decodes_mint(self, rpc: SolanaRpcClient) -> None:
        raw = build_mint_data(mint_authority=AUTHORITY, decimals=9)
        rpc._client.post = AsyncMock(return_value=_response(body=_account(raw)))

        mint = await rpc.get_mint_info(MINT)

        assert mint.address == MINT
        assert mint.decimals == 9
        assert mint.mint_authority == AUTHORITY
        assert await rpc.get_mint_authorities(MINT) == (AUTHORITY, None)

    @pytest.mark.asyncio
    async def test_missing_mint(self, rpc: SolanaRpcClient) -> None:
        rpc._client.post = AsyncMock(return_value=_response(body={"result": {"value": None}}))

        with pytest.raises(AccountNotFoundError):
            await rpc.get_mint_info(MINT)

    @pytest.mark.asyncio
    async def test_not_owned_by_token_program(self, rpc: SolanaRpcClient) -> None:
        raw = build_mint_data()
        rpc._client.post = AsyncMock(return_value=_response(body=_account(raw, owner=AUTHORITY)))

        with pytest.raises(ChainClientError, match="not a token program"):
            await rpc.get_mint_info(MINT)

    @pytest.mark.asyncio
    async def test_undecodable_mint(self, rpc: SolanaRpcClient) -> None:
        rpc._client.post = AsyncMock(return_value=_response(body=_account(b"\x00" * 10)))

        with pytest.raises(ChainClientError, match="Cannot decode"):
            await rpc.get_mint_info(MINT)


class TestEnumerateTokenAccounts:
    @pytest.mark.asyncio
    async def test_legacy_filters_and_slice(self, rpc: SolanaRpcClient) -> None:
        body = {"result": [_slice_entry(AUTHORITY, 500), _slice_entry(MINT, 0)]}
        rpc._client.post = AsyncMock(return_value=_response(body=body))

        accounts = await rpc.enumerate_token_accounts(MINT)

        assert [(a.owner, a.balance) for a in accounts] == [(AUTHORITY, 500), (MINT, 0)]
        payload = rpc._client.post.await_args.kwargs["json"]
        program, config = payload["params"]
        assert payload["method"] == "getProgramAccounts"
        assert program == TOKEN_PROGRAM_ID
        assert config["filters"][0] == {"dataSize": 165}
        assert config["filters"][1] == {"memcmp": {"offset": 0, "bytes": MINT}}
        assert config["dataSlice"] == {"offset": 32, "length": 40}

    @pytest.mark.asyncio
    async def test_token2022_has_no_size_filter(self, rpc: SolanaRpcClient) -> None:
        rpc._client.post = AsyncMock(return_value=_response(body={"result": []}))

        await rpc.enumerate_token_accounts(MINT, program_id=TOKEN_2022_PROGRAM_ID)

        _, config = rpc._client.post.await_args.kwargs["json"]["params"]
        assert config["filters"] == [{"memcmp": {"offset": 0, "bytes": MINT}}]

    @pytest.mark.asyncio
    async def test_truncates_to_limit_and_skips_bad_entries(self, rpc: SolanaRpcClient) -> None:
        body = {
            "result": [
                {"pubkey": "bad", "account": {"data": [""]}},
                _slice_entry(AUTHORITY, 1),
                _slice_entry(AUTHORITY, 2),
            ]
        }
        rpc._client.post = AsyncMock(return_value=_response(body=body))

        accounts = await rpc.enumerate_token_accounts(MINT, limit=2)

        assert [a.balance for a in accounts] == [1]


class TestOwnerBalance:
    @pytest.mark.asyncio
    async def test_sums_parsed_amounts(self, rpc: SolanaRpcClient) -> None:
        def entry(amount: str) -> dict:
            return {"account": {"data": {"parsed": {"info": {"tokenAmount": {"amount": amount}}}}}}

        body = {"result": {"value": [entry("100"), entry("250"), {"account": {}}]}}
        rpc._client.post = AsyncMock(return_value=_response(body=body))

        assert await rpc.get_owner_token_balance(AUTHORITY, MINT) == 350

    @pytest.mark.asyncio
    async def test_is_executable(self, rpc: SolanaRpcClient) -> None:
        rpc._client.post = AsyncMock(return_value=_response(body=_account(b"", executable=True)))

        assert await rpc.is_executable(AUTHORITY) is True
