"""Binary decoders for SPL Token / Token2022 mint and token accounts."""

import struct
from enum import IntEnum

import base58

from riskscan.chain.models import MintInfo

TOKEN_PROGRAM_ID = "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA"
TOKEN_2022_PROGRAM_ID = "TokenzQdBNbLqP5VEhdkAS6EPFLC1PHnBqCXEpPxuEb"
TOKEN_PROGRAMS = frozenset({TOKEN_PROGRAM_ID, TOKEN_2022_PROGRAM_ID})

# SPL Token mint layout: 82 bytes
# [0:36]   mintAuthorityOption (4) + mintAuthority (32)
# [36:44]  supply (u64)
# [44:45]  decimals (u8)
# [45:46]  isInitialized (bool)
# [46:82]  freezeAuthorityOption (4) + freezeAuthority (32)
SPL_MINT_SIZE = 82

# Token account layout: mint (32) + owner (32) + amount (u64) + ...
TOKEN_ACCOUNT_SIZE = 165
TOKEN_ACCOUNT_OWNER_OFFSET = 32
TOKEN_ACCOUNT_SLICE_LEN = 40  # owner + amount

# Token2022 pads mints to the token account size, then one AccountType byte
EXTENSION_ACCOUNT_TYPE_OFFSET = TOKEN_ACCOUNT_SIZE
EXTENSION_TLV_OFFSET = TOKEN_ACCOUNT_SIZE + 1

# TransferFeeConfig: 2 authorities (64) + withheld (8) + older fee (18) + newer fee (18)
# TransferFee: epoch (u64) + maximum_fee (u64) + basis_points (u16)
_NEWER_FEE_BPS_OFFSET = 64 + 8 + 18 + 16

NULL_ADDRESS = "11111111111111111111111111111111"


class Token2022ExtType(IntEnum):
    """Known Token2022 extension types."""

    TRANSFER_FEE_CONFIG = 1
    TRANSFER_FEE_AMOUNT = 2
    MINT_CLOSE_AUTHORITY = 3
    CONFIDENTIAL_TRANSFER_MINT = 4
    CONFIDENTIAL_TRANSFER_ACCOUNT = 5
    DEFAULT_ACCOUNT_STATE = 6
    IMMUTABLE_OWNER = 7
    MEMO_TRANSFER = 8
    NON_TRANSFERABLE = 9
    INTEREST_BEARING_CONFIG = 10
    CPI_GUARD = 11
    PERMANENT_DELEGATE = 12
    NON_TRANSFERABLE_ACCOUNT = 13
    TRANSFER_HOOK = 14
    TRANSFER_HOOK_ACCOUNT = 15
    METADATA_POINTER = 18
    TOKEN_METADATA = 19
    GROUP_POINTER = 20
    GROUP_MEMBER_POINTER = 22


class DecodeError(ValueError):
    pass


def decode_mint(raw: bytes, *, address: str = "", owner_program: str = TOKEN_PROGRAM_ID) -> MintInfo:
    """Decode raw mint account bytes (SPL Token or Token2022)."""
    if len(raw) < SPL_MINT_SIZE:
        raise DecodeError(f"Mint data too short: {len(raw)} bytes")

    mint_authority = _decode_coption_pubkey(raw, 0)
    supply = struct.unpack_from("<Q", raw, 36)[0]
    decimals = raw[44]
    is_initialized = raw[45] == 1
    freeze_authority = _decode_coption_pubkey(raw, 46)

    is_token2022 = owner_program == TOKEN_2022_PROGRAM_ID
    tlv = parse_extensions(raw) if len(raw) > EXTENSION_TLV_OFFSET else {}

    fee_bps = None
    fee_config = tlv.get(Token2022ExtType.TRANSFER_FEE_CONFIG)
    if fee_config is not None:
        fee_bps = decode_transfer_fee_bps(fee_config)

    return MintInfo(
        address=address,
        owner_program=owner_program,
        supply=supply,
        decimals=decimals,
        is_initialized=is_initialized,
        mint_authority=mint_authority,
        freeze_authority=freeze_authority,
        is_token2022=is_token2022 or bool(tlv),
        extensions=list(tlv),
        transfer_fee_bps=fee_bps,
    )


def parse_extensions(raw: bytes) -> dict[int, bytes]:
    """Parse Token2022 extension TLV entries: u16 type + u16 length + value.

    Returns extension type -> raw value, in on-chain order.
    """
    extensions: dict[int, bytes] = {}
    offset = EXTENSION_TLV_OFFSET

    while offset + 4 <= len(raw):
        ext_type, ext_len = struct.unpack_from("<HH", raw, offset)
        if ext_type == 0 and ext_len == 0:
            break  # Uninitialized tail

        value = raw[offset + 4:offset + 4 + ext_len]
        extensions[ext_type] = value
        offset += 4 + ext_len

    return extensions


def decode_transfer_fee_bps(value: bytes) -> int:
    """Basis points of the newer transfer fee in a TransferFeeConfig extension."""
    if len(value) < _NEWER_FEE_BPS_OFFSET + 2:
        raise DecodeError(f"TransferFeeConfig too short: {len(value)} bytes")
    return struct.unpack_from("<H", value, _NEWER_FEE_BPS_OFFSET)[0]


def decode_token_account_slice(raw: bytes) -> tuple[str, int]:
    """Decode (owner, amount) from a token account sliced at the owner offset."""
    if len(raw) < TOKEN_ACCOUNT_SLICE_LEN:
        raise DecodeError(f"Token account slice too short: {len(raw)} bytes")
    owner = base58.b58encode(raw[:32]).decode("ascii")
    amount = struct.unpack_from("<Q", raw, 32)[0]
    return owner, amount


def _decode_coption_pubkey(raw: bytes, offset: int) -> str | None:
    """COption<Pubkey>: 4 bytes tag + 32 bytes key. None tag or null key = renounced."""
    tag = struct.unpack_from("<I", raw, offset)[0]
    if tag != 1:
        return None
    key = base58.b58encode(raw[offset + 4:offset + 36]).decode("ascii")
    if key == NULL_ADDRESS:
        return None
    return key
