"""Decoded on-chain account data consumed by the analyzers."""

from dataclasses import dataclass, field


@dataclass
class AccountInfo:
    """Raw account as returned by getAccountInfo (base64 data decoded)."""

    address: str
    owner: str
    executable: bool = False
    lamports: int = 0
    data: bytes = b""


@dataclass
class MintInfo:
    """Parsed SPL Token / Token2022 mint account."""

    address: str = ""
    owner_program: str = ""
    supply: int = 0
    decimals: int = 0
    is_initialized: bool = False
    mint_authority: str | None = None  # None = renounced
    freeze_authority: str | None = None  # None = renounced
    is_token2022: bool = False
    extensions: list[int] = field(default_factory=list)
    transfer_fee_bps: int | None = None  # TransferFeeConfig, newer fee

    @property
    def mint_authority_active(self) -> bool:
        return self.mint_authority is not None

    @property
    def freeze_authority_active(self) -> bool:
        return self.freeze_authority is not None

    def has_extension(self, ext_type: int) -> bool:
        return ext_type in self.extensions


@dataclass
class TokenAccountBalance:
    """Owner and raw balance of a single token account."""

    owner: str
    balance: int


@dataclass
class TransferSimulation:
    """Outcome of a zero-commitment swap dry-run."""

    success: bool
    error: str | None = None
    out_amount: int = 0
    price_impact_pct: float | None = None
