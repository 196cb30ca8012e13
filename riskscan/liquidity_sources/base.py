"""Pluggable DEX pool discovery and lock-program verification."""

from collections.abc import Iterable
from typing import Protocol

from config.known_addresses import VERIFIED_LOCK_PROGRAMS
from riskscan.security.models import LiquidityPool


class LiquiditySource(Protocol):
    name: str

    async def get_pools(self, token_address: str) -> list[LiquidityPool]: ...


class LockVerifier(Protocol):
    def is_verified_lock_program(self, program_address: str) -> bool: ...


class StaticLockVerifier:
    """Allowlist of known liquidity locker programs."""

    def __init__(self, programs: Iterable[str] = VERIFIED_LOCK_PROGRAMS) -> None:
        self._programs = frozenset(programs)

    def is_verified_lock_program(self, program_address: str) -> bool:
        return program_address in self._programs


class LiquiditySourceError(Exception):
    pass
