"""TTL cache for complete scan bundles.

Entries are replaced wholesale on write, so a reader sees either the old
bundle or the new one, never a mix. The in-memory cache keeps its own deep
copy and hands out copies, so callers cannot alter what later readers get.
"""

import threading
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass

from loguru import logger
from pydantic import ValidationError
from redis.asyncio import Redis
from redis.exceptions import RedisError

from riskscan.security.exceptions import CacheError
from riskscan.security.models import SecurityScanResult

DEFAULT_TTL_SEC = 300
REDIS_KEY_PREFIX = "riskscan:scan"


@dataclass(frozen=True)
class CacheEntry:
    key: str
    value: SecurityScanResult
    stored_at: float


class ScanCache(ABC):
    """Address -> scan bundle, live for `ttl_sec` after the write."""

    @abstractmethod
    async def get(self, address: str) -> SecurityScanResult | None: ...

    @abstractmethod
    async def set(self, address: str, result: SecurityScanResult) -> None: ...

    @abstractmethod
    async def invalidate(self, address: str) -> None: ...

    @abstractmethod
    async def clear(self) -> None: ...


class InMemoryScanCache(ScanCache):
    """Process-local cache. Expired entries are dropped lazily on lookup."""

    def __init__(
        self, ttl_sec: float = DEFAULT_TTL_SEC, clock: Callable[[], float] = time.monotonic
    ) -> None:
        self._ttl = ttl_sec
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    async def get(self, address: str) -> SecurityScanResult | None:
        with self._lock:
            entry = self._entries.get(address)
            if entry is None:
                return None
            if self._clock() - entry.stored_at >= self._ttl:
                del self._entries[address]
                return None
            value = entry.value
        return value.model_copy(deep=True)

    async def set(self, address: str, result: SecurityScanResult) -> None:
        entry = CacheEntry(key=address, value=result.model_copy(deep=True), stored_at=self._clock())
        with self._lock:
            self._entries[address] = entry

    async def invalidate(self, address: str) -> None:
        with self._lock:
            self._entries.pop(address, None)

    async def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class RedisScanCache(ScanCache):
    """Shared cache across workers. Expiry is delegated to Redis (SET ... EX)."""

    def __init__(
        self, redis: Redis, ttl_sec: int = DEFAULT_TTL_SEC, prefix: str = REDIS_KEY_PREFIX
    ) -> None:
        self._redis = redis
        self._ttl = int(ttl_sec)
        self._prefix = prefix

    def _key(self, address: str) -> str:
        return f"{self._prefix}:{address}"

    async def get(self, address: str) -> SecurityScanResult | None:
        try:
            raw = await self._redis.get(self._key(address))
        except RedisError as e:
            raise CacheError(f"Redis GET failed: {e}") from e
        if raw is None:
            return None
        try:
            return SecurityScanResult.model_validate_json(raw)
        except ValidationError as e:
            # Stale schema or corrupted value, treat as a miss
            logger.warning(f"[CACHE] Dropping undecodable entry for {address[:12]}: {e}")
            await self.invalidate(address)
            return None

    async def set(self, address: str, result: SecurityScanResult) -> None:
        try:
            await self._redis.set(self._key(address), result.model_dump_json(), ex=self._ttl)
        except RedisError as e:
            raise CacheError(f"Redis SET failed: {e}") from e

    async def invalidate(self, address: str) -> None:
        try:
            await self._redis.delete(self._key(address))
        except RedisError as e:
            raise CacheError(f"Redis DEL failed: {e}") from e

    async def clear(self) -> None:
        try:
            keys = [key async for key in self._redis.scan_iter(match=f"{self._prefix}:*")]
            if keys:
                await self._redis.delete(*keys)
        except RedisError as e:
            raise CacheError(f"Redis clear failed: {e}") from e

    async def close(self) -> None:
        await self._redis.aclose()


def create_cache(settings) -> ScanCache:
    """Pick the cache backend from settings (`cache_backend`: memory | redis)."""
    if settings.cache_backend == "redis":
        logger.info(f"[CACHE] Using Redis backend, ttl={settings.cache_ttl_sec}s")
        redis = Redis.from_url(settings.redis_url, decode_responses=True)
        return RedisScanCache(redis, ttl_sec=settings.cache_ttl_sec)
    logger.info(f"[CACHE] Using in-memory backend, ttl={settings.cache_ttl_sec}s")
    return InMemoryScanCache(ttl_sec=settings.cache_ttl_sec)
