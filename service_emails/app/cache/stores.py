"""
Cache store backends.

Both backends implement the same small capability: ``get_string``,
``set_string`` with an :class:`ExpirationPolicy`, ``remove`` and ``ping``.
Backend failures surface as ``CacheUnavailableError`` so the access layer can
degrade to the document store.
"""

import asyncio
import time
from typing import Callable, Dict, Optional, Protocol

import redis.asyncio as redis
from redis.exceptions import RedisError

from shared.errors import CacheUnavailableError, DeserializationError
from shared.logging import get_logger
from .policy import CacheEntry, ExpirationPolicy

# Redis hash layout, one hash per cache key
ABSOLUTE_FIELD = "absexp"
SLIDING_FIELD = "sldexp"
DATA_FIELD = "data"
NOT_PRESENT = "-1"

_BACKEND_ERRORS = (RedisError, OSError, asyncio.TimeoutError)


class CacheStore(Protocol):
    """Key/value store with sliding and absolute expiration."""

    async def get_string(self, key: str) -> Optional[str]: ...

    async def set_string(self, key: str, value: str, policy: ExpirationPolicy) -> None: ...

    async def remove(self, key: str) -> None: ...

    async def ping(self) -> bool: ...


def _to_ms(seconds: float) -> int:
    return max(1, int(seconds * 1000))


class RedisCacheStore:
    """Redis-backed cache store.

    Redis only knows a single TTL per key, so the sliding window and the
    absolute deadline are kept in the hash and the TTL is recomputed on every
    read as ``min(now + sliding, absolute_deadline)``.
    """

    def __init__(
        self,
        redis_url: str,
        instance_name: str = "",
        *,
        socket_timeout: float = 5.0,
        client: Optional[redis.Redis] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.redis_url = redis_url
        self.instance_name = instance_name
        self.socket_timeout = socket_timeout
        self.logger = get_logger("emails.cache.redis")
        self._redis: Optional[redis.Redis] = client
        self._clock = clock

    def _get_redis(self) -> redis.Redis:
        if self._redis is None:
            self._redis = redis.from_url(
                self.redis_url,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=self.socket_timeout,
                socket_timeout=self.socket_timeout,
                health_check_interval=30
            )
        return self._redis

    def _full_key(self, key: str) -> str:
        return f"{self.instance_name}{key}"

    async def get_string(self, key: str) -> Optional[str]:
        full_key = self._full_key(key)
        client = self._get_redis()
        try:
            absolute, sliding, data = await client.hmget(full_key, ABSOLUTE_FIELD, SLIDING_FIELD, DATA_FIELD)
        except _BACKEND_ERRORS as e:
            raise CacheUnavailableError("Redis read failed", {"key": key, "error": str(e)}) from e

        if data is None:
            return None

        try:
            entry = CacheEntry(
                key=key,
                value=data,
                sliding_seconds=self._parse_field(sliding),
                absolute_deadline=self._parse_field(absolute),
            )
        except ValueError as e:
            raise DeserializationError("Malformed cache entry metadata", {"key": key}) from e

        now = self._clock()
        ttl = entry.remaining_ttl(now)
        if ttl is not None and ttl <= 0:
            # Past the absolute deadline but not yet evicted by Redis
            return None

        if entry.sliding_seconds is not None:
            try:
                await client.pexpire(full_key, _to_ms(ttl))
            except _BACKEND_ERRORS as e:
                raise CacheUnavailableError("Redis refresh failed", {"key": key, "error": str(e)}) from e

        return data

    async def set_string(self, key: str, value: str, policy: ExpirationPolicy) -> None:
        full_key = self._full_key(key)
        now = self._clock()
        entry = CacheEntry.create(key, value, policy, now)
        ttl = entry.remaining_ttl(now)
        mapping = {
            ABSOLUTE_FIELD: self._format_field(entry.absolute_deadline),
            SLIDING_FIELD: self._format_field(entry.sliding_seconds),
            DATA_FIELD: value,
        }

        client = self._get_redis()
        try:
            async with client.pipeline(transaction=True) as pipe:
                pipe.delete(full_key)
                pipe.hset(full_key, mapping=mapping)
                if ttl is not None:
                    pipe.pexpire(full_key, _to_ms(ttl))
                await pipe.execute()
        except _BACKEND_ERRORS as e:
            raise CacheUnavailableError("Redis write failed", {"key": key, "error": str(e)}) from e

        self.logger.debug("Cached value", key=full_key, ttl_seconds=ttl)

    async def remove(self, key: str) -> None:
        try:
            await self._get_redis().delete(self._full_key(key))
        except _BACKEND_ERRORS as e:
            raise CacheUnavailableError("Redis delete failed", {"key": key, "error": str(e)}) from e

    async def ping(self) -> bool:
        try:
            return bool(await self._get_redis().ping())
        except _BACKEND_ERRORS as e:
            raise CacheUnavailableError("Redis ping failed", {"error": str(e)}) from e

    async def close(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None
            self.logger.info("Redis cache store closed")

    @staticmethod
    def _parse_field(raw: Optional[str]) -> Optional[float]:
        if raw is None or raw == NOT_PRESENT:
            return None
        return float(raw)

    @staticmethod
    def _format_field(value: Optional[float]) -> str:
        return NOT_PRESENT if value is None else repr(float(value))


class MemoryCacheStore:
    """In-process cache store with the same expiration semantics as Redis."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}

    async def get_string(self, key: str) -> Optional[str]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        now = self._clock()
        if entry.is_expired(now):
            del self._entries[key]
            return None
        entry.touch(now)
        return entry.value

    async def set_string(self, key: str, value: str, policy: ExpirationPolicy) -> None:
        self._entries[key] = CacheEntry.create(key, value, policy, self._clock())

    async def remove(self, key: str) -> None:
        self._entries.pop(key, None)

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        self._entries.clear()

    def __contains__(self, key: str) -> bool:
        entry = self._entries.get(key)
        return entry is not None and not entry.is_expired(self._clock())

    def __len__(self) -> int:
        return len(self._entries)
