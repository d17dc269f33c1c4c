"""
Cache-aside access layer.

Reads consult the cache first and fill it from the document store on a miss.
The cache is a pure optimisation: an unreachable backend, an open circuit or
an undecodable payload all fall through to the store query, and only store
failures ever reach the caller.
"""

from typing import Any, Awaitable, Callable, Iterable, List, Optional, TypeVar

from shared.circuit_breaker import CircuitBreaker, CircuitBreakerOpenException
from shared.errors import CacheUnavailableError, DeserializationError
from shared.logging import get_logger
from shared.metrics import MetricsCollector
from .codec import JsonCodec
from .policy import DEFAULT_POLICY, ExpirationPolicy
from .stores import CacheStore

T = TypeVar("T")

_DEGRADED = (CacheUnavailableError, CircuitBreakerOpenException)
_MISS = object()


class CacheAsideLayer:
    """Read-through caching and invalidation over an injected cache store."""

    def __init__(
        self,
        cache: CacheStore,
        *,
        policy: ExpirationPolicy = DEFAULT_POLICY,
        breaker: Optional[CircuitBreaker] = None,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.cache = cache
        self.policy = policy
        self.breaker = breaker or CircuitBreaker(
            failure_threshold=5,
            recovery_timeout=30.0,
            expected_exception=CacheUnavailableError,
            name="cache"
        )
        self.metrics = metrics
        self.logger = get_logger("emails.cache.access")

    async def read_through(
        self,
        key: str,
        query_fn: Callable[[], Awaitable[T]],
        codec: JsonCodec[T],
        policy: Optional[ExpirationPolicy] = None,
        *,
        use_cache: bool = True,
        operation: Optional[str] = None,
    ) -> T:
        """Return the cached value for ``key`` or compute, cache and return it.

        With ``use_cache=False`` the lookup is skipped but the fresh result
        still replaces the cached entry. ``operation`` names the calling
        accessor in log events.
        """
        if use_cache:
            cached = await self._lookup(key, codec, operation)
            if cached is not _MISS:
                return cached

        value = await query_fn()
        await self._fill(key, value, codec, policy or self.policy, operation)
        return value

    async def _lookup(self, key: str, codec: JsonCodec[T], operation: Optional[str]) -> Any:
        """Decoded cached value, or ``_MISS`` (a count of 0 is a valid hit)."""
        try:
            payload = await self.breaker.call(self.cache.get_string, key)
        except _DEGRADED as e:
            self._degraded("get", key, e, operation)
            return _MISS
        except DeserializationError as e:
            self.logger.warning("Discarding unreadable cache entry", operation=operation, key=key, error=str(e))
            self._record_miss(key, operation)
            return _MISS

        if payload is None:
            self._record_miss(key, operation)
            return _MISS

        try:
            value = codec.decode(payload)
        except DeserializationError as e:
            self.logger.warning(
                "Cached payload failed to decode, treating as miss",
                operation=operation,
                key=key,
                codec=codec.name,
                error=str(e)
            )
            self._record_miss(key, operation)
            return _MISS

        self.logger.debug("Cache hit", operation=operation, key=key)
        if self.metrics:
            self.metrics.record_cache_hit(key)
        return value

    async def _fill(
        self, key: str, value: Any, codec: JsonCodec, policy: ExpirationPolicy, operation: Optional[str]
    ) -> None:
        payload = codec.encode(value)
        try:
            await self.breaker.call(self.cache.set_string, key, payload, policy)
        except _DEGRADED as e:
            self._degraded("set", key, e, operation)
            return
        self.logger.debug("Cache filled", operation=operation, key=key, bytes=len(payload))

    async def invalidate(self, key: str, *, operation: Optional[str] = None) -> bool:
        """Remove ``key``. Idempotent; returns False if the cache could not be reached."""
        try:
            await self.breaker.call(self.cache.remove, key)
        except _DEGRADED as e:
            self._degraded("remove", key, e, operation)
            if self.metrics:
                self.metrics.record_invalidation("failed")
            return False

        if self.metrics:
            self.metrics.record_invalidation("ok")
        self.logger.debug("Cache entry invalidated", operation=operation, key=key)
        return True

    async def invalidate_many(self, keys: Iterable[str], *, operation: Optional[str] = None) -> List[str]:
        """Invalidate every key, continuing past failures. Returns the keys left in place."""
        failed = []
        for key in keys:
            if not await self.invalidate(key, operation=operation):
                failed.append(key)
        return failed

    def _record_miss(self, key: str, operation: Optional[str]) -> None:
        self.logger.debug("Cache miss", operation=operation, key=key)
        if self.metrics:
            self.metrics.record_cache_miss(key)

    def _degraded(self, cache_operation: str, key: str, error: Exception, operation: Optional[str]) -> None:
        self.logger.warning(
            "Cache unavailable, falling back to document store",
            operation=operation,
            cache_operation=cache_operation,
            key=key,
            error=str(error)
        )
        if self.metrics:
            self.metrics.record_degradation(cache_operation)
