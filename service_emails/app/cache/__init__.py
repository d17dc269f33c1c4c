"""
Cache package for the Emails Service.

Provides the cache-aside access layer, its Redis and in-memory store
backends, the expiration policy and the JSON codecs for cached aggregates.
"""

from .access import CacheAsideLayer
from .codec import COUNT_CODEC, EMAIL_LIST_CODEC, JsonCodec
from .keys import ALL_RECORDS_KEY, TOTAL_COUNT_KEY, aggregate_keys, cache_key, list_key
from .policy import DEFAULT_POLICY, CacheEntry, ExpirationPolicy
from .stores import CacheStore, MemoryCacheStore, RedisCacheStore

__all__ = [
    "CacheAsideLayer",
    "CacheEntry",
    "CacheStore",
    "COUNT_CODEC",
    "EMAIL_LIST_CODEC",
    "JsonCodec",
    "ALL_RECORDS_KEY",
    "TOTAL_COUNT_KEY",
    "aggregate_keys",
    "cache_key",
    "list_key",
    "DEFAULT_POLICY",
    "ExpirationPolicy",
    "MemoryCacheStore",
    "RedisCacheStore",
]
