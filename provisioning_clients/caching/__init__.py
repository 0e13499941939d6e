"""
Client-side caching package.

In-memory, per-client caches for slow-changing catalog data. Entries are
checked for freshness lazily on read and invalidated explicitly with
tombstones after successful mutations.
"""

from .entries import ANONYMOUS, LIST, CacheEntry, CacheKey, Found, NotFound, Tombstone, TOMBSTONE
from .store import CacheStore
from .ttl_cache import TTLCache, cache_key
from .partitioned_cache import PartitionedTTLCache

__all__ = [
    "ANONYMOUS",
    "LIST",
    "CacheEntry",
    "CacheKey",
    "Found",
    "NotFound",
    "Tombstone",
    "TOMBSTONE",
    "CacheStore",
    "TTLCache",
    "cache_key",
    "PartitionedTTLCache",
]
