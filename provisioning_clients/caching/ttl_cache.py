"""
Single-tenant read-through cache with a fixed time-to-live.
"""

import copy
import time
from typing import Any, Callable, Optional, TYPE_CHECKING

from shared.logging import get_logger
from .entries import CacheEntry, Found, Tombstone, TOMBSTONE
from .store import CacheStore

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


MISS = None


class TTLCache:
    """Fixed-TTL cache over a :class:`CacheStore`, keyed by opaque strings.

    Only positive results are cached. Expired entries are never swept; they
    are shadowed by the freshness check until overwritten or evicted.
    ``purge`` writes a tombstone rather than removing the store entry.
    """

    def __init__(
        self,
        name: str,
        maxsize: int,
        ttl: float,
        *,
        clock: Callable[[], float] = time.monotonic,
        metrics: Optional["MetricsCollector"] = None,
        store: Optional[CacheStore] = None,
    ):
        if ttl <= 0:
            raise ValueError("ttl must be positive")
        self.name = name
        self.ttl = ttl
        self.store = store if store is not None else CacheStore(maxsize)
        self.metrics = metrics
        self.logger = get_logger(f"cache.{name}")
        self._clock = clock

    def get(self, key: str) -> Optional[Any]:
        """Return an independent copy of the cached value, or ``None`` on a miss."""
        entry = self.store.get(key)
        if entry is None or entry.is_tombstone or not entry.is_fresh(self._clock(), self.ttl):
            self.logger.debug("Cache miss", key=key)
            self._record("cache_misses_total")
            return MISS

        self.logger.debug("Cache hit", key=key)
        self._record("cache_hits_total")
        return entry.outcome.copy_value()

    def put(self, key: str, value: Any) -> CacheEntry:
        """Store ``value`` under ``key``; passing ``TOMBSTONE`` invalidates it."""
        if isinstance(value, BaseException):
            raise TypeError(f"{self.name} cache does not store errors")
        if value is None:
            raise ValueError("None is indistinguishable from a miss")

        if isinstance(value, Tombstone):
            outcome = TOMBSTONE
        else:
            outcome = Found(copy.deepcopy(value))

        entry = CacheEntry(outcome, self._clock())
        self.store.set(key, entry)
        self.logger.debug("Cache write", key=key, tombstone=entry.is_tombstone)
        self._record("cache_writes_total")
        return entry

    def purge(self, key: str) -> None:
        """Invalidate ``key`` within its TTL window."""
        self.put(key, TOMBSTONE)

    def _record(self, metric_name: str) -> None:
        if self.metrics:
            self.metrics.increment_counter(metric_name, cache_type=self.name)


def cache_key(*parts: Any) -> str:
    """Join key parts into the ``tenant:name`` form used by the TTL caches."""
    return ":".join(str(part) for part in parts)
