"""
Bounded least-recently-used key/entry store.
"""

from typing import Hashable, Iterator, Optional

from cachetools import LRUCache

from .entries import CacheEntry


class CacheStore:
    """Capacity-bounded map evicting the least recently accessed key.

    Thin wrapper over :class:`cachetools.LRUCache`; it has no notion of
    time, freshness is layered on top by the caches that own it.
    """

    def __init__(self, maxsize: int):
        if maxsize < 1:
            raise ValueError("maxsize must be at least 1")
        self._cache: LRUCache = LRUCache(maxsize=maxsize)

    @property
    def maxsize(self) -> int:
        return int(self._cache.maxsize)

    def get(self, key: Hashable) -> Optional[CacheEntry]:
        """Return the entry for ``key`` and mark it most recently used."""
        return self._cache.get(key)

    def set(self, key: Hashable, entry: CacheEntry) -> None:
        """Insert or overwrite ``key``, evicting the LRU entry when full."""
        self._cache[key] = entry

    def delete(self, key: Hashable) -> None:
        self._cache.pop(key, None)

    def clear(self) -> None:
        self._cache.clear()

    def __contains__(self, key: Hashable) -> bool:
        return key in self._cache

    def __len__(self) -> int:
        return len(self._cache)

    def __iter__(self) -> Iterator[Hashable]:
        return iter(self._cache)
