"""
Unit tests for the bounded LRU cache store.
"""

import pytest

from provisioning_clients.caching import CacheEntry, CacheStore, Found


def _entry(value, at=0.0):
    return CacheEntry(Found(value), at)


class TestCacheStore:
    """Test cases for CacheStore."""

    def test_set_and_get(self):
        """Test an inserted entry is returned."""
        store = CacheStore(2)
        entry = _entry({"id": 1})

        store.set("a", entry)

        assert store.get("a") is entry
        assert "a" in store
        assert len(store) == 1

    def test_get_absent(self):
        """Test a missing key returns None."""
        assert CacheStore(2).get("missing") is None

    def test_lru_eviction(self):
        """Test inserting beyond capacity evicts the least recently used key."""
        store = CacheStore(2)
        store.set("A", _entry(1))
        store.set("B", _entry(2))
        store.set("C", _entry(3))

        assert store.get("A") is None
        assert store.get("B") is not None
        assert store.get("C") is not None
        assert len(store) == 2

    def test_get_refreshes_recency(self):
        """Test reading a key protects it from the next eviction."""
        store = CacheStore(2)
        store.set("A", _entry(1))
        store.set("B", _entry(2))

        store.get("A")
        store.set("C", _entry(3))

        assert store.get("A") is not None
        assert store.get("B") is None

    def test_overwrite_does_not_grow(self):
        """Test overwriting a key replaces the entry in place."""
        store = CacheStore(2)
        store.set("A", _entry(1))
        store.set("A", _entry(2))

        assert len(store) == 1
        assert store.get("A").outcome.value == 2

    def test_delete(self):
        """Test delete removes the key and tolerates absent keys."""
        store = CacheStore(2)
        store.set("A", _entry(1))

        store.delete("A")
        store.delete("A")

        assert store.get("A") is None

    def test_invalid_capacity(self):
        """Test a store needs room for at least one entry."""
        with pytest.raises(ValueError):
            CacheStore(0)
