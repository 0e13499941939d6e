"""
Tenant-partitioned TTL cache for catalog data.

Backend listings of packages and datasets mix records owned by the calling
tenant with globally shared records (``owner_uuid`` of ``None``). Lists are
split on write: shared records go to the anonymous partition, owned records
to their owner's partition, all stamped with one insertion time. A
partition of another tenant is only seeded when that tenant has no entry
yet; its own lists and tombstones are never overwritten. Reads merge the
caller's partition with the anonymous one.

Freshness of a read is decided by the tenant partition whenever an entry
exists there, even an expired or purged one: in that case the read is a
miss although the anonymous partition alone may still be fresh.
"""

import copy
import time
from collections.abc import Mapping
from typing import Any, Callable, Dict, List, Optional, Union, TYPE_CHECKING

from shared.errors import ClientError
from shared.logging import get_logger
from .entries import (
    ANONYMOUS,
    CacheEntry,
    CacheKey,
    Found,
    NotFound,
    Outcome,
    Record,
    ResourceName,
    TenantId,
    TOMBSTONE,
)
from .store import CacheStore

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


DEFAULT_OWNER_FIELD = "owner_uuid"


class PartitionedTTLCache:
    """TTL cache with per-tenant and anonymous partitions and negative caching."""

    def __init__(
        self,
        name: str,
        maxsize: int,
        ttl: float,
        *,
        owner_field: str = DEFAULT_OWNER_FIELD,
        clock: Callable[[], float] = time.monotonic,
        metrics: Optional["MetricsCollector"] = None,
        store: Optional[CacheStore] = None,
    ):
        if ttl <= 0:
            raise ValueError("ttl must be positive")
        self.name = name
        self.ttl = ttl
        self.owner_field = owner_field
        self.store = store if store is not None else CacheStore(maxsize)
        self.metrics = metrics
        self.logger = get_logger(f"cache.{name}")
        self._clock = clock

    def get(self, tenant_id: TenantId, name: ResourceName) -> Optional[Outcome]:
        """Look up ``name`` for ``tenant_id``.

        Returns ``None`` on a miss, otherwise an independent ``Found`` or
        ``NotFound`` outcome.
        """
        now = self._clock()
        key = CacheKey(tenant_id, name)
        tenant_entry = self.store.get(key)
        anon_entry = None if tenant_id is ANONYMOUS else self.store.get(CacheKey(ANONYMOUS, name))

        self.logger.debug(
            "Cache lookup",
            key=str(key),
            tenant_entry=tenant_entry is not None,
            anon_entry=anon_entry is not None,
        )

        result: Optional[Outcome] = None
        if tenant_entry is not None:
            if self._usable(tenant_entry, now):
                result = self._merge(tenant_entry, anon_entry, now)
        elif anon_entry is not None and self._usable(anon_entry, now):
            result = self._copy_outcome(anon_entry.outcome)

        if result is None:
            self.logger.debug("Cache miss", key=str(key))
            self._record("cache_misses_total")
        else:
            self.logger.debug("Cache hit", key=str(key), negative=isinstance(result, NotFound))
            self._record("cache_hits_total")
        return result

    def put(self, tenant_id: TenantId, name: ResourceName,
            result: Union[Record, List[Record], ClientError]) -> None:
        """Cache a backend result, splitting lists by ownership."""
        inserted_at = self._clock()

        if isinstance(result, ClientError):
            self._write(CacheKey(tenant_id, name), NotFound(result.copy()), inserted_at)
        elif isinstance(result, list):
            for owner, records in self._partition(tenant_id, result).items():
                self._write_partition(tenant_id, CacheKey(owner, name), Found(records), inserted_at)
        elif isinstance(result, Mapping):
            owner = self._owner_of(result, tenant_id)
            key = CacheKey(ANONYMOUS if owner is None else owner, name)
            self._write_partition(tenant_id, key, Found(copy.deepcopy(dict(result))), inserted_at)
        else:
            raise TypeError(f"cannot cache {type(result).__name__} in {self.name} cache")

    def purge(self, tenant_id: TenantId, name: ResourceName) -> None:
        """Tombstone the tenant partition entry; the anonymous partition is kept."""
        self._write(CacheKey(tenant_id, name), TOMBSTONE, self._clock())

    def _partition(self, tenant_id: TenantId, records: List[Record]) -> Dict[TenantId, List[Record]]:
        """Group records by owner; ``None`` owners go to the anonymous partition."""
        partitions: Dict[TenantId, List[Record]] = {ANONYMOUS: []}
        if tenant_id is not ANONYMOUS:
            partitions[tenant_id] = []

        for record in records:
            owner = self._owner_of(record, tenant_id)
            partitions.setdefault(ANONYMOUS if owner is None else owner, []).append(
                copy.deepcopy(record)
            )
        return partitions

    def _owner_of(self, record: Any, tenant_id: TenantId) -> Any:
        # Records without the owner field belong to the tenant that fetched them.
        if isinstance(record, Mapping):
            return record.get(self.owner_field, tenant_id)
        return tenant_id

    def _merge(self, tenant_entry: CacheEntry, anon_entry: Optional[CacheEntry], now: float) -> Outcome:
        outcome = tenant_entry.outcome
        if not isinstance(outcome, Found) or not outcome.is_list:
            return self._copy_outcome(outcome)

        merged = outcome.copy_value()
        if anon_entry is not None and self._usable(anon_entry, now):
            anon = anon_entry.outcome
            if isinstance(anon, Found) and anon.is_list:
                merged.extend(anon.copy_value())
        return Found(merged)

    def _usable(self, entry: CacheEntry, now: float) -> bool:
        return not entry.is_tombstone and entry.is_fresh(now, self.ttl)

    @staticmethod
    def _copy_outcome(outcome: Outcome) -> Outcome:
        if isinstance(outcome, Found):
            return Found(outcome.copy_value())
        if isinstance(outcome, NotFound):
            return NotFound(outcome.error.copy())
        return outcome

    def _write_partition(self, tenant_id: TenantId, key: CacheKey, outcome: Outcome, inserted_at: float) -> None:
        """Write ``key`` unless it belongs to another tenant that already has an entry."""
        if key.tenant_id in (tenant_id, ANONYMOUS) or key not in self.store:
            self._write(key, outcome, inserted_at)
        else:
            self.logger.debug("Foreign partition kept", key=str(key), fetched_by=str(tenant_id))

    def _write(self, key: CacheKey, outcome: Outcome, inserted_at: float) -> None:
        self.store.set(key, CacheEntry(outcome, inserted_at))
        self.logger.debug("Cache write", key=str(key), outcome=type(outcome).__name__)
        self._record("cache_writes_total")

    def _record(self, metric_name: str) -> None:
        if self.metrics:
            self.metrics.increment_counter(metric_name, cache_type=self.name)
