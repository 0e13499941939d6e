"""
Cache keys and entries shared by the TTL and partitioned caches.

Every value is classified once, when it enters a cache, into one of the
outcome variants below; readers switch on the variant instead of
inspecting the payload again.
"""

import copy
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, NamedTuple, Union

from shared.errors import ClientError


Record = Dict[str, Any]


class Sentinel(Enum):
    """Reserved key parts. Enum members never compare equal to a string id."""

    ANONYMOUS = "__anonymous"
    LIST = "__list"

    def __str__(self) -> str:
        return self.value


ANONYMOUS = Sentinel.ANONYMOUS
LIST = Sentinel.LIST

TenantId = Union[str, Sentinel]
ResourceName = Union[str, Sentinel]


class CacheKey(NamedTuple):
    """``(tenant_id, resource_name)`` composite key."""

    tenant_id: TenantId
    resource_name: ResourceName

    def __str__(self) -> str:
        return f"{self.tenant_id}:{self.resource_name}"


@dataclass(frozen=True)
class Found:
    """Positive outcome holding a single record or a list of records."""

    value: Union[Record, List[Record]]

    @property
    def is_list(self) -> bool:
        return isinstance(self.value, list)

    def copy_value(self) -> Union[Record, List[Record]]:
        return copy.deepcopy(self.value)


@dataclass(frozen=True)
class NotFound:
    """Negative outcome holding an already translated error."""

    error: ClientError


@dataclass(frozen=True)
class Tombstone:
    """Invalidated entry; always read as a miss."""


Outcome = Union[Found, NotFound, Tombstone]

TOMBSTONE = Tombstone()


@dataclass(frozen=True)
class CacheEntry:
    """Stored outcome plus the clock reading at insertion."""

    outcome: Outcome
    inserted_at: float

    def is_fresh(self, now: float, ttl: float) -> bool:
        return now - self.inserted_at <= ttl

    @property
    def is_tombstone(self) -> bool:
        return isinstance(self.outcome, Tombstone)
