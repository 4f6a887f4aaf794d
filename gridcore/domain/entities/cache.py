"""Domain entities owned by the result and distinct-value caches."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, NamedTuple


@dataclass(frozen=True)
class CacheScope:
    """Per user/session/table discriminator. Part of every cache key."""

    user_id: str
    session_id: str
    table_id: str


class CacheKey(NamedTuple):
    """Store key. ``namespace`` separates result pages from distinct-value sets."""

    scope: CacheScope
    fingerprint: str
    namespace: str = "result"


@dataclass(frozen=True)
class QueryFingerprint:
    """Deterministic hash of query-affecting state, model and eager-load set."""

    value: str

    def __str__(self) -> str:
        return self.value


@dataclass
class PageResult:
    """What an executor returns for one QuerySpec."""

    rows: list[dict[str, Any]]
    total_count: int


@dataclass(frozen=True)
class CachedResult:
    fingerprint: str
    rows: tuple[dict[str, Any], ...]
    total_count: int
    relations_loaded: frozenset[str]
    page_number: int = 1
    page_size: int = 10
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    from_cache: bool = False

    @property
    def last_page(self) -> int:
        if self.total_count <= 0:
            return 1
        return (self.total_count + self.page_size - 1) // self.page_size


@dataclass(frozen=True)
class DistinctValueSet:
    column_key: str
    sorted_values: tuple[Any, ...]
    computed_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class CacheStats:
    """Hit/miss counters for monitoring a cache."""

    hits: int = 0
    misses: int = 0
    invalidations: int = 0
    corrupt_reads: int = 0

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        if total == 0:
            return 0.0
        return round(self.hits / total, 4)
