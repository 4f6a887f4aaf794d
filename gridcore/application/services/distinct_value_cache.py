"""Distinct-value cache for filter controls."""

import logging
import warnings
from numbers import Number
from typing import Any

from gridcore.application.interfaces import CacheStore, QueryExecutor
from gridcore.application.services.column_registry import ColumnRegistry
from gridcore.domain.entities import CacheKey, CacheScope, CacheStats, DistinctValueSet
from gridcore.domain.exceptions import DataSourceError, UnknownKeyWarning

logger = logging.getLogger(__name__)

NAMESPACE = "distinct"


class DistinctValueCache:
    """Lazily computes and keeps sorted distinct values per filterable column.

    Entries live until ``clear_distinct_values_cache()`` (filter-column change
    or explicit refresh) or until the store expires them.
    """

    def __init__(
        self,
        store: CacheStore,
        scope: CacheScope,
        *,
        limit: int = 1000,
        ttl_seconds: float | None = None,
    ):
        self._store = store
        self._scope = scope
        self._limit = limit
        self._ttl_seconds = ttl_seconds
        self.stats = CacheStats()

    async def get_distinct_values(
        self,
        column_key: str,
        registry: ColumnRegistry,
        executor: QueryExecutor,
    ) -> list[Any]:
        """Sorted distinct non-null values of ``column_key``.

        Unknown or non-filterable keys yield [] with an UnknownKeyWarning. A
        failing fetch yields [] and is not cached, so the next call retries.
        """
        descriptor = registry.get(column_key)
        if descriptor is None or not descriptor.filterable:
            message = f"Distinct values requested for unregistered or non-filterable column '{column_key}'"
            logger.debug(message)
            warnings.warn(message, UnknownKeyWarning, stacklevel=2)
            return []

        key = CacheKey(self._scope, column_key, NAMESPACE)
        cached = self._store.get(key)
        if isinstance(cached, DistinctValueSet) and cached.column_key == column_key:
            self.stats.hits += 1
            return list(cached.sorted_values)

        self.stats.misses += 1
        try:
            raw = await executor.distinct_values(descriptor.source, self._limit)
        except DataSourceError as exc:
            logger.warning("Distinct values for %s unavailable: %s", column_key, exc)
            return []

        values = sort_distinct(raw)[: self._limit]
        self._store.set(
            key,
            DistinctValueSet(column_key=column_key, sorted_values=tuple(values)),
            self._ttl_seconds,
        )
        logger.debug("Cached %d distinct values for %s", len(values), column_key)
        return values

    def clear_distinct_values_cache(self) -> int:
        removed = self._store.invalidate_scope(self._scope, NAMESPACE)
        self.stats.invalidations += 1
        logger.debug("Distinct-value cache cleared: scope=%s entries=%d", self._scope, removed)
        return removed


def sort_distinct(values: list[Any]) -> list[Any]:
    """Drop nulls and duplicates, then sort.

    All-numeric lists sort numerically, everything else case-insensitively
    on its text form.
    """
    unique: list[Any] = []
    seen: set = set()
    for value in values:
        if value is None or value in seen:
            continue
        seen.add(value)
        unique.append(value)

    if all(isinstance(v, Number) and not isinstance(v, (bool, complex)) for v in unique):
        return sorted(unique)
    return sorted(unique, key=lambda v: (str(v).casefold(), str(v)))
