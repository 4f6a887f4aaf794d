"""In-process CacheStore with LRU size bound and lazy TTL expiry."""

import logging
import time
from collections import OrderedDict
from collections.abc import Callable
from typing import Any

from gridcore.application.interfaces import CacheStore
from gridcore.domain.entities import CacheKey, CacheScope

logger = logging.getLogger(__name__)


class InMemoryCacheStore(CacheStore):
    """Implements the CacheStore port with an OrderedDict.

    Expired entries are dropped when touched; the oldest entry is evicted
    when an insert exceeds ``max_entries``. There is no background sweeper.
    """

    def __init__(
        self,
        *,
        max_entries: int = 1000,
        default_ttl_seconds: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_entries < 1:
            raise ValueError("max_entries must be >= 1")
        self._entries: OrderedDict[CacheKey, tuple[Any, float | None]] = OrderedDict()
        self._max_entries = max_entries
        self._default_ttl = default_ttl_seconds
        self._clock = clock

    def get(self, key: CacheKey) -> Any | None:
        item = self._entries.get(key)
        if item is None:
            return None
        value, expires_at = item
        if expires_at is not None and self._clock() >= expires_at:
            del self._entries[key]
            logger.debug("Cache entry expired: %s", key.fingerprint[:12])
            return None
        self._entries.move_to_end(key)
        return value

    def set(self, key: CacheKey, value: Any, ttl_seconds: float | None = None) -> None:
        ttl = ttl_seconds if ttl_seconds is not None else self._default_ttl
        expires_at = self._clock() + ttl if ttl is not None else None
        self._entries[key] = (value, expires_at)
        self._entries.move_to_end(key)
        while len(self._entries) > self._max_entries:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug("Cache entry evicted (size): %s", evicted.fingerprint[:12])

    def delete(self, key: CacheKey) -> bool:
        return self._entries.pop(key, None) is not None

    def invalidate_scope(self, scope: CacheScope, namespace: str | None = None) -> int:
        doomed = [
            key
            for key in self._entries
            if key.scope == scope and (namespace is None or key.namespace == namespace)
        ]
        for key in doomed:
            del self._entries[key]
        return len(doomed)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
