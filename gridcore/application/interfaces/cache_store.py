"""Abstract cache store interface (port) injected into the table caches."""

from abc import ABC, abstractmethod
from typing import Any

from gridcore.domain.entities import CacheKey, CacheScope


class CacheStore(ABC):
    """Port for a scoped key/value cache. Expiry is checked lazily on access."""

    @abstractmethod
    def get(self, key: CacheKey) -> Any | None:
        """Return the live value stored under ``key`` or None."""
        ...

    @abstractmethod
    def set(self, key: CacheKey, value: Any, ttl_seconds: float | None = None) -> None:
        """Store ``value`` under ``key``; ``ttl_seconds=None`` uses the store default."""
        ...

    @abstractmethod
    def delete(self, key: CacheKey) -> bool:
        """Remove one entry. Returns True if it existed."""
        ...

    @abstractmethod
    def invalidate_scope(self, scope: CacheScope, namespace: str | None = None) -> int:
        """Remove the entries of ``scope``, only those in ``namespace`` when given.

        Returns the number removed.
        """
        ...

    @abstractmethod
    def clear(self) -> None:
        ...

    @abstractmethod
    def __len__(self) -> int:
        ...
