"""Abstract identity provider interface (port) for cache scoping."""

from abc import ABC, abstractmethod

from gridcore.domain.entities import CacheScope


class IdentityProvider(ABC):
    """Supplies the stable per-user/session/table scope discriminator."""

    @abstractmethod
    def scope_for(self, table_id: str) -> CacheScope:
        """Return the cache scope of the current caller for ``table_id``."""
        ...
