"""Identity providers supplying the cache scope discriminator."""

from gridcore.application.interfaces import IdentityProvider
from gridcore.domain.entities import CacheScope

DEFAULT_USER_ID = "anonymous"
DEFAULT_SESSION_ID = "default"


class StaticIdentityProvider(IdentityProvider):
    """Fixed identity, for embedding the core in a single-user process."""

    def __init__(self, user_id: str = DEFAULT_USER_ID, session_id: str = DEFAULT_SESSION_ID):
        self._user_id = user_id
        self._session_id = session_id

    def scope_for(self, table_id: str) -> CacheScope:
        return CacheScope(self._user_id, self._session_id, table_id)


class HeaderIdentityProvider(IdentityProvider):
    """Identity taken from the X-User-Id / X-Session-Id request headers."""

    def __init__(self, user_id: str | None, session_id: str | None):
        self._user_id = (user_id or "").strip() or DEFAULT_USER_ID
        self._session_id = (session_id or "").strip() or DEFAULT_SESSION_ID

    def scope_for(self, table_id: str) -> CacheScope:
        return CacheScope(self._user_id, self._session_id, table_id)
