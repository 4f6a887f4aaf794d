"""Keeps one DataTableService per cache scope for the HTTP layer."""

import logging
from collections import OrderedDict

from gridcore.application.interfaces import CacheStore
from gridcore.application.services.column_registry import ColumnRegistry
from gridcore.application.services.data_table_service import DataTableService
from gridcore.application.services.distinct_value_cache import DistinctValueCache
from gridcore.application.services.result_cache import ResultCache
from gridcore.domain.entities import CacheScope

logger = logging.getLogger(__name__)


class TableSessionManager:
    """Bounded LRU of table sessions sharing one result store and one distinct store.

    Evicting a session also drops its cached entries from both stores.
    """

    def __init__(
        self,
        result_store: CacheStore,
        distinct_store: CacheStore,
        *,
        max_sessions: int = 1000,
        result_ttl_seconds: float | None = None,
        distinct_ttl_seconds: float | None = None,
        distinct_limit: int = 1000,
        default_page_size: int = 10,
        max_page_size: int = 500,
    ):
        self._result_store = result_store
        self._distinct_store = distinct_store
        self._max_sessions = max_sessions
        self._result_ttl = result_ttl_seconds
        self._distinct_ttl = distinct_ttl_seconds
        self._distinct_limit = distinct_limit
        self._default_page_size = default_page_size
        self._max_page_size = max_page_size
        self._sessions: OrderedDict[CacheScope, DataTableService] = OrderedDict()

    def get_or_create(self, scope: CacheScope, registry: ColumnRegistry) -> DataTableService:
        service = self._sessions.get(scope)
        if service is not None:
            self._sessions.move_to_end(scope)
            return service

        service = DataTableService(
            registry,
            ResultCache(self._result_store, scope, ttl_seconds=self._result_ttl),
            DistinctValueCache(
                self._distinct_store,
                scope,
                limit=self._distinct_limit,
                ttl_seconds=self._distinct_ttl,
            ),
            default_page_size=self._default_page_size,
            max_page_size=self._max_page_size,
        )
        self._sessions[scope] = service
        logger.debug("Opened table session %s", scope)

        while len(self._sessions) > self._max_sessions:
            evicted, _ = self._sessions.popitem(last=False)
            self._result_store.invalidate_scope(evicted)
            self._distinct_store.invalidate_scope(evicted)
            logger.debug("Closed idle table session %s", evicted)
        return service

    def __contains__(self, scope: object) -> bool:
        return scope in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)
