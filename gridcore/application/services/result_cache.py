"""Result cache & invalidation controller for paginated table queries.

State changes invalidate implicitly: the fingerprint is a pure function of
the query-affecting state, so a changed state is simply a miss. Data changes
that leave the state untouched (bulk deletes, imports, ...) need an explicit
``invalidate()``.
"""

import asyncio
import logging
from collections.abc import Iterable

from gridcore.application.interfaces import CacheStore, QueryExecutor
from gridcore.application.services.column_registry import ColumnRegistry
from gridcore.application.services.eager_load_planner import EagerLoadPlanner
from gridcore.application.services.fingerprint import compute_fingerprint
from gridcore.application.services.query_assembler import QueryAssembler
from gridcore.domain.entities import (
    CachedResult,
    CacheKey,
    CacheScope,
    CacheStats,
    InteractionState,
    QuerySpec,
)
from gridcore.domain.exceptions import CacheCorruptionError

logger = logging.getLogger(__name__)

NAMESPACE = "result"


class ResultCache:
    """Fingerprints query-affecting state and caches CachedResults per scope.

    Concurrent misses on the same key share one in-flight execution.
    """

    def __init__(
        self,
        store: CacheStore,
        scope: CacheScope,
        *,
        ttl_seconds: float | None = None,
        planner: EagerLoadPlanner | None = None,
        assembler: QueryAssembler | None = None,
    ):
        self._store = store
        self._scope = scope
        self._ttl_seconds = ttl_seconds
        self._planner = planner or EagerLoadPlanner()
        self._assembler = assembler or QueryAssembler()
        self._inflight: dict[CacheKey, asyncio.Task] = {}
        self.stats = CacheStats()

    @property
    def scope(self) -> CacheScope:
        return self._scope

    async def get_or_compute(
        self,
        state: InteractionState,
        registry: ColumnRegistry,
        executor: QueryExecutor,
        *,
        visible_columns: Iterable[str] | None = None,
    ) -> CachedResult:
        visible = tuple(visible_columns) if visible_columns is not None else registry.keys()
        relations = self._planner.plan_relations(visible, registry, state)
        fingerprint = compute_fingerprint(
            state,
            model_identity=registry.model_identity,
            eager_loads=relations,
            visible_columns=visible,
        )
        key = CacheKey(self._scope, fingerprint.value, NAMESPACE)

        cached = self._read(key)
        if cached is not None:
            self.stats.hits += 1
            logger.debug("Result cache hit: scope=%s fingerprint=%s", self._scope, key.fingerprint[:12])
            return cached

        task = self._inflight.get(key)
        if task is None:
            self.stats.misses += 1
            logger.debug("Result cache miss: scope=%s fingerprint=%s", self._scope, key.fingerprint[:12])
            spec = self._assembler.build(
                state, registry, visible_columns=visible, eager_loads=relations
            )
            task = asyncio.ensure_future(self._compute(key, spec, executor, relations))
            self._inflight[key] = task
            task.add_done_callback(lambda _t, k=key: self._inflight.pop(k, None))
        else:
            logger.debug("Joining in-flight query: fingerprint=%s", key.fingerprint[:12])

        return await asyncio.shield(task)

    def invalidate(self) -> int:
        """Drop every cached result of this scope."""
        removed = self._store.invalidate_scope(self._scope, NAMESPACE)
        self.stats.invalidations += 1
        logger.info("Result cache invalidated: scope=%s entries=%d", self._scope, removed)
        return removed

    # ── Private helpers ──────────────────────────────────────────────

    async def _compute(
        self,
        key: CacheKey,
        spec: QuerySpec,
        executor: QueryExecutor,
        relations: frozenset[str],
    ) -> CachedResult:
        page = await executor.run(spec)
        result = CachedResult(
            fingerprint=key.fingerprint,
            rows=tuple(page.rows),
            total_count=page.total_count,
            relations_loaded=frozenset(relations),
            page_number=spec.page_number,
            page_size=spec.limit,
        )
        self._store.set(key, result, self._ttl_seconds)
        return result

    def _read(self, key: CacheKey) -> CachedResult | None:
        entry = self._store.get(key)
        if entry is None:
            return None
        try:
            _validate(key, entry)
        except CacheCorruptionError as exc:
            self.stats.corrupt_reads += 1
            logger.warning("Discarding corrupt cache entry: %s", exc)
            self._store.delete(key)
            return None
        return _mark_cached(entry)


def _validate(key: CacheKey, entry: object) -> None:
    if not isinstance(entry, CachedResult):
        raise CacheCorruptionError(key, f"unexpected type {type(entry).__name__}")
    if entry.fingerprint != key.fingerprint:
        raise CacheCorruptionError(key, "fingerprint mismatch")
    if not isinstance(entry.rows, tuple) or not all(isinstance(r, dict) for r in entry.rows):
        raise CacheCorruptionError(key, "rows are not a sequence of mappings")
    if not isinstance(entry.total_count, int) or entry.total_count < 0:
        raise CacheCorruptionError(key, f"invalid total count {entry.total_count!r}")
    if len(entry.rows) > entry.total_count:
        raise CacheCorruptionError(key, "more rows than total count")


def _mark_cached(entry: CachedResult) -> CachedResult:
    if entry.from_cache:
        return entry
    return CachedResult(
        fingerprint=entry.fingerprint,
        rows=entry.rows,
        total_count=entry.total_count,
        relations_loaded=entry.relations_loaded,
        page_number=entry.page_number,
        page_size=entry.page_size,
        created_at=entry.created_at,
        from_cache=True,
    )
