"""Unit tests for the ResultCache."""

import asyncio
from dataclasses import replace

import pytest

from gridcore.application.interfaces import QueryExecutor
from gridcore.application.services import ColumnRegistry, ResultCache
from gridcore.domain.entities import (
    CachedResult,
    CacheKey,
    CacheScope,
    InteractionState,
    PageResult,
    QuerySpec,
)
from gridcore.domain.exceptions import DataSourceError
from gridcore.infrastructure.cache import InMemoryCacheStore


class FakeExecutor(QueryExecutor):
    """In-memory executor over a list of rows; counts calls to run()."""

    def __init__(self, total: int = 25, delay: float = 0.0):
        self.total = total
        self.delay = delay
        self.calls: list[QuerySpec] = []
        self.fail_with: Exception | None = None

    async def run(self, spec: QuerySpec) -> PageResult:
        self.calls.append(spec)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail_with is not None:
            raise self.fail_with
        ids = range(spec.offset + 1, min(spec.offset + spec.limit, self.total) + 1)
        return PageResult(rows=[{"id": i, "name": f"user{i:02d}"} for i in ids], total_count=self.total)

    async def distinct_values(self, source, limit):
        return []


@pytest.fixture
def registry() -> ColumnRegistry:
    return ColumnRegistry.register(
        [
            {"field": "name"},
            {"field": "status", "filterable": True, "value_type": "select"},
            {"key": "department", "relation": "department:name"},
        ],
        model_identity="models:User",
    )


@pytest.fixture
def store() -> InMemoryCacheStore:
    return InMemoryCacheStore(max_entries=100)


@pytest.fixture
def scope() -> CacheScope:
    return CacheScope("alice", "s1", "users")


@pytest.fixture
def cache(store, scope) -> ResultCache:
    return ResultCache(store, scope, ttl_seconds=300)


@pytest.mark.asyncio
async def test_miss_then_hit_runs_executor_once(cache, registry):
    executor = FakeExecutor()
    state = InteractionState()

    first = await cache.get_or_compute(state, registry, executor)
    second = await cache.get_or_compute(state, registry, executor)

    assert len(executor.calls) == 1
    assert first.rows == second.rows
    assert first.total_count == second.total_count == 25
    assert not first.from_cache
    assert second.from_cache
    assert cache.stats.hits == 1
    assert cache.stats.misses == 1
    assert cache.stats.hit_rate == 0.5


@pytest.mark.asyncio
async def test_result_carries_pagination_and_relations(cache, registry):
    result = await cache.get_or_compute(InteractionState(page_number=3, page_size=10), registry, FakeExecutor())
    assert result.page_number == 3
    assert result.page_size == 10
    assert result.last_page == 3
    assert len(result.rows) == 5
    assert result.relations_loaded == {"department"}


@pytest.mark.asyncio
async def test_page_size_change_then_revert(cache, registry):
    """Changing only the page size misses once; reverting is a hit."""
    executor = FakeExecutor()
    await cache.get_or_compute(InteractionState(page_size=10), registry, executor)

    await cache.get_or_compute(InteractionState(page_size=25), registry, executor)
    assert len(executor.calls) == 2

    reverted = await cache.get_or_compute(InteractionState(page_size=10), registry, executor)
    assert len(executor.calls) == 2
    assert reverted.from_cache


@pytest.mark.asyncio
async def test_invalidate_forces_recompute_with_unchanged_state(cache, registry):
    executor = FakeExecutor()
    state = InteractionState()
    await cache.get_or_compute(state, registry, executor)

    executor.total = 24  # out-of-band delete
    assert cache.invalidate() == 1
    result = await cache.get_or_compute(state, registry, executor)

    assert len(executor.calls) == 2
    assert result.total_count == 24
    assert cache.stats.invalidations == 1


@pytest.mark.asyncio
async def test_scopes_never_share_results(store, registry):
    alice = ResultCache(store, CacheScope("alice", "s1", "users"))
    bob = ResultCache(store, CacheScope("bob", "s1", "users"))
    executor = FakeExecutor()
    state = InteractionState()

    a = await alice.get_or_compute(state, registry, executor)
    b = await bob.get_or_compute(state, registry, executor)

    assert len(executor.calls) == 2
    assert a.fingerprint == b.fingerprint
    assert not b.from_cache
    assert len(store) == 2


@pytest.mark.asyncio
async def test_invalidate_only_clears_own_scope(store, registry):
    alice = ResultCache(store, CacheScope("alice", "s1", "users"))
    bob = ResultCache(store, CacheScope("bob", "s1", "users"))
    executor = FakeExecutor()
    await alice.get_or_compute(InteractionState(), registry, executor)
    await bob.get_or_compute(InteractionState(), registry, executor)

    alice.invalidate()
    assert (await bob.get_or_compute(InteractionState(), registry, executor)).from_cache
    assert len(executor.calls) == 2


@pytest.mark.asyncio
async def test_executor_failure_propagates_and_is_not_cached(cache, registry):
    executor = FakeExecutor()
    good_state = InteractionState()
    await cache.get_or_compute(good_state, registry, executor)

    executor.fail_with = DataSourceError("row query", RuntimeError("connection reset"))
    with pytest.raises(DataSourceError):
        await cache.get_or_compute(InteractionState(page_number=2), registry, executor)

    executor.fail_with = None
    retried = await cache.get_or_compute(InteractionState(page_number=2), registry, executor)
    assert not retried.from_cache
    assert (await cache.get_or_compute(good_state, registry, executor)).from_cache
    assert len(executor.calls) == 3


@pytest.mark.asyncio
async def test_corrupt_entry_is_treated_as_miss(cache, store, scope, registry):
    executor = FakeExecutor()
    state = InteractionState()
    result = await cache.get_or_compute(state, registry, executor)

    key = CacheKey(scope, result.fingerprint)
    store.set(key, replace(result, total_count=-1))
    recomputed = await cache.get_or_compute(state, registry, executor)

    assert len(executor.calls) == 2
    assert recomputed.total_count == 25
    assert cache.stats.corrupt_reads == 1


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "garbage",
    [
        {"rows": []},
        "not a result",
        CachedResult(fingerprint="other", rows=(), total_count=0, relations_loaded=frozenset()),
    ],
)
async def test_foreign_values_under_key_are_discarded(cache, store, scope, registry, garbage):
    executor = FakeExecutor()
    result = await cache.get_or_compute(InteractionState(), registry, executor)
    store.set(CacheKey(scope, result.fingerprint), garbage)

    recomputed = await cache.get_or_compute(InteractionState(), registry, executor)
    assert isinstance(recomputed, CachedResult)
    assert recomputed.fingerprint == result.fingerprint
    assert len(executor.calls) == 2


@pytest.mark.asyncio
async def test_concurrent_identical_misses_share_one_execution(cache, registry):
    executor = FakeExecutor(delay=0.01)
    state = InteractionState(search_term="user")

    results = await asyncio.gather(
        *(cache.get_or_compute(state, registry, executor) for _ in range(5))
    )

    assert len(executor.calls) == 1
    assert len({r.fingerprint for r in results}) == 1
    assert cache.stats.misses == 1


@pytest.mark.asyncio
async def test_concurrent_failure_reaches_every_waiter_and_is_not_cached(cache, registry):
    executor = FakeExecutor(delay=0.01)
    executor.fail_with = DataSourceError("row query")

    outcomes = await asyncio.gather(
        *(cache.get_or_compute(InteractionState(), registry, executor) for _ in range(3)),
        return_exceptions=True,
    )
    assert all(isinstance(o, DataSourceError) for o in outcomes)
    assert len(executor.calls) == 1

    executor.fail_with = None
    await cache.get_or_compute(InteractionState(), registry, executor)
    assert len(executor.calls) == 2


@pytest.mark.asyncio
async def test_visible_columns_change_the_key(cache, registry):
    executor = FakeExecutor()
    await cache.get_or_compute(InteractionState(), registry, executor, visible_columns=["name"])
    await cache.get_or_compute(InteractionState(), registry, executor, visible_columns=["name", "department"])
    assert len(executor.calls) == 2
    assert executor.calls[0].eager_loads == ()
    assert executor.calls[1].eager_loads == ("department",)
