"""Unit tests for the InMemoryCacheStore."""

import pytest

from gridcore.domain.entities import CacheKey, CacheScope
from gridcore.infrastructure.cache import InMemoryCacheStore


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


ALICE = CacheScope("alice", "s1", "users")
BOB = CacheScope("bob", "s1", "users")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


def test_get_set_delete():
    store = InMemoryCacheStore()
    key = CacheKey(ALICE, "abc")
    assert store.get(key) is None
    store.set(key, "value")
    assert store.get(key) == "value"
    assert store.delete(key)
    assert not store.delete(key)
    assert len(store) == 0


def test_entries_expire_lazily(clock):
    store = InMemoryCacheStore(default_ttl_seconds=10, clock=clock)
    key = CacheKey(ALICE, "abc")
    store.set(key, "value")

    clock.now += 9.9
    assert store.get(key) == "value"
    clock.now += 0.1
    assert store.get(key) is None
    assert len(store) == 0


def test_per_entry_ttl_overrides_default(clock):
    store = InMemoryCacheStore(default_ttl_seconds=10, clock=clock)
    store.set(CacheKey(ALICE, "short"), 1, ttl_seconds=1)
    store.set(CacheKey(ALICE, "long"), 2)
    clock.now += 5
    assert store.get(CacheKey(ALICE, "short")) is None
    assert store.get(CacheKey(ALICE, "long")) == 2


def test_no_ttl_never_expires(clock):
    store = InMemoryCacheStore(clock=clock)
    store.set(CacheKey(ALICE, "k"), 1)
    clock.now += 10**9
    assert store.get(CacheKey(ALICE, "k")) == 1


def test_least_recently_used_entry_is_evicted():
    store = InMemoryCacheStore(max_entries=2)
    a, b, c = (CacheKey(ALICE, x) for x in "abc")
    store.set(a, 1)
    store.set(b, 2)
    store.get(a)
    store.set(c, 3)

    assert store.get(b) is None
    assert store.get(a) == 1
    assert store.get(c) == 3


def test_invalidate_scope_leaves_other_scopes():
    store = InMemoryCacheStore()
    store.set(CacheKey(ALICE, "a"), 1)
    store.set(CacheKey(ALICE, "b"), 2)
    store.set(CacheKey(BOB, "a"), 3)

    assert store.invalidate_scope(ALICE) == 2
    assert store.get(CacheKey(BOB, "a")) == 3
    assert len(store) == 1


def test_invalidate_scope_can_target_one_namespace():
    store = InMemoryCacheStore()
    store.set(CacheKey(ALICE, "fp"), "page")
    store.set(CacheKey(ALICE, "status", "distinct"), "values")

    assert store.invalidate_scope(ALICE, "distinct") == 1
    assert store.get(CacheKey(ALICE, "fp")) == "page"
    assert store.get(CacheKey(ALICE, "status", "distinct")) is None


def test_same_fingerprint_in_different_scopes_are_different_keys():
    store = InMemoryCacheStore()
    store.set(CacheKey(ALICE, "same"), "alice")
    store.set(CacheKey(BOB, "same"), "bob")
    assert store.get(CacheKey(ALICE, "same")) == "alice"
    assert store.get(CacheKey(BOB, "same")) == "bob"


def test_clear():
    store = InMemoryCacheStore()
    store.set(CacheKey(ALICE, "a"), 1)
    store.clear()
    assert len(store) == 0


def test_max_entries_must_be_positive():
    with pytest.raises(ValueError):
        InMemoryCacheStore(max_entries=0)
