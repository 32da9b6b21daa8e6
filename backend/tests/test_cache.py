"""Tests for the injected cache implementations."""
from bookvault.services.cache import MemoCache, NullCache, TTLCache, memoized


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def test_ttl_cache_expires_entries():
    clock = FakeClock()
    cache = TTLCache(max_entries=10, ttl_seconds=600, clock=clock)
    cache.set("k", [1, 2])
    assert cache.get("k") == [1, 2]
    assert "k" in cache

    clock.now += 601
    assert cache.get("k") is None
    assert "k" not in cache


def test_ttl_cache_evicts_oldest_when_full():
    cache = TTLCache(max_entries=2, ttl_seconds=600, clock=FakeClock())
    cache.set("a", 1)
    cache.set("b", 2)
    cache.set("c", 3)
    assert "a" not in cache
    assert cache.get("b") == 2
    assert cache.get("c") == 3
    assert len(cache) == 2


def test_ttl_cache_evict_and_clear():
    cache = TTLCache(max_entries=5, ttl_seconds=600, clock=FakeClock())
    cache.set("a", 1)
    cache.set("b", 2)
    cache.evict("a")
    assert "a" not in cache
    cache.clear()
    assert len(cache) == 0


def test_memo_cache_stores_none():
    cache = MemoCache()
    cache.set("missing", None)
    assert "missing" in cache
    assert cache.get("missing", "default") is None


def test_null_cache_never_stores():
    cache = NullCache()
    cache.set("a", 1)
    assert "a" not in cache
    assert cache.get("a") is None


def test_memoized_computes_once_even_for_none():
    cache = MemoCache()
    calls = []

    def compute():
        calls.append(1)
        return None

    assert memoized(cache, "k", compute) is None
    assert memoized(cache, "k", compute) is None
    assert len(calls) == 1


def test_memoized_with_null_cache_always_computes():
    calls = []
    memoized(NullCache(), "k", lambda: calls.append(1))
    memoized(NullCache(), "k", lambda: calls.append(1))
    assert len(calls) == 2
