"""Tests for the cache strategies."""

import time
from concurrent.futures import ThreadPoolExecutor

import pytest

from aclkit.cache import Cache, MemoryCache, NullCache


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(clock) -> MemoryCache:
    return MemoryCache(default_ttl_seconds=10, max_entries=3, clock=clock)


class TestMemoryCache:
    """Tests for the in-memory cache."""

    def test_implements_protocol(self, cache):
        assert isinstance(cache, Cache)
        assert isinstance(NullCache(), Cache)

    def test_get_put(self, cache):
        assert cache.get("k") is None
        cache.put("k", "v")
        assert cache.get("k") == "v"
        stats = cache.stats()
        assert (stats.total_hits, stats.total_misses) == (1, 1)
        assert stats.hit_rate == 50.0

    def test_tuple_keys(self, cache):
        cache.put(("policy", "reader", "v1"), 1)
        assert cache.get(("policy", "reader", "v1")) == 1

    def test_none_not_cacheable(self, cache):
        with pytest.raises(ValueError):
            cache.put("k", None)

    def test_ttl_expiry(self, cache, clock):
        cache.put("k", "v")
        clock.now = 9.9
        assert cache.get("k") == "v"
        clock.now = 10.0
        assert cache.get("k") is None
        assert len(cache) == 0

    def test_per_entry_ttl(self, cache, clock):
        cache.put("short", "v", ttl_seconds=1)
        clock.now = 2
        assert cache.get("short") is None

    def test_zero_ttl_never_expires(self, clock):
        cache = MemoryCache(default_ttl_seconds=0, clock=clock)
        cache.put("k", "v")
        clock.now = 1e9
        assert cache.get("k") == "v"

    def test_lru_eviction(self, cache, clock):
        for i, key in enumerate(("a", "b", "c")):
            clock.now = i
            cache.put(key, key)
        clock.now = 3
        cache.get("a")
        clock.now = 4
        cache.put("d", "d")

        assert cache.get("b") is None
        assert cache.get("a") == "a"
        assert cache.stats().evictions == 1

    def test_expired_evicted_first(self, cache, clock):
        cache.put("old", 1, ttl_seconds=1)
        cache.put("b", 2)
        cache.put("c", 3)
        clock.now = 5
        cache.put("d", 4)
        assert cache.get("b") == 2
        assert cache.get("old") is None

    def test_invalidate(self, cache):
        cache.put("k", "v")
        assert cache.invalidate("k")
        assert not cache.invalidate("k")

    def test_invalidate_where(self, cache):
        cache.put(("policy", "a"), 1)
        cache.put(("policy", "b"), 2)
        cache.put(("acl", "x"), 3)
        assert cache.invalidate_where(lambda key: key[0] == "policy") == 2
        assert len(cache) == 1

    def test_clear(self, cache):
        cache.put("a", 1)
        cache.put("b", 2)
        assert cache.clear() == 2
        assert cache.stats().total_entries == 0

    def test_invalid_size(self):
        with pytest.raises(ValueError):
            MemoryCache(max_entries=0)


class TestGetOrCompute:
    """Tests for single-flight computation."""

    def test_computes_once(self, cache):
        calls = []
        for _ in range(3):
            assert cache.get_or_compute("k", lambda: calls.append(1) or "v") == "v"
        assert len(calls) == 1

    def test_failed_computation_stores_nothing(self, cache):
        def fail():
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            cache.get_or_compute("k", fail)
        assert len(cache) == 0
        assert cache.get_or_compute("k", lambda: "v") == "v"

    def test_concurrent_misses_share_one_computation(self):
        cache = MemoryCache()
        calls = []

        def compute():
            calls.append(1)
            time.sleep(0.05)
            return "v"

        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(lambda _: cache.get_or_compute("k", compute), range(8)))

        assert results == ["v"] * 8
        assert len(calls) == 1
        assert cache.stats().total_misses == 1


class TestNullCache:
    """Tests for the no-cache strategy."""

    def test_never_stores(self):
        cache = NullCache()
        cache.put("k", "v")
        assert cache.get("k") is None
        assert cache.clear() == 0

    def test_always_computes(self):
        cache = NullCache()
        calls = []
        cache.get_or_compute("k", lambda: calls.append(1) or "v")
        cache.get_or_compute("k", lambda: calls.append(1) or "v")
        assert len(calls) == 2
        assert cache.stats().total_misses == 2
