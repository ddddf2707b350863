"""
Tenant-scoped TTL read cache.
"""
from services.cache import ReadCache, cache_key, cached


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


class TestReadCache:

    def setup_method(self):
        self.clock = FakeClock()
        self.cache = ReadCache(default_ttl=60, clock=self.clock)

    def test_key_layout(self):
        assert cache_key(7, "reorder", "suggestions") == "tenant:7:reorder:suggestions"

    def test_get_set_and_expiry(self):
        self.cache.set("k", [1, 2])
        assert self.cache.get("k") == [1, 2]
        self.clock.now += 61
        assert self.cache.get("k") is None
        assert self.cache.stats()["size"] == 0

    def test_falsy_values_are_cached(self):
        calls = []

        def compute():
            calls.append(1)
            return []

        assert cached(self.cache, "empty", compute) == []
        assert cached(self.cache, "empty", compute) == []
        assert len(calls) == 1

    def test_invalidate_tenant_leaves_other_tenants(self):
        self.cache.set(cache_key(1, "alerts"), "a")
        self.cache.set(cache_key(1, "forecast", 30), "b")
        self.cache.set(cache_key(11, "alerts"), "c")
        assert self.cache.invalidate_tenant(1) == 2
        assert self.cache.get(cache_key(11, "alerts")) == "c"

    def test_cleanup_and_stats(self):
        self.cache.set("short", 1, ttl=5)
        self.cache.set("long", 2, ttl=500)
        self.clock.now += 10
        assert self.cache.cleanup() == 1
        self.cache.get("long")
        self.cache.get("missing")
        assert self.cache.stats() == {"size": 1, "hits": 1, "misses": 1}
        self.cache.clear()
        assert self.cache.stats() == {"size": 0, "hits": 0, "misses": 0}
