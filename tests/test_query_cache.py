"""Tests for the in-memory TTL cache"""
import threading
import time

import pytest

from devello.utils.query_cache import QueryCache, cache_key


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return QueryCache(default_ttl=30, clock=clock)


def test_cache_key_scopes_by_user():
    assert cache_key("/api/products") == "/api/products"
    assert cache_key("/api/user/orders", 7) == "/api/user/orders:user:7"


class TestGetSet:
    def test_fresh_entry_is_returned(self, cache, clock):
        cache.set("/api/products", [1, 2])
        clock.advance(29)
        assert cache.get("/api/products") == [1, 2]

    def test_expired_entry_is_dropped(self, cache, clock):
        cache.set("/api/products", [1, 2])
        clock.advance(30)
        assert cache.get("/api/products") is None
        assert cache.stats()["size"] == 0

    def test_ttl_override_on_read(self, cache, clock):
        cache.set("/api/products", "data")
        clock.advance(10)
        assert cache.get("/api/products", ttl=5) is None

    def test_user_scoped_entries_are_separate(self, cache):
        cache.set("/api/user/orders", "mine", user_id=1)
        assert cache.get("/api/user/orders") is None
        assert cache.get("/api/user/orders", user_id=1) == "mine"


class TestInvalidation:
    def test_invalidate_single_key(self, cache):
        cache.set("/api/products", "a")
        cache.invalidate("/api/products")
        assert cache.get("/api/products") is None

    def test_invalidate_pattern(self, cache):
        cache.set("/api/products?status=active", "a")
        cache.set("/api/products?status=all", "b")
        cache.set("/api/user/orders", "c", user_id=3)
        cache.invalidate_pattern("/api/products")
        assert cache.get("/api/products?status=active") is None
        assert cache.get("/api/products?status=all") is None
        assert cache.get("/api/user/orders", user_id=3) == "c"

    def test_clear(self, cache):
        cache.set("a", 1)
        cache.set("b", 2)
        cache.clear()
        assert cache.stats()["size"] == 0


class TestFetch:
    def test_loads_once_while_fresh(self, cache, clock):
        calls = []

        def loader():
            calls.append(1)
            return len(calls)

        assert cache.fetch("/api/products", loader) == 1
        clock.advance(5)
        assert cache.fetch("/api/products", loader) == 1
        clock.advance(30)
        assert cache.fetch("/api/products", loader) == 2

    def test_force_refresh_bypasses_fresh_value(self, cache):
        values = iter(["old", "new"])
        cache.fetch("k", lambda: next(values))
        assert cache.fetch("k", lambda: next(values), force_refresh=True) == "new"
        assert cache.get("k") == "new"

    def test_failed_load_is_not_cached(self, cache):
        def broken():
            raise RuntimeError("db down")

        with pytest.raises(RuntimeError):
            cache.fetch("k", broken)

        assert cache.stats()["pending_requests"] == 0
        assert cache.fetch("k", lambda: "ok") == "ok"

    def test_concurrent_callers_share_one_load(self):
        cache = QueryCache(default_ttl=30)
        release = threading.Event()
        calls = []

        def slow_loader():
            calls.append(1)
            release.wait(5)
            return "catalog"

        results = []
        first = threading.Thread(target=lambda: results.append(cache.fetch("k", slow_loader)))
        first.start()

        deadline = time.monotonic() + 5
        while cache.stats()["pending_requests"] == 0 and time.monotonic() < deadline:
            time.sleep(0.01)

        second = threading.Thread(target=lambda: results.append(cache.fetch("k", slow_loader)))
        second.start()
        time.sleep(0.05)
        release.set()
        first.join(5)
        second.join(5)

        assert results == ["catalog", "catalog"]
        assert len(calls) == 1

    def test_waiters_receive_the_loader_error(self):
        cache = QueryCache(default_ttl=30)
        release = threading.Event()
        errors = []

        def failing_loader():
            release.wait(5)
            raise ValueError("boom")

        def call():
            try:
                cache.fetch("k", failing_loader)
            except ValueError as exc:
                errors.append(str(exc))

        first = threading.Thread(target=call)
        first.start()
        deadline = time.monotonic() + 5
        while cache.stats()["pending_requests"] == 0 and time.monotonic() < deadline:
            time.sleep(0.01)
        second = threading.Thread(target=call)
        second.start()
        time.sleep(0.05)
        release.set()
        first.join(5)
        second.join(5)

        assert errors == ["boom", "boom"]
        assert cache.get("k") is None


def test_stats_reports_entries(cache, clock):
    cache.set("a", 1, ttl=10)
    clock.advance(4)
    stats = cache.stats()
    assert stats["size"] == 1
    assert stats["pending_requests"] == 0
    assert stats["entries"] == [{"key": "a", "age": 4.0, "ttl": 10, "is_valid": True}]
