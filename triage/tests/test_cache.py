"""Tests for TTLCache — pure logic, no mocks needed."""

import time

from triage.services.cache import TTLCache
from triage.tests.conftest import FakeClock


def test_set_and_get_returns_value():
    cache = TTLCache(ttl=60)
    cache.set("k", "v")
    assert cache.get("k") == "v"


def test_expired_key_returns_none():
    cache = TTLCache(ttl=0.01)
    cache.set("k", "v")
    time.sleep(0.02)
    assert cache.get("k") is None


def test_entry_expires_exactly_at_ttl():
    clock = FakeClock()
    cache = TTLCache(ttl=10, clock=clock)
    cache.set("k", "v")
    clock.advance(9.999)
    assert cache.get("k") == "v"
    clock.advance(0.001)
    assert cache.get("k") is None


def test_max_size_evicts_oldest():
    cache = TTLCache(ttl=60, max_size=2)
    cache.set("a", 1)
    cache.set("b", 2)
    cache.set("c", 3)
    assert cache.get("a") is None  # evicted
    assert cache.get("b") == 2
    assert cache.get("c") == 3


def test_get_refreshes_lru_order():
    cache = TTLCache(ttl=60, max_size=2)
    cache.set("a", 1)
    cache.set("b", 2)
    cache.get("a")  # refresh a, now b is oldest
    cache.set("c", 3)  # should evict b, not a
    assert cache.get("a") == 1
    assert cache.get("b") is None  # evicted
    assert cache.get("c") == 3


def test_get_stale_serves_expired_entry():
    clock = FakeClock()
    cache = TTLCache(ttl=5, clock=clock)
    cache.set("k", "v")
    clock.advance(60)
    assert cache.get("k") is None
    assert cache.get_stale("k") == "v"
    assert cache.get_stale("k") == "v"


def test_evict_expired_drops_entry_on_get():
    clock = FakeClock()
    cache = TTLCache(ttl=5, evict_expired=True, clock=clock)
    cache.set("k", "v")
    clock.advance(5)
    assert cache.get("k") is None
    assert len(cache) == 0
    assert cache.get_stale("k") is None


def test_cleanup_expired_returns_count():
    clock = FakeClock()
    cache = TTLCache(ttl=10, clock=clock)
    cache.set("old1", 1)
    cache.set("old2", 2)
    clock.advance(8)
    cache.set("new", 3)
    clock.advance(3)
    assert cache.cleanup_expired() == 2
    assert len(cache) == 1
    assert cache.get("new") == 3


def test_clear():
    cache = TTLCache(ttl=60)
    cache.set("a", 1)
    cache.set("b", 2)
    assert len(cache) == 2
    cache.clear()
    assert len(cache) == 0
