"""
Tests for scheduler-driven expiry.
"""

import threading
import time

import pytest

from onecache import CacheResult, DefaultScheduler, MemoryCache

from test_memory_cache import assert_consistent


def test_set_with_ttl_schedules_removal(manual_scheduler):
    """Test a TTL entry schedules one callback with its TTL as delay."""
    cache = MemoryCache(scheduler=manual_scheduler, proactive_expiry=True)
    cache.set("k", "v", ttl_ms=250)
    cache.set("forever", "v")

    assert [c.delay_ms for c in manual_scheduler.calls] == [250]
    manual_scheduler.fire_pending()
    assert cache.get("k") == CacheResult(False, None)
    assert cache.get("forever") == CacheResult(True, "v")
    assert_consistent(cache)


def test_replacing_entry_cancels_previous_callback(manual_scheduler):
    """Test each set cancels the handle of the entry it replaces."""
    cache = MemoryCache(scheduler=manual_scheduler, proactive_expiry=True)
    cache.set("k", "v1", ttl_ms=100)
    cache.set("k", "v2", ttl_ms=100)

    first, second = manual_scheduler.calls
    assert first.cancelled
    assert not second.cancelled


def test_stale_callback_leaves_new_entry(manual_scheduler):
    """Test a callback already in flight for a replaced entry is a no-op."""
    cache = MemoryCache(scheduler=manual_scheduler, proactive_expiry=True)
    cache.set("k", "v1", ttl_ms=100)
    cache.set("k", "v2", ttl_ms=100)

    manual_scheduler.fire(manual_scheduler.calls[0])
    assert cache.get("k") == CacheResult(True, "v2")


def test_clear_and_eviction_cancel_callbacks(manual_scheduler):
    """Test removal through clear or LRU eviction cancels pending expiry."""
    cache = MemoryCache(capacity=1, scheduler=manual_scheduler, proactive_expiry=True)
    cache.set("a", 1, ttl_ms=100)
    cache.set("b", 2, ttl_ms=100)
    assert manual_scheduler.calls[0].cancelled

    assert cache.clear("b") is True
    assert manual_scheduler.calls[1].cancelled
    assert manual_scheduler.pending() == []


def test_close_cancels_but_keeps_injected_scheduler(manual_scheduler):
    """Test close cancels handles and never touches a shared scheduler."""
    cache = MemoryCache(scheduler=manual_scheduler, proactive_expiry=True)
    cache.set("a", 1, ttl_ms=100)
    cache.close()

    assert manual_scheduler.pending() == []
    assert cache.get("a") == CacheResult(True, 1)
    cache.set("b", 2, ttl_ms=100)
    assert len(manual_scheduler.calls) == 1


def test_owned_default_scheduler_expires_entry():
    """Test the cache-created scheduler removes an entry in the background."""
    with MemoryCache(proactive_expiry=True) as cache:
        cache.set("k", "v", ttl_ms=20)
        assert cache._scheduler is None or isinstance(
            cache._scheduler, DefaultScheduler
        )
        deadline = time.monotonic() + 5
        while len(cache) and time.monotonic() < deadline:
            time.sleep(0.01)
        assert len(cache) == 0
        scheduler = cache._scheduler
        assert isinstance(scheduler, DefaultScheduler)
    assert cache._scheduler is None
    assert not scheduler._dispatcher.is_alive()


def test_injected_default_scheduler_survives_close():
    """Test a shared DefaultScheduler keeps running after the cache closes."""
    scheduler = DefaultScheduler(max_workers=2)
    try:
        cache = MemoryCache(scheduler=scheduler, proactive_expiry=True)
        cache.set("k", "v", ttl_ms=10_000)
        cache.close()

        fired = threading.Event()
        scheduler.run_once_after(fired.set, 0)
        assert fired.wait(5)
    finally:
        scheduler.shutdown()


def test_failed_scheduling_leaves_cache_unchanged():
    """Test a scheduler refusing work leaves size, contents, and order intact."""
    scheduler = DefaultScheduler(max_workers=1)
    scheduler.shutdown()
    cache = MemoryCache(capacity=1, scheduler=scheduler, proactive_expiry=True)
    cache.set("a", 1)

    with pytest.raises(RuntimeError, match="shut down"):
        cache.set("b", 2, ttl_ms=100)
    assert len(cache) <= cache.capacity
    assert cache.keys() == ["a"]
    assert cache.get("b") == CacheResult(False, None)

    with pytest.raises(RuntimeError):
        cache.set("a", 10, ttl_ms=100)
    assert cache.get("a") == CacheResult(True, 1)
    assert_consistent(cache)
