import asyncio
from datetime import timedelta

import pytest

from gateway.services.cache import CacheEntry, ResponseCache
from tests.helpers import FakeClock, run_async

TTL = timedelta(seconds=1800)


def make_cache(clock: FakeClock, **kwargs) -> ResponseCache:
    return ResponseCache(ttl=TTL, clock=clock, **kwargs)


def test_put_then_get_returns_value():
    cache = make_cache(FakeClock())

    async def scenario():
        await cache.put("k", {"v": 1})
        return await cache.get("k")

    assert run_async(scenario()) == {"v": 1}


def test_missing_key_is_absent():
    cache = make_cache(FakeClock())
    assert run_async(cache.get("nope")) is None


def test_entry_expires_after_ttl():
    clock = FakeClock()
    cache = make_cache(clock)

    async def scenario():
        await cache.put("16:200", "hospitals")
        clock.advance(1799)
        before = await cache.get("16:200")
        clock.advance(2)
        after = await cache.get("16:200")
        return before, after

    assert run_async(scenario()) == ("hospitals", None)
    assert len(cache) == 0


def test_reads_do_not_extend_lifetime():
    clock = FakeClock()
    cache = make_cache(clock)

    async def scenario():
        await cache.put("k", "v")
        clock.advance(1000)
        assert await cache.get("k") == "v"
        clock.advance(801)
        return await cache.get("k")

    assert run_async(scenario()) is None


def test_overwrite_refreshes_expiry():
    clock = FakeClock()
    cache = make_cache(clock)

    async def scenario():
        await cache.put("k", "old")
        clock.advance(1000)
        await cache.put("k", "new")
        clock.advance(1000)
        return await cache.get("k")

    assert run_async(scenario()) == "new"


def test_is_expired_boundary():
    clock = FakeClock()
    entry = CacheEntry(data="v", timestamp=clock.now, ttl=TTL)

    assert not entry.is_expired(clock.now + timedelta(seconds=1799))
    assert entry.is_expired(clock.now + TTL)
    assert entry.expires_at == clock.now + TTL


def test_cleanup_expired_removes_only_stale_entries():
    clock = FakeClock()
    cache = make_cache(clock)

    async def scenario():
        await cache.put("old", 1)
        clock.advance(1000)
        await cache.put("fresh", 2)
        clock.advance(900)
        removed = await cache.cleanup_expired()
        return removed, await cache.get("fresh")

    assert run_async(scenario()) == (1, 2)
    assert len(cache) == 1


def test_full_cache_evicts_oldest_entry():
    clock = FakeClock()
    cache = make_cache(clock, max_size=2)

    async def scenario():
        await cache.put("a", 1)
        clock.advance(1)
        await cache.put("b", 2)
        clock.advance(1)
        await cache.put("c", 3)
        return [await cache.get(k) for k in ("a", "b", "c")]

    assert run_async(scenario()) == [None, 2, 3]
    assert cache.get_stats().evictions == 1


def test_stats_track_hits_and_misses():
    cache = make_cache(FakeClock(), max_size=10)

    async def scenario():
        await cache.get("k")
        await cache.put("k", "v")
        await cache.get("k")

    run_async(scenario())
    stats = cache.get_stats().to_dict()

    assert stats["hits"] == 1
    assert stats["misses"] == 1
    assert stats["size"] == 1
    assert stats["max_size"] == 10
    assert stats["hit_rate"] == "50.00%"


def test_concurrent_puts_leave_one_complete_value():
    cache = make_cache(FakeClock())

    async def scenario():
        await asyncio.gather(*(cache.put("k", {"writer": i}) for i in range(10)))
        return await cache.get("k")

    assert run_async(scenario()) in [{"writer": i} for i in range(10)]
    assert len(cache) == 1


def test_invalid_configuration_is_rejected():
    with pytest.raises(ValueError):
        ResponseCache(ttl=timedelta(0))
    with pytest.raises(ValueError):
        ResponseCache(max_size=0)
