import asyncio

import pytest

from schoolcache.core.cache import CacheConfig, ReadThroughCache, init_cache
from schoolcache.core.cache_config import CachePolicy
from schoolcache.core.store import TTLStore


class DownstreamError(Exception):
    pass


@pytest.mark.asyncio
async def test_miss_computes_then_hit_skips_compute(cache, call_counter):
    counter = call_counter(ret={"total": 3})
    key = cache.build_key("dashboard", "u1", "s1")

    first = await cache.get_or_compute(key, "dashboard", counter)
    second = await cache.get_or_compute(key, "dashboard", counter)

    assert first == second == {"total": 3}
    assert counter.count == 1


@pytest.mark.asyncio
async def test_failures_are_not_cached(cache, call_counter):
    failing = call_counter(exc=DownstreamError("db down"))
    key = cache.build_key("dashboard", "u1", "s1")

    with pytest.raises(DownstreamError):
        await cache.get_or_compute(key, "dashboard", failing)
    with pytest.raises(DownstreamError):
        await cache.get_or_compute(key, "dashboard", failing)

    assert failing.count == 2
    assert key not in cache.keys()


@pytest.mark.asyncio
async def test_none_results_are_cached(cache, call_counter):
    counter = call_counter(ret=None)
    key = cache.build_key("acudientes", "st1", "s1")

    assert await cache.get_or_compute(key, "acudientes", counter) is None
    assert await cache.get_or_compute(key, "acudientes", counter) is None
    assert counter.count == 1


@pytest.mark.asyncio
async def test_entry_uses_type_policy_ttl(cache, clock, call_counter):
    counter = call_counter(ret=[])
    key = cache.build_key("notificaciones", "u1", "s1")  # 60s policy

    await cache.get_or_compute(key, "notificaciones", counter)
    clock.now = 60
    await cache.get_or_compute(key, "notificaciones", counter)
    assert counter.count == 1

    clock.now = 61
    await cache.get_or_compute(key, "notificaciones", counter)
    assert counter.count == 2


@pytest.mark.asyncio
async def test_unknown_type_uses_default_ttl(cache, clock, call_counter):
    counter = call_counter(ret=1)
    key = cache.build_key("sin_politica", "u1")

    await cache.get_or_compute(key, "sin_politica", counter)
    clock.now = 300
    await cache.get_or_compute(key, "sin_politica", counter)
    assert counter.count == 1

    clock.now = 301
    await cache.get_or_compute(key, "sin_politica", counter)
    assert counter.count == 2


@pytest.mark.asyncio
async def test_zero_ttl_policy_never_caches(clock, call_counter):
    store = TTLStore(clock=clock)
    cache = ReadThroughCache(store, policies={"live": CachePolicy(ttl=0)})
    counter = call_counter(ret="fresh")

    assert await cache.get_or_compute("live:u1", "live", counter) == "fresh"
    assert await cache.get_or_compute("live:u1", "live", counter) == "fresh"
    assert counter.count == 2


def test_ttl_for_falls_back_to_default():
    cache = ReadThroughCache(TTLStore(), policies={"dashboard": CachePolicy(ttl=180)}, default_ttl=42)
    assert cache.ttl_for("dashboard") == 180
    assert cache.ttl_for("unknown") == 42


class TestSingleFlight:

    @pytest.mark.asyncio
    async def test_concurrent_misses_share_one_computation(self, cache):
        calls = {"n": 0}
        release = asyncio.Event()

        async def slow_compute():
            calls["n"] += 1
            await release.wait()
            return {"students": 30}

        key = cache.build_key("estadisticas_grupo", "c1", "s1")
        tasks = [asyncio.create_task(cache.get_or_compute(key, "estadisticas_grupo", slow_compute)) for _ in range(5)]
        await asyncio.sleep(0)
        release.set()
        results = await asyncio.gather(*tasks)

        assert calls["n"] == 1
        assert results == [{"students": 30}] * 5

    @pytest.mark.asyncio
    async def test_waiters_receive_the_same_failure(self, cache):
        calls = {"n": 0}
        release = asyncio.Event()

        async def failing_compute():
            calls["n"] += 1
            await release.wait()
            raise DownstreamError("aggregation failed")

        key = cache.build_key("dashboard", "u1", "s1")
        tasks = [asyncio.create_task(cache.get_or_compute(key, "dashboard", failing_compute)) for _ in range(3)]
        await asyncio.sleep(0)
        release.set()
        results = await asyncio.gather(*tasks, return_exceptions=True)

        assert calls["n"] == 1
        assert all(isinstance(result, DownstreamError) for result in results)
        assert key not in cache.keys()

    @pytest.mark.asyncio
    async def test_disabled_single_flight_computes_independently(self, clock):
        cache = init_cache(CacheConfig(single_flight=False, sweeper_enabled=False), clock=clock)
        calls = {"n": 0}
        release = asyncio.Event()

        async def slow_compute():
            calls["n"] += 1
            await release.wait()
            return calls["n"]

        tasks = [asyncio.create_task(cache.get_or_compute("dashboard:u1:s1", "dashboard", slow_compute)) for _ in range(3)]
        await asyncio.sleep(0)
        release.set()
        await asyncio.gather(*tasks)

        assert calls["n"] == 3
        assert "dashboard:u1:s1" in cache.keys()

    @pytest.mark.asyncio
    async def test_in_flight_slot_is_released(self, cache, call_counter):
        failing = call_counter(exc=DownstreamError("boom"))
        with pytest.raises(DownstreamError):
            await cache.get_or_compute("dashboard:u1:s1", "dashboard", failing)

        assert cache.cache._in_flight == {}

    @pytest.mark.asyncio
    async def test_cancelled_caller_does_not_fail_the_others(self, cache):
        calls = {"n": 0}
        started = asyncio.Event()
        release = asyncio.Event()

        async def slow_compute():
            calls["n"] += 1
            started.set()
            await release.wait()
            return "value"

        key = cache.build_key("dashboard", "u1", "s1")
        first = asyncio.create_task(cache.get_or_compute(key, "dashboard", slow_compute))
        await started.wait()
        second = asyncio.create_task(cache.get_or_compute(key, "dashboard", slow_compute))
        await asyncio.sleep(0)

        first.cancel()
        with pytest.raises(asyncio.CancelledError):
            await first
        release.set()

        assert await second == "value"
        assert calls["n"] == 1
        assert cache.keys() == {key}

    @pytest.mark.asyncio
    async def test_computation_finishes_when_every_caller_leaves(self, cache):
        started = asyncio.Event()
        release = asyncio.Event()
        finished = asyncio.Event()

        async def slow_compute():
            started.set()
            await release.wait()
            finished.set()
            return {"total": 1}

        key = cache.build_key("dashboard", "u1", "s1")
        caller = asyncio.create_task(cache.get_or_compute(key, "dashboard", slow_compute))
        await started.wait()
        caller.cancel()
        with pytest.raises(asyncio.CancelledError):
            await caller

        release.set()
        await finished.wait()
        await asyncio.sleep(0)

        assert cache.store.get(key) == {"total": 1}
        assert cache.cache._in_flight == {}
