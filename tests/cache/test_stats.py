import pytest

from schoolcache.core.stats import StatsReporter


def test_empty_report_has_zero_hit_rate(store):
    report = StatsReporter(store).report()
    assert report["hits"] == 0
    assert report["misses"] == 0
    assert report["hit_rate_percent"] == 0
    assert report["total_keys"] == 0
    assert report["per_type_key_count"] == {}


@pytest.mark.asyncio
async def test_one_miss_and_one_hit_is_fifty_percent(cache, call_counter):
    counter = call_counter(ret=[1, 2])
    key = cache.build_key("cursos", "u1", "s1")

    await cache.get_or_compute(key, "cursos", counter)
    await cache.get_or_compute(key, "cursos", counter)

    report = cache.report()
    assert report["hits"] == 1
    assert report["misses"] == 1
    assert report["hit_rate_percent"] == 50


def test_per_type_breakdown_counts_live_keys(store, clock):
    store.set("dashboard:u1:s1", 1, 60)
    store.set("dashboard:u2:s1", 1, 60)
    store.set("dashboard_rol:u1:s1:ADMIN", 1, 60)
    store.set("mensajes:u1:s1", 1, 1)
    clock.advance(2)

    report = StatsReporter(store, configured_types=["mensajes", "dashboard"]).report()
    assert report["total_keys"] == 3
    assert report["per_type_key_count"] == {"dashboard": 2, "dashboard_rol": 1}
    assert report["configured_types"] == ["dashboard", "mensajes"]


def test_hit_rate_is_rounded(store):
    store.set("k", 1, 60)
    store.get("k")
    store.get("missing")
    store.get("missing")

    assert StatsReporter(store).report()["hit_rate_percent"] == 33.33
