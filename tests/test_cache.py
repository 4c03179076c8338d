import fnmatch
import logging
import threading
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
import redis

from zone_pricing.errors import CacheUnavailable
from zone_pricing.services.cache import (
    PRICING_DATA_PREFIX,
    ZONE_RESOLUTION_PREFIX,
    CacheSweeper,
    RedisCache,
    TTLCache,
    TwoTierCache,
    cache_stats,
    check_cache_health,
    pricing_data_key,
    service_prices_key,
    ttl_seconds,
    zone_list_key,
    zone_resolution_key,
)


class FakeClock:
    def __init__(self, now: float = 0.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


class FakeRedis:
    """Dict-backed stand-in for the handful of commands the cache uses. Ignores TTLs."""

    def __init__(self) -> None:
        self.store: dict[str, str] = {}

    def get(self, key):
        return self.store.get(key)

    def set(self, key, value, ex=None):
        self.store[key] = value
        return True

    def delete(self, *keys):
        removed = 0
        for key in keys:
            if self.store.pop(key, None) is not None:
                removed += 1
        return removed

    def scan_iter(self, match=None, count=None):
        return [key for key in list(self.store) if match is None or fnmatch.fnmatchcase(key, match)]

    def ping(self):
        return True


def _broken_redis() -> MagicMock:
    client = MagicMock()
    error = redis.exceptions.ConnectionError("connection refused")
    client.get.side_effect = error
    client.set.side_effect = error
    client.delete.side_effect = error
    client.scan_iter.side_effect = error
    client.ping.side_effect = error
    return client


def test_ttl_cache_serves_until_expiry():
    clock = FakeClock()
    cache = TTLCache(clock=clock)
    cache.set("k", "v", 1)

    clock.now = 0.5
    assert cache.get("k") == "v"

    clock.now = 1.5
    assert cache.get("k") is None
    assert len(cache) == 0


def test_ttl_cache_entry_is_expired_exactly_at_deadline():
    clock = FakeClock()
    cache = TTLCache(clock=clock)
    cache.set("k", "v", 1)

    clock.now = 1.0
    assert cache.get("k") is None


def test_ttl_cache_sweep_drops_only_expired_entries():
    clock = FakeClock()
    cache = TTLCache(clock=clock)
    cache.set("short", 1, 1)
    cache.set("long", 2, 100)

    clock.now = 5
    assert cache.sweep() == 1
    assert cache.get("long") == 2
    assert len(cache) == 1


def test_ttl_cache_invalidate_by_prefix():
    cache = TTLCache()
    cache.set("zone:resolution:1_1", "a", 60)
    cache.set("zone:resolution:2_2", "b", 60)
    cache.set("pricing:data:x", "c", 60)

    assert cache.invalidate("zone:resolution:") == 2
    assert cache.get("pricing:data:x") == "c"


def test_redis_cache_round_trips_json_envelope():
    client = FakeRedis()
    cache = RedisCache(client, clock=FakeClock(10))

    cache.set("zones:list:active", [{"id": "z1"}], 60)

    assert cache.get("zones:list:active") == [{"id": "z1"}]
    assert '"expires_at": 70' in client.store["zones:list:active"]


def test_redis_cache_checks_expiry_itself():
    client = FakeRedis()
    clock = FakeClock()
    cache = RedisCache(client, clock=clock)
    cache.set("k", {"zone_id": "z1"}, 1)

    clock.now = 1.5

    assert cache.get("k") is None
    assert "k" not in client.store


def test_redis_cache_rejects_corrupt_values():
    client = FakeRedis()
    client.store["k"] = "not-json"

    with pytest.raises(CacheUnavailable):
        RedisCache(client).get("k")


def test_redis_errors_become_cache_unavailable():
    cache = RedisCache(_broken_redis())

    with pytest.raises(CacheUnavailable):
        cache.get("k")
    with pytest.raises(CacheUnavailable):
        cache.set("k", 1, 60)
    with pytest.raises(CacheUnavailable):
        cache.invalidate("zone:")
    with pytest.raises(CacheUnavailable):
        cache.ping()


def test_two_tier_cache_falls_back_when_redis_is_down(caplog):
    cache = TwoTierCache(RedisCache(_broken_redis()), TTLCache())

    with caplog.at_level(logging.WARNING):
        cache.set("k", {"zone_id": "z1"}, 60)
        value = cache.get("k")

    assert value == {"zone_id": "z1"}
    assert "cache_unavailable" in caplog.text


def test_two_tier_cache_prefers_primary():
    primary = RedisCache(FakeRedis())
    fallback = TTLCache()
    cache = TwoTierCache(primary, fallback)

    cache.set("k", "shared", 60)

    assert primary.get("k") == "shared"
    assert fallback.get("k") is None
    assert cache.get("k") == "shared"


def test_two_tier_cache_reads_fallback_on_primary_miss():
    fallback = TTLCache()
    fallback.set("k", "written-while-down", 60)
    cache = TwoTierCache(RedisCache(FakeRedis()), fallback)

    assert cache.get("k") == "written-while-down"


def test_invalidate_clears_both_tiers_and_is_idempotent():
    client = FakeRedis()
    fallback = TTLCache()
    cache = TwoTierCache(RedisCache(client), fallback)
    cache.set(zone_resolution_key(25.1, 55.2), {"zone_id": "z1"}, 60)
    cache.set(pricing_data_key("z1", ["a"]), {"prices": []}, 60)
    fallback.set(zone_resolution_key(1, 1), {"zone_id": None}, 60)

    first = cache.invalidate(ZONE_RESOLUTION_PREFIX)
    second = cache.invalidate(ZONE_RESOLUTION_PREFIX)

    assert first == 2
    assert second == 0
    assert cache.get(zone_resolution_key(25.1, 55.2)) is None
    assert cache.get(zone_resolution_key(1, 1)) is None
    assert cache.get(pricing_data_key("z1", ["a"])) == {"prices": []}


def test_invalidate_with_redis_down_still_clears_memory():
    fallback = TTLCache()
    fallback.set("pricing:data:x", 1, 60)
    cache = TwoTierCache(RedisCache(_broken_redis()), fallback)

    assert cache.invalidate(PRICING_DATA_PREFIX) == 1
    assert cache.invalidate(PRICING_DATA_PREFIX) == 0


def test_cache_keys_are_stable():
    assert zone_resolution_key(25.123456, 55.987654) == "zone:resolution:25.1235_55.9877"
    assert zone_resolution_key(25.12344, 55.98766) == zone_resolution_key(25.12341, 55.98769)
    assert pricing_data_key(None, ["svc-b", "svc-a"]) == "pricing:data:global:svc-a,svc-b:now"
    assert (
        pricing_data_key("z1", ["svc-a"], datetime(2024, 5, 1, 12, tzinfo=timezone.utc))
        == "pricing:data:z1:svc-a:2024-05-01T12:00:00+00:00"
    )
    assert zone_list_key() == "zones:list:active"
    assert service_prices_key("svc-a") == "service:prices:svc-a"


def test_default_ttls_per_prefix():
    assert ttl_seconds("zone:resolution:") == 300
    assert ttl_seconds("pricing:data:") == 600
    assert ttl_seconds("zones:list:") == 1800
    assert ttl_seconds("service:prices:") == 900


def test_sweeper_run_once_sweeps_memory_tier():
    clock = FakeClock()
    fallback = TTLCache(clock=clock)
    fallback.set("k", 1, 1)
    sweeper = CacheSweeper(TwoTierCache(None, fallback), interval_seconds=60)

    clock.now = 2
    assert sweeper.run_once() == 1


def test_sweeper_start_and_stop():
    sweeper = CacheSweeper(TwoTierCache(None, TTLCache()), interval_seconds=3600)

    sweeper.start()
    assert sweeper.running
    sweeper.stop()
    assert not sweeper.running


def test_sweeper_keeps_running_after_a_failed_sweep(caplog):
    cache = MagicMock()
    cache.sweep.side_effect = RuntimeError("boom")
    sweeper = CacheSweeper(cache, interval_seconds=3600)
    sweeper.start()

    try:
        with caplog.at_level(logging.ERROR):
            sweeper._run()
        assert "Cache sweep failed" in caplog.text
        assert sweeper.running
    finally:
        sweeper.stop()


def test_cache_stats_counts_entries_per_prefix_in_both_tiers():
    clock = FakeClock()
    fallback = TTLCache(clock=clock)
    fallback.set(zone_resolution_key(1, 1), {"zone_id": None}, 60)
    fallback.set(zone_list_key(), [], 1)
    cache = TwoTierCache(RedisCache(FakeRedis(), clock=clock), fallback)
    cache.set(zone_resolution_key(25.1, 55.2), {"zone_id": "z1"}, 60)
    cache.set(pricing_data_key("z1", ["a"]), {"prices": []}, 60)
    cache.set(service_prices_key("a"), {"id": "a"}, 60)
    clock.now = 5

    stats = cache_stats(cache)

    assert stats["redis_configured"] is True
    assert stats["redis_keys"] == 3
    assert stats["redis_by_prefix"] == {
        "zone:resolution:": 1,
        "pricing:data:": 1,
        "zones:list:": 0,
        "service:prices:": 1,
    }
    assert stats["memory_by_prefix"]["zone:resolution:"] == 1
    assert stats["memory_by_prefix"]["zones:list:"] == 0


def test_cache_stats_without_redis():
    stats = cache_stats(TwoTierCache(None, TTLCache()))

    assert stats["redis_configured"] is False
    assert stats["redis_keys"] is None
    assert stats["memory_entries"] == 0


def test_cache_stats_reports_unreachable_redis():
    stats = cache_stats(TwoTierCache(RedisCache(_broken_redis()), TTLCache()))

    assert stats["redis_keys"] is None
    assert "connection refused" in stats["redis_error"]


def test_check_cache_health_with_and_without_redis():
    assert check_cache_health(TwoTierCache(None, TTLCache()))["healthy"] is True

    up = check_cache_health(TwoTierCache(RedisCache(FakeRedis()), TTLCache()))
    assert up["healthy"] is True
    assert up["redis"] is True

    down = check_cache_health(TwoTierCache(RedisCache(_broken_redis()), TTLCache()))
    assert down["healthy"] is False
    assert down["memory"] is True
    assert "connection refused" in down["error"]


def test_sweeper_running_flag_is_consistent_across_threads():
    sweeper = CacheSweeper(TwoTierCache(None, TTLCache()), interval_seconds=3600)
    seen = []

    def toggle():
        sweeper.start()
        seen.append(sweeper.running)
        sweeper.stop()
        seen.append(sweeper.running)

    assert sweeper.running is False
    workers = [threading.Thread(target=toggle) for _ in range(8)]
    for worker in workers:
        worker.start()
    for worker in workers:
        worker.join()

    assert len(seen) == 16
    assert sweeper.running is False
    assert sweeper._timer is None
