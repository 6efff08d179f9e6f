from __future__ import annotations

import asyncio
import time

import pytest

from fivem_watch.services.cache import TtlCache


def test_set_then_get_returns_value() -> None:
    cache: TtlCache[str, dict] = TtlCache(ttl_ms=1000)
    cache.set("info", {"resources": ["chat"]})
    assert cache.get("info") == {"resources": ["chat"]}
    assert "info" in cache


def test_get_missing_key_returns_none() -> None:
    cache: TtlCache[str, int] = TtlCache(ttl_ms=1000)
    assert cache.get("nope") is None
    assert cache.get_stats().misses == 1


def test_expired_entry_is_evicted_on_get() -> None:
    cache: TtlCache[str, int] = TtlCache(ttl_ms=20)
    cache.set("k", 1)
    time.sleep(0.04)

    assert "k" not in cache
    assert len(cache) == 1  # still stored until touched by get()
    assert cache.get("k") is None
    assert len(cache) == 0
    assert cache.get_stats().expirations == 1


def test_set_refreshes_expiry() -> None:
    cache: TtlCache[str, int] = TtlCache(ttl_ms=60)
    cache.set("k", 1)
    time.sleep(0.04)
    cache.set("k", 2)
    time.sleep(0.04)
    assert cache.get("k") == 2


def test_delete_and_clear_remove_immediately() -> None:
    cache: TtlCache[str, int] = TtlCache(ttl_ms=1000)
    cache.set("a", 1)
    cache.set("b", 2)

    assert cache.delete("a") is True
    assert cache.delete("a") is False
    assert cache.get("a") is None

    cache.clear()
    assert cache.get("b") is None
    assert len(cache) == 0


def test_prune_removes_only_expired_entries() -> None:
    cache: TtlCache[str, int] = TtlCache(ttl_ms=20)
    cache.set("old", 1)
    time.sleep(0.04)
    cache._ttl = cache._ttl * 100
    cache.set("fresh", 2)

    assert cache.prune() == 1
    assert cache.get("fresh") == 2
    assert cache.get("old") is None


def test_negative_ttl_is_rejected() -> None:
    with pytest.raises(ValueError):
        TtlCache(ttl_ms=-1)


def test_stats_hit_rate() -> None:
    cache: TtlCache[str, int] = TtlCache(ttl_ms=1000)
    cache.set("k", 1)
    cache.get("k")
    cache.get("missing")

    stats = cache.get_stats().to_dict()
    assert stats["hits"] == 1
    assert stats["misses"] == 1
    assert stats["size"] == 1
    assert stats["hit_rate"] == "50.00%"


@pytest.mark.asyncio
async def test_background_sweep_prunes_and_destroy_stops_it() -> None:
    cache: TtlCache[str, int] = TtlCache(ttl_ms=10, sweep_interval_ms=15)
    cache.start_sweeper()
    cache.set("k", 1)

    await asyncio.sleep(0.1)
    assert len(cache) == 0

    sweeper = cache._sweeper
    assert sweeper is not None
    cache.destroy()
    await asyncio.sleep(0)
    assert sweeper.cancelled() or sweeper.done()
    assert cache._sweeper is None


@pytest.mark.asyncio
async def test_start_sweeper_without_interval_is_noop() -> None:
    cache: TtlCache[str, int] = TtlCache(ttl_ms=10)
    cache.start_sweeper()
    assert cache._sweeper is None
