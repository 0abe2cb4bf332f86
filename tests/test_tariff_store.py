"""
Unit tests for the tariff cache.
"""

import asyncio
import threading

from services.costing.tariff_store import TariffStore, get_tariff_store, set_tariff_store


def test_calls_within_ttl_do_not_refetch(sample_tariffs, clock, fetcher_factory):
    fetcher = fetcher_factory(sample_tariffs)
    store = TariffStore(fetcher=fetcher, ttl_seconds=300, clock=clock)

    first = asyncio.run(store.get_all())
    clock.advance(299)
    second = asyncio.run(store.get_all())

    assert fetcher.calls == 1
    assert [t.id for t in first] == [t.id for t in second] == [t.id for t in sample_tariffs]


def test_expired_cache_refetches_and_restamps(sample_tariffs, clock, fetcher_factory):
    fetcher = fetcher_factory(sample_tariffs)
    store = TariffStore(fetcher=fetcher, ttl_seconds=300, clock=clock)

    asyncio.run(store.get_all())
    clock.advance(300)
    asyncio.run(store.get_all())

    assert fetcher.calls == 2
    assert store.fetched_at == clock.now

    clock.advance(10)
    asyncio.run(store.get_all())
    assert fetcher.calls == 2


def test_invalidate_forces_refetch(sample_tariffs, clock, fetcher_factory):
    fetcher = fetcher_factory(sample_tariffs)
    store = TariffStore(fetcher=fetcher, ttl_seconds=300, clock=clock)

    asyncio.run(store.get_all())
    store.invalidate()
    assert store.items is None
    assert not store.is_fresh()

    asyncio.run(store.get_all())
    assert fetcher.calls == 2


def test_fetch_failure_returns_empty_and_is_not_cached(sample_tariffs, clock, fetcher_factory):
    fetcher = fetcher_factory(sample_tariffs, error=RuntimeError("connection refused"))
    store = TariffStore(fetcher=fetcher, ttl_seconds=300, clock=clock)

    assert asyncio.run(store.get_all()) == []
    assert store.items is None

    fetcher.error = None
    assert len(asyncio.run(store.get_all())) == len(sample_tariffs)
    assert fetcher.calls == 2


def test_ttl_defaults_from_environment(monkeypatch, fetcher_factory):
    monkeypatch.setenv("TARIFF_CACHE_TTL_SECONDS", "42")
    store = TariffStore(fetcher=fetcher_factory([]))
    assert store.ttl_seconds == 42


def test_shared_store_is_created_once_and_resettable(fetcher_factory):
    custom = TariffStore(fetcher=fetcher_factory([]), ttl_seconds=1)
    set_tariff_store(custom)
    assert get_tariff_store() is custom

    set_tariff_store(None)
    rebuilt = get_tariff_store()
    assert rebuilt is not custom
    assert get_tariff_store() is rebuilt


class GatedFetcher:
    """Fetcher that blocks until released, to hold a fetch open."""

    def __init__(self, tariffs):
        self.tariffs = list(tariffs)
        self.calls = 0
        self.started = threading.Event()
        self.release = threading.Event()

    def __call__(self):
        self.calls += 1
        snapshot = list(self.tariffs)
        self.started.set()
        self.release.wait(timeout=5)
        return snapshot


def test_invalidate_during_fetch_discards_stale_result(tariff_factory, clock):
    fetcher = GatedFetcher([tariff_factory(id="old")])
    store = TariffStore(fetcher=fetcher, ttl_seconds=300, clock=clock)

    async def scenario():
        in_flight = asyncio.create_task(store.get_all())
        await asyncio.to_thread(fetcher.started.wait, 5)

        # Tariff edited and cache invalidated while the first read is running
        fetcher.tariffs = [tariff_factory(id="new")]
        store.invalidate()
        fetcher.release.set()

        stale = await in_flight
        fresh = await store.get_all()
        return stale, fresh

    stale, fresh = asyncio.run(scenario())

    assert [t.id for t in stale] == ["old"]
    assert [t.id for t in fresh] == ["new"]
    assert fetcher.calls == 2
    assert [t.id for t in store.items] == ["new"]


def test_returned_list_does_not_alias_cache(sample_tariffs, clock, fetcher_factory):
    store = TariffStore(fetcher=fetcher_factory(sample_tariffs), ttl_seconds=300, clock=clock)

    first = asyncio.run(store.get_all())
    first.clear()
    cached = asyncio.run(store.get_all())
    cached.pop()

    assert len(store.items) == len(sample_tariffs)
    assert len(asyncio.run(store.get_all())) == len(sample_tariffs)
