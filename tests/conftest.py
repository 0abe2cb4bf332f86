"""
Pytest configuration and fixtures.

Provides sample tariffs, an in-memory tariff store with a controllable
clock, and the database fixture for the optional live-database tests.
"""

import os
from datetime import date

import pytest
from dotenv import load_dotenv

from db.database import init_connection_pool, close_connection_pool, health_check
from models.costing import Tariff
from services.costing.compositor import set_cost_compositor
from services.costing.tariff_store import TariffStore, set_tariff_store


class FakeClock:
    """Monotonic clock the tests advance by hand."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class CountingFetcher:
    """Blocking fetcher stand-in that records how often it was called."""

    def __init__(self, tariffs, error=None):
        self.tariffs = list(tariffs)
        self.error = error
        self.calls = 0

    def __call__(self):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return list(self.tariffs)


def make_tariff(**overrides) -> Tariff:
    data = {
        "id": "t1",
        "client_id": "c1",
        "service_type": "Piantonamento",
        "service_point_id": None,
        "supplier_id": None,
        "valid_from": date(2024, 1, 1),
        "valid_to": None,
        "client_rate": 20.0,
        "supplier_rate": 15.0,
        "unit_of_measure": "hour",
    }
    data.update(overrides)
    return Tariff(**data)


@pytest.fixture(autouse=True)
def reset_tariff_store():
    """No test sees a shared store or compositor left behind by another."""
    set_tariff_store(None)
    set_cost_compositor(None)
    yield
    set_tariff_store(None)
    set_cost_compositor(None)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sample_tariffs():
    """
    Overlapping tariffs for client c1.

    - t-generic: Piantonamento, any point, any supplier
    - t-point: Piantonamento scoped to sp1
    - t-keys: Gestione Chiavi per intervention
    - t-inspections: Ispezioni per intervention
    """
    return [
        make_tariff(id="t-generic", client_rate=18.0, supplier_rate=14.0),
        make_tariff(id="t-point", service_point_id="sp1", client_rate=20.0, supplier_rate=15.0),
        make_tariff(
            id="t-keys", service_type="Gestione Chiavi",
            unit_of_measure="intervention", client_rate=35.0, supplier_rate=25.0,
        ),
        make_tariff(
            id="t-inspections", service_type="Ispezioni",
            unit_of_measure="intervention", client_rate=12.0, supplier_rate=9.0,
        ),
    ]


@pytest.fixture
def memory_store(sample_tariffs, clock):
    """Shared store backed by sample_tariffs; fetcher exposed as store.fetcher."""
    fetcher = CountingFetcher(sample_tariffs)
    store = TariffStore(fetcher=fetcher, ttl_seconds=300, clock=clock)
    store.fetcher = fetcher
    set_tariff_store(store)
    return store


@pytest.fixture(scope="module")
def db_connection():
    """
    Initialize the database connection pool for live-database tests.

    Skips when DATABASE_URL is missing or the database is unreachable.
    """
    load_dotenv()

    if not os.getenv("DATABASE_URL"):
        pytest.skip("DATABASE_URL not set - skipping database tests")

    init_connection_pool(min_connections=1, max_connections=2)

    if not health_check():
        close_connection_pool()
        pytest.skip("Database health check failed - skipping tests")

    yield

    close_connection_pool()


@pytest.fixture
def tariff_factory():
    """make_tariff(**overrides) for tests that build their own tariff sets."""
    return make_tariff


@pytest.fixture
def fetcher_factory():
    """CountingFetcher(tariffs, error=None)."""
    return CountingFetcher
