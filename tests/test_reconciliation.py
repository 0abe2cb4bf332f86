"""
Unit tests for accounting reconciliation.
"""

import asyncio
from datetime import date
from unittest.mock import Mock

import pytest

from models.costing import ServiceCostResult, ServiceRecord, UnitOfMeasure
from services.costing import CostCompositor
from services.costing.reconciliation import (
    MISSING_TARIFF_REASON,
    build_service_summary,
    find_missing_tariffs,
    reconcile,
)


def make_service(**overrides) -> ServiceRecord:
    data = {
        "id": "s1",
        "type": "Piantonamento",
        "client_id": "c1",
        "service_point_id": "sp1",
        "start_date": date(2024, 1, 8),
    }
    data.update(overrides)
    return ServiceRecord(**data)


def make_result(multiplier, client_rate=20.0, supplier_rate=15.0, unit="hour"):
    return ServiceCostResult(
        multiplier=multiplier,
        client_rate=client_rate,
        supplier_rate=supplier_rate,
        unit_of_measure=UnitOfMeasure(unit),
    )


def test_summary_groups_by_point_and_type():
    services = [
        make_service(id="s1"),
        make_service(id="s2"),
        make_service(id="s3", type="Gestione Chiavi"),
        make_service(id="s4", service_point_id="sp2"),
    ]
    results = [
        make_result(10),
        make_result(2),
        make_result(1, client_rate=35.0, supplier_rate=25.0, unit="intervention"),
        None,
    ]

    summary = build_service_summary(services, results)
    by_key = {(row.service_point_id, row.service_type): row for row in summary}

    assert len(summary) == 3

    guard = by_key[("sp1", "Piantonamento")]
    assert guard.total_services == 2
    assert guard.total_units == 12
    assert guard.total_client_cost == 240.0
    assert guard.total_supplier_cost == 180.0
    assert guard.cost_delta == 60.0

    keys = by_key[("sp1", "Gestione Chiavi")]
    assert keys.total_services == 1
    assert keys.cost_delta == 10.0

    # Unpriced services still count but add nothing
    unpriced = by_key[("sp2", "Piantonamento")]
    assert unpriced.total_services == 1
    assert unpriced.total_units == 0
    assert unpriced.total_client_cost == 0


def test_summary_skips_services_without_point():
    services = [make_service(service_point_id=None)]
    assert build_service_summary(services, [make_result(5)]) == []
    assert build_service_summary([], []) == []


def test_missing_tariffs_lists_unpriced_services():
    services = [
        make_service(id="priced"),
        make_service(id="unpriced", type="Videosorveglianza", supplier_id="f1",
                     end_date=date(2024, 1, 31), source="canone"),
    ]
    missing = find_missing_tariffs(services, [make_result(4), None])

    assert len(missing) == 1
    entry = missing[0]
    assert entry.service_id == "unpriced"
    assert entry.service_type == "Videosorveglianza"
    assert entry.supplier_id == "f1"
    assert entry.start_date == date(2024, 1, 8)
    assert entry.end_date == date(2024, 1, 31)
    assert entry.reason == MISSING_TARIFF_REASON


def test_reconcile_prices_every_service(memory_store):
    repository = Mock()
    repository.fetch_services.return_value = [
        make_service(
            id="guard",
            num_agents=1,
            daily_hours_config=[{"day": "Monday", "startTime": "08:00", "endTime": "16:00"}],
        ),
        make_service(id="keys", type="Gestione Chiavi"),
        make_service(id="fee", type="Videosorveglianza", source="canone"),
    ]

    report = asyncio.run(reconcile(
        date(2024, 1, 1), date(2024, 1, 31), client_id="c1",
        repository=repository, compositor=CostCompositor(),
    ))

    repository.fetch_services.assert_called_once_with(date(2024, 1, 1), date(2024, 1, 31), None)
    assert report.client_id == "c1"
    assert [m.service_id for m in report.missing_tariffs] == ["fee"]

    by_type = {row.service_type: row for row in report.summary}
    assert by_type["Piantonamento"].total_units == 8
    assert by_type["Piantonamento"].total_client_cost == pytest.approx(160.0)
    assert by_type["Gestione Chiavi"].total_client_cost == pytest.approx(35.0)
    assert by_type["Videosorveglianza"].total_services == 1
    # One tariff fetch for the whole report
    assert memory_store.fetcher.calls == 1


def test_client_filter_limits_summary_but_not_missing_tariffs(memory_store):
    repository = Mock()
    repository.fetch_services.return_value = [
        make_service(id="keys", type="Gestione Chiavi"),
        make_service(id="other-keys", type="Gestione Chiavi", client_id="c2"),
        make_service(id="other-fee", type="Videosorveglianza", client_id="c2",
                     source="canone"),
    ]

    report = asyncio.run(reconcile(
        date(2024, 1, 1), date(2024, 1, 31), client_id="c1",
        repository=repository,
    ))

    assert [(row.service_type, row.total_services) for row in report.summary] == [
        ("Gestione Chiavi", 1)
    ]
    assert report.summary[0].total_client_cost == pytest.approx(35.0)
    # No c2 tariffs exist, and c2 gaps are still reported
    assert sorted(m.service_id for m in report.missing_tariffs) == ["other-fee", "other-keys"]
    assert {m.client_id for m in report.missing_tariffs} == {"c2"}
