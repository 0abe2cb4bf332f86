"""
Accounting reconciliation over stored services.

Prices every requested and monthly-fee service in a period and produces:
- a summary per (service point, service type) with units, client cost,
  supplier cost and their delta, optionally for a single client
- the list of services that could not be priced (missing tariffs), always
  across every client
"""

import asyncio
import logging
from datetime import date
from typing import List, Optional, Sequence

import pandas as pd

from models.costing import (
    MissingTariffEntry,
    ReconciliationReport,
    ServiceCostResult,
    ServiceRecord,
    ServiceSummary,
)
from services.costing.compositor import CostCompositor, get_cost_compositor

logger = logging.getLogger(__name__)

MISSING_TARIFF_REASON = (
    "Nessuna tariffa corrispondente trovata per il periodo e il tipo di servizio."
)

_SUMMARY_KEYS = ["service_point_id", "service_type"]


def build_service_summary(
    services: Sequence[ServiceRecord],
    results: Sequence[Optional[ServiceCostResult]]
) -> List[ServiceSummary]:
    """
    Group priced totals by service point and service type.

    Every service counts towards total_services; units and costs only add
    up for priced ones. Services without a service point are left out.
    """
    rows = []
    for service, result in zip(services, results):
        if not service.service_point_id:
            continue
        rows.append({
            "service_point_id": service.service_point_id,
            "service_type": service.type,
            "units": result.multiplier if result else 0.0,
            "client_cost": result.client_cost if result else 0.0,
            "supplier_cost": result.supplier_cost if result else 0.0,
        })

    if not rows:
        return []

    df = pd.DataFrame(rows)
    grouped = df.groupby(_SUMMARY_KEYS, sort=True).agg(
        total_services=("units", "size"),
        total_units=("units", "sum"),
        total_client_cost=("client_cost", "sum"),
        total_supplier_cost=("supplier_cost", "sum"),
    ).reset_index()
    grouped["cost_delta"] = grouped["total_client_cost"] - grouped["total_supplier_cost"]

    # numpy scalars -> native types before handing rows to pydantic
    return [
        ServiceSummary(
            service_point_id=str(row["service_point_id"]),
            service_type=str(row["service_type"]),
            total_services=int(row["total_services"]),
            total_units=float(row["total_units"]),
            total_client_cost=float(row["total_client_cost"]),
            total_supplier_cost=float(row["total_supplier_cost"]),
            cost_delta=float(row["cost_delta"]),
        )
        for row in grouped.to_dict("records")
    ]


def find_missing_tariffs(
    services: Sequence[ServiceRecord],
    results: Sequence[Optional[ServiceCostResult]]
) -> List[MissingTariffEntry]:
    """One entry per service whose cost result is None."""
    return [
        MissingTariffEntry(
            service_id=service.id,
            service_type=service.type,
            client_id=service.client_id,
            service_point_id=service.service_point_id,
            supplier_id=service.supplier_id,
            start_date=service.start_date,
            end_date=service.end_date,
            reason=MISSING_TARIFF_REASON,
        )
        for service, result in zip(services, results)
        if result is None
    ]


async def reconcile(
    start_date: date,
    end_date: date,
    client_id: Optional[str] = None,
    repository=None,
    compositor: Optional[CostCompositor] = None,
) -> ReconciliationReport:
    """
    Price all stored services in a period.

    Args:
        start_date: First day of the period (inclusive)
        end_date: Last day of the period (inclusive)
        client_id: Restricts the summary; missing tariffs cover all clients
        repository: ServiceRepository (defaults to a new one)
        compositor: CostCompositor (defaults to the shared one)

    Returns:
        ReconciliationReport with summary rows and missing tariffs
    """
    if repository is None:
        from db.service_repository import ServiceRepository
        repository = ServiceRepository()
    compositor = compositor or get_cost_compositor()

    services = await asyncio.to_thread(
        repository.fetch_services, start_date, end_date, None
    )

    results: List[Optional[ServiceCostResult]] = []
    for service in services:
        results.append(await compositor.compute(service))

    if client_id:
        client_rows = [
            (service, result)
            for service, result in zip(services, results)
            if service.client_id == client_id
        ]
        summary = build_service_summary(
            [service for service, _ in client_rows],
            [result for _, result in client_rows],
        )
    else:
        summary = build_service_summary(services, results)
    missing = find_missing_tariffs(services, results)

    logger.info(
        f"Reconciliation {start_date}..{end_date}: {len(services)} services, "
        f"{len(summary)} summary rows, {len(missing)} missing tariffs"
    )

    return ReconciliationReport(
        start_date=start_date,
        end_date=end_date,
        client_id=client_id,
        summary=summary,
        missing_tariffs=missing,
    )
