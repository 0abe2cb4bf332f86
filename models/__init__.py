"""
Pydantic models for the field-service costing engine.

This module exports the data models used for tariff resolution,
billable-quantity calculation and accounting reconciliation.
"""

from .costing import (
    # Enums
    UnitOfMeasure,
    ServiceType,
    DayCategory,
    # Input models
    DailyHoursEntry,
    Tariff,
    ServiceCostRequest,
    ServiceRecord,
    # Result models
    ServiceCostResult,
    ServiceSummary,
    MissingTariffEntry,
    ReconciliationReport,
)

__all__ = [
    # Enums
    "UnitOfMeasure",
    "ServiceType",
    "DayCategory",
    # Input models
    "DailyHoursEntry",
    "Tariff",
    "ServiceCostRequest",
    "ServiceRecord",
    # Result models
    "ServiceCostResult",
    "ServiceSummary",
    "MissingTariffEntry",
    "ReconciliationReport",
]
