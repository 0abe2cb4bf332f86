"""
Services for tariff resolution, service costing and reconciliation.
"""

from .costing import compute_service_cost, invalidate_tariff_cache

__all__ = [
    "compute_service_cost",
    "invalidate_tariff_cache",
]
