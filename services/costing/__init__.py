"""
Tariff resolution and billable-quantity engine.

Public entry points:
    result = await compute_service_cost(request)
    invalidate_tariff_cache()
"""

from .compositor import (
    CostCompositor,
    compute_service_cost,
    get_cost_compositor,
    invalidate_tariff_cache,
    set_cost_compositor,
)
from .config import CostingConfig
from .holidays import ItalianHolidayCalendar
from .quantity import QuantityCalculator
from .tariff_matcher import TariffMatcher
from .tariff_store import TariffStore, get_tariff_store, set_tariff_store

__all__ = [
    "compute_service_cost",
    "invalidate_tariff_cache",
    "CostCompositor",
    "get_cost_compositor",
    "set_cost_compositor",
    "CostingConfig",
    "ItalianHolidayCalendar",
    "QuantityCalculator",
    "TariffMatcher",
    "TariffStore",
    "get_tariff_store",
    "set_tariff_store",
]
