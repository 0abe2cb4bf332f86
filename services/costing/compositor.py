"""
Service cost composition.

Ties the tariff store, matcher and quantity calculator together:
    tariffs = await store.get_all()
    tariff = matcher.select(request, tariffs)
    multiplier = calculator.compute(request, tariff.unit_of_measure)

A None result means the service is unpriced (no tariff, or a tariff whose
unit does not fit the service). Callers show it as a missing tariff.
"""

import logging
from typing import Optional

from models.costing import ServiceCostRequest, ServiceCostResult
from services.costing.quantity import QuantityCalculator
from services.costing.tariff_matcher import TariffMatcher
from services.costing.tariff_store import TariffStore, get_tariff_store

logger = logging.getLogger(__name__)


class CostCompositor:
    """
    Usage:
        compositor = CostCompositor()
        result = await compositor.compute(request)
        if result:
            cost = result.multiplier * result.client_rate
    """

    def __init__(
        self,
        store: Optional[TariffStore] = None,
        matcher: Optional[TariffMatcher] = None,
        calculator: Optional[QuantityCalculator] = None,
    ):
        self._store = store
        self.matcher = matcher or TariffMatcher()
        self.calculator = calculator or QuantityCalculator()

    @property
    def store(self) -> TariffStore:
        return self._store or get_tariff_store()

    async def compute(self, request: ServiceCostRequest) -> Optional[ServiceCostResult]:
        tariffs = await self.store.get_all()

        tariff = self.matcher.select(request, tariffs)
        if tariff is None:
            return None

        multiplier = self.calculator.compute(request, tariff.unit_of_measure)
        if multiplier is None:
            logger.info(
                f"Tariff {tariff.id} ({tariff.unit_of_measure.value}) cannot price "
                f"'{request.type}' for client {request.client_id}"
            )
            return None

        return ServiceCostResult(
            multiplier=multiplier,
            client_rate=tariff.client_rate,
            supplier_rate=tariff.supplier_rate,
            unit_of_measure=tariff.unit_of_measure,
        )


_default_compositor: Optional[CostCompositor] = None


def get_cost_compositor() -> CostCompositor:
    """Shared compositor (created on first use, so config is read once)."""
    global _default_compositor
    if _default_compositor is None:
        _default_compositor = CostCompositor()
    return _default_compositor


def set_cost_compositor(compositor: Optional[CostCompositor]) -> None:
    """Replace the shared compositor; None resets it so the next use rebuilds it."""
    global _default_compositor
    _default_compositor = compositor


async def compute_service_cost(request: ServiceCostRequest) -> Optional[ServiceCostResult]:
    """Price one service against the shared tariff cache."""
    return await get_cost_compositor().compute(request)


def invalidate_tariff_cache() -> None:
    """Called after any tariff create/update/delete."""
    get_tariff_store().invalidate()
