"""
Tariff selection.

A tariff is a candidate for a request when client and service type match
exactly, the request's start date falls in the validity range, and the
tariff is either scoped to the request's service point / supplier or left
open (None) on that axis.

Candidates are ranked by rank_key, highest first:
1. specific service point beats an open one
2. specific supplier beats an open one
3. later valid_from wins
Ties keep input order, so the first listed tariff wins.
"""

import logging
from datetime import date
from typing import List, Optional, Sequence, Tuple

from models.costing import ServiceCostRequest, Tariff

logger = logging.getLogger(__name__)


def is_candidate(tariff: Tariff, request: ServiceCostRequest) -> bool:
    if tariff.client_id != request.client_id:
        return False
    if tariff.service_type != request.type:
        return False
    if not tariff.is_valid_on(request.start_date):
        return False
    if tariff.service_point_id is not None and tariff.service_point_id != request.service_point_id:
        return False
    if tariff.supplier_id is not None and tariff.supplier_id != request.supplier_id:
        return False
    return True


def rank_key(tariff: Tariff) -> Tuple[bool, bool, date]:
    """Sort key for candidates; larger is better."""
    return (
        tariff.service_point_id is not None,
        tariff.supplier_id is not None,
        tariff.valid_from,
    )


class TariffMatcher:
    """Filters and ranks tariffs to pick the one applicable to a request."""

    def candidates(
        self,
        request: ServiceCostRequest,
        tariffs: Sequence[Tariff]
    ) -> List[Tariff]:
        return [t for t in tariffs if is_candidate(t, request)]

    def rank(self, candidates: Sequence[Tariff]) -> List[Tariff]:
        """Best first. sorted() is stable with reverse=True, so ties keep input order."""
        return sorted(candidates, key=rank_key, reverse=True)

    def select(
        self,
        request: ServiceCostRequest,
        tariffs: Sequence[Tariff]
    ) -> Optional[Tariff]:
        """
        Pick the applicable tariff for a request.

        Returns:
            The top-ranked candidate, or None when no tariff applies
        """
        ranked = self.rank(self.candidates(request, tariffs))
        if not ranked:
            logger.debug(
                f"No tariff for client={request.client_id} type={request.type} "
                f"point={request.service_point_id} supplier={request.supplier_id} "
                f"on {request.start_date}"
            )
            return None

        selected = ranked[0]
        logger.debug(
            f"Selected tariff {selected.id} out of {len(ranked)} candidates "
            f"for client={request.client_id} type={request.type}"
        )
        return selected
