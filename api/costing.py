"""
API endpoints for service costing.

Provides the cost preview used by the service request forms, the cache
invalidation hook called by the tariff admin screens, and the accounting
reconciliation view.
"""

from datetime import date
from typing import Optional
import logging

from fastapi import APIRouter, HTTPException, Query, Request, Path
from pydantic import BaseModel, Field

from middleware.rate_limiter import limit_admin, limit_preview, limit_report
from models.costing import (
    ReconciliationReport,
    ServiceCostRequest,
    ServiceCostResult,
    ServiceType,
    UnitOfMeasure,
)
from services.costing import compute_service_cost, invalidate_tariff_cache
from services.costing.reconciliation import reconcile

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/costing", tags=["Costing"])

# Longest service period the preview will walk day by day
MAX_PREVIEW_DAYS = 3660


# Request/Response Models

class CostPreviewResponse(BaseModel):
    """Response for POST /api/costing/preview"""
    priced: bool = Field(..., description="False when no applicable tariff was found")
    result: Optional[ServiceCostResult] = None


class InvalidateResponse(BaseModel):
    """Response for POST /api/costing/tariffs/invalidate"""
    success: bool = True
    message: str


class ServiceUnitResponse(BaseModel):
    """Response for GET /api/costing/units/{service_type}"""
    service_type: ServiceType
    unit_of_measure: UnitOfMeasure


# Endpoints

@router.post("/preview", response_model=CostPreviewResponse)
@limit_preview
async def preview_cost(request: Request, cost_request: ServiceCostRequest):
    """
    Price one service without storing anything.

    **Example Request:**
    ```json
    {
      "type": "Piantonamento",
      "client_id": "c1",
      "service_point_id": "sp1",
      "start_date": "2024-01-01",
      "end_date": "2024-01-01",
      "num_agents": 2,
      "daily_hours_config": [{"day": "Monday", "startTime": "08:00", "endTime": "20:00"}]
    }
    ```

    **Example Response:**
    ```json
    {
      "priced": true,
      "result": {
        "multiplier": 24.0,
        "client_rate": 20.0,
        "supplier_rate": 15.0,
        "unit_of_measure": "hour",
        "client_cost": 480.0,
        "supplier_cost": 360.0
      }
    }
    ```
    """
    if cost_request.end_date < cost_request.start_date:
        raise HTTPException(
            status_code=400,
            detail="start_date must not be after end_date"
        )
    if (cost_request.end_date - cost_request.start_date).days >= MAX_PREVIEW_DAYS:
        raise HTTPException(
            status_code=400,
            detail=f"Service period longer than {MAX_PREVIEW_DAYS} days"
        )

    try:
        result = await compute_service_cost(cost_request)
    except Exception as e:
        logger.error(f"Cost preview failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Cost preview failed: {str(e)}")

    return CostPreviewResponse(priced=result is not None, result=result)


@router.post("/tariffs/invalidate", response_model=InvalidateResponse)
@limit_admin
async def invalidate_tariffs(request: Request):
    """Drop the cached tariff set after a tariff was created, edited or deleted."""
    invalidate_tariff_cache()
    return InvalidateResponse(message="Tariff cache invalidated")


@router.get("/reconciliation", response_model=ReconciliationReport)
@limit_report
async def get_reconciliation(
    request: Request,
    start_date: date = Query(..., description="First day of the period (inclusive)"),
    end_date: date = Query(..., description="Last day of the period (inclusive)"),
    client_id: Optional[str] = Query(None, description="Filter by client"),
):
    """
    Per service point and type totals plus the services lacking a tariff.
    """
    if start_date > end_date:
        raise HTTPException(
            status_code=400,
            detail="start_date must not be after end_date"
        )

    try:
        return await reconcile(start_date, end_date, client_id)
    except Exception as e:
        logger.error(f"Reconciliation failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Reconciliation failed: {str(e)}")


@router.get("/units/{service_type:path}", response_model=ServiceUnitResponse)
async def get_service_unit(
    service_type: str = Path(..., description="Service type, e.g. 'Piantonamento'")
):
    """Default unit of measure for a service type (used by the tariff form)."""
    parsed = ServiceType.parse(service_type)
    if parsed is None:
        raise HTTPException(status_code=404, detail=f"Unknown service type: {service_type}")
    return ServiceUnitResponse(service_type=parsed, unit_of_measure=parsed.default_unit)
