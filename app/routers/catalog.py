"""
Catalog router.

GET /catalog        — active unit costs for a region (with fallback info)
GET /catalog/stale  — active costs due for re-verification
"""
from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.db.base import get_db
from app.schemas.catalog import CatalogResponse, StaleCatalogResponse, UnitCostResponse
from app.services.catalog import STALE_AFTER_DAYS, find_stale_costs, get_region_costs

router = APIRouter(prefix="/catalog", tags=["catalog"])


@router.get(
    "",
    response_model=CatalogResponse,
    summary="Unit-cost catalog for a region",
    responses={500: {"description": "Catalog empty even for Global."}},
)
def catalog(
    region: Optional[str] = Query(default=None, examples=["Sub-Saharan Africa"]),
    db: Session = Depends(get_db),
):
    result = get_region_costs(db, region)
    return CatalogResponse(
        requested_region=result.requested,
        region=result.region.value,
        resolved_region=result.resolved.value,
        fell_back=result.fell_back,
        items=[UnitCostResponse.model_validate(c) for c in result.costs],
    )


@router.get(
    "/stale",
    response_model=StaleCatalogResponse,
    summary="Costs not re-verified recently",
)
def stale_catalog(
    max_age_days: int = Query(default=STALE_AFTER_DAYS, ge=1, le=3650),
    reference_date: Optional[date] = Query(default=None, description="Defaults to today (UTC)."),
    db: Session = Depends(get_db),
):
    today = reference_date or datetime.now(tz=timezone.utc).date()
    rows = find_stale_costs(db, today, max_age_days=max_age_days)
    return StaleCatalogResponse(
        reference_date=today,
        max_age_days=max_age_days,
        items=[UnitCostResponse.model_validate(c) for c in rows],
    )
