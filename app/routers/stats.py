"""
Stats router.

GET /stats — totals over the current top-N plus aggregate comparisons
"""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.config import Settings, get_settings
from app.db.base import get_db
from app.schemas.catalog import AggregateComparisonItem, StatsResponse
from app.services.site_config import load_run_config
from app.services.stats import get_aggregate_stats

router = APIRouter(tags=["stats"])


@router.get(
    "/stats",
    response_model=StatsResponse,
    summary="Aggregate wealth of the top-N and what it could fund",
)
def stats(
    region: Optional[str] = Query(
        default=None,
        description="Catalog region. Unknown values fall back to Global.",
        examples=["United States"],
    ),
    db: Session = Depends(get_db),
    cfg: Settings = Depends(get_settings),
):
    run_cfg = load_run_config(db, cfg)
    result = get_aggregate_stats(
        db,
        limit=run_cfg.top_entity_limit,
        region=region,
        threshold_usd=run_cfg.wealth_threshold_usd,
    )
    return StatsResponse(
        total_net_worth=result.total_net_worth,
        entity_count=result.entity_count,
        region=result.comparisons.region.value,
        resolved_region=result.comparisons.resolved_region.value,
        usable_wealth_usd=result.comparisons.usable_wealth_usd,
        comparisons=[
            AggregateComparisonItem.model_validate(c) for c in result.comparisons.items
        ],
        last_updated=result.last_updated,
    )
