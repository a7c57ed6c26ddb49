"""
Unit-cost catalog: region resolution, region-filtered lookup, review.

Region policy
-------------
1. The requested string is checked against Region. Anything unrecognised
   maps silently to Region.GLOBAL (warning logged, no error to the caller).
2. Active costs for the validated region are loaded. If there are none,
   fall back once to Region.GLOBAL.
3. If GLOBAL has no active costs either, the catalog was never seeded:
   EmptyCatalogError.
"""
from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from app.core.errors import EmptyCatalogError
from app.models.unit_cost import UnitCost

logger = logging.getLogger(__name__)

STALE_AFTER_DAYS = 180


class Region(str, enum.Enum):
    GLOBAL = "Global"
    UNITED_STATES = "United States"
    SUB_SAHARAN_AFRICA = "Sub-Saharan Africa"


DEFAULT_REGION = Region.GLOBAL


@dataclass
class RegionCosts:
    requested: Optional[str]
    region: Region          # validated region
    resolved: Region        # region the costs actually came from
    costs: list[UnitCost]

    @property
    def fell_back(self) -> bool:
        return self.resolved != self.region


def resolve_region(requested: Optional[str]) -> Region:
    if requested is None:
        return DEFAULT_REGION
    try:
        return Region(requested)
    except ValueError:
        logger.warning(
            "Unrecognised region %r, falling back to %s", requested, DEFAULT_REGION.value
        )
        return DEFAULT_REGION


def get_active_costs(db: Session) -> list[UnitCost]:
    return (
        db.query(UnitCost)
        .filter(UnitCost.active == True)  # noqa: E712
        .order_by(UnitCost.display_order.asc(), UnitCost.id.asc())
        .all()
    )


def _active_costs_for(db: Session, region: Region, limit: Optional[int]) -> list[UnitCost]:
    q = (
        db.query(UnitCost)
        .filter(UnitCost.active == True, UnitCost.region == region.value)  # noqa: E712
        .order_by(UnitCost.display_order.asc(), UnitCost.id.asc())
    )
    if limit is not None:
        q = q.limit(limit)
    return q.all()


def get_region_costs(
    db: Session, requested: Optional[str], limit: Optional[int] = None
) -> RegionCosts:
    region = resolve_region(requested)
    costs = _active_costs_for(db, region, limit)
    resolved = region

    if not costs and region != DEFAULT_REGION:
        logger.warning(
            "No active unit costs for region %r, falling back to %s",
            region.value, DEFAULT_REGION.value,
        )
        costs = _active_costs_for(db, DEFAULT_REGION, limit)
        resolved = DEFAULT_REGION

    if not costs:
        raise EmptyCatalogError(DEFAULT_REGION.value)

    return RegionCosts(requested=requested, region=region, resolved=resolved, costs=costs)


def find_stale_costs(
    db: Session, today: date, max_age_days: int = STALE_AFTER_DAYS
) -> list[UnitCost]:
    """Active costs not re-verified within the last `max_age_days` days."""
    cutoff = today - timedelta(days=max_age_days)
    return (
        db.query(UnitCost)
        .filter(UnitCost.active == True, UnitCost.last_verified < cutoff)  # noqa: E712
        .order_by(UnitCost.last_verified.asc(), UnitCost.id.asc())
        .all()
    )
