"""
Comparison engine — "what could this wealth fund".

Numbers
-------
Net worth is stored in USD millions (int). The living reserve is in USD
(int). Unit costs are Numeric(15, 2). All arithmetic is int / Decimal:

    usable_usd = max(0, net_worth_millions * 1_000_000 - threshold_usd)
    quantity   = floor(usable_usd / cost)

Public API
----------
usable_wealth_usd(net_worth_millions, threshold_usd)          -> int
compute_quantity(usable_usd, cost, name=None)                 -> int
precompute_comparisons(db, day, threshold_usd, policy)        -> int   (rows written)
get_entity_comparisons(db, entity_id, calculation_date, category) -> list[EntityComparison]
get_aggregate_comparisons(db, total_millions, region, threshold_usd, limit) -> AggregateComparisons
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Optional, Union

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.core.errors import InvalidCatalogEntryError
from app.models.comparison import CalculatedComparison
from app.models.snapshot import Snapshot
from app.models.unit_cost import UnitCost
from app.services.catalog import Region, get_active_costs, get_region_costs
from app.services.entity_store import latest_snapshot_subquery

logger = logging.getLogger(__name__)

MILLION = 1_000_000
AGGREGATE_COMPARISON_LIMIT = 6


# ---------------------------------------------------------------------------
# Policy / result types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ComparisonPolicy:
    """
    skip_zero_quantity_rows: don't persist rows whose quantity is 0.

    Storage optimisation only. With it on, "computed and zero" and
    "never computed" look the same in calculated_comparisons; callers that
    need the difference check update_records or switch it off.
    """
    skip_zero_quantity_rows: bool = True


@dataclass
class EntityComparison:
    unit_cost_id: int
    name: str
    display_name: str
    unit: str
    description: str
    category: str
    region: Optional[str]
    source: str
    source_url: str
    cost_per_unit: Decimal
    quantity: int
    wealth_used: int
    calculation_date: date


@dataclass
class AggregateComparison:
    display_name: str
    quantity: int
    unit: str
    description: str
    category: str
    cost_per_unit: Decimal


@dataclass
class AggregateComparisons:
    region: Region
    resolved_region: Region
    usable_wealth_usd: int
    items: list[AggregateComparison]


# ---------------------------------------------------------------------------
# Point computation
# ---------------------------------------------------------------------------

def usable_wealth_usd(net_worth_millions: int, threshold_usd: int) -> int:
    return max(0, net_worth_millions * MILLION - threshold_usd)


def compute_quantity(
    usable_usd: int, cost: Union[Decimal, int], name: Optional[str] = None
) -> int:
    cost = Decimal(cost)
    if cost <= 0:
        raise InvalidCatalogEntryError(cost, name)
    if usable_usd <= 0:
        return 0
    # Both operands positive, so // is floor division.
    return int(Decimal(usable_usd) // cost)


# ---------------------------------------------------------------------------
# Bulk pre-computation
# ---------------------------------------------------------------------------

def precompute_comparisons(
    db: Session,
    day: date,
    threshold_usd: int,
    policy: ComparisonPolicy = ComparisonPolicy(),
) -> int:
    """
    For every entity's latest snapshot on or before `day` and every active
    unit cost, upsert the (entity, cost, day) comparison.

    Flushes; the caller commits. Returns the number of rows written.
    """
    latest = latest_snapshot_subquery(db, on_or_before=day)
    holdings = (
        db.query(Snapshot.entity_id, Snapshot.net_worth)
        .join(
            latest,
            (latest.c.entity_id == Snapshot.entity_id)
            & (latest.c.latest_date == Snapshot.snapshot_date),
        )
        .order_by(Snapshot.entity_id.asc())
        .all()
    )
    costs = get_active_costs(db)

    existing: dict[tuple[int, int], CalculatedComparison] = {
        (row.entity_id, row.unit_cost_id): row
        for row in db.query(CalculatedComparison)
        .filter(CalculatedComparison.calculation_date == day)
        .all()
    }

    written = 0
    for entity_id, net_worth in holdings:
        usable = usable_wealth_usd(net_worth, threshold_usd)
        for cost in costs:
            quantity = compute_quantity(usable, cost.cost, cost.name)
            row = existing.get((entity_id, cost.id))

            if quantity == 0 and policy.skip_zero_quantity_rows:
                # A same-day re-run must not leave an earlier non-zero row behind.
                if row is not None:
                    db.delete(row)
                continue

            if row is None:
                db.add(CalculatedComparison(
                    entity_id=entity_id,
                    unit_cost_id=cost.id,
                    calculation_date=day,
                    wealth_used=usable,
                    quantity=quantity,
                ))
            else:
                row.wealth_used = usable
                row.quantity = quantity
            written += 1

    db.flush()
    logger.info(
        "Pre-computed %d comparisons for %s (%d entities x %d costs)",
        written, day, len(holdings), len(costs),
    )
    return written


# ---------------------------------------------------------------------------
# Read paths
# ---------------------------------------------------------------------------

def get_entity_comparisons(
    db: Session,
    entity_id: int,
    calculation_date: Optional[date] = None,
    category: Optional[str] = None,
) -> list[EntityComparison]:
    """
    Stored comparisons for one entity, ordered by category then display_order.
    Defaults to the entity's most recent calculation date.
    """
    if calculation_date is None:
        calculation_date = (
            db.query(func.max(CalculatedComparison.calculation_date))
            .filter(CalculatedComparison.entity_id == entity_id)
            .scalar()
        )
        if calculation_date is None:
            return []

    q = (
        db.query(CalculatedComparison, UnitCost)
        .join(UnitCost, UnitCost.id == CalculatedComparison.unit_cost_id)
        .filter(
            CalculatedComparison.entity_id == entity_id,
            CalculatedComparison.calculation_date == calculation_date,
        )
    )
    if category is not None:
        q = q.filter(UnitCost.category == category)
    rows = q.order_by(
        UnitCost.category.asc(), UnitCost.display_order.asc(), UnitCost.id.asc()
    ).all()

    return [
        EntityComparison(
            unit_cost_id=cost.id,
            name=cost.name,
            display_name=cost.display_name,
            unit=cost.unit,
            description=cost.description,
            category=cost.category,
            region=cost.region,
            source=cost.source,
            source_url=cost.source_url,
            cost_per_unit=cost.cost,
            quantity=cmp.quantity,
            wealth_used=cmp.wealth_used,
            calculation_date=cmp.calculation_date,
        )
        for cmp, cost in rows
    ]


def get_aggregate_comparisons(
    db: Session,
    total_wealth_millions: int,
    region: Optional[str],
    threshold_usd: int,
    limit: int = AGGREGATE_COMPARISON_LIMIT,
) -> AggregateComparisons:
    """Point computation against the region-resolved catalog (not cached)."""
    region_costs = get_region_costs(db, region, limit=limit)
    usable = usable_wealth_usd(total_wealth_millions, threshold_usd)
    items = [
        AggregateComparison(
            display_name=cost.display_name,
            quantity=compute_quantity(usable, cost.cost, cost.name),
            unit=cost.unit,
            description=cost.description,
            category=cost.category,
            cost_per_unit=cost.cost,
        )
        for cost in region_costs.costs
    ]
    return AggregateComparisons(
        region=region_costs.region,
        resolved_region=region_costs.resolved,
        usable_wealth_usd=usable,
        items=items,
    )

