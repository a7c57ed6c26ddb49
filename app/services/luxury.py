"""
Luxury purchases: record a big-ticket purchase and pre-compute how many units
of each catalog item its price would have paid for.

    quantity = floor(purchase_cost_usd / unit_cost)

No living reserve is subtracted; the whole purchase price counts.

Public API
----------
add_luxury_purchase(db, entity_id, item_name, cost, category, ...)   -> LuxuryPurchase
precompute_luxury_comparisons(db, purchase_ids=None, policy)          -> int   (rows written)
get_luxury_purchases_with_comparisons(db, entity_id)                  -> list[LuxuryPurchaseView]

Writers flush but never commit.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from app.core.errors import InvalidLuxuryPurchaseError
from app.models.luxury import LuxuryComparison, LuxuryPurchase
from app.models.unit_cost import UnitCost
from app.services.catalog import get_active_costs
from app.services.comparison import ComparisonPolicy, compute_quantity

logger = logging.getLogger(__name__)


@dataclass
class LuxuryComparisonView:
    display_name: str
    unit: str
    category: str
    cost_per_unit: Decimal
    quantity: int


@dataclass
class LuxuryPurchaseView:
    id: int
    item_name: str
    category: str
    cost: int
    purchase_date: Optional[date]
    description: Optional[str]
    source: str
    source_url: str
    image_url: Optional[str]
    verified: bool
    comparisons: list[LuxuryComparisonView] = field(default_factory=list)


def add_luxury_purchase(
    db: Session,
    entity_id: int,
    item_name: str,
    cost: int,
    category: str,
    *,
    source: str,
    source_url: str,
    purchase_date: Optional[date] = None,
    description: Optional[str] = None,
    image_url: Optional[str] = None,
    verified: bool = False,
    policy: ComparisonPolicy = ComparisonPolicy(),
) -> LuxuryPurchase:
    """Insert a purchase and compute its comparisons against the active catalog."""
    if isinstance(cost, bool) or not isinstance(cost, int) or cost <= 0:
        raise InvalidLuxuryPurchaseError(
            f"Purchase cost must be a positive whole number of USD, got {cost!r}.",
            details={"cost": str(cost)},
        )
    if not item_name or not item_name.strip():
        raise InvalidLuxuryPurchaseError("Purchase item name must not be blank.")

    purchase = LuxuryPurchase(
        entity_id=entity_id,
        item_name=item_name.strip(),
        category=category,
        cost=cost,
        purchase_date=purchase_date,
        description=description,
        source=source,
        source_url=source_url,
        image_url=image_url,
        verified=verified,
    )
    db.add(purchase)
    db.flush()
    precompute_luxury_comparisons(db, [purchase.id], policy)
    return purchase


def precompute_luxury_comparisons(
    db: Session,
    purchase_ids: Optional[Iterable[int]] = None,
    policy: ComparisonPolicy = ComparisonPolicy(),
) -> int:
    """
    Upsert one row per (purchase, active unit cost). All purchases when
    `purchase_ids` is None. Rows for costs that have since been deactivated
    are left alone; zero-quantity rows follow `policy`.
    """
    q = db.query(LuxuryPurchase)
    if purchase_ids is not None:
        q = q.filter(LuxuryPurchase.id.in_(list(purchase_ids)))
    purchases = q.order_by(LuxuryPurchase.id.asc()).all()
    if not purchases:
        return 0

    costs = get_active_costs(db)
    existing: dict[tuple[int, int], LuxuryComparison] = {
        (row.luxury_purchase_id, row.unit_cost_id): row
        for row in db.query(LuxuryComparison)
        .filter(LuxuryComparison.luxury_purchase_id.in_([p.id for p in purchases]))
        .all()
    }

    written = 0
    for purchase in purchases:
        for cost in costs:
            quantity = compute_quantity(purchase.cost, cost.cost, cost.name)
            row = existing.get((purchase.id, cost.id))

            if quantity == 0 and policy.skip_zero_quantity_rows:
                if row is not None:
                    db.delete(row)
                continue

            if row is None:
                db.add(LuxuryComparison(
                    luxury_purchase_id=purchase.id,
                    unit_cost_id=cost.id,
                    quantity=quantity,
                ))
            else:
                row.quantity = quantity
            written += 1

    db.flush()
    logger.info(
        "Pre-computed %d luxury comparisons (%d purchases x %d costs)",
        written, len(purchases), len(costs),
    )
    return written


def get_luxury_purchases_with_comparisons(
    db: Session, entity_id: int
) -> list[LuxuryPurchaseView]:
    """Purchases by cost descending, each with comparisons in catalog display order."""
    purchases = (
        db.query(LuxuryPurchase)
        .filter(LuxuryPurchase.entity_id == entity_id)
        .order_by(LuxuryPurchase.cost.desc(), LuxuryPurchase.id.asc())
        .all()
    )
    if not purchases:
        return []

    views = {
        p.id: LuxuryPurchaseView(
            id=p.id,
            item_name=p.item_name,
            category=p.category,
            cost=p.cost,
            purchase_date=p.purchase_date,
            description=p.description,
            source=p.source,
            source_url=p.source_url,
            image_url=p.image_url,
            verified=p.verified,
        )
        for p in purchases
    }
    rows = (
        db.query(LuxuryComparison, UnitCost)
        .join(UnitCost, UnitCost.id == LuxuryComparison.unit_cost_id)
        .filter(LuxuryComparison.luxury_purchase_id.in_(list(views)))
        .order_by(UnitCost.display_order.asc(), UnitCost.id.asc())
        .all()
    )
    for cmp, cost in rows:
        views[cmp.luxury_purchase_id].comparisons.append(LuxuryComparisonView(
            display_name=cost.display_name,
            unit=cost.unit,
            category=cost.category,
            cost_per_unit=cost.cost,
            quantity=cmp.quantity,
        ))
    return [views[p.id] for p in purchases]
