"""
Aggregate statistics over the current top-N entities.

"Current" means ranked snapshots on the most recent snapshot day, so an
entity that has left the feed no longer counts. Everything here is computed
on request; nothing is persisted.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from app.services.comparison import (
    AGGREGATE_COMPARISON_LIMIT,
    AggregateComparisons,
    get_aggregate_comparisons,
)
from app.services.entity_store import get_current_top_entities
from app.services.update_log import get_last_successful_update


@dataclass
class AggregateStats:
    total_net_worth: int          # USD millions
    entity_count: int
    comparisons: AggregateComparisons
    last_updated: Optional[datetime]


def get_aggregate_stats(
    db: Session,
    limit: int,
    region: Optional[str],
    threshold_usd: int,
    comparison_limit: int = AGGREGATE_COMPARISON_LIMIT,
) -> AggregateStats:
    top = get_current_top_entities(db, limit=limit, latest_day_only=True)
    total = sum(e.net_worth for e in top)
    comparisons = get_aggregate_comparisons(
        db, total, region, threshold_usd, limit=comparison_limit
    )
    last = get_last_successful_update(db)
    return AggregateStats(
        total_net_worth=total,
        entity_count=len(top),
        comparisons=comparisons,
        last_updated=last.completed_at if last is not None else None,
    )
