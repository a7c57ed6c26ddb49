"""
Entities router — read-only views over profiles, snapshots and comparisons.

GET /entities                          — current top entities
GET /entities/{slug}                   — profile + latest snapshot
GET /entities/{slug}/history           — snapshots for the last N days
GET /entities/{slug}/comparisons       — stored comparisons
GET /entities/{slug}/luxury            — luxury purchases and what they could fund
"""
from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.db.base import get_db
from app.schemas.entity import (
    ComparisonItem,
    EntityComparisonsResponse,
    EntityDetailResponse,
    HistoryResponse,
    LuxuryPurchaseResponse,
    SnapshotResponse,
    TopEntityResponse,
)
from app.services.comparison import get_entity_comparisons
from app.services.luxury import get_luxury_purchases_with_comparisons
from app.services.site_config import ConfigKey, get_int_config
from app.services.entity_store import (
    get_current_top_entities,
    get_entity_by_slug,
    get_history,
    get_latest_snapshot,
    validate_days,
)

router = APIRouter(prefix="/entities", tags=["entities"])


@router.get(
    "",
    response_model=list[TopEntityResponse],
    summary="Current top entities by rank",
)
def list_entities(
    limit: int = Query(default=50, ge=1, le=500),
    db: Session = Depends(get_db),
):
    """Entities ordered by the rank on their most recent snapshot."""
    return [TopEntityResponse.model_validate(e) for e in get_current_top_entities(db, limit=limit)]


@router.get(
    "/{slug}",
    response_model=EntityDetailResponse,
    summary="Entity profile",
    responses={404: {"description": "No entity with this slug."}},
)
def entity_detail(slug: str, db: Session = Depends(get_db)):
    entity = get_entity_by_slug(db, slug)
    latest = get_latest_snapshot(db, entity.id)
    return EntityDetailResponse(
        id=entity.id,
        slug=entity.slug,
        name=entity.name,
        gender=entity.gender,
        country=entity.country,
        tags=list(entity.tags or []),
        birth_date=entity.birth_date,
        image_url=entity.image_url,
        bio=entity.bio,
        external_uri=entity.external_uri,
        updated_at=entity.updated_at,
        latest_snapshot=SnapshotResponse.model_validate(latest) if latest else None,
    )


@router.get(
    "/{slug}/history",
    response_model=HistoryResponse,
    summary="Net-worth history",
    responses={
        404: {"description": "No entity with this slug."},
        422: {"description": "days outside 1..365."},
    },
)
def entity_history(
    slug: str,
    days: Optional[int] = Query(
        default=None,
        description="Window length in days, 1..365. Defaults to the chart_days_default setting.",
    ),
    db: Session = Depends(get_db),
):
    """Snapshots in `[today - days + 1, today]`, oldest first."""
    if days is not None:
        validate_days(days)
    entity = get_entity_by_slug(db, slug)
    if days is None:
        days = get_int_config(db, ConfigKey.CHART_DAYS_DEFAULT, 30, minimum=1)
    snapshots = get_history(db, entity.id, days)
    return HistoryResponse(
        slug=entity.slug,
        days=days,
        snapshots=[SnapshotResponse.model_validate(s) for s in snapshots],
    )


@router.get(
    "/{slug}/comparisons",
    response_model=EntityComparisonsResponse,
    summary="Stored comparisons for an entity",
    responses={404: {"description": "No entity with this slug."}},
)
def entity_comparisons(
    slug: str,
    category: Optional[str] = Query(default=None),
    calculation_date: Optional[date] = Query(
        default=None,
        description="Defaults to the most recent calculation date for the entity.",
    ),
    db: Session = Depends(get_db),
):
    """
    Returns `available=false` with an empty list when nothing is stored.
    With zero-quantity rows skipped, that also covers "computed, all zero".
    """
    entity = get_entity_by_slug(db, slug)
    rows = get_entity_comparisons(
        db, entity.id, calculation_date=calculation_date, category=category
    )
    return EntityComparisonsResponse(
        slug=entity.slug,
        available=bool(rows),
        calculation_date=rows[0].calculation_date if rows else calculation_date,
        items=[ComparisonItem.model_validate(r) for r in rows],
    )


@router.get(
    "/{slug}/luxury",
    response_model=list[LuxuryPurchaseResponse],
    summary="Luxury purchases with what they could have funded",
    responses={404: {"description": "No entity with this slug."}},
)
def entity_luxury(slug: str, db: Session = Depends(get_db)):
    entity = get_entity_by_slug(db, slug)
    return [
        LuxuryPurchaseResponse.model_validate(p)
        for p in get_luxury_purchases_with_comparisons(db, entity.id)
    ]
