"""
Entity store: profile upsert, snapshot upsert, daily-change and read paths.

Public API
----------
make_slug(identifier)                                   -> str
upsert_entity(db, record)                               -> (Entity, was_created)
get_snapshot(db, entity_id, day)                        -> Snapshot | None
compute_daily_change(db, entity_id, day, net_worth)     -> int | None
upsert_snapshot(db, entity_id, day, ...)                -> Snapshot
get_entity_by_slug(db, slug)                            -> Entity       (404 if missing)
get_latest_snapshot(db, entity_id, on_or_before)        -> Snapshot | None
get_history(db, entity_id, days, today)                 -> list[Snapshot]
get_latest_snapshot_day(db)                             -> date | None
get_current_top_entities(db, limit, latest_day_only)    -> list[TopEntity]

Writers flush but never commit; the pipeline owns the transaction.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Any, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.core.errors import EntityNotFoundError, InvalidDayCountError
from app.models.entity import Entity
from app.models.snapshot import Snapshot
from app.schemas.feed import FeedRecord

logger = logging.getLogger(__name__)

HISTORY_DAYS_MAX = 365

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _today() -> date:
    return datetime.now(tz=timezone.utc).date()


def make_slug(identifier: str) -> str:
    """
    Lowercase, collapse every run of non-alphanumerics into "-", trim dashes.

    Two identifiers can map to the same slug; the later one overwrites the
    earlier profile (last write wins). That is accepted, not fixed here.
    """
    slug = _NON_ALNUM.sub("-", identifier.lower()).strip("-")
    if not slug:
        raise ValueError(f"cannot derive a slug from {identifier!r}")
    return slug


@dataclass
class TopEntity:
    id: int
    slug: str
    name: str
    image_url: Optional[str]
    net_worth: int
    rank: int
    daily_change: Optional[int]
    snapshot_date: date


# ---------------------------------------------------------------------------
# Writers
# ---------------------------------------------------------------------------

def upsert_entity(db: Session, record: FeedRecord) -> tuple[Entity, bool]:
    """
    Insert the profile, or overwrite every mutable field on the existing one.

    Existence is checked with its own query before writing so was_created
    reflects what was actually in the store.
    """
    slug = make_slug(record.identifier)

    entity: Optional[Entity] = db.query(Entity).filter(Entity.slug == slug).first()
    was_created = entity is None
    if entity is None:
        entity = Entity(slug=slug)
        db.add(entity)

    entity.name = record.name
    entity.gender = record.gender
    entity.country = record.country
    entity.tags = list(record.industries)
    entity.birth_date = record.birth_date
    entity.image_url = record.image_url
    entity.bio = record.bio
    entity.external_uri = record.uri
    db.flush()

    return entity, was_created


def get_snapshot(db: Session, entity_id: int, day: date) -> Optional[Snapshot]:
    return (
        db.query(Snapshot)
        .filter(Snapshot.entity_id == entity_id, Snapshot.snapshot_date == day)
        .first()
    )


def compute_daily_change(
    db: Session, entity_id: int, day: date, net_worth: int
) -> Optional[int]:
    """
    Change versus the snapshot on exactly day - 1.

    Returns None (not 0) when that snapshot doesn't exist; a gap of more
    than one day is never bridged to an older row.
    """
    yesterday = get_snapshot(db, entity_id, day - timedelta(days=1))
    if yesterday is None:
        return None
    return net_worth - yesterday.net_worth


def upsert_snapshot(
    db: Session,
    entity_id: int,
    day: date,
    net_worth: int,
    rank: Optional[int],
    daily_change: Optional[int],
    data_source_id: Optional[int] = None,
) -> Snapshot:
    snapshot = get_snapshot(db, entity_id, day)
    if snapshot is None:
        snapshot = Snapshot(entity_id=entity_id, snapshot_date=day)
        db.add(snapshot)
    snapshot.net_worth = net_worth
    snapshot.rank = rank
    snapshot.daily_change = daily_change
    snapshot.data_source_id = data_source_id
    db.flush()
    return snapshot


# ---------------------------------------------------------------------------
# Readers
# ---------------------------------------------------------------------------

def get_entity_by_slug(db: Session, slug: str) -> Entity:
    entity = db.query(Entity).filter(Entity.slug == slug).first()
    if entity is None:
        raise EntityNotFoundError(slug)
    return entity


def get_latest_snapshot(
    db: Session, entity_id: int, on_or_before: Optional[date] = None
) -> Optional[Snapshot]:
    q = db.query(Snapshot).filter(Snapshot.entity_id == entity_id)
    if on_or_before is not None:
        q = q.filter(Snapshot.snapshot_date <= on_or_before)
    return q.order_by(Snapshot.snapshot_date.desc()).first()


def validate_days(days: Any) -> int:
    # bool is an int subclass; True must not pass as 1.
    if isinstance(days, bool) or not isinstance(days, int):
        raise InvalidDayCountError(days, HISTORY_DAYS_MAX)
    if days < 1 or days > HISTORY_DAYS_MAX:
        raise InvalidDayCountError(days, HISTORY_DAYS_MAX)
    return days


def get_history(
    db: Session, entity_id: int, days: Any, today: Optional[date] = None
) -> list[Snapshot]:
    """
    Snapshots for the last `days` calendar days, oldest first.
    Window: [today - days + 1, today] inclusive, so at most `days` rows.
    """
    days = validate_days(days)
    end = today or _today()
    start = end - timedelta(days=days - 1)
    return (
        db.query(Snapshot)
        .filter(
            Snapshot.entity_id == entity_id,
            Snapshot.snapshot_date >= start,
            Snapshot.snapshot_date <= end,
        )
        .order_by(Snapshot.snapshot_date.asc())
        .all()
    )


def latest_snapshot_subquery(db: Session, on_or_before: Optional[date] = None):
    """(entity_id, latest_date) per entity, optionally capped at a day."""
    q = db.query(
        Snapshot.entity_id.label("entity_id"),
        func.max(Snapshot.snapshot_date).label("latest_date"),
    )
    if on_or_before is not None:
        q = q.filter(Snapshot.snapshot_date <= on_or_before)
    return q.group_by(Snapshot.entity_id).subquery()


def get_latest_snapshot_day(db: Session) -> Optional[date]:
    return db.query(func.max(Snapshot.snapshot_date)).scalar()


def get_current_top_entities(
    db: Session, limit: int = 50, latest_day_only: bool = False
) -> list[TopEntity]:
    """
    Entities ordered by the rank on their most recent snapshot.

    With `latest_day_only`, only snapshots taken on the most recent snapshot
    day across all entities count, so entities that have dropped out of the
    feed are left out.
    """
    q = db.query(Entity, Snapshot).join(Snapshot, Snapshot.entity_id == Entity.id)
    if latest_day_only:
        latest_day = get_latest_snapshot_day(db)
        if latest_day is None:
            return []
        q = q.filter(Snapshot.snapshot_date == latest_day)
    else:
        latest = latest_snapshot_subquery(db)
        q = q.join(
            latest,
            (latest.c.entity_id == Snapshot.entity_id)
            & (latest.c.latest_date == Snapshot.snapshot_date),
        )
    rows = (
        q.filter(Snapshot.rank.isnot(None))
        .order_by(Snapshot.rank.asc(), Entity.id.asc())
        .limit(limit)
        .all()
    )
    return [
        TopEntity(
            id=entity.id,
            slug=entity.slug,
            name=entity.name,
            image_url=entity.image_url,
            net_worth=snap.net_worth,
            rank=snap.rank,
            daily_change=snap.daily_change,
            snapshot_date=snap.snapshot_date,
        )
        for entity, snap in rows
    ]
