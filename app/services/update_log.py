"""
Update log: one append-only UpdateRecord per ingestion run, plus the
data-source bookkeeping that goes with it.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.orm import Session

from app.models.data_source import DataSource
from app.models.update_record import UpdateRecord, UpdateStatus

DAILY_UPDATE = "daily_update"
BACKFILL_UPDATE = "backfill"


def log_update(
    db: Session,
    *,
    update_type: str,
    status: UpdateStatus,
    started_at: datetime,
    completed_at: datetime,
    execution_time_ms: int,
    records_created: int = 0,
    records_updated: int = 0,
    records_failed: int = 0,
    comparisons_created: int = 0,
    error_message: Optional[str] = None,
    data_source_id: Optional[int] = None,
) -> UpdateRecord:
    """Insert and commit an UpdateRecord."""
    record = UpdateRecord(
        update_type=update_type,
        data_source_id=data_source_id,
        records_created=records_created,
        records_updated=records_updated,
        records_failed=records_failed,
        comparisons_created=comparisons_created,
        status=status.value,
        error_message=error_message,
        execution_time_ms=execution_time_ms,
        started_at=started_at,
        completed_at=completed_at,
    )
    db.add(record)
    db.commit()
    db.refresh(record)
    return record


def get_recent_updates(db: Session, limit: int = 10) -> list[UpdateRecord]:
    return (
        db.query(UpdateRecord)
        .order_by(UpdateRecord.started_at.desc(), UpdateRecord.id.desc())
        .limit(limit)
        .all()
    )


def get_last_successful_update(
    db: Session, update_type: str = DAILY_UPDATE
) -> Optional[UpdateRecord]:
    """Backfill runs replay past days and do not count as a fresh update."""
    return (
        db.query(UpdateRecord)
        .filter(
            UpdateRecord.status == UpdateStatus.success.value,
            UpdateRecord.update_type == update_type,
        )
        .order_by(UpdateRecord.completed_at.desc(), UpdateRecord.id.desc())
        .first()
    )


def get_data_source_by_name(db: Session, name: str) -> Optional[DataSource]:
    return db.query(DataSource).filter(DataSource.name == name).first()


def touch_data_source(db: Session, data_source_id: int) -> None:
    source = db.get(DataSource, data_source_id)
    if source is not None:
        source.last_accessed = datetime.now(tz=timezone.utc)
        db.flush()
