"""
UpdateRecord — audit log, one row per ingestion run. Append-only.

status values:
  "success" — every record processed
  "partial" — some (not all) records failed; the run completed
  "failed"  — the run aborted (feed error, pre-computation error) or
              every record in the batch failed
"""
from datetime import datetime
import enum
from sqlalchemy import Integer, String, Text, DateTime, ForeignKey, func
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base


class UpdateStatus(str, enum.Enum):
    success = "success"
    partial = "partial"
    failed = "failed"


class UpdateRecord(Base):
    __tablename__ = "update_records"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    update_type: Mapped[str] = mapped_column(String(100), nullable=False)
    data_source_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("data_sources.id"), nullable=True
    )
    records_created: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    records_updated: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    records_failed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    comparisons_created: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    status: Mapped[str] = mapped_column(String(16), nullable=False, index=True)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    execution_time_ms: Mapped[int | None] = mapped_column(Integer, nullable=True)
    started_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, index=True
    )
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
