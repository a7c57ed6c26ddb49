"""
Snapshot — one row per (entity, calendar day).

net_worth / daily_change are integers in millions of USD.
daily_change is NULL when there was no snapshot on the previous calendar
day; 0 means the figure was unchanged. The two must never be conflated.
"""
from datetime import datetime, date
from sqlalchemy import (
    BigInteger, Integer, DateTime, Date, ForeignKey, UniqueConstraint, func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base


class Snapshot(Base):
    __tablename__ = "snapshots"
    __table_args__ = (
        UniqueConstraint("entity_id", "snapshot_date", name="uq_snapshot_entity_date"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    entity_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("entities.id", ondelete="CASCADE"), nullable=False, index=True
    )
    snapshot_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    net_worth: Mapped[int] = mapped_column(
        BigInteger, nullable=False, comment="USD millions"
    )
    rank: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)
    daily_change: Mapped[int | None] = mapped_column(
        BigInteger, nullable=True,
        comment="USD millions vs previous calendar day; NULL when no prior-day row",
    )
    data_source_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("data_sources.id"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    entity = relationship("Entity", back_populates="snapshots")
