"""
Entity — one tracked profile (person or organisation).

Identity is the slug: derived from the feed's external identifier, unique,
never changed after creation. Every other column is overwritten on each
sighting in the feed (last write wins, absent fields erase stored values).
"""
from datetime import datetime, date
from sqlalchemy import Integer, String, Text, DateTime, Date, JSON, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base


class Entity(Base):
    __tablename__ = "entities"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    slug: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    gender: Mapped[str | None] = mapped_column(String(50), nullable=True)
    country: Mapped[str | None] = mapped_column(String(255), nullable=True)
    tags: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    birth_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    image_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    bio: Mapped[str | None] = mapped_column(Text, nullable=True)
    external_uri: Mapped[str | None] = mapped_column(String(500), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    snapshots = relationship(
        "Snapshot",
        back_populates="entity",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    comparisons = relationship(
        "CalculatedComparison",
        back_populates="entity",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    luxury_purchases = relationship(
        "LuxuryPurchase",
        back_populates="entity",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
