"""
CalculatedComparison — cached (entity, unit cost, day) -> quantity.

Derived data, refreshed by the bulk pre-computation step after each
ingestion run. Recomputation overwrites the row for the same triple.

Rows with quantity 0 are normally not stored (ComparisonPolicy), so a
missing row can mean either "zero" or "never computed".
"""
from datetime import datetime, date
from sqlalchemy import (
    BigInteger, Integer, DateTime, Date, ForeignKey, UniqueConstraint, Index, func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base


class CalculatedComparison(Base):
    __tablename__ = "calculated_comparisons"
    __table_args__ = (
        UniqueConstraint(
            "entity_id", "unit_cost_id", "calculation_date",
            name="uq_comparison_entity_cost_date",
        ),
        Index("ix_comparisons_entity_date", "entity_id", "calculation_date"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    entity_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("entities.id", ondelete="CASCADE"), nullable=False
    )
    unit_cost_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("unit_costs.id", ondelete="CASCADE"), nullable=False
    )
    calculation_date: Mapped[date] = mapped_column(Date, nullable=False)
    wealth_used: Mapped[int] = mapped_column(
        BigInteger, nullable=False,
        comment="Usable wealth in USD (net worth minus living reserve, floored at 0)",
    )
    quantity: Mapped[int] = mapped_column(BigInteger, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    entity = relationship("Entity", back_populates="comparisons")
    unit_cost = relationship("UnitCost", back_populates="comparisons")
