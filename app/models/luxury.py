"""
LuxuryPurchase — a verified big-ticket purchase by a tracked entity, and
LuxuryComparison — what that purchase price could have funded instead.

Purchases are entered by hand; cost is in whole USD. Comparison rows are
derived from the purchase cost and the active unit-cost catalog and are
rewritten whenever the purchase is (re)computed.
"""
from datetime import datetime, date
from sqlalchemy import (
    BigInteger, Boolean, Integer, String, Text, DateTime, Date, ForeignKey,
    CheckConstraint, UniqueConstraint, Index, func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base


class LuxuryPurchase(Base):
    __tablename__ = "luxury_purchases"
    __table_args__ = (
        CheckConstraint("cost > 0", name="ck_luxury_cost_positive"),
        Index("ix_luxury_purchases_cost", "cost"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    entity_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("entities.id", ondelete="CASCADE"), nullable=False, index=True
    )
    item_name: Mapped[str] = mapped_column(String(500), nullable=False)
    category: Mapped[str] = mapped_column(String(100), nullable=False)
    cost: Mapped[int] = mapped_column(BigInteger, nullable=False, comment="USD")
    purchase_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    source: Mapped[str] = mapped_column(String(500), nullable=False)
    source_url: Mapped[str] = mapped_column(Text, nullable=False)
    image_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    entity = relationship("Entity", back_populates="luxury_purchases")
    comparisons = relationship(
        "LuxuryComparison",
        back_populates="purchase",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class LuxuryComparison(Base):
    __tablename__ = "luxury_comparisons"
    __table_args__ = (
        UniqueConstraint(
            "luxury_purchase_id", "unit_cost_id", name="uq_luxury_comparison_purchase_cost"
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    luxury_purchase_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("luxury_purchases.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    unit_cost_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("unit_costs.id", ondelete="CASCADE"), nullable=False
    )
    quantity: Mapped[int] = mapped_column(BigInteger, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    purchase = relationship("LuxuryPurchase", back_populates="comparisons")
    unit_cost = relationship("UnitCost")
