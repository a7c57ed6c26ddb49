"""luxury purchases

Revision ID: 0003
Revises: 0002
Create Date: 2026-10-16 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "0003"
down_revision: Union[str, None] = "0002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # --- luxury_purchases ---
    op.create_table(
        "luxury_purchases",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("entity_id", sa.Integer(), nullable=False),
        sa.Column("item_name", sa.String(500), nullable=False),
        sa.Column("category", sa.String(100), nullable=False),
        sa.Column("cost", sa.BigInteger(), nullable=False, comment="USD"),
        sa.Column("purchase_date", sa.Date(), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("source", sa.String(500), nullable=False),
        sa.Column("source_url", sa.Text(), nullable=False),
        sa.Column("image_url", sa.Text(), nullable=True),
        sa.Column("verified", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(["entity_id"], ["entities.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("cost > 0", name="ck_luxury_cost_positive"),
    )
    op.create_index("ix_luxury_purchases_id", "luxury_purchases", ["id"])
    op.create_index("ix_luxury_purchases_entity_id", "luxury_purchases", ["entity_id"])
    op.create_index("ix_luxury_purchases_cost", "luxury_purchases", ["cost"])

    # --- luxury_comparisons ---
    op.create_table(
        "luxury_comparisons",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("luxury_purchase_id", sa.Integer(), nullable=False),
        sa.Column("unit_cost_id", sa.Integer(), nullable=False),
        sa.Column("quantity", sa.BigInteger(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(["luxury_purchase_id"], ["luxury_purchases.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["unit_cost_id"], ["unit_costs.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "luxury_purchase_id", "unit_cost_id", name="uq_luxury_comparison_purchase_cost"
        ),
    )
    op.create_index("ix_luxury_comparisons_id", "luxury_comparisons", ["id"])
    op.create_index(
        "ix_luxury_comparisons_luxury_purchase_id", "luxury_comparisons", ["luxury_purchase_id"]
    )


def downgrade() -> None:
    op.drop_table("luxury_comparisons")
    op.drop_table("luxury_purchases")
