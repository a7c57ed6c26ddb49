"""initial schema

Revision ID: 0001
Revises:
Create Date: 2026-10-01 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # --- data_sources ---
    op.create_table(
        "data_sources",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("url", sa.Text(), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("api_endpoint", sa.Text(), nullable=True),
        sa.Column("status", sa.String(50), nullable=False, server_default="active"),
        sa.Column("last_accessed", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name"),
    )
    op.create_index("ix_data_sources_id", "data_sources", ["id"])

    # --- entities ---
    op.create_table(
        "entities",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("slug", sa.String(255), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("gender", sa.String(50), nullable=True),
        sa.Column("country", sa.String(255), nullable=True),
        sa.Column("tags", sa.JSON(), nullable=False),
        sa.Column("birth_date", sa.Date(), nullable=True),
        sa.Column("image_url", sa.Text(), nullable=True),
        sa.Column("bio", sa.Text(), nullable=True),
        sa.Column("external_uri", sa.String(500), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_entities_id", "entities", ["id"])
    op.create_index("ix_entities_slug", "entities", ["slug"], unique=True)
    op.create_index("ix_entities_name", "entities", ["name"])

    # --- snapshots ---
    op.create_table(
        "snapshots",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("entity_id", sa.Integer(), sa.ForeignKey("entities.id", ondelete="CASCADE"), nullable=False),
        sa.Column("snapshot_date", sa.Date(), nullable=False),
        sa.Column("net_worth", sa.BigInteger(), nullable=False, comment="USD millions"),
        sa.Column("rank", sa.Integer(), nullable=True),
        sa.Column(
            "daily_change", sa.BigInteger(), nullable=True,
            comment="USD millions vs previous calendar day; NULL when no prior-day row",
        ),
        sa.Column("data_source_id", sa.Integer(), sa.ForeignKey("data_sources.id"), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("entity_id", "snapshot_date", name="uq_snapshot_entity_date"),
    )
    op.create_index("ix_snapshots_id", "snapshots", ["id"])
    op.create_index("ix_snapshots_entity_id", "snapshots", ["entity_id"])
    op.create_index("ix_snapshots_snapshot_date", "snapshots", ["snapshot_date"])
    op.create_index("ix_snapshots_rank", "snapshots", ["rank"])

    # --- unit_costs ---
    op.create_table(
        "unit_costs",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("display_name", sa.String(255), nullable=False),
        sa.Column("cost", sa.Numeric(15, 2), nullable=False),
        sa.Column("unit", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("source", sa.String(500), nullable=False),
        sa.Column("source_url", sa.Text(), nullable=False),
        sa.Column("region", sa.String(255), nullable=True),
        sa.Column("category", sa.String(100), nullable=False),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("display_order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_verified", sa.Date(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name"),
        sa.CheckConstraint("cost > 0", name="ck_unit_cost_positive"),
    )
    op.create_index("ix_unit_costs_id", "unit_costs", ["id"])
    op.create_index("ix_unit_costs_region", "unit_costs", ["region"])
    op.create_index("ix_unit_costs_category", "unit_costs", ["category"])
    op.create_index(
        "ix_unit_costs_active_region_order", "unit_costs", ["active", "region", "display_order"]
    )

    # --- calculated_comparisons ---
    op.create_table(
        "calculated_comparisons",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("entity_id", sa.Integer(), sa.ForeignKey("entities.id", ondelete="CASCADE"), nullable=False),
        sa.Column("unit_cost_id", sa.Integer(), sa.ForeignKey("unit_costs.id", ondelete="CASCADE"), nullable=False),
        sa.Column("calculation_date", sa.Date(), nullable=False),
        sa.Column(
            "wealth_used", sa.BigInteger(), nullable=False,
            comment="Usable wealth in USD (net worth minus living reserve, floored at 0)",
        ),
        sa.Column("quantity", sa.BigInteger(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "entity_id", "unit_cost_id", "calculation_date",
            name="uq_comparison_entity_cost_date",
        ),
    )
    op.create_index("ix_calculated_comparisons_id", "calculated_comparisons", ["id"])
    op.create_index(
        "ix_comparisons_entity_date", "calculated_comparisons", ["entity_id", "calculation_date"]
    )

    # --- update_records ---
    op.create_table(
        "update_records",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("update_type", sa.String(100), nullable=False),
        sa.Column("data_source_id", sa.Integer(), sa.ForeignKey("data_sources.id"), nullable=True),
        sa.Column("records_created", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("records_updated", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("records_failed", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("comparisons_created", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("status", sa.String(16), nullable=False),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("execution_time_ms", sa.Integer(), nullable=True),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_update_records_id", "update_records", ["id"])
    op.create_index("ix_update_records_status", "update_records", ["status"])
    op.create_index("ix_update_records_started_at", "update_records", ["started_at"])

    # --- site_config ---
    op.create_table(
        "site_config",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("key", sa.String(100), nullable=False),
        sa.Column("value", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("key"),
    )
    op.create_index("ix_site_config_id", "site_config", ["id"])


def downgrade() -> None:
    op.drop_table("site_config")
    op.drop_table("update_records")
    op.drop_table("calculated_comparisons")
    op.drop_table("unit_costs")
    op.drop_table("snapshots")
    op.drop_table("entities")
    op.drop_table("data_sources")
