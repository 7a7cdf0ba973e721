"""create dashboard_data and ai_insights tables

Revision ID: 20261017_0001
Revises:
Create Date: 2026-10-17 10:00:00
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20261017_0001"
down_revision = None
branch_labels = None
depends_on = None

JSON_DOCUMENT = sa.JSON().with_variant(postgresql.JSONB(astext_type=sa.Text()), "postgresql")


def upgrade() -> None:
    op.create_table(
        "dashboard_data",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("data_source", sa.String(length=32), nullable=False),
        sa.Column("data_config", JSON_DOCUMENT, nullable=True),
        sa.Column("data", JSON_DOCUMENT, nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_dashboard_data"),
    )
    op.create_index(
        "ix_dashboard_data_source_active",
        "dashboard_data",
        ["data_source", "is_active"],
        unique=False,
    )

    op.create_table(
        "ai_insights",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("dashboard_data_id", sa.String(length=36), nullable=False),
        sa.Column("source_key", sa.String(length=64), nullable=True),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("type", sa.String(length=32), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("confidence", sa.Numeric(precision=3, scale=2), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(
            ["dashboard_data_id"],
            ["dashboard_data.id"],
            name="fk_ai_insights_dashboard_data_id_dashboard_data",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_ai_insights"),
    )
    op.create_index(
        "ix_ai_insights_dashboard_data_position",
        "ai_insights",
        ["dashboard_data_id", "position"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_ai_insights_dashboard_data_position", table_name="ai_insights")
    op.drop_table("ai_insights")
    op.drop_index("ix_dashboard_data_source_active", table_name="dashboard_data")
    op.drop_table("dashboard_data")
