"""create analytics_runs and campaign_data tables

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19 09:00:00
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "analytics_runs",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("source", sa.String(length=16), nullable=False, comment="CSV or API"),
        sa.Column(
            "platform",
            sa.String(length=32),
            nullable=False,
            comment="Detected ad platform tag",
        ),
        sa.Column(
            "warnings",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            comment="Discard warnings: level, message, breakdown",
        ),
        sa.Column(
            "raw_payload",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            comment="row_count, discarded_pct, headers, detected_platform, diagnostics marker",
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_analytics_runs"),
    )
    op.create_index("ix_analytics_runs_source", "analytics_runs", ["source"], unique=False)
    op.create_index("ix_analytics_runs_created_at", "analytics_runs", ["created_at"], unique=False)

    op.create_table(
        "campaign_data",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("run_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("campaign", sa.String(length=255), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("impressions", sa.Integer(), nullable=False),
        sa.Column("clicks", sa.Integer(), nullable=False),
        sa.Column("spend", sa.Numeric(precision=18, scale=4), nullable=False),
        sa.Column("conversions", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(
            ["run_id"],
            ["analytics_runs.id"],
            name="fk_campaign_data_run_id_analytics_runs",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_campaign_data"),
    )
    op.create_index(
        "ix_campaign_data_run_campaign_date",
        "campaign_data",
        ["run_id", "campaign", "date"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_campaign_data_run_campaign_date", table_name="campaign_data")
    op.drop_table("campaign_data")
    op.drop_index("ix_analytics_runs_created_at", table_name="analytics_runs")
    op.drop_index("ix_analytics_runs_source", table_name="analytics_runs")
    op.drop_table("analytics_runs")
