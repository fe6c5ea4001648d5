"""create issue_groups and issue_occurrences tables

Revision ID: 20261019_0002
Revises: 20261019_0001
Create Date: 2026-10-19 09:10:00
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20261019_0002"
down_revision = "20261019_0001"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "issue_groups",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("run_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("campaign", sa.String(length=255), nullable=False),
        sa.Column("type", sa.String(length=64), nullable=False),
        sa.Column("severity", sa.String(length=16), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(
            ["run_id"],
            ["analytics_runs.id"],
            name="fk_issue_groups_run_id_analytics_runs",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_issue_groups"),
        sa.UniqueConstraint("run_id", "campaign", "type", name="uq_issue_groups_run_campaign_type"),
    )
    op.create_index("ix_issue_groups_run_id", "issue_groups", ["run_id"], unique=False)

    op.create_table(
        "issue_occurrences",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("issue_group_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("campaign_data_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("date", sa.Date(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(
            ["issue_group_id"],
            ["issue_groups.id"],
            name="fk_issue_occurrences_issue_group_id_issue_groups",
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["campaign_data_id"],
            ["campaign_data.id"],
            name="fk_issue_occurrences_campaign_data_id_campaign_data",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_issue_occurrences"),
        sa.UniqueConstraint(
            "issue_group_id",
            "campaign_data_id",
            name="uq_issue_occurrences_group_campaign_data",
        ),
    )
    op.create_index(
        "ix_issue_occurrences_campaign_data_id",
        "issue_occurrences",
        ["campaign_data_id"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_issue_occurrences_campaign_data_id", table_name="issue_occurrences")
    op.drop_table("issue_occurrences")
    op.drop_index("ix_issue_groups_run_id", table_name="issue_groups")
    op.drop_table("issue_groups")
