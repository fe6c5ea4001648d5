"""
db/models/issue_group.py

Deduplicated anomaly bucket per (run, campaign, issue type).
"""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from db.base import Base, TimestampMixin

if TYPE_CHECKING:
    from db.models.analytics_run import AnalyticsRun
    from db.models.issue_occurrence import IssueOccurrence

ISSUE_GROUP_UNIQUE_CONSTRAINT = "uq_issue_groups_run_campaign_type"


class IssueGroup(Base, TimestampMixin):
    __tablename__ = "issue_groups"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    run_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("analytics_runs.id", ondelete="CASCADE"),
        nullable=False,
    )
    campaign: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        comment="ZERO_IMPRESSIONS, HIGH_SPEND_NO_CONVERSIONS, LOW_CTR, SUDDEN_DROP_IMPRESSIONS",
    )
    severity: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        comment="LOW, MEDIUM, HIGH, CRITICAL",
    )

    run: Mapped["AnalyticsRun"] = relationship("AnalyticsRun", back_populates="issue_groups")

    occurrences: Mapped[list["IssueOccurrence"]] = relationship(
        "IssueOccurrence",
        back_populates="issue_group",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="IssueOccurrence.date",
    )

    __table_args__ = (
        UniqueConstraint("run_id", "campaign", "type", name=ISSUE_GROUP_UNIQUE_CONSTRAINT),
        Index("ix_issue_groups_run_id", "run_id"),
    )
