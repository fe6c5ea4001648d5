"""
db/models/issue_occurrence.py

One dated instance of an issue group on one campaign row.
"""

from __future__ import annotations

import uuid
import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Date, ForeignKey, Index, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from db.base import Base, CreatedAtMixin

if TYPE_CHECKING:
    from db.models.campaign_data import CampaignData
    from db.models.issue_group import IssueGroup

ISSUE_OCCURRENCE_UNIQUE_CONSTRAINT = "uq_issue_occurrences_group_campaign_data"


class IssueOccurrence(Base, CreatedAtMixin):
    __tablename__ = "issue_occurrences"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    issue_group_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("issue_groups.id", ondelete="CASCADE"),
        nullable=False,
    )
    campaign_data_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("campaign_data.id", ondelete="CASCADE"),
        nullable=False,
    )
    date: Mapped[datetime.date | None] = mapped_column(Date, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    issue_group: Mapped["IssueGroup"] = relationship("IssueGroup", back_populates="occurrences")
    campaign_data: Mapped["CampaignData"] = relationship("CampaignData")

    __table_args__ = (
        UniqueConstraint(
            "issue_group_id",
            "campaign_data_id",
            name=ISSUE_OCCURRENCE_UNIQUE_CONSTRAINT,
        ),
        Index("ix_issue_occurrences_campaign_data_id", "campaign_data_id"),
    )
