"""
db/models/analytics_run.py

AnalyticsRun model: one ingestion batch (CSV upload or API call).
A run owns its campaign rows and issue groups; deleting it cascades to both.
"""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING, Any

from sqlalchemy import Index, String
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from db.base import Base, TimestampMixin

if TYPE_CHECKING:
    from db.models.campaign_data import CampaignData
    from db.models.issue_group import IssueGroup


class RunSource:
    CSV = "CSV"
    API = "API"


class DiagnosticsStatus:
    """Values stored under raw_payload["diagnostics"]["status"]."""

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class AnalyticsRun(Base, TimestampMixin):
    """
    Immutable after creation except for the diagnostics marker kept inside
    raw_payload.
    """

    __tablename__ = "analytics_runs"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    source: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        comment="CSV or API",
    )
    platform: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        default="unknown",
        comment="Detected ad platform tag",
    )
    warnings: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONB,
        nullable=False,
        default=list,
        comment="Discard warnings: level, message, breakdown",
    )
    raw_payload: Mapped[dict[str, Any]] = mapped_column(
        JSONB,
        nullable=False,
        default=dict,
        comment="row_count, discarded_pct, headers, detected_platform, diagnostics marker",
    )

    # ── Relationships ──────────────────────────────────────────────────────────

    campaign_data: Mapped[list["CampaignData"]] = relationship(
        "CampaignData",
        back_populates="run",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    issue_groups: Mapped[list["IssueGroup"]] = relationship(
        "IssueGroup",
        back_populates="run",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        Index("ix_analytics_runs_source", "source"),
        Index("ix_analytics_runs_created_at", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<AnalyticsRun id={self.id} name={self.name!r} platform={self.platform!r}>"
