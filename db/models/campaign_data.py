"""
db/models/campaign_data.py

One validated canonical campaign row, scoped to its run. Never updated.
"""

from __future__ import annotations

import uuid
import datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import Date, ForeignKey, Index, Integer, Numeric, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from db.base import Base, CreatedAtMixin

if TYPE_CHECKING:
    from db.models.analytics_run import AnalyticsRun


class CampaignData(Base, CreatedAtMixin):
    __tablename__ = "campaign_data"

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
    date: Mapped[datetime.date] = mapped_column(Date, nullable=False)
    impressions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    clicks: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    spend: Mapped[Decimal] = mapped_column(Numeric(18, 4), nullable=False, default=Decimal("0"))
    conversions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    run: Mapped["AnalyticsRun"] = relationship("AnalyticsRun", back_populates="campaign_data")

    __table_args__ = (
        Index("ix_campaign_data_run_campaign_date", "run_id", "campaign", "date"),
    )
