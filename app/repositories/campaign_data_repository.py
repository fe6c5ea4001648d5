"""
app/repositories/campaign_data_repository.py

Persistence layer for normalized campaign rows.
"""

from __future__ import annotations

import uuid
from collections.abc import Sequence
from typing import Any

from sqlalchemy import insert, select
from sqlalchemy.orm import Session

from app.domain.campaign import CanonicalRow, StoredCampaignRow
from db.models.campaign_data import CampaignData

_DEFAULT_BATCH_SIZE = 1000


class CampaignDataRepository:
    """
    Repository for batch persistence and run-scoped reads of campaign rows.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def bulk_insert(
        self,
        run_id: uuid.UUID,
        rows: Sequence[CanonicalRow],
        *,
        batch_size: int = _DEFAULT_BATCH_SIZE,
    ) -> int:
        """
        Insert validated rows for one run with multi-row INSERT statements.
        """

        if not rows:
            return 0

        payloads: list[dict[str, Any]] = [
            {
                "id": uuid.uuid4(),
                "run_id": run_id,
                "campaign": row.campaign,
                "date": row.date,
                "impressions": row.impressions,
                "clicks": row.clicks,
                "spend": row.spend,
                "conversions": row.conversions,
            }
            for row in rows
        ]

        size = max(1, batch_size)
        inserted = 0
        for start in range(0, len(payloads), size):
            chunk = payloads[start : start + size]
            self._session.execute(insert(CampaignData).values(chunk))
            inserted += len(chunk)
        return inserted

    def list_by_run(self, run_id: uuid.UUID) -> list[StoredCampaignRow]:
        """
        All rows of one run, ordered by campaign then date.
        """

        stmt = (
            select(CampaignData)
            .where(CampaignData.run_id == run_id)
            .order_by(CampaignData.campaign.asc(), CampaignData.date.asc(), CampaignData.id.asc())
        )
        return [
            StoredCampaignRow(
                id=record.id,
                campaign=record.campaign,
                date=record.date,
                impressions=record.impressions,
                clicks=record.clicks,
                spend=record.spend,
                conversions=record.conversions,
            )
            for record in self._session.scalars(stmt)
        ]
