"""
app/repositories/issue_repository.py

Persistence layer for issue groups and issue occurrences.

Both writes are INSERT ... ON CONFLICT DO NOTHING against their unique
constraints, so replaying a diagnostics pass never duplicates rows.
"""

from __future__ import annotations

import uuid
from collections.abc import Sequence
from typing import Any

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.orm import Session, selectinload

from app.domain.diagnostics import IssueGroupEntry, IssueGroupView, OccurrenceEntry, OccurrenceView
from db.models.issue_group import ISSUE_GROUP_UNIQUE_CONSTRAINT, IssueGroup
from db.models.issue_occurrence import ISSUE_OCCURRENCE_UNIQUE_CONSTRAINT, IssueOccurrence

# Five bound parameters per group row; PostgreSQL caps a statement at 65535.
_GROUP_BATCH_SIZE = 5000


class IssueRepository:
    """
    Repository for duplicate-tolerant issue writes and run-scoped reads.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def bulk_insert_groups(
        self,
        entries: Sequence[IssueGroupEntry],
        *,
        batch_size: int = _GROUP_BATCH_SIZE,
    ) -> int:
        """
        Insert issue groups in chunks that stay under the bind parameter limit.
        """

        if not entries:
            return 0

        payloads: list[dict[str, Any]] = [
            {
                "id": uuid.uuid4(),
                "run_id": entry.run_id,
                "campaign": entry.campaign,
                "type": entry.issue_type,
                "severity": entry.severity,
            }
            for entry in entries
        ]
        size = max(1, batch_size)
        inserted = 0
        for start in range(0, len(payloads), size):
            stmt = (
                insert(IssueGroup)
                .values(payloads[start : start + size])
                .on_conflict_do_nothing(constraint=ISSUE_GROUP_UNIQUE_CONSTRAINT)
                .returning(IssueGroup.id)
            )
            inserted += len(self._session.scalars(stmt).all())
        return inserted

    def find_group_ids(self, run_id: uuid.UUID) -> dict[tuple[str, str], uuid.UUID]:
        stmt = select(IssueGroup.id, IssueGroup.campaign, IssueGroup.type).where(
            IssueGroup.run_id == run_id
        )
        return {
            (campaign, issue_type): group_id
            for group_id, campaign, issue_type in self._session.execute(stmt)
        }

    def bulk_insert_occurrences(self, entries: Sequence[OccurrenceEntry]) -> int:
        """
        Insert one batch of occurrences. Batching is the caller's concern.
        """

        if not entries:
            return 0

        payloads: list[dict[str, Any]] = [
            {
                "id": uuid.uuid4(),
                "issue_group_id": entry.issue_group_id,
                "campaign_data_id": entry.campaign_data_id,
                "date": entry.date,
                "notes": entry.notes,
            }
            for entry in entries
        ]
        stmt = (
            insert(IssueOccurrence)
            .values(payloads)
            .on_conflict_do_nothing(constraint=ISSUE_OCCURRENCE_UNIQUE_CONSTRAINT)
            .returning(IssueOccurrence.id)
        )
        return len(self._session.scalars(stmt).all())

    def list_groups(self, run_id: uuid.UUID) -> list[IssueGroupView]:
        stmt = (
            select(IssueGroup)
            .where(IssueGroup.run_id == run_id)
            .options(selectinload(IssueGroup.occurrences))
            .order_by(IssueGroup.campaign.asc(), IssueGroup.type.asc())
        )
        return [
            IssueGroupView(
                id=group.id,
                campaign=group.campaign,
                issue_type=group.type,
                severity=group.severity,
                occurrences=[
                    OccurrenceView(
                        id=occurrence.id,
                        campaign_data_id=occurrence.campaign_data_id,
                        date=occurrence.date,
                        notes=occurrence.notes,
                    )
                    for occurrence in group.occurrences
                ],
            )
            for group in self._session.scalars(stmt)
        ]
