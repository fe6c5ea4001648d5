"""
app/storage/sqlalchemy_store.py

SQLAlchemy-backed CampaignStore.

Each operation runs in its own session and transaction, so diagnostics
writes commit independently of the run/rows transaction.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from datetime import datetime
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.domain.campaign import CanonicalRow, NewRun, StoredCampaignRow
from app.domain.diagnostics import (
    IssueGroupEntry,
    IssueGroupView,
    OccurrenceEntry,
    RunSnapshot,
)
from app.repositories.analytics_run_repository import AnalyticsRunRepository, to_snapshot
from app.repositories.campaign_data_repository import CampaignDataRepository
from app.repositories.issue_repository import IssueRepository
from app.storage.base import CampaignStore, StoreError


class SQLAlchemyCampaignStore(CampaignStore):
    """
    Persist runs, rows and issues through the repositories.
    """

    def __init__(
        self,
        *,
        session_factory: Callable[[], Session],
        batch_size: int = 1000,
    ) -> None:
        self._session_factory = session_factory
        self._batch_size = max(1, batch_size)

    def create_run_with_rows(self, run: NewRun, rows: Sequence[CanonicalRow]) -> Any:
        with self._session_factory() as db:
            try:
                record = AnalyticsRunRepository(db).create(run)
                CampaignDataRepository(db).bulk_insert(record.id, rows, batch_size=self._batch_size)
                db.commit()
                return record.id
            except SQLAlchemyError as exc:
                db.rollback()
                raise StoreError("Failed to persist run and campaign rows.") from exc

    def find_campaign_data_by_run(self, run_id: Any) -> list[StoredCampaignRow]:
        with self._session_factory() as db:
            try:
                return CampaignDataRepository(db).list_by_run(run_id)
            except SQLAlchemyError as exc:
                raise StoreError(f"Failed to load campaign rows for run {run_id}.") from exc

    def bulk_insert_issue_groups(self, entries: Sequence[IssueGroupEntry]) -> int:
        return self._write(
            lambda db: IssueRepository(db).bulk_insert_groups(entries),
            "Failed to insert issue groups.",
        )

    def find_issue_group_ids(self, run_id: Any) -> dict[tuple[str, str], Any]:
        with self._session_factory() as db:
            try:
                return IssueRepository(db).find_group_ids(run_id)
            except SQLAlchemyError as exc:
                raise StoreError(f"Failed to load issue groups for run {run_id}.") from exc

    def bulk_insert_occurrences(self, entries: Sequence[OccurrenceEntry]) -> int:
        return self._write(
            lambda db: IssueRepository(db).bulk_insert_occurrences(entries),
            "Failed to insert issue occurrences.",
        )

    def mark_diagnostics(self, run_id: Any, marker: dict[str, Any]) -> None:
        self._write(
            lambda db: AnalyticsRunRepository(db).set_diagnostics_marker(run_id, marker),
            f"Failed to update diagnostics marker for run {run_id}.",
        )

    def get_run(self, run_id: Any) -> RunSnapshot | None:
        with self._session_factory() as db:
            try:
                record = AnalyticsRunRepository(db).get(run_id)
            except SQLAlchemyError as exc:
                raise StoreError(f"Failed to load run {run_id}.") from exc
            return to_snapshot(record) if record is not None else None

    def list_issue_groups(self, run_id: Any) -> list[IssueGroupView]:
        with self._session_factory() as db:
            try:
                return IssueRepository(db).list_groups(run_id)
            except SQLAlchemyError as exc:
                raise StoreError(f"Failed to load issue groups for run {run_id}.") from exc

    def list_runs_needing_diagnostics(self, *, stale_before: datetime, limit: int) -> list[RunSnapshot]:
        with self._session_factory() as db:
            try:
                records = AnalyticsRunRepository(db).list_needing_diagnostics(
                    stale_before=stale_before,
                    limit=limit,
                )
            except SQLAlchemyError as exc:
                raise StoreError("Failed to list runs needing diagnostics.") from exc
            return [to_snapshot(record) for record in records]

    def delete_run(self, run_id: Any) -> bool:
        return self._write(
            lambda db: AnalyticsRunRepository(db).delete(run_id),
            f"Failed to delete run {run_id}.",
        )

    def _write(self, operation: Callable[[Session], Any], message: str) -> Any:
        with self._session_factory() as db:
            try:
                result = operation(db)
                db.commit()
                return result
            except SQLAlchemyError as exc:
                db.rollback()
                raise StoreError(message) from exc
