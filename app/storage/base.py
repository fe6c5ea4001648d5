"""
app/storage/base.py

Persistence gateway consumed by the ingestion and diagnostics services.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from datetime import datetime
from typing import Any

from app.domain.campaign import CanonicalRow, NewRun, StoredCampaignRow
from app.domain.diagnostics import (
    IssueGroupEntry,
    IssueGroupView,
    OccurrenceEntry,
    RunSnapshot,
)


class StoreError(RuntimeError):
    """
    Raised by store implementations when a write or read fails.
    """


class CampaignStore(ABC):
    """
    Storage abstraction for runs, campaign rows and diagnostics output.

    Every operation is scoped to one run identifier.
    """

    @abstractmethod
    def create_run_with_rows(self, run: NewRun, rows: Sequence[CanonicalRow]) -> Any:
        """
        Atomically persist a run and its rows; return the new run id.
        Nothing is persisted when this raises.
        """

    @abstractmethod
    def find_campaign_data_by_run(self, run_id: Any) -> list[StoredCampaignRow]:
        """
        Rows of one run, ordered by campaign then date ascending.
        """

    @abstractmethod
    def bulk_insert_issue_groups(self, entries: Sequence[IssueGroupEntry]) -> int:
        """
        Insert-or-ignore on (run, campaign, type); return rows inserted.
        """

    @abstractmethod
    def find_issue_group_ids(self, run_id: Any) -> dict[tuple[str, str], Any]:
        """
        Map (campaign, issue type) to the stored group id for one run.
        """

    @abstractmethod
    def bulk_insert_occurrences(self, entries: Sequence[OccurrenceEntry]) -> int:
        """
        Insert-or-ignore one batch on (group, campaign row); return rows inserted.
        """

    @abstractmethod
    def mark_diagnostics(self, run_id: Any, marker: dict[str, Any]) -> None:
        """
        Replace the diagnostics marker kept in the run's raw payload.
        """

    @abstractmethod
    def get_run(self, run_id: Any) -> RunSnapshot | None:
        ...

    @abstractmethod
    def list_issue_groups(self, run_id: Any) -> list[IssueGroupView]:
        ...

    @abstractmethod
    def list_runs_needing_diagnostics(self, *, stale_before: datetime, limit: int) -> list[RunSnapshot]:
        """
        Runs whose diagnostics failed, or stayed pending past ``stale_before``.
        """

    @abstractmethod
    def delete_run(self, run_id: Any) -> bool:
        """
        Delete a run with its rows, groups and occurrences. False when absent.
        """
