"""
tests/conftest.py

Shared fixtures: an in-memory CampaignStore that honours the same
uniqueness keys as the PostgreSQL schema, plus service builders.
"""

from __future__ import annotations

import uuid
from collections.abc import Sequence
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any

import pytest

from app.domain.campaign import CanonicalRow, NewRun, StoredCampaignRow
from app.domain.diagnostics import (
    IssueGroupEntry,
    IssueGroupView,
    OccurrenceEntry,
    OccurrenceView,
    RunSnapshot,
)
from app.services.diagnostics_service import DiagnosticsService
from app.services.ingestion_service import CampaignIngestionService
from app.storage.base import CampaignStore, StoreError
from db.models.analytics_run import DiagnosticsStatus

FIXED_NOW = datetime(2026, 3, 5, 14, 5, tzinfo=timezone.utc)


class InMemoryCampaignStore(CampaignStore):
    """
    Dict-backed store. ``fail_on`` names operations that raise StoreError.
    """

    def __init__(self) -> None:
        self.runs: dict[uuid.UUID, dict[str, Any]] = {}
        self.rows: dict[uuid.UUID, list[StoredCampaignRow]] = {}
        self.groups: dict[tuple[Any, str, str], dict[str, Any]] = {}
        self.occurrences: dict[tuple[Any, Any], dict[str, Any]] = {}
        self.occurrence_batches: list[int] = []
        self.fail_on: set[str] = set()

    def _maybe_fail(self, operation: str) -> None:
        if operation in self.fail_on:
            raise StoreError(f"simulated failure in {operation}")

    # -- writes ---------------------------------------------------------

    def create_run_with_rows(self, run: NewRun, rows: Sequence[CanonicalRow]) -> Any:
        self._maybe_fail("create_run_with_rows")
        run_id = uuid.uuid4()
        self.runs[run_id] = {
            "name": run.name,
            "source": run.source,
            "platform": run.platform,
            "warnings": list(run.warnings),
            "raw_payload": dict(run.raw_payload),
            "created_at": FIXED_NOW,
        }
        self.rows[run_id] = [
            StoredCampaignRow(
                id=uuid.uuid4(),
                campaign=row.campaign,
                date=row.date,
                impressions=row.impressions,
                clicks=row.clicks,
                spend=row.spend,
                conversions=row.conversions,
            )
            for row in rows
        ]
        return run_id

    def add_run(
        self,
        rows: Sequence[StoredCampaignRow] = (),
        *,
        marker: dict[str, Any] | None = None,
        created_at: datetime = FIXED_NOW,
    ) -> uuid.UUID:
        """Seed a run directly, bypassing ingestion."""
        run_id = uuid.uuid4()
        raw_payload: dict[str, Any] = {}
        if marker is not None:
            raw_payload["diagnostics"] = marker
        self.runs[run_id] = {
            "name": "seeded",
            "source": "API",
            "platform": "google",
            "warnings": [],
            "raw_payload": raw_payload,
            "created_at": created_at,
        }
        self.rows[run_id] = list(rows)
        return run_id

    def bulk_insert_issue_groups(self, entries: Sequence[IssueGroupEntry]) -> int:
        self._maybe_fail("bulk_insert_issue_groups")
        inserted = 0
        for entry in entries:
            key = (entry.run_id, entry.campaign, entry.issue_type)
            if key in self.groups:
                continue
            self.groups[key] = {"id": uuid.uuid4(), "severity": entry.severity}
            inserted += 1
        return inserted

    def bulk_insert_occurrences(self, entries: Sequence[OccurrenceEntry]) -> int:
        self._maybe_fail("bulk_insert_occurrences")
        self.occurrence_batches.append(len(entries))
        inserted = 0
        for entry in entries:
            key = (entry.issue_group_id, entry.campaign_data_id)
            if key in self.occurrences:
                continue
            self.occurrences[key] = {
                "id": uuid.uuid4(),
                "date": entry.date,
                "notes": entry.notes,
            }
            inserted += 1
        return inserted

    def mark_diagnostics(self, run_id: Any, marker: dict[str, Any]) -> None:
        self._maybe_fail("mark_diagnostics")
        if run_id in self.runs:
            self.runs[run_id]["raw_payload"] = {
                **self.runs[run_id]["raw_payload"],
                "diagnostics": dict(marker),
            }

    def delete_run(self, run_id: Any) -> bool:
        self._maybe_fail("delete_run")
        if run_id not in self.runs:
            return False
        del self.runs[run_id]
        self.rows.pop(run_id, None)
        group_ids = {
            group["id"] for key, group in list(self.groups.items()) if key[0] == run_id
        }
        self.groups = {key: value for key, value in self.groups.items() if key[0] != run_id}
        self.occurrences = {
            key: value for key, value in self.occurrences.items() if key[0] not in group_ids
        }
        return True

    # -- reads ----------------------------------------------------------

    def find_campaign_data_by_run(self, run_id: Any) -> list[StoredCampaignRow]:
        self._maybe_fail("find_campaign_data_by_run")
        return sorted(self.rows.get(run_id, []), key=lambda row: (row.campaign, row.date))

    def find_issue_group_ids(self, run_id: Any) -> dict[tuple[str, str], Any]:
        self._maybe_fail("find_issue_group_ids")
        return {
            (campaign, issue_type): group["id"]
            for (group_run_id, campaign, issue_type), group in self.groups.items()
            if group_run_id == run_id
        }

    def get_run(self, run_id: Any) -> RunSnapshot | None:
        self._maybe_fail("get_run")
        record = self.runs.get(run_id)
        if record is None:
            return None
        return RunSnapshot(
            id=run_id,
            name=record["name"],
            source=record["source"],
            platform=record["platform"],
            warnings=list(record["warnings"]),
            raw_payload=dict(record["raw_payload"]),
            created_at=record["created_at"],
            updated_at=record["created_at"],
        )

    def list_issue_groups(self, run_id: Any) -> list[IssueGroupView]:
        self._maybe_fail("list_issue_groups")
        views: list[IssueGroupView] = []
        for (group_run_id, campaign, issue_type), group in sorted(
            self.groups.items(), key=lambda item: (item[0][1], item[0][2])
        ):
            if group_run_id != run_id:
                continue
            occurrences = [
                OccurrenceView(
                    id=value["id"],
                    campaign_data_id=campaign_data_id,
                    date=value["date"],
                    notes=value["notes"],
                )
                for (group_id, campaign_data_id), value in self.occurrences.items()
                if group_id == group["id"]
            ]
            views.append(
                IssueGroupView(
                    id=group["id"],
                    campaign=campaign,
                    issue_type=issue_type,
                    severity=group["severity"],
                    occurrences=occurrences,
                )
            )
        return views

    def list_runs_needing_diagnostics(self, *, stale_before: datetime, limit: int) -> list[RunSnapshot]:
        self._maybe_fail("list_runs_needing_diagnostics")
        selected: list[RunSnapshot] = []
        for run_id, record in sorted(self.runs.items(), key=lambda item: item[1]["created_at"]):
            marker = record["raw_payload"].get("diagnostics") or {}
            status = marker.get("status")
            if status == DiagnosticsStatus.FAILED or (
                status in (None, DiagnosticsStatus.PENDING) and record["created_at"] < stale_before
            ):
                snapshot = self.get_run(run_id)
                if snapshot is not None:
                    selected.append(snapshot)
        return selected[: max(1, limit)]

    # -- helpers for assertions ----------------------------------------

    def groups_for(self, run_id: Any) -> dict[tuple[str, str], str]:
        return {
            (campaign, issue_type): group["severity"]
            for (group_run_id, campaign, issue_type), group in self.groups.items()
            if group_run_id == run_id
        }

    def marker_for(self, run_id: Any) -> dict[str, Any]:
        return self.runs[run_id]["raw_payload"].get("diagnostics", {})


def stored_row(
    campaign: str = "Brand_Search",
    day: date = date(2025, 2, 1),
    *,
    impressions: int = 1000,
    clicks: int = 50,
    spend: str = "100",
    conversions: int = 5,
) -> StoredCampaignRow:
    return StoredCampaignRow(
        id=uuid.uuid4(),
        campaign=campaign,
        date=day,
        impressions=impressions,
        clicks=clicks,
        spend=Decimal(spend),
        conversions=conversions,
    )


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def store() -> InMemoryCampaignStore:
    """Fresh in-memory store for each test."""
    return InMemoryCampaignStore()


@pytest.fixture()
def diagnostics_service() -> DiagnosticsService:
    return DiagnosticsService(occurrence_batch_size=500)


@pytest.fixture()
def ingestion_service(diagnostics_service: DiagnosticsService) -> CampaignIngestionService:
    return CampaignIngestionService(
        diagnostics_service=diagnostics_service,
        clock=lambda: FIXED_NOW,
    )
