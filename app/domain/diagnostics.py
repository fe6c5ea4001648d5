"""
app/domain/diagnostics.py

Storage-facing records for runs, issue groups and occurrences.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any


@dataclass(frozen=True)
class IssueGroupEntry:
    run_id: Any
    campaign: str
    issue_type: str
    severity: str


@dataclass(frozen=True)
class OccurrenceEntry:
    issue_group_id: Any
    campaign_data_id: Any
    date: date | None
    notes: str | None


@dataclass(frozen=True)
class DiagnosticsSummary:
    """
    Outcome of one diagnostics pass over a run.
    """

    run_id: Any
    rows_scanned: int
    issue_groups: int
    occurrences: int
    groups_inserted: int = 0
    occurrences_inserted: int = 0
    occurrence_batches: int = 0


@dataclass(frozen=True)
class RunSnapshot:
    id: Any
    name: str
    source: str
    platform: str
    warnings: list[dict[str, Any]]
    raw_payload: dict[str, Any]
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def diagnostics_marker(self) -> dict[str, Any]:
        marker = self.raw_payload.get("diagnostics")
        return marker if isinstance(marker, dict) else {}


@dataclass(frozen=True)
class OccurrenceView:
    id: Any
    campaign_data_id: Any
    date: date | None
    notes: str | None


@dataclass(frozen=True)
class IssueGroupView:
    id: Any
    campaign: str
    issue_type: str
    severity: str
    occurrences: list[OccurrenceView] = field(default_factory=list)
