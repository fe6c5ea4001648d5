"""
app/schemas/runs.py

Response schemas for run inspection and diagnostics endpoints.
"""

from __future__ import annotations

import uuid
import datetime
from typing import Any

from pydantic import BaseModel, Field


class IssueOccurrenceResponse(BaseModel):
    id: uuid.UUID
    campaign_data_id: uuid.UUID
    date: datetime.date | None = None
    notes: str | None = None


class IssueGroupResponse(BaseModel):
    id: uuid.UUID
    campaign: str
    type: str
    severity: str
    occurrence_count: int = Field(..., ge=0)
    occurrences: list[IssueOccurrenceResponse] = Field(default_factory=list)


class RunDetailResponse(BaseModel):
    """
    API response model for one run with its severity-ranked issue groups.
    """

    id: uuid.UUID
    name: str
    source: str
    platform: str
    warnings: list[dict[str, Any]] = Field(default_factory=list)
    raw_payload: dict[str, Any] = Field(default_factory=dict)
    diagnostics_status: str | None = None
    created_at: datetime.datetime | None = None
    issue_groups: list[IssueGroupResponse] = Field(default_factory=list)


class DiagnosticsRunResponse(BaseModel):
    run_id: uuid.UUID
    status: str
    rows_scanned: int = Field(..., ge=0)
    issue_groups: int = Field(..., ge=0)
    occurrences: int = Field(..., ge=0)
    groups_inserted: int = Field(..., ge=0)
    occurrences_inserted: int = Field(..., ge=0)
