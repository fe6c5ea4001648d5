"""
app/schemas/campaign_ingestion.py

Request and response schemas for campaign ingestion endpoints.
"""

from __future__ import annotations

import uuid

from pydantic import BaseModel, Field


class CSVTextUploadRequest(BaseModel):
    """
    Raw CSV text posted as JSON.
    """

    csv_text: str
    filename: str | None = Field(default=None, max_length=200)


class DiscardWarningResponse(BaseModel):
    level: str
    message: str
    breakdown: dict[str, int] = Field(default_factory=dict)


class IngestionSummaryResponse(BaseModel):
    """
    API response model for a completed ingest.
    """

    run_id: uuid.UUID
    platform: str
    warnings: list[DiscardWarningResponse] = Field(default_factory=list)
    rows_processed: int = Field(..., ge=0)
    discarded_pct: int = Field(..., ge=0, le=100)
    diagnostics_status: str
