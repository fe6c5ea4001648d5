"""
app/schemas package marker.
"""

from app.schemas.campaign_ingestion import (
    CSVTextUploadRequest,
    DiscardWarningResponse,
    IngestionSummaryResponse,
)
from app.schemas.runs import (
    DiagnosticsRunResponse,
    IssueGroupResponse,
    IssueOccurrenceResponse,
    RunDetailResponse,
)

__all__ = [
    "CSVTextUploadRequest",
    "DiagnosticsRunResponse",
    "DiscardWarningResponse",
    "IngestionSummaryResponse",
    "IssueGroupResponse",
    "IssueOccurrenceResponse",
    "RunDetailResponse",
]
