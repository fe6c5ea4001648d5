"""
app/domain package marker.
"""

from app.domain.campaign import (
    CANONICAL_FIELDS,
    UNKNOWN_CAMPAIGN,
    CanonicalRow,
    DiscardedRow,
    DiscardWarning,
    IngestionResult,
    NewRun,
    Platform,
    StoredCampaignRow,
    ValidationOutcome,
)
from app.domain.diagnostics import (
    DiagnosticsSummary,
    IssueGroupEntry,
    IssueGroupView,
    OccurrenceEntry,
    OccurrenceView,
    RunSnapshot,
)
from app.domain.progress import ProgressEvent, ProgressStep

__all__ = [
    "CANONICAL_FIELDS",
    "UNKNOWN_CAMPAIGN",
    "CanonicalRow",
    "DiagnosticsSummary",
    "DiscardedRow",
    "DiscardWarning",
    "IngestionResult",
    "IssueGroupEntry",
    "IssueGroupView",
    "NewRun",
    "OccurrenceEntry",
    "OccurrenceView",
    "Platform",
    "ProgressEvent",
    "ProgressStep",
    "RunSnapshot",
    "StoredCampaignRow",
    "ValidationOutcome",
]
