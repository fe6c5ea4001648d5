"""
app/domain/campaign.py

Domain models used by the campaign ingestion flow.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any

UNKNOWN_CAMPAIGN = "UNKNOWN"

CANONICAL_FIELDS: tuple[str, ...] = (
    "campaign",
    "date",
    "impressions",
    "clicks",
    "spend",
    "conversions",
)


class Platform:
    GOOGLE = "google"
    META = "meta"
    AMAZON = "amazon"
    FLIPKART = "flipkart"
    LINKEDIN = "linkedin"
    TWITTER = "twitter"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class CanonicalRow:
    """
    Campaign-performance record after schema normalization.

    Numeric fields carry safe defaults (0 / Decimal 0) when the source value
    was missing or malformed; ``date`` is None when unparsable.
    """

    campaign: str = UNKNOWN_CAMPAIGN
    date: date | None = None
    impressions: int = 0
    clicks: int = 0
    spend: Decimal = Decimal("0")
    conversions: int = 0
    line_number: int | None = None


@dataclass(frozen=True)
class DiscardedRow:
    row: CanonicalRow
    reasons: tuple[str, ...]


@dataclass(frozen=True)
class DiscardWarning:
    """
    Aggregate warning emitted when at least one row was discarded.
    """

    level: str
    message: str
    breakdown: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "level": self.level,
            "message": self.message,
            "breakdown": dict(self.breakdown),
        }


@dataclass(frozen=True)
class ValidationOutcome:
    valid_rows: list[CanonicalRow]
    discarded_rows: list[DiscardedRow]
    warnings: list[DiscardWarning]
    discarded_pct: int


@dataclass(frozen=True)
class NewRun:
    """
    Run metadata prepared for persistence alongside its valid rows.
    """

    name: str
    source: str
    platform: str
    warnings: list[dict[str, Any]]
    raw_payload: dict[str, Any]


@dataclass(frozen=True)
class StoredCampaignRow:
    """
    Persisted campaign row as read back for diagnostics.
    """

    id: Any
    campaign: str
    date: date | None
    impressions: int
    clicks: int
    spend: Decimal
    conversions: int


@dataclass(frozen=True)
class IngestionResult:
    """
    End-of-pipeline summary returned to the caller.
    """

    run_id: Any
    platform: str
    warnings: list[dict[str, Any]]
    rows_processed: int
    discarded_pct: int
    diagnostics_status: str
