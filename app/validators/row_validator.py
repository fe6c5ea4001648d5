"""
app/validators/row_validator.py

Row-level validation and discard accounting for normalized campaign rows.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Sequence
from decimal import ROUND_HALF_UP, Decimal

from app.domain.campaign import (
    UNKNOWN_CAMPAIGN,
    CanonicalRow,
    DiscardedRow,
    DiscardWarning,
    ValidationOutcome,
)
from diagnostics.severity import Severity


class DiscardReason:
    MISSING_CAMPAIGN = "missing campaign"
    INVALID_DATE = "invalid date"
    NEGATIVE_IMPRESSIONS = "negative impressions"
    NEGATIVE_CLICKS = "negative clicks"
    NEGATIVE_SPEND = "negative spend"
    NEGATIVE_CONVERSIONS = "negative conversions"
    CLICKS_EXCEED_IMPRESSIONS = "clicks > impressions"
    CONVERSIONS_EXCEED_CLICKS = "conversions > clicks"


DEFAULT_CRITICAL_DISCARD_PCT = 50


def discarded_percentage(discarded: int, total: int) -> int:
    """
    Integer percentage, rounded half up; 0 when there are no rows.
    """

    if total <= 0:
        return 0
    ratio = Decimal(100 * discarded) / Decimal(total)
    return int(ratio.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class CampaignRowValidator:
    """
    Classifies canonical rows as valid or discarded-with-reasons.

    Pure: each call builds its own counters and returns new structures.
    """

    def __init__(self, *, critical_discard_pct: int = DEFAULT_CRITICAL_DISCARD_PCT) -> None:
        self._critical_discard_pct = critical_discard_pct

    def is_empty_row(self, row: CanonicalRow) -> bool:
        """
        True when every field is blank or zero. The UNKNOWN placeholder is a
        value, so rows carrying it are discarded with reasons instead.
        """

        return (
            row.campaign == ""
            and row.date is None
            and not row.impressions
            and not row.clicks
            and not row.spend
            and not row.conversions
        )

    def discard_reasons(self, row: CanonicalRow) -> list[str]:
        """
        Every applicable reason, not just the first.
        """

        reasons: list[str] = []
        if not row.campaign or row.campaign == UNKNOWN_CAMPAIGN:
            reasons.append(DiscardReason.MISSING_CAMPAIGN)
        if row.date is None:
            reasons.append(DiscardReason.INVALID_DATE)
        if row.impressions < 0:
            reasons.append(DiscardReason.NEGATIVE_IMPRESSIONS)
        if row.clicks < 0:
            reasons.append(DiscardReason.NEGATIVE_CLICKS)
        if row.spend < 0:
            reasons.append(DiscardReason.NEGATIVE_SPEND)
        if row.conversions < 0:
            reasons.append(DiscardReason.NEGATIVE_CONVERSIONS)
        if row.clicks > row.impressions:
            reasons.append(DiscardReason.CLICKS_EXCEED_IMPRESSIONS)
        if row.conversions > row.clicks:
            reasons.append(DiscardReason.CONVERSIONS_EXCEED_CLICKS)
        return reasons

    def validate(self, rows: Sequence[CanonicalRow]) -> ValidationOutcome:
        valid: list[CanonicalRow] = []
        discarded: list[DiscardedRow] = []

        for row in rows:
            if self.is_empty_row(row):
                continue
            reasons = self.discard_reasons(row)
            if reasons:
                discarded.append(DiscardedRow(row=row, reasons=tuple(reasons)))
            else:
                valid.append(row)

        total = len(valid) + len(discarded)
        pct = discarded_percentage(len(discarded), total)

        warnings: list[DiscardWarning] = []
        if discarded:
            # A row with N reasons increments all N counters.
            breakdown = Counter(reason for entry in discarded for reason in entry.reasons)
            warnings.append(
                DiscardWarning(
                    level=Severity.CRITICAL if pct > self._critical_discard_pct else Severity.MEDIUM,
                    message=(
                        f"{len(discarded)} / {total} rows ({pct}%) were discarded "
                        "due to invalid data"
                    ),
                    breakdown=dict(breakdown),
                )
            )

        return ValidationOutcome(
            valid_rows=valid,
            discarded_rows=discarded,
            warnings=warnings,
            discarded_pct=pct,
        )
