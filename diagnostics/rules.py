"""
diagnostics/rules.py

Deterministic anomaly rules for daily campaign performance rows.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from diagnostics.base import AnomalyRule, CampaignRecord, RuleHit
from diagnostics.severity import Severity


class IssueType:
    ZERO_IMPRESSIONS = "ZERO_IMPRESSIONS"
    HIGH_SPEND_NO_CONVERSIONS = "HIGH_SPEND_NO_CONVERSIONS"
    LOW_CTR = "LOW_CTR"
    SUDDEN_DROP_IMPRESSIONS = "SUDDEN_DROP_IMPRESSIONS"


@dataclass(frozen=True)
class RuleThresholds:
    """
    Tunable rule constants. Defaults follow the latest rule revision.
    """

    high_spend: Decimal = Decimal("500")
    high_spend_click_escalation: int = 10
    low_ctr: float = 0.005
    low_ctr_min_impressions: int = 500
    baseline_window: int = 3
    baseline_min_impressions: float = 500.0
    drop_ratio: float = 0.3


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _day(value: date | None) -> str:
    return value.strftime("%a %b %d %Y") if value is not None else "an unknown date"


def _money(value: Decimal) -> str:
    return f"${Decimal(value):.2f}"


# ---------------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------------

class ZeroImpressionsRule(AnomalyRule):
    issue_type = IssueType.ZERO_IMPRESSIONS

    def evaluate(self, history: Sequence[CampaignRecord], index: int) -> RuleHit | None:
        row = history[index]
        if row.impressions != 0:
            return None
        return RuleHit(
            issue_type=self.issue_type,
            severity=Severity.CRITICAL,
            notes=(
                f"{row.campaign} spent {_money(row.spend)} with zero impressions and "
                f"{row.clicks} clicks on {_day(row.date)}, indicating a likely delivery failure."
            ),
        )


class HighSpendNoConversionsRule(AnomalyRule):
    """
    Spend above the threshold with no conversions.

    Severity starts at MEDIUM; CRITICAL when nothing was delivered, HIGH
    when the traffic was there (clicks at or above the escalation count).
    """

    issue_type = IssueType.HIGH_SPEND_NO_CONVERSIONS

    def __init__(self, thresholds: RuleThresholds | None = None) -> None:
        self._thresholds = thresholds or RuleThresholds()

    def evaluate(self, history: Sequence[CampaignRecord], index: int) -> RuleHit | None:
        row = history[index]
        if not (Decimal(row.spend) > self._thresholds.high_spend and row.conversions == 0):
            return None

        severity = Severity.MEDIUM
        if row.impressions == 0:
            severity = Severity.CRITICAL
        elif row.clicks >= self._thresholds.high_spend_click_escalation:
            severity = Severity.HIGH

        return RuleHit(
            issue_type=self.issue_type,
            severity=severity,
            notes=(
                f"{row.campaign} spent {_money(row.spend)} with zero conversions "
                f"({row.impressions} impressions, {row.clicks} clicks) on {_day(row.date)}, "
                "suggesting tracking or targeting issues."
            ),
        )


class LowCtrRule(AnomalyRule):
    issue_type = IssueType.LOW_CTR

    def __init__(self, thresholds: RuleThresholds | None = None) -> None:
        self._thresholds = thresholds or RuleThresholds()

    def evaluate(self, history: Sequence[CampaignRecord], index: int) -> RuleHit | None:
        row = history[index]
        if row.impressions <= self._thresholds.low_ctr_min_impressions:
            return None

        ctr = row.clicks / row.impressions
        if ctr >= self._thresholds.low_ctr:
            return None

        return RuleHit(
            issue_type=self.issue_type,
            severity=Severity.LOW,
            notes=(
                f"{row.campaign} recorded {ctr * 100:.2f}% CTR ({row.clicks} clicks from "
                f"{row.impressions} impressions, {_money(row.spend)} spent) on {_day(row.date)}. "
                "Review creative or audience relevance."
            ),
        )


class SuddenDropImpressionsRule(AnomalyRule):
    """
    Impressions collapsing against the mean of the immediately preceding
    ``baseline_window`` rows of the same campaign.

    The first ``baseline_window`` rows never fire (cold start).
    """

    issue_type = IssueType.SUDDEN_DROP_IMPRESSIONS

    def __init__(self, thresholds: RuleThresholds | None = None) -> None:
        self._thresholds = thresholds or RuleThresholds()

    def evaluate(self, history: Sequence[CampaignRecord], index: int) -> RuleHit | None:
        window = self._thresholds.baseline_window
        if window <= 0 or index < window:
            return None

        row = history[index]
        baseline = sum(prior.impressions for prior in history[index - window:index]) / window
        if baseline <= self._thresholds.baseline_min_impressions:
            return None
        if row.impressions >= baseline * self._thresholds.drop_ratio:
            return None

        drop_pct = 100 - (row.impressions / baseline) * 100
        return RuleHit(
            issue_type=self.issue_type,
            severity=Severity.MEDIUM,
            notes=(
                f"{row.campaign} impressions dropped {drop_pct:.0f}% compared to recent "
                f"performance ({baseline:.0f} -> {row.impressions}) on {_day(row.date)}. "
                "Investigate delivery, budget, or algorithm changes."
            ),
        )


def default_rules(thresholds: RuleThresholds | None = None) -> list[AnomalyRule]:
    """The four standard rules, in evaluation order."""
    thresholds = thresholds or RuleThresholds()
    return [
        ZeroImpressionsRule(),
        HighSpendNoConversionsRule(thresholds),
        LowCtrRule(thresholds),
        SuddenDropImpressionsRule(thresholds),
    ]
