"""
diagnostics/engine.py

Runs the anomaly rules over one run's campaign rows and aggregates the hits
into severity-tracked issue groups plus per-row occurrences.

The engine is pure: it returns a plan, and persisting that plan is the
caller's job.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import date
from typing import Any, NamedTuple

from diagnostics.base import AnomalyRule, CampaignRecord
from diagnostics.rules import RuleThresholds, default_rules
from diagnostics.severity import escalate, severity_rank


class IssueKey(NamedTuple):
    campaign: str
    issue_type: str


@dataclass
class IssueGroupDraft:
    """
    Mutable aggregate for one (campaign, issue type) within a single pass.
    """

    campaign: str
    issue_type: str
    severity: str
    occurrence_count: int = 0

    @property
    def key(self) -> IssueKey:
        return IssueKey(self.campaign, self.issue_type)

    def record(self, severity: str) -> None:
        self.severity = escalate(self.severity, severity)
        self.occurrence_count += 1


@dataclass(frozen=True)
class OccurrenceDraft:
    key: IssueKey
    campaign_data_id: Any
    date: date | None
    notes: str


@dataclass(frozen=True)
class DiagnosticsPlan:
    groups: list[IssueGroupDraft] = field(default_factory=list)
    occurrences: list[OccurrenceDraft] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.groups

    def ranked_groups(self) -> list[IssueGroupDraft]:
        """Groups ordered CRITICAL first, then by campaign and type."""
        return sorted(
            self.groups,
            key=lambda group: (-severity_rank(group.severity), group.campaign, group.issue_type),
        )


def partition_by_campaign(rows: Iterable[CampaignRecord]) -> dict[str, list[CampaignRecord]]:
    """
    Group rows by campaign, each group sorted by date ascending.

    Input order is kept for equal dates; undated rows go last.
    """

    partitions: dict[str, list[CampaignRecord]] = {}
    for row in rows:
        partitions.setdefault(row.campaign, []).append(row)

    for history in partitions.values():
        history.sort(key=lambda row: (row.date is None, row.date or date.min))
    return partitions


class AnomalyEngine:
    """
    Evaluates every rule against every row of every campaign.
    """

    def __init__(
        self,
        rules: Sequence[AnomalyRule] | None = None,
        thresholds: RuleThresholds | None = None,
    ) -> None:
        self._rules = list(rules) if rules is not None else default_rules(thresholds)

    @property
    def rules(self) -> list[AnomalyRule]:
        return list(self._rules)

    def evaluate(self, rows: Iterable[CampaignRecord]) -> DiagnosticsPlan:
        groups: dict[IssueKey, IssueGroupDraft] = {}
        occurrences: list[OccurrenceDraft] = []

        for campaign, history in partition_by_campaign(rows).items():
            for index, row in enumerate(history):
                for rule in self._rules:
                    hit = rule.evaluate(history, index)
                    if hit is None:
                        continue

                    key = IssueKey(campaign, hit.issue_type)
                    group = groups.get(key)
                    if group is None:
                        group = IssueGroupDraft(
                            campaign=campaign,
                            issue_type=hit.issue_type,
                            severity=hit.severity,
                        )
                        groups[key] = group
                    group.record(hit.severity)

                    occurrences.append(
                        OccurrenceDraft(
                            key=key,
                            campaign_data_id=row.id,
                            date=row.date,
                            notes=hit.notes,
                        )
                    )

        return DiagnosticsPlan(groups=list(groups.values()), occurrences=occurrences)
