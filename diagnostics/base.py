"""
diagnostics/base.py

Abstract base class for per-row anomaly rules.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Protocol


class CampaignRecord(Protocol):
    """
    Shape of a persisted campaign row as consumed by the rules.
    """

    id: Any
    campaign: str
    date: date | None
    impressions: int
    clicks: int
    spend: Decimal
    conversions: int


@dataclass(frozen=True)
class RuleHit:
    issue_type: str
    severity: str
    notes: str


class AnomalyRule(ABC):
    """
    Contract for anomaly rule implementations.

    A rule inspects one row of a single campaign's chronological history
    and reports at most one hit for it. Rules are independent: several may
    fire on the same row.

    No I/O, no logging, and no side effects are permitted inside
    :meth:`evaluate`.
    """

    issue_type: str = ""

    @abstractmethod
    def evaluate(self, history: Sequence[CampaignRecord], index: int) -> RuleHit | None:
        """
        Evaluate ``history[index]``.

        Parameters
        ----------
        history:
            All rows of one campaign, ordered by date ascending.

        index:
            Position of the row under evaluation. Rows before it are the
            only ones a rule may use as a baseline.

        Returns
        -------
        RuleHit | None
            The triggered issue, or ``None`` when the rule does not fire.
        """
