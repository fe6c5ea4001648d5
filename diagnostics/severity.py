"""
diagnostics/severity.py

Issue severity labels and their total order.
"""

from __future__ import annotations


class Severity:
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


SEVERITY_RANK: dict[str, int] = {
    Severity.LOW: 0,
    Severity.MEDIUM: 1,
    Severity.HIGH: 2,
    Severity.CRITICAL: 3,
}


def severity_rank(severity: str) -> int:
    """Rank of a severity label; unknown labels sort below LOW."""
    return SEVERITY_RANK.get(severity, -1)


def escalate(current: str, candidate: str) -> str:
    """
    Return the higher of two severities. Never lowers ``current``.
    """

    return candidate if severity_rank(candidate) > severity_rank(current) else current
