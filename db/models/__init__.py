"""
Model package exports.

Import all SQLAlchemy models here so metadata registration and Alembic
autogeneration work without extra imports.
"""

from db.models.analytics_run import AnalyticsRun, DiagnosticsStatus, RunSource
from db.models.campaign_data import CampaignData
from db.models.issue_group import IssueGroup
from db.models.issue_occurrence import IssueOccurrence

__all__ = [
    "AnalyticsRun",
    "CampaignData",
    "DiagnosticsStatus",
    "IssueGroup",
    "IssueOccurrence",
    "RunSource",
]
