"""
app/repositories package marker.
"""

from app.repositories.analytics_run_repository import AnalyticsRunRepository
from app.repositories.campaign_data_repository import CampaignDataRepository
from app.repositories.issue_repository import IssueRepository

__all__ = [
    "AnalyticsRunRepository",
    "CampaignDataRepository",
    "IssueRepository",
]
