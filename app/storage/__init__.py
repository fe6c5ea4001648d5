"""
Storage layer exports.
"""

from app.storage.base import CampaignStore, StoreError
from app.storage.sqlalchemy_store import SQLAlchemyCampaignStore

__all__ = ["CampaignStore", "SQLAlchemyCampaignStore", "StoreError"]
