"""
app/api/routers package marker.
"""

from app.api.routers.campaign_ingestion import router as campaign_ingestion_router
from app.api.routers.runs import router as runs_router

__all__ = [
    "campaign_ingestion_router",
    "runs_router",
]
