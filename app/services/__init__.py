"""
app/services package marker.
"""

from app.services.diagnostics_service import (
    DiagnosticsPersistenceError,
    DiagnosticsService,
    RunNotFoundError,
    get_diagnostics_service,
)
from app.services.ingestion_service import (
    CampaignIngestionService,
    DiagnosticsFailedError,
    IngestionInputError,
    IngestionPersistenceError,
    IngestionRejectedError,
    get_campaign_ingestion_service,
)

__all__ = [
    "CampaignIngestionService",
    "DiagnosticsFailedError",
    "DiagnosticsPersistenceError",
    "DiagnosticsService",
    "IngestionInputError",
    "IngestionPersistenceError",
    "IngestionRejectedError",
    "RunNotFoundError",
    "get_campaign_ingestion_service",
    "get_diagnostics_service",
]
