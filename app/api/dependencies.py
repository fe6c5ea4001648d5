"""
app/api/dependencies.py

Shared FastAPI dependencies for request validation and storage access.
"""

from __future__ import annotations

from functools import lru_cache

from fastapi import File, HTTPException, UploadFile, status

from app.config import get_ingestion_settings
from app.storage.base import CampaignStore
from app.storage.sqlalchemy_store import SQLAlchemyCampaignStore
from db.session import SessionLocal

CSV_CONTENT_TYPES = {
    "text/csv",
    "application/csv",
    "application/vnd.ms-excel",
}


def get_csv_upload(file: UploadFile = File(...)) -> UploadFile:
    """
    Validate that the uploaded file is a CSV by extension or MIME type.
    """

    filename = (file.filename or "").strip().lower()
    content_type = (file.content_type or "").strip().lower()

    if not filename.endswith(".csv") and content_type not in CSV_CONTENT_TYPES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Only CSV files are allowed.",
        )

    return file


@lru_cache(maxsize=1)
def get_campaign_store() -> CampaignStore:
    """
    Return the shared PostgreSQL-backed campaign store.
    """

    return SQLAlchemyCampaignStore(
        session_factory=SessionLocal,
        batch_size=get_ingestion_settings().campaign_data_batch_size,
    )
