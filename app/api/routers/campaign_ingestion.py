"""
app/api/routers/campaign_ingestion.py

Campaign ingestion HTTP endpoints.

POST /upload       JSON {csv_text, filename}; ``?stream=true`` for progress events
POST /upload-csv   multipart CSV file
POST /ingest       JSON array of platform objects; ``?stream=true`` for progress events

Streaming responses are ``text/event-stream`` frames of ``data: {json}\\n\\n``
ending with a ``done`` or ``error`` event. All pipeline logic lives in
CampaignIngestionService; the router only maps errors to status codes.
"""

from __future__ import annotations

import json
from collections.abc import Callable, Iterator
from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException, Query, UploadFile, status
from fastapi.responses import StreamingResponse

from app.api.dependencies import get_campaign_store, get_csv_upload
from app.domain.campaign import IngestionResult
from app.domain.progress import ProgressEvent
from app.schemas.campaign_ingestion import (
    CSVTextUploadRequest,
    DiscardWarningResponse,
    IngestionSummaryResponse,
)
from app.services.ingestion_service import (
    CampaignIngestionService,
    DiagnosticsFailedError,
    IngestionInputError,
    IngestionPersistenceError,
    IngestionRejectedError,
    decode_csv_bytes,
    get_campaign_ingestion_service,
)
from app.storage.base import CampaignStore

router = APIRouter(tags=["ingestion"])


# ---------------------------------------------------------------------------
# Serialisation helpers (no business logic)
# ---------------------------------------------------------------------------


def _sse_frames(events: Iterator[ProgressEvent]) -> Iterator[str]:
    for event in events:
        yield f"data: {json.dumps(event.to_dict(), default=str)}\n\n"


def _to_event_stream(events: Iterator[ProgressEvent]) -> StreamingResponse:
    return StreamingResponse(
        content=_sse_frames(events),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )


def _to_summary(result: IngestionResult) -> IngestionSummaryResponse:
    return IngestionSummaryResponse(
        run_id=result.run_id,
        platform=result.platform,
        warnings=[DiscardWarningResponse(**warning) for warning in result.warnings],
        rows_processed=result.rows_processed,
        discarded_pct=result.discarded_pct,
        diagnostics_status=result.diagnostics_status,
    )


def _run_blocking(ingest: Callable[[], IngestionResult]) -> IngestionSummaryResponse:
    try:
        return _to_summary(ingest())
    except IngestionRejectedError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=exc.to_dict(),
        ) from exc
    except IngestionInputError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    except IngestionPersistenceError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Unable to persist campaign rows.",
        ) from exc
    except DiagnosticsFailedError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=exc.to_dict(),
        ) from exc


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.post("/upload", response_model=None)
def upload_csv_text(
    body: CSVTextUploadRequest,
    stream: bool = Query(default=False, description="Respond with a progress event stream"),
    store: CampaignStore = Depends(get_campaign_store),
    ingestion_service: CampaignIngestionService = Depends(get_campaign_ingestion_service),
) -> IngestionSummaryResponse | StreamingResponse:
    """
    Ingest CSV text posted as JSON.
    """

    if stream:
        return _to_event_stream(
            ingestion_service.stream_csv_text(
                body.csv_text,
                store=store,
                filename=body.filename,
            )
        )
    return _run_blocking(
        lambda: ingestion_service.ingest_csv_text(
            body.csv_text,
            store=store,
            filename=body.filename,
        )
    )


@router.post("/upload-csv", response_model=IngestionSummaryResponse)
def upload_csv_file(
    file: UploadFile = Depends(get_csv_upload),
    store: CampaignStore = Depends(get_campaign_store),
    ingestion_service: CampaignIngestionService = Depends(get_campaign_ingestion_service),
) -> IngestionSummaryResponse:
    """
    Ingest one uploaded CSV file.
    """

    try:
        raw = file.file.read()
    finally:
        file.file.close()

    def _ingest() -> IngestionResult:
        return ingestion_service.ingest_csv_text(
            decode_csv_bytes(raw),
            store=store,
            filename=file.filename,
        )

    return _run_blocking(_ingest)


@router.post("/ingest", response_model=None)
def ingest_api_payload(
    payload: Any = Body(...),
    stream: bool = Query(default=False, description="Respond with a progress event stream"),
    store: CampaignStore = Depends(get_campaign_store),
    ingestion_service: CampaignIngestionService = Depends(get_campaign_ingestion_service),
) -> IngestionSummaryResponse | StreamingResponse:
    """
    Ingest a JSON array of ad-platform objects.
    """

    if stream:
        return _to_event_stream(ingestion_service.stream_api_payload(payload, store=store))
    return _run_blocking(lambda: ingestion_service.ingest_api_payload(payload, store=store))
