"""
app/api/routers/runs.py

Run inspection, deletion and diagnostics re-run endpoints.
"""

from __future__ import annotations

import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException, Response, status

from app.api.dependencies import get_campaign_store
from app.schemas.runs import (
    DiagnosticsRunResponse,
    IssueGroupResponse,
    IssueOccurrenceResponse,
    RunDetailResponse,
)
from app.services.diagnostics_service import (
    DiagnosticsPersistenceError,
    DiagnosticsService,
    RunNotFoundError,
    get_diagnostics_service,
)
from app.storage.base import CampaignStore, StoreError
from db.models.analytics_run import DiagnosticsStatus
from diagnostics.severity import severity_rank

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/runs", tags=["runs"])


@router.get("/{run_id}", response_model=RunDetailResponse)
def get_run(
    run_id: uuid.UUID,
    store: CampaignStore = Depends(get_campaign_store),
) -> RunDetailResponse:
    """
    Return one run with its issue groups, CRITICAL first.
    """

    try:
        run = store.get_run(run_id)
        groups = store.list_issue_groups(run_id) if run is not None else []
    except StoreError as exc:
        logger.exception("Failed to load run_id=%s", run_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Unable to load run.",
        ) from exc

    if run is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Run {run_id} not found.")

    ranked = sorted(
        groups,
        key=lambda group: (-severity_rank(group.severity), group.campaign, group.issue_type),
    )
    return RunDetailResponse(
        id=run.id,
        name=run.name,
        source=run.source,
        platform=run.platform,
        warnings=run.warnings,
        raw_payload=run.raw_payload,
        diagnostics_status=run.diagnostics_marker.get("status"),
        created_at=run.created_at,
        issue_groups=[
            IssueGroupResponse(
                id=group.id,
                campaign=group.campaign,
                type=group.issue_type,
                severity=group.severity,
                occurrence_count=len(group.occurrences),
                occurrences=[
                    IssueOccurrenceResponse(
                        id=occurrence.id,
                        campaign_data_id=occurrence.campaign_data_id,
                        date=occurrence.date,
                        notes=occurrence.notes,
                    )
                    for occurrence in group.occurrences
                ],
            )
            for group in ranked
        ],
    )


@router.delete("/{run_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_run(
    run_id: uuid.UUID,
    store: CampaignStore = Depends(get_campaign_store),
) -> Response:
    """
    Delete a run together with its rows, issue groups and occurrences.
    """

    try:
        deleted = store.delete_run(run_id)
    except StoreError as exc:
        logger.exception("Failed to delete run_id=%s", run_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Unable to delete run.",
        ) from exc

    if not deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Run {run_id} not found.")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{run_id}/diagnostics", response_model=DiagnosticsRunResponse)
def rerun_diagnostics(
    run_id: uuid.UUID,
    store: CampaignStore = Depends(get_campaign_store),
    diagnostics_service: DiagnosticsService = Depends(get_diagnostics_service),
) -> DiagnosticsRunResponse:
    """
    Re-run diagnostics for an existing run. Safe to repeat.
    """

    try:
        summary = diagnostics_service.run_diagnostics(run_id, store=store)
    except RunNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except DiagnosticsPersistenceError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={"message": str(exc), "run_id": str(run_id), "retryable": True},
        ) from exc

    return DiagnosticsRunResponse(
        run_id=run_id,
        status=DiagnosticsStatus.COMPLETED,
        rows_scanned=summary.rows_scanned,
        issue_groups=summary.issue_groups,
        occurrences=summary.occurrences,
        groups_inserted=summary.groups_inserted,
        occurrences_inserted=summary.occurrences_inserted,
    )
