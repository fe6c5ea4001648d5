"""
app/services/diagnostics_service.py

Service layer for the anomaly diagnostics pass over one persisted run.

Write order per pass:

    1. Issue groups      : one insert-or-ignore statement (run, campaign, type)
    2. Group id lookup   : resolves (campaign, type) to stored ids
    3. Occurrences       : insert-or-ignore in fixed-size batches

There is no transaction spanning the three steps. Every write is keyed, so
a failed pass can simply be re-run; at-least-once with idempotent keys.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any

from app.config import get_diagnostics_settings
from app.domain.diagnostics import DiagnosticsSummary, IssueGroupEntry, OccurrenceEntry
from app.logging_utils import log_event, run_context
from app.storage.base import CampaignStore, StoreError
from db.models.analytics_run import DiagnosticsStatus
from diagnostics.engine import AnomalyEngine, DiagnosticsPlan

logger = logging.getLogger(__name__)

DEFAULT_OCCURRENCE_BATCH_SIZE = 500


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class DiagnosticsPersistenceError(RuntimeError):
    """
    Raised when issue groups or occurrences cannot be written. The run has
    already been marked ``failed`` (best effort) when this propagates.
    """

    def __init__(self, message: str, *, run_id: Any) -> None:
        super().__init__(message)
        self.run_id = run_id


class RunNotFoundError(LookupError):
    """
    Raised when an operation targets a run id that does not exist.
    """

    def __init__(self, run_id: Any) -> None:
        super().__init__(f"Run {run_id} not found.")
        self.run_id = run_id


# ---------------------------------------------------------------------------
# Marker helpers
# ---------------------------------------------------------------------------


def build_diagnostics_marker(status: str, *, attempts: int = 0, **fields: Any) -> dict[str, Any]:
    """
    Marker stored under ``raw_payload["diagnostics"]``.
    """

    marker: dict[str, Any] = {"status": status, "attempts": attempts}
    marker.update({key: value for key, value in fields.items() if value is not None})
    return marker


def _utc_now_iso() -> str:
    return datetime.now(tz=timezone.utc).isoformat()


def chunked(items: Sequence[Any], size: int) -> list[Sequence[Any]]:
    step = max(1, size)
    return [items[start : start + step] for start in range(0, len(items), step)]


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class DiagnosticsService:
    """
    Runs the anomaly engine over one run and persists the resulting plan.
    """

    def __init__(
        self,
        *,
        engine: AnomalyEngine | None = None,
        occurrence_batch_size: int = DEFAULT_OCCURRENCE_BATCH_SIZE,
    ) -> None:
        self._engine = engine or AnomalyEngine()
        self._occurrence_batch_size = max(1, occurrence_batch_size)

    def run_diagnostics(self, run_id: Any, *, store: CampaignStore) -> DiagnosticsSummary:
        """
        Evaluate and persist diagnostics for ``run_id``.

        A run without rows is a no-op that is still marked completed.

        Raises
        ------
        RunNotFoundError
            The run does not exist.
        DiagnosticsPersistenceError
            Any read or write against the store failed.
        """

        with run_context(run_id):
            return self._run_diagnostics(run_id, store=store)

    def _run_diagnostics(self, run_id: Any, *, store: CampaignStore) -> DiagnosticsSummary:
        try:
            run = store.get_run(run_id)
        except StoreError as exc:
            raise DiagnosticsPersistenceError(
                f"Failed to load run {run_id}.",
                run_id=run_id,
            ) from exc
        if run is None:
            raise RunNotFoundError(run_id)

        attempts = _as_int(run.diagnostics_marker.get("attempts")) + 1

        try:
            summary = self._execute(run_id, store=store)
            store.mark_diagnostics(
                run_id,
                build_diagnostics_marker(
                    DiagnosticsStatus.COMPLETED,
                    attempts=attempts,
                    issue_groups=summary.issue_groups,
                    occurrences=summary.occurrences,
                    completed_at=_utc_now_iso(),
                ),
            )
        except StoreError as exc:
            log_event(
                logger,
                logging.ERROR,
                "diagnostics_failed",
                attempts=attempts,
                error=str(exc),
            )
            self._mark_failed(run_id, store=store, attempts=attempts, error=str(exc))
            raise DiagnosticsPersistenceError(
                f"Diagnostics persistence failed for run {run_id}.",
                run_id=run_id,
            ) from exc

        log_event(
            logger,
            logging.INFO,
            "diagnostics_completed",
            attempts=attempts,
            rows_scanned=summary.rows_scanned,
            issue_groups=summary.issue_groups,
            occurrences=summary.occurrences,
            occurrence_batches=summary.occurrence_batches,
        )
        return summary

    def plan(self, rows: Sequence[Any]) -> DiagnosticsPlan:
        return self._engine.evaluate(rows)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _execute(self, run_id: Any, *, store: CampaignStore) -> DiagnosticsSummary:
        rows = store.find_campaign_data_by_run(run_id)
        if not rows:
            return DiagnosticsSummary(run_id=run_id, rows_scanned=0, issue_groups=0, occurrences=0)

        plan = self._engine.evaluate(rows)
        if plan.is_empty:
            return DiagnosticsSummary(
                run_id=run_id,
                rows_scanned=len(rows),
                issue_groups=0,
                occurrences=0,
            )

        groups_inserted = store.bulk_insert_issue_groups(
            [
                IssueGroupEntry(
                    run_id=run_id,
                    campaign=group.campaign,
                    issue_type=group.issue_type,
                    severity=group.severity,
                )
                for group in plan.groups
            ]
        )

        group_ids = store.find_issue_group_ids(run_id)
        entries: list[OccurrenceEntry] = []
        for draft in plan.occurrences:
            group_id = group_ids.get((draft.key.campaign, draft.key.issue_type))
            if group_id is None:
                raise StoreError(
                    f"Issue group {draft.key.campaign!r}/{draft.key.issue_type} "
                    "missing after insert."
                )
            entries.append(
                OccurrenceEntry(
                    issue_group_id=group_id,
                    campaign_data_id=draft.campaign_data_id,
                    date=draft.date,
                    notes=draft.notes,
                )
            )

        batches = chunked(entries, self._occurrence_batch_size)
        occurrences_inserted = 0
        for batch in batches:
            occurrences_inserted += store.bulk_insert_occurrences(batch)

        return DiagnosticsSummary(
            run_id=run_id,
            rows_scanned=len(rows),
            issue_groups=len(plan.groups),
            occurrences=len(entries),
            groups_inserted=groups_inserted,
            occurrences_inserted=occurrences_inserted,
            occurrence_batches=len(batches),
        )

    def _mark_failed(self, run_id: Any, *, store: CampaignStore, attempts: int, error: str) -> None:
        try:
            store.mark_diagnostics(
                run_id,
                build_diagnostics_marker(DiagnosticsStatus.FAILED, attempts=attempts, error=error),
            )
        except StoreError:
            logger.exception("Could not mark diagnostics failed run_id=%s", run_id)


def _as_int(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


@lru_cache(maxsize=1)
def get_diagnostics_service() -> DiagnosticsService:
    """
    Build and cache the diagnostics service with env-driven settings.
    """
    settings = get_diagnostics_settings()
    return DiagnosticsService(
        engine=AnomalyEngine(thresholds=settings.rule_thresholds()),
        occurrence_batch_size=settings.occurrence_batch_size,
    )
