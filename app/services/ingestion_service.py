"""
app/services/ingestion_service.py

Service layer for campaign ingestion (CSV text and JSON API payloads).

Both sources run the same staged pipeline, exposed as a generator of
ProgressEvent values:

    parsing|detecting -> normalizing -> validating -> saving -> diagnostics -> done

Blocking callers drain the generator and receive its IngestionResult;
streaming callers get the events, with failures turned into one terminal
``error`` event. Nothing is persisted before the ``saving`` stage, and the
run plus its rows are written in a single transaction.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Generator, Iterator, Mapping, Sequence
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any

from app.config import get_ingestion_settings
from app.domain.campaign import (
    CanonicalRow,
    IngestionResult,
    NewRun,
    ValidationOutcome,
)
from app.domain.progress import ProgressEvent, ProgressStep
from app.logging_utils import log_event
from app.mappers.platform_detector import PlatformDetector
from app.mappers.row_normalizer import RowNormalizer
from app.services.diagnostics_service import (
    DiagnosticsPersistenceError,
    DiagnosticsService,
    build_diagnostics_marker,
    get_diagnostics_service,
)
from app.storage.base import CampaignStore, StoreError
from app.validators.row_validator import CampaignRowValidator
from db.models.analytics_run import DiagnosticsStatus, RunSource

logger = logging.getLogger(__name__)

DEFAULT_CSV_FILENAME = "upload.csv"

Pipeline = Generator[ProgressEvent, None, IngestionResult]


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class IngestionInputError(ValueError):
    """
    Raised when the payload or CSV text is empty or malformed. Nothing has
    been persisted.
    """


class IngestionRejectedError(ValueError):
    """
    Raised when validation leaves no valid rows or the discard percentage
    exceeds the admission threshold. Nothing has been persisted.
    """

    def __init__(
        self,
        message: str,
        *,
        warnings: list[dict[str, Any]],
        discarded_pct: int,
    ) -> None:
        super().__init__(message)
        self.warnings = warnings
        self.discarded_pct = discarded_pct

    def to_dict(self) -> dict[str, object]:
        return {
            "message": str(self),
            "warnings": self.warnings,
            "discarded_pct": self.discarded_pct,
        }


class IngestionPersistenceError(RuntimeError):
    """
    Raised when the run and its rows cannot be saved (rolled back).
    """


class DiagnosticsFailedError(RuntimeError):
    """
    Raised when rows were saved but the diagnostics pass failed. The run is
    kept and diagnostics can be retried for ``run_id``.
    """

    def __init__(self, message: str, *, run_id: Any) -> None:
        super().__init__(message)
        self.run_id = run_id

    def to_dict(self) -> dict[str, object]:
        return {"message": str(self), "run_id": str(self.run_id), "retryable": True}


# ---------------------------------------------------------------------------
# Naming helpers
# ---------------------------------------------------------------------------


def csv_run_name(filename: str, now: datetime) -> str:
    """``"<filename> - 5 March 2026 14:05"``"""
    return f"{filename} - {now.day} {now:%B %Y %H:%M}"


def api_run_name(now: datetime) -> str:
    """``"API Ingest - Thu Mar 05 2026"``"""
    return f"API Ingest - {now:%a %b %d %Y}"


def split_csv_lines(csv_text: str) -> list[str]:
    """Trimmed non-blank lines of a CSV document."""
    return [line.strip() for line in csv_text.replace("\r\n", "\n").split("\n") if line.strip()]


def decode_csv_bytes(data: bytes) -> str:
    """
    Decode an uploaded CSV file; a UTF-8 BOM is dropped.
    """

    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise IngestionInputError("CSV must be UTF-8 encoded.") from exc


def _utc_now() -> datetime:
    return datetime.now(tz=timezone.utc)


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class CampaignIngestionService:
    """
    Coordinates detection, normalization, validation, persistence and the
    diagnostics pass for one ingest.
    """

    def __init__(
        self,
        *,
        max_discard_pct: int = 50,
        log_discarded_rows: bool = True,
        max_logged_discards: int = 50,
        detector: PlatformDetector | None = None,
        normalizer: RowNormalizer | None = None,
        validator: CampaignRowValidator | None = None,
        diagnostics_service: DiagnosticsService | None = None,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._max_discard_pct = max_discard_pct
        self._log_discarded_rows = log_discarded_rows
        self._max_logged_discards = max(0, max_logged_discards)
        self._detector = detector or PlatformDetector()
        self._normalizer = normalizer or RowNormalizer()
        self._validator = validator or CampaignRowValidator()
        self._diagnostics_service = diagnostics_service or DiagnosticsService()
        self._clock = clock

    # ------------------------------------------------------------------
    # Blocking entry points
    # ------------------------------------------------------------------

    def ingest_csv_text(
        self,
        csv_text: str,
        *,
        store: CampaignStore,
        filename: str | None = None,
    ) -> IngestionResult:
        """
        Run the CSV pipeline to completion.

        Raises IngestionInputError, IngestionRejectedError,
        IngestionPersistenceError or DiagnosticsFailedError.
        """
        return _drain(self.csv_pipeline(csv_text, store=store, filename=filename))

    def ingest_api_payload(self, payload: Any, *, store: CampaignStore) -> IngestionResult:
        return _drain(self.api_pipeline(payload, store=store))

    # ------------------------------------------------------------------
    # Streaming entry points
    # ------------------------------------------------------------------

    def stream_csv_text(
        self,
        csv_text: str,
        *,
        store: CampaignStore,
        filename: str | None = None,
    ) -> Iterator[ProgressEvent]:
        return self._guarded(self.csv_pipeline(csv_text, store=store, filename=filename))

    def stream_api_payload(self, payload: Any, *, store: CampaignStore) -> Iterator[ProgressEvent]:
        return self._guarded(self.api_pipeline(payload, store=store))

    # ------------------------------------------------------------------
    # Pipelines
    # ------------------------------------------------------------------

    def csv_pipeline(
        self,
        csv_text: str,
        *,
        store: CampaignStore,
        filename: str | None = None,
    ) -> Pipeline:
        yield ProgressEvent(step=ProgressStep.PARSING, message="Reading CSV...")

        lines = split_csv_lines(csv_text or "")
        if len(lines) < 2:
            raise IngestionInputError("CSV must contain a header row and at least one data row.")

        platform = self._detector.detect(lines)
        headers = [header.strip() for header in lines[0].split(",")]
        data_lines = lines[1:]
        log_event(
            logger,
            logging.INFO,
            "platform_detected",
            source=RunSource.CSV,
            platform=platform,
            rows=len(data_lines),
        )
        yield ProgressEvent(
            step=ProgressStep.PARSING,
            message=f"Detected {platform} format - {len(data_lines)} rows found.",
            platform=platform,
        )

        yield ProgressEvent(step=ProgressStep.NORMALIZING, message="Mapping columns to standard schema...")
        normalized = self._normalizer.normalize_csv_rows(data_lines, platform, headers)
        yield ProgressEvent(step=ProgressStep.NORMALIZING, message=f"{len(normalized)} rows normalized.")

        outcome = yield from self._validate(normalized, source=RunSource.CSV)

        now = self._clock()
        run = NewRun(
            name=csv_run_name(filename or DEFAULT_CSV_FILENAME, now),
            source=RunSource.CSV,
            platform=platform,
            warnings=[warning.to_dict() for warning in outcome.warnings],
            raw_payload=self._raw_payload(outcome, platform=platform, headers=headers),
        )
        return (yield from self._persist_and_diagnose(run, outcome, store=store))

    def api_pipeline(self, payload: Any, *, store: CampaignStore) -> Pipeline:
        yield ProgressEvent(step=ProgressStep.DETECTING, message="Detecting ad platform...")

        objects = _validate_api_payload(payload)
        platform = self._detector.detect(objects)
        log_event(
            logger,
            logging.INFO,
            "platform_detected",
            source=RunSource.API,
            platform=platform,
            rows=len(objects),
        )
        yield ProgressEvent(
            step=ProgressStep.DETECTING,
            message=f"Detected {platform} format - {len(objects)} rows received.",
            platform=platform,
        )

        yield ProgressEvent(step=ProgressStep.NORMALIZING, message="Mapping fields to standard schema...")
        normalized = self._normalizer.normalize_api_objects(objects, platform)
        yield ProgressEvent(step=ProgressStep.NORMALIZING, message=f"{len(normalized)} rows normalized.")

        outcome = yield from self._validate(normalized, source=RunSource.API)

        run = NewRun(
            name=api_run_name(self._clock()),
            source=RunSource.API,
            platform=platform,
            warnings=[warning.to_dict() for warning in outcome.warnings],
            raw_payload=self._raw_payload(outcome, platform=platform),
        )
        return (yield from self._persist_and_diagnose(run, outcome, store=store))

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    def _validate(
        self,
        rows: Sequence[CanonicalRow],
        *,
        source: str,
    ) -> Generator[ProgressEvent, None, ValidationOutcome]:
        yield ProgressEvent(step=ProgressStep.VALIDATING, message="Checking rows for invalid data...")

        outcome = self._validator.validate(rows)
        warnings = [warning.to_dict() for warning in outcome.warnings]
        self._log_discards(outcome)
        log_event(
            logger,
            logging.INFO,
            "rows_validated",
            source=source,
            valid=len(outcome.valid_rows),
            discarded=len(outcome.discarded_rows),
            discarded_pct=outcome.discarded_pct,
        )

        if not outcome.valid_rows:
            raise IngestionRejectedError(
                "No valid rows remain after validation.",
                warnings=warnings,
                discarded_pct=outcome.discarded_pct,
            )
        if outcome.discarded_pct > self._max_discard_pct:
            raise IngestionRejectedError(
                f"Upload rejected: {outcome.discarded_pct}% of rows are invalid "
                f"(limit is {self._max_discard_pct}%). Fix the data and try again.",
                warnings=warnings,
                discarded_pct=outcome.discarded_pct,
            )

        note = (
            f" ({outcome.discarded_pct}% discarded)"
            if outcome.discarded_pct > 0
            else " - all rows valid"
        )
        yield ProgressEvent(
            step=ProgressStep.VALIDATING,
            message=f"{len(outcome.valid_rows)} valid rows{note}.",
            warnings=warnings,
            discarded_pct=outcome.discarded_pct,
        )
        return outcome

    def _persist_and_diagnose(
        self,
        run: NewRun,
        outcome: ValidationOutcome,
        *,
        store: CampaignStore,
    ) -> Pipeline:
        valid_rows = outcome.valid_rows
        campaigns = len({row.campaign for row in valid_rows})
        yield ProgressEvent(
            step=ProgressStep.SAVING,
            message=f"Saving {len(valid_rows)} rows across {campaigns} campaigns...",
        )

        try:
            run_id = store.create_run_with_rows(run, valid_rows)
        except StoreError as exc:
            logger.error("Failed to persist run name=%r: %s", run.name, exc)
            raise IngestionPersistenceError("Failed to persist campaign rows.") from exc

        log_event(
            logger,
            logging.INFO,
            "run_saved",
            run_id=run_id,
            source=run.source,
            platform=run.platform,
            rows=len(valid_rows),
        )
        yield ProgressEvent(step=ProgressStep.SAVING, message="Campaign data saved.", run_id=run_id)

        yield ProgressEvent(step=ProgressStep.DIAGNOSTICS, message="Running anomaly detection...")
        try:
            self._diagnostics_service.run_diagnostics(run_id, store=store)
        except DiagnosticsPersistenceError as exc:
            raise DiagnosticsFailedError(
                "Campaign data was saved but anomaly detection failed; it can be retried.",
                run_id=run_id,
            ) from exc
        yield ProgressEvent(step=ProgressStep.DIAGNOSTICS, message="Anomaly detection complete.")

        warnings = list(run.warnings)
        yield ProgressEvent(
            step=ProgressStep.DONE,
            message="All done! Taking you to your dashboard...",
            done=True,
            run_id=run_id,
            warnings=warnings,
            platform=run.platform,
            rows_processed=len(valid_rows),
            discarded_pct=outcome.discarded_pct,
        )
        return IngestionResult(
            run_id=run_id,
            platform=run.platform,
            warnings=warnings,
            rows_processed=len(valid_rows),
            discarded_pct=outcome.discarded_pct,
            diagnostics_status=DiagnosticsStatus.COMPLETED,
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _guarded(self, pipeline: Pipeline) -> Iterator[ProgressEvent]:
        """
        Relay pipeline events; any failure becomes one terminal error event.
        """
        try:
            yield from pipeline
        except IngestionRejectedError as exc:
            yield ProgressEvent(
                step=ProgressStep.ERROR,
                message=str(exc),
                warnings=exc.warnings,
                discarded_pct=exc.discarded_pct,
            )
        except DiagnosticsFailedError as exc:
            yield ProgressEvent(step=ProgressStep.ERROR, message=str(exc), run_id=exc.run_id)
        except (IngestionInputError, IngestionPersistenceError) as exc:
            yield ProgressEvent(step=ProgressStep.ERROR, message=str(exc))
        except Exception:  # noqa: BLE001
            logger.exception("Unexpected ingestion stream failure")
            yield ProgressEvent(step=ProgressStep.ERROR, message="An unexpected error occurred.")

    def _raw_payload(
        self,
        outcome: ValidationOutcome,
        *,
        platform: str,
        headers: list[str] | None = None,
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "row_count": len(outcome.valid_rows),
            "discarded_pct": outcome.discarded_pct,
            "detected_platform": platform,
            "diagnostics": build_diagnostics_marker(DiagnosticsStatus.PENDING),
        }
        if headers is not None:
            payload["headers"] = headers
        return payload

    def _log_discards(self, outcome: ValidationOutcome) -> None:
        if not self._log_discarded_rows:
            return
        for discarded in outcome.discarded_rows[: self._max_logged_discards]:
            logger.warning(
                "Discarded row line=%s campaign=%r reasons=%s",
                discarded.row.line_number,
                discarded.row.campaign,
                ", ".join(discarded.reasons),
            )
        remaining = len(outcome.discarded_rows) - self._max_logged_discards
        if remaining > 0:
            logger.warning("%s more discarded rows not logged", remaining)


def _validate_api_payload(payload: Any) -> list[Mapping[str, Any]]:
    if not isinstance(payload, list) or not payload:
        raise IngestionInputError("Payload must be a non-empty JSON array of objects.")
    for index, entry in enumerate(payload):
        if not isinstance(entry, Mapping):
            raise IngestionInputError(f"Payload entry {index} is not a JSON object.")
    return payload


def _drain(pipeline: Pipeline) -> IngestionResult:
    while True:
        try:
            next(pipeline)
        except StopIteration as stop:
            return stop.value


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


@lru_cache(maxsize=1)
def get_campaign_ingestion_service() -> CampaignIngestionService:
    """
    Build and cache the ingestion service with env-driven settings.
    """
    settings = get_ingestion_settings()
    return CampaignIngestionService(
        max_discard_pct=settings.max_discard_pct,
        log_discarded_rows=settings.log_discarded_rows,
        max_logged_discards=settings.max_logged_discards,
        diagnostics_service=get_diagnostics_service(),
    )
