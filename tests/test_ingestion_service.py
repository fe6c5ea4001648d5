"""
tests/test_ingestion_service.py

Service-level tests for CampaignIngestionService: CSV and API pipelines,
admission control, progress events and diagnostics hand-off.
"""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from conftest import FIXED_NOW, InMemoryCampaignStore
from app.domain.progress import ProgressStep
from app.services.ingestion_service import (
    CampaignIngestionService,
    DiagnosticsFailedError,
    IngestionInputError,
    IngestionPersistenceError,
    IngestionRejectedError,
    api_run_name,
    csv_run_name,
    decode_csv_bytes,
    split_csv_lines,
)
from app.validators import DiscardReason
from db.models.analytics_run import DiagnosticsStatus, RunSource
from diagnostics.rules import IssueType
from diagnostics.severity import Severity

GOOGLE_HEADER = "Campaign,Day,Impressions,Clicks,Cost,Conversions"

HAPPY_CSV = "\n".join(
    [
        GOOGLE_HEADER,
        "Brand,2025-02-01,1000,20,100,2",
        "Brand,2025-02-02,0,0,600,0",
    ]
)


def _csv(*rows: str) -> str:
    return "\n".join([GOOGLE_HEADER, *rows])


def _steps(events) -> list[str]:
    collapsed: list[str] = []
    for event in events:
        if not collapsed or collapsed[-1] != event.step:
            collapsed.append(event.step)
    return collapsed


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class TestHelpers:
    def test_csv_run_name(self) -> None:
        assert csv_run_name("ads.csv", FIXED_NOW) == "ads.csv - 5 March 2026 14:05"

    def test_api_run_name(self) -> None:
        assert api_run_name(FIXED_NOW) == "API Ingest - Thu Mar 05 2026"

    def test_split_csv_lines_drops_blank_lines(self) -> None:
        assert split_csv_lines("a,b\r\n\r\n 1,2 \n\n") == ["a,b", "1,2"]

    def test_decode_strips_bom(self) -> None:
        assert decode_csv_bytes(b"\xef\xbb\xbfCampaign,Day") == "Campaign,Day"

    def test_decode_rejects_non_utf8(self) -> None:
        with pytest.raises(IngestionInputError):
            decode_csv_bytes(b"\xff\xfe\xfa")


# ---------------------------------------------------------------------------
# CSV pipeline
# ---------------------------------------------------------------------------


class TestCsvIngestion:
    def test_happy_path_persists_run_rows_and_diagnostics(
        self,
        store: InMemoryCampaignStore,
        ingestion_service: CampaignIngestionService,
    ) -> None:
        result = ingestion_service.ingest_csv_text(HAPPY_CSV, store=store, filename="ads.csv")

        assert result.platform == "google"
        assert result.rows_processed == 2
        assert result.discarded_pct == 0
        assert result.warnings == []
        assert result.diagnostics_status == DiagnosticsStatus.COMPLETED

        run = store.runs[result.run_id]
        assert run["name"] == "ads.csv - 5 March 2026 14:05"
        assert run["source"] == RunSource.CSV
        assert run["raw_payload"]["headers"] == GOOGLE_HEADER.split(",")
        assert run["raw_payload"]["row_count"] == 2
        assert run["raw_payload"]["detected_platform"] == "google"
        assert len(store.rows[result.run_id]) == 2

        assert store.groups_for(result.run_id) == {
            ("Brand", IssueType.ZERO_IMPRESSIONS): Severity.CRITICAL,
            ("Brand", IssueType.HIGH_SPEND_NO_CONVERSIONS): Severity.CRITICAL,
        }
        assert store.marker_for(result.run_id)["status"] == DiagnosticsStatus.COMPLETED

    def test_default_filename_in_run_name(
        self,
        store: InMemoryCampaignStore,
        ingestion_service: CampaignIngestionService,
    ) -> None:
        result = ingestion_service.ingest_csv_text(HAPPY_CSV, store=store)

        assert store.runs[result.run_id]["name"] == "upload.csv - 5 March 2026 14:05"

    @pytest.mark.parametrize("csv_text", ["", "   \n  ", GOOGLE_HEADER])
    def test_missing_data_rows(
        self,
        store: InMemoryCampaignStore,
        ingestion_service: CampaignIngestionService,
        csv_text: str,
    ) -> None:
        with pytest.raises(IngestionInputError):
            ingestion_service.ingest_csv_text(csv_text, store=store)

        assert store.runs == {}

    def test_majority_invalid_is_rejected_without_writes(
        self,
        store: InMemoryCampaignStore,
        ingestion_service: CampaignIngestionService,
    ) -> None:
        rows = [",2025-02-01,100,1,1,0"] * 6 + ["Brand,2025-02-01,100,1,1,0"] * 4

        with pytest.raises(IngestionRejectedError) as excinfo:
            ingestion_service.ingest_csv_text(_csv(*rows), store=store)

        error = excinfo.value
        assert error.discarded_pct == 60
        assert error.warnings[0]["level"] == Severity.CRITICAL
        assert error.warnings[0]["breakdown"] == {DiscardReason.MISSING_CAMPAIGN: 6}
        assert str(error).startswith("Upload rejected: 60%")
        assert store.runs == {}
        assert store.groups == {}

    def test_no_valid_rows_is_rejected(
        self,
        store: InMemoryCampaignStore,
        ingestion_service: CampaignIngestionService,
    ) -> None:
        with pytest.raises(IngestionRejectedError, match="No valid rows"):
            ingestion_service.ingest_csv_text(_csv("Brand,not-a-date,1,1,1,0"), store=store)

        assert store.runs == {}

    def test_half_discarded_is_admitted_with_warning(
        self,
        store: InMemoryCampaignStore,
        ingestion_service: CampaignIngestionService,
    ) -> None:
        result = ingestion_service.ingest_csv_text(
            _csv("Brand,2025-02-01,100,5,10,1", "Brand,2025-02-02,5,10,10,0"),
            store=store,
        )

        assert result.discarded_pct == 50
        assert result.rows_processed == 1
        assert result.warnings[0]["level"] == Severity.MEDIUM
        assert store.runs[result.run_id]["warnings"] == result.warnings

    def test_garbage_rows_count_as_discards(
        self,
        store: InMemoryCampaignStore,
        ingestion_service: CampaignIngestionService,
    ) -> None:
        rows = ["Brand,2025-02-01,100,5,10,1", ",,,,,", ",not-a-date,n/a,n/a,n/a,n/a"]

        with pytest.raises(IngestionRejectedError) as excinfo:
            ingestion_service.ingest_csv_text(_csv(*rows), store=store)

        assert excinfo.value.discarded_pct == 67
        assert excinfo.value.warnings[0]["breakdown"] == {
            DiscardReason.MISSING_CAMPAIGN: 2,
            DiscardReason.INVALID_DATE: 2,
        }
        assert store.runs == {}

    def test_custom_admission_threshold(self, store: InMemoryCampaignStore) -> None:
        service = CampaignIngestionService(max_discard_pct=10, clock=lambda: FIXED_NOW)
        rows = ["Brand,2025-02-01,100,5,10,1"] * 4 + ["Brand,bad-date,100,5,10,1"]

        with pytest.raises(IngestionRejectedError) as excinfo:
            service.ingest_csv_text(_csv(*rows), store=store)

        assert excinfo.value.discarded_pct == 20

    def test_persistence_failure(
        self,
        store: InMemoryCampaignStore,
        ingestion_service: CampaignIngestionService,
    ) -> None:
        store.fail_on = {"create_run_with_rows"}

        with pytest.raises(IngestionPersistenceError):
            ingestion_service.ingest_csv_text(HAPPY_CSV, store=store)

        assert store.runs == {}


# ---------------------------------------------------------------------------
# API pipeline
# ---------------------------------------------------------------------------


class TestApiIngestion:
    def test_meta_payload_with_sparse_fields(
        self,
        store: InMemoryCampaignStore,
        ingestion_service: CampaignIngestionService,
    ) -> None:
        payload = [{"Campaign_Name": "X", "Spend": "1200", "Conversions": 0, "Date": "2025-02-01"}]

        result = ingestion_service.ingest_api_payload(payload, store=store)

        assert result.platform == "meta"
        assert result.rows_processed == 1
        run = store.runs[result.run_id]
        assert run["name"] == "API Ingest - Thu Mar 05 2026"
        assert run["source"] == RunSource.API
        assert "headers" not in run["raw_payload"]

        stored = store.rows[result.run_id][0]
        assert stored.campaign == "X"
        assert stored.impressions == 0
        assert store.groups_for(result.run_id) == {
            ("X", IssueType.ZERO_IMPRESSIONS): Severity.CRITICAL,
            ("X", IssueType.HIGH_SPEND_NO_CONVERSIONS): Severity.CRITICAL,
        }

    @pytest.mark.parametrize(
        "payload",
        [[], {"campaign": "X"}, None, "campaign,date", [{"campaign": "X"}, 5]],
    )
    def test_malformed_payloads(
        self,
        store: InMemoryCampaignStore,
        ingestion_service: CampaignIngestionService,
        payload,
    ) -> None:
        with pytest.raises(IngestionInputError):
            ingestion_service.ingest_api_payload(payload, store=store)

        assert store.runs == {}

    def test_diagnostics_failure_keeps_run(
        self,
        store: InMemoryCampaignStore,
        ingestion_service: CampaignIngestionService,
    ) -> None:
        store.fail_on = {"bulk_insert_issue_groups"}
        payload = [{"campaign": "X", "date": "2025-02-01", "impressions": 0, "cost": "20"}]

        with pytest.raises(DiagnosticsFailedError) as excinfo:
            ingestion_service.ingest_api_payload(payload, store=store)

        run_id = excinfo.value.run_id
        assert run_id in store.runs
        assert len(store.rows[run_id]) == 1
        assert store.marker_for(run_id)["status"] == DiagnosticsStatus.FAILED
        assert excinfo.value.to_dict()["retryable"] is True


# ---------------------------------------------------------------------------
# Progress streaming
# ---------------------------------------------------------------------------


class TestProgressStream:
    def test_csv_stage_order(
        self,
        store: InMemoryCampaignStore,
        ingestion_service: CampaignIngestionService,
    ) -> None:
        events = list(ingestion_service.stream_csv_text(HAPPY_CSV, store=store, filename="ads.csv"))

        assert _steps(events) == [
            ProgressStep.PARSING,
            ProgressStep.NORMALIZING,
            ProgressStep.VALIDATING,
            ProgressStep.SAVING,
            ProgressStep.DIAGNOSTICS,
            ProgressStep.DONE,
        ]
        assert events[1].message == "Detected google format - 2 rows found."
        assert events[5].message == "2 valid rows - all rows valid."
        assert events[6].message == "Saving 2 rows across 1 campaigns..."

        final = events[-1]
        assert final.done is True
        assert final.run_id in store.runs
        assert final.rows_processed == 2
        assert final.to_dict()["runId"] == str(final.run_id)
        assert sum(1 for event in events if event.is_terminal) == 1

    def test_api_stage_order(
        self,
        store: InMemoryCampaignStore,
        ingestion_service: CampaignIngestionService,
    ) -> None:
        payload = [{"campaign": "X", "date": "2025-02-01", "impressions": 100, "clicks": 5, "cost": "2"}]

        events = list(ingestion_service.stream_api_payload(payload, store=store))

        assert _steps(events)[0] == ProgressStep.DETECTING
        assert events[1].message == "Detected google format - 1 rows received."
        assert events[-1].step == ProgressStep.DONE

    def test_input_error_ends_stream(
        self,
        store: InMemoryCampaignStore,
        ingestion_service: CampaignIngestionService,
    ) -> None:
        events = list(ingestion_service.stream_csv_text("", store=store))

        assert [event.step for event in events] == [ProgressStep.PARSING, ProgressStep.ERROR]
        assert events[-1].message == "CSV must contain a header row and at least one data row."

    def test_rejection_ends_stream_with_warnings(
        self,
        store: InMemoryCampaignStore,
        ingestion_service: CampaignIngestionService,
    ) -> None:
        rows = [",2025-02-01,100,1,1,0"] * 6 + ["Brand,2025-02-01,100,1,1,0"] * 4

        events = list(ingestion_service.stream_csv_text(_csv(*rows), store=store))

        final = events[-1]
        assert final.step == ProgressStep.ERROR
        assert final.discarded_pct == 60
        assert final.warnings and final.warnings[0]["level"] == Severity.CRITICAL
        assert ProgressStep.SAVING not in _steps(events)
        assert store.runs == {}

    def test_diagnostics_failure_ends_stream_with_run_id(
        self,
        store: InMemoryCampaignStore,
        ingestion_service: CampaignIngestionService,
    ) -> None:
        store.fail_on = {"bulk_insert_issue_groups"}

        events = list(ingestion_service.stream_csv_text(HAPPY_CSV, store=store))

        final = events[-1]
        assert final.step == ProgressStep.ERROR
        assert final.run_id in store.runs

    def test_clock_is_injected(self, store: InMemoryCampaignStore) -> None:
        later = datetime(2026, 12, 25, 9, 30, tzinfo=timezone.utc)
        service = CampaignIngestionService(clock=lambda: later)

        result = service.ingest_csv_text(HAPPY_CSV, store=store, filename="x.csv")

        assert store.runs[result.run_id]["name"] == "x.csv - 25 December 2026 09:30"
