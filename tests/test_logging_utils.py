"""
tests/test_logging_utils.py

Structured log lines and run-id binding.
"""

from __future__ import annotations

import json
import logging
import uuid

import pytest

from conftest import InMemoryCampaignStore, stored_row
from app.logging_utils import current_run_id, log_event, run_context
from app.services.diagnostics_service import DiagnosticsService

logger = logging.getLogger("tests.logging_utils")


def _payloads(caplog: pytest.LogCaptureFixture) -> list[dict]:
    return [json.loads(record.getMessage()) for record in caplog.records]


def test_log_event_is_sorted_json(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.INFO, logger=logger.name)

    log_event(logger, logging.INFO, "rows_validated", valid=3, discarded=1)

    assert caplog.records[0].getMessage() == '{"discarded": 1, "event": "rows_validated", "valid": 3}'


def test_run_context_binds_and_resets(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.INFO, logger=logger.name)
    run_id = uuid.uuid4()

    with run_context(run_id):
        assert current_run_id() == run_id
        log_event(logger, logging.INFO, "inside")
        log_event(logger, logging.INFO, "explicit", run_id="other")
    log_event(logger, logging.INFO, "outside")

    inside, explicit, outside = _payloads(caplog)
    assert inside["run_id"] == str(run_id)
    assert explicit["run_id"] == "other"
    assert "run_id" not in outside
    assert current_run_id() is None


def test_diagnostics_lines_carry_run_id(
    caplog: pytest.LogCaptureFixture,
    store: InMemoryCampaignStore,
    diagnostics_service: DiagnosticsService,
) -> None:
    caplog.set_level(logging.INFO, logger="app.services.diagnostics_service")
    run_id = store.add_run([stored_row(impressions=0, clicks=0, spend="10", conversions=0)])

    diagnostics_service.run_diagnostics(run_id, store=store)

    completed = [payload for payload in _payloads(caplog) if payload["event"] == "diagnostics_completed"]
    assert completed[0]["run_id"] == str(run_id)
    assert current_run_id() is None
