"""
Run anomaly diagnostics from CLI, for one run or as a retry sweep.
"""

from __future__ import annotations

import argparse
import json
import logging
import uuid

from app.api.dependencies import get_campaign_store
from app.scheduler.jobs import run_diagnostics_retry
from app.services.diagnostics_service import (
    DiagnosticsPersistenceError,
    RunNotFoundError,
    get_diagnostics_service,
)


def main() -> int:
    parser = argparse.ArgumentParser(description="Run anomaly diagnostics for stored runs.")
    target = parser.add_mutually_exclusive_group(required=True)
    target.add_argument(
        "--run-id",
        dest="run_id",
        type=uuid.UUID,
        default=None,
        help="Run id to (re)diagnose.",
    )
    target.add_argument(
        "--retry-pending",
        dest="retry_pending",
        action="store_true",
        help="Retry every failed or stale pending run, as the scheduler does.",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    store = get_campaign_store()

    if args.retry_pending:
        result = run_diagnostics_retry(store=store)
        payload = {
            "candidates": result.candidates,
            "completed": [str(run_id) for run_id in result.completed],
            "failed": [str(run_id) for run_id in result.failed],
        }
        print(json.dumps(payload, indent=2))
        return 1 if result.failed else 0

    try:
        summary = get_diagnostics_service().run_diagnostics(args.run_id, store=store)
    except RunNotFoundError as exc:
        print(json.dumps({"run_id": str(args.run_id), "error": str(exc)}, indent=2))
        return 2
    except DiagnosticsPersistenceError as exc:
        print(json.dumps({"run_id": str(args.run_id), "error": str(exc), "retryable": True}, indent=2))
        return 1

    payload = {
        "run_id": str(summary.run_id),
        "rows_scanned": summary.rows_scanned,
        "issue_groups": summary.issue_groups,
        "occurrences": summary.occurrences,
        "groups_inserted": summary.groups_inserted,
        "occurrences_inserted": summary.occurrences_inserted,
        "occurrence_batches": summary.occurrence_batches,
    }
    print(json.dumps(payload, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
