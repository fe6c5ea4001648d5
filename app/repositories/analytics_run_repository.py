"""
app/repositories/analytics_run_repository.py

Persistence layer for analytics runs and their diagnostics marker.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import and_, or_, select
from sqlalchemy.orm import Session

from app.domain.campaign import NewRun
from app.domain.diagnostics import RunSnapshot
from db.models.analytics_run import AnalyticsRun, DiagnosticsStatus


def to_snapshot(run: AnalyticsRun) -> RunSnapshot:
    return RunSnapshot(
        id=run.id,
        name=run.name,
        source=run.source,
        platform=run.platform,
        warnings=list(run.warnings or []),
        raw_payload=dict(run.raw_payload or {}),
        created_at=run.created_at,
        updated_at=run.updated_at,
    )


class AnalyticsRunRepository:
    """
    Repository for analytics run rows. Never commits; callers own the
    transaction.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def create(self, run: NewRun) -> AnalyticsRun:
        record = AnalyticsRun(
            name=run.name,
            source=run.source,
            platform=run.platform,
            warnings=list(run.warnings),
            raw_payload=dict(run.raw_payload),
        )
        self._session.add(record)
        self._session.flush()
        return record

    def get(self, run_id: uuid.UUID) -> AnalyticsRun | None:
        return self._session.get(AnalyticsRun, run_id)

    def delete(self, run_id: uuid.UUID) -> bool:
        record = self.get(run_id)
        if record is None:
            return False
        self._session.delete(record)
        self._session.flush()
        return True

    def set_diagnostics_marker(self, run_id: uuid.UUID, marker: dict[str, Any]) -> bool:
        record = self.get(run_id)
        if record is None:
            return False
        # Reassign so the JSONB column is flagged dirty.
        payload = dict(record.raw_payload or {})
        payload["diagnostics"] = dict(marker)
        record.raw_payload = payload
        self._session.flush()
        return True

    def list_needing_diagnostics(self, *, stale_before: datetime, limit: int) -> list[AnalyticsRun]:
        """
        Runs whose diagnostics failed, or never finished and are older than
        ``stale_before``. Oldest first.
        """

        status = AnalyticsRun.raw_payload[("diagnostics", "status")].astext
        stmt = (
            select(AnalyticsRun)
            .where(
                or_(
                    status == DiagnosticsStatus.FAILED,
                    and_(
                        or_(status.is_(None), status == DiagnosticsStatus.PENDING),
                        AnalyticsRun.created_at < stale_before,
                    ),
                )
            )
            .order_by(AnalyticsRun.created_at.asc())
            .limit(max(1, limit))
        )
        return list(self._session.scalars(stmt).all())
