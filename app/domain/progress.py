"""
app/domain/progress.py

Stage-named progress events for long-running ingests.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


class ProgressStep:
    PARSING = "parsing"
    DETECTING = "detecting"
    NORMALIZING = "normalizing"
    VALIDATING = "validating"
    SAVING = "saving"
    DIAGNOSTICS = "diagnostics"
    DONE = "done"
    ERROR = "error"


TERMINAL_STEPS = frozenset({ProgressStep.DONE, ProgressStep.ERROR})


@dataclass(frozen=True)
class ProgressEvent:
    step: str
    message: str
    warnings: list[dict[str, Any]] | None = None
    done: bool = False
    run_id: Any | None = None
    platform: str | None = None
    rows_processed: int | None = None
    discarded_pct: int | None = None

    @property
    def is_terminal(self) -> bool:
        return self.step in TERMINAL_STEPS

    def to_dict(self) -> dict[str, Any]:
        """
        Serialize for the event stream, dropping unset optional fields.
        """

        payload: dict[str, Any] = {"step": self.step, "message": self.message}
        if self.warnings is not None:
            payload["warnings"] = self.warnings
        if self.done:
            payload["done"] = True
        if self.run_id is not None:
            payload["runId"] = str(self.run_id)
        if self.platform is not None:
            payload["platform"] = self.platform
        if self.rows_processed is not None:
            payload["rowsProcessed"] = self.rows_processed
        if self.discarded_pct is not None:
            payload["discardedPct"] = self.discarded_pct
        return payload
