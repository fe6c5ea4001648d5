"""
app/logging_utils.py

Structured logging helpers for ingestion and diagnostics workflows.

``run_context`` binds the run being processed so every ``log_event`` line
emitted inside it carries ``run_id`` without threading it through each call.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any

_current_run_id: ContextVar[Any] = ContextVar("current_run_id", default=None)


def current_run_id() -> Any:
    return _current_run_id.get()


@contextmanager
def run_context(run_id: Any) -> Iterator[None]:
    """
    Bind ``run_id`` for log lines emitted in this block.

    Synchronous code only; a generator must not hold it open across a yield.
    """

    token = _current_run_id.set(run_id)
    try:
        yield
    finally:
        _current_run_id.reset(token)


def log_event(
    logger: logging.Logger,
    level: int,
    event: str,
    **fields: Any,
) -> None:
    """
    Emit one structured log line as compact JSON.

    An explicit ``run_id`` field overrides the bound one.
    """

    payload: dict[str, Any] = {"event": event}
    bound_run_id = _current_run_id.get()
    if bound_run_id is not None:
        payload["run_id"] = bound_run_id
    payload.update(fields)
    logger.log(level, json.dumps(payload, default=str, sort_keys=True))
