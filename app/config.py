"""
app/config.py

Application-level configuration helpers.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from decimal import Decimal
from functools import lru_cache

from db.config import load_env_files
from diagnostics.rules import RuleThresholds

MAX_OCCURRENCE_BATCH_SIZE = 1000


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    """
    Ensure project `.env` files are loaded once before reading app settings.
    """

    load_env_files()


def _get_bool_env(name: str, default: bool) -> bool:
    """
    Read a boolean from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    return raw_value.strip().lower() in {"1", "true", "yes", "on"}


def _get_int_env(name: str, default: int) -> int:
    """
    Read an integer from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except ValueError:
        return default


def _get_float_env(name: str, default: float) -> float:
    """
    Read a float from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return float(raw_value)
    except ValueError:
        return default


@dataclass(frozen=True)
class IngestionSettings:
    """
    Runtime settings for CSV and API campaign ingestion.
    """

    max_discard_pct: int = 50
    campaign_data_batch_size: int = 1000
    log_discarded_rows: bool = True
    max_logged_discards: int = 50


@dataclass(frozen=True)
class DiagnosticsSettings:
    """
    Anomaly rule thresholds and write batching for the diagnostics pass.
    """

    high_spend_threshold: float = 500.0
    high_spend_click_escalation: int = 10
    low_ctr_threshold: float = 0.005
    low_ctr_min_impressions: int = 500
    baseline_window: int = 3
    baseline_min_impressions: float = 500.0
    drop_ratio: float = 0.3
    occurrence_batch_size: int = 500

    def rule_thresholds(self) -> RuleThresholds:
        return RuleThresholds(
            high_spend=Decimal(str(self.high_spend_threshold)),
            high_spend_click_escalation=self.high_spend_click_escalation,
            low_ctr=self.low_ctr_threshold,
            low_ctr_min_impressions=self.low_ctr_min_impressions,
            baseline_window=self.baseline_window,
            baseline_min_impressions=self.baseline_min_impressions,
            drop_ratio=self.drop_ratio,
        )


@dataclass(frozen=True)
class SchedulerSettings:
    """
    Background diagnostics retry sweep settings.
    """

    retry_enabled: bool = True
    retry_interval_minutes: int = 15
    retry_max_runs: int = 20


@lru_cache(maxsize=1)
def get_ingestion_settings() -> IngestionSettings:
    """
    Return cached ingestion settings from environment variables.
    """

    return IngestionSettings(
        max_discard_pct=min(100, max(0, _get_int_env("INGEST_MAX_DISCARD_PCT", 50))),
        campaign_data_batch_size=max(1, _get_int_env("INGEST_CAMPAIGN_DATA_BATCH_SIZE", 1000)),
        log_discarded_rows=_get_bool_env("INGEST_LOG_DISCARDED_ROWS", True),
        max_logged_discards=max(0, _get_int_env("INGEST_MAX_LOGGED_DISCARDS", 50)),
    )


@lru_cache(maxsize=1)
def get_diagnostics_settings() -> DiagnosticsSettings:
    """
    Return cached diagnostics settings from environment variables.
    """

    return DiagnosticsSettings(
        high_spend_threshold=max(0.0, _get_float_env("DIAGNOSTICS_HIGH_SPEND_THRESHOLD", 500.0)),
        high_spend_click_escalation=max(
            1, _get_int_env("DIAGNOSTICS_HIGH_SPEND_CLICK_ESCALATION", 10)
        ),
        low_ctr_threshold=max(0.0, _get_float_env("DIAGNOSTICS_LOW_CTR_THRESHOLD", 0.005)),
        low_ctr_min_impressions=max(0, _get_int_env("DIAGNOSTICS_LOW_CTR_MIN_IMPRESSIONS", 500)),
        baseline_window=max(1, _get_int_env("DIAGNOSTICS_BASELINE_WINDOW", 3)),
        baseline_min_impressions=max(
            0.0, _get_float_env("DIAGNOSTICS_BASELINE_MIN_IMPRESSIONS", 500.0)
        ),
        drop_ratio=min(1.0, max(0.0, _get_float_env("DIAGNOSTICS_DROP_RATIO", 0.3))),
        occurrence_batch_size=min(
            MAX_OCCURRENCE_BATCH_SIZE,
            max(1, _get_int_env("DIAGNOSTICS_OCCURRENCE_BATCH_SIZE", 500)),
        ),
    )


@lru_cache(maxsize=1)
def get_scheduler_settings() -> SchedulerSettings:
    """
    Return cached scheduler settings from environment variables.
    """

    return SchedulerSettings(
        retry_enabled=_get_bool_env("DIAGNOSTICS_RETRY_ENABLED", True),
        retry_interval_minutes=max(1, _get_int_env("DIAGNOSTICS_RETRY_INTERVAL_MINUTES", 15)),
        retry_max_runs=max(1, _get_int_env("DIAGNOSTICS_RETRY_MAX_RUNS", 20)),
    )
