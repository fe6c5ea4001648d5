"""
app/mappers/row_normalizer.py

Coerces raw CSV lines and API objects into CanonicalRow instances.

Normalization never raises: malformed or missing values degrade to safe
defaults (0, Decimal 0, None) and the validator decides what to discard.
"""

from __future__ import annotations

import math
import re
from collections.abc import Mapping, Sequence
from dataclasses import replace
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any

from app.domain.campaign import UNKNOWN_CAMPAIGN, CanonicalRow
from app.mappers.field_mapper import ColumnMapping, FieldMapper

DATE_FORMATS: tuple[str, ...] = (
    "%Y-%m-%d",
    "%Y/%m/%d",
    "%m/%d/%Y",
    "%Y-%m-%d %H:%M:%S",
    "%Y/%m/%d %H:%M:%S",
    "%m/%d/%Y %H:%M:%S",
    "%d %b %Y",
    "%d %B %Y",
    "%b %d, %Y",
    "%B %d, %Y",
    "%b %d %Y",
    "%a %b %d %Y",
)

# Column order assumed when a CSV arrives without a header row.
LEGACY_COLUMN_ORDER: tuple[str, ...] = (
    "date",
    "campaign",
    "impressions",
    "clicks",
    "spend",
    "conversions",
)

RAW_CAMPAIGN_KEYS: tuple[str, ...] = ("campaign", "campaign_name", "campaignName")

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")
_ZERO = Decimal("0")


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


def safe_int(value: Any) -> int:
    """
    Parse the leading integer of a value; 0 when missing or non-numeric.
    """

    if _is_blank(value) or isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else 0
    if isinstance(value, Decimal):
        return int(value) if value.is_finite() else 0

    match = _LEADING_INT.match(str(value))
    return int(match.group(1)) if match else 0


def safe_decimal(value: Any) -> Decimal:
    """
    Parse a whole value as a decimal; Decimal 0 when missing or malformed.
    """

    if _is_blank(value) or isinstance(value, bool):
        return _ZERO
    try:
        parsed = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return _ZERO
    return parsed if parsed.is_finite() else _ZERO


def safe_date(value: Any) -> date | None:
    """
    Parse a calendar date; None when missing or unparsable.
    """

    if _is_blank(value) or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    raw = str(value).strip()
    iso_candidate = raw[:-1] + "+00:00" if raw.endswith("Z") else raw
    try:
        parsed = datetime.fromisoformat(iso_candidate)
    except ValueError:
        pass
    else:
        if parsed.tzinfo is not None:
            parsed = parsed.astimezone(timezone.utc)
        return parsed.date()

    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(raw, fmt).date()
        except ValueError:
            continue
    return None


def _campaign_text(value: Any) -> str:
    if value is None:
        return UNKNOWN_CAMPAIGN
    return str(value).strip() or UNKNOWN_CAMPAIGN


def _build_row(values: Mapping[str, Any], line_number: int) -> CanonicalRow:
    return CanonicalRow(
        campaign=_campaign_text(values.get("campaign")),
        date=safe_date(values.get("date")),
        impressions=safe_int(values.get("impressions")),
        clicks=safe_int(values.get("clicks")),
        spend=safe_decimal(values.get("spend")),
        conversions=safe_int(values.get("conversions")),
        line_number=line_number,
    )


class RowNormalizer:
    """
    Applies a platform's field mapping to raw rows. Output length always
    equals input length.
    """

    def __init__(self, field_mapper: FieldMapper | None = None) -> None:
        self._field_mapper = field_mapper or FieldMapper()

    def normalize_csv_rows(
        self,
        lines: Sequence[str],
        platform: str | None = None,
        headers: Sequence[str] | None = None,
    ) -> list[CanonicalRow]:
        """
        Normalize comma-separated data lines.

        With ``headers`` the platform's variant lists pick the columns;
        without them the fixed legacy column order is assumed.
        """

        if not lines:
            return []

        if headers is None:
            return [
                _build_row(
                    dict(zip(LEGACY_COLUMN_ORDER, (part.strip() for part in line.split(",")))),
                    line_number,
                )
                for line_number, line in enumerate(lines, start=1)
            ]

        mapping = self._field_mapper.build_column_mapping(headers, platform)
        return [
            _build_row(self._pick_columns(line, mapping), line_number)
            for line_number, line in enumerate(lines, start=1)
        ]

    def normalize_api_objects(
        self,
        objects: Sequence[Any],
        platform: str | None = None,
    ) -> list[CanonicalRow]:
        """
        Normalize API payload objects. Keys are matched case- and
        separator-insensitively; the campaign falls back to raw
        ``campaign`` / ``campaign_name`` / ``campaignName`` keys.
        """

        rows: list[CanonicalRow] = []
        for line_number, obj in enumerate(objects, start=1):
            source = obj if isinstance(obj, Mapping) else {}
            row = _build_row(self._field_mapper.map_object(source, platform), line_number)
            if row.campaign == UNKNOWN_CAMPAIGN:
                fallback = self._raw_campaign(source)
                if fallback is not None:
                    row = replace(row, campaign=fallback)
            rows.append(row)
        return rows

    @staticmethod
    def _pick_columns(line: str, mapping: ColumnMapping) -> dict[str, str | None]:
        values = [part.strip() for part in line.split(",")]
        picked: dict[str, str | None] = {}
        for canonical_field, index in mapping.canonical_to_index.items():
            picked[canonical_field] = values[index] if index < len(values) else None
        return picked

    @staticmethod
    def _raw_campaign(obj: Mapping[str, Any]) -> str | None:
        for key in RAW_CAMPAIGN_KEYS:
            value = obj.get(key)
            if value is None:
                continue
            text = str(value).strip()
            if text:
                return text
        return None
