"""
tests/test_row_normalizer.py

Unit tests for safe value coercion and RowNormalizer.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from app.domain.campaign import UNKNOWN_CAMPAIGN, Platform
from app.mappers.row_normalizer import RowNormalizer, safe_date, safe_decimal, safe_int


@pytest.fixture()
def normalizer() -> RowNormalizer:
    return RowNormalizer()


# ---------------------------------------------------------------------------
# Safe coercion
# ---------------------------------------------------------------------------


class TestSafeInt:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("42", 42),
            ("12abc", 12),
            (" 7 ", 7),
            ("-5", -5),
            ("abc", 0),
            ("", 0),
            (None, 0),
            (3.9, 3),
            (float("nan"), 0),
            (True, 0),
        ],
    )
    def test_coercion(self, raw, expected: int) -> None:
        assert safe_int(raw) == expected


class TestSafeDecimal:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("12.50", Decimal("12.50")),
            ("1e3", Decimal("1000")),
            (0, Decimal("0")),
            ("abc", Decimal("0")),
            ("NaN", Decimal("0")),
            ("Infinity", Decimal("0")),
            (None, Decimal("0")),
        ],
    )
    def test_coercion(self, raw, expected: Decimal) -> None:
        assert safe_decimal(raw) == expected

    def test_keeps_exact_scale(self) -> None:
        assert str(safe_decimal("100.10")) == "100.10"


class TestSafeDate:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("2025-02-01", date(2025, 2, 1)),
            ("2025-02-01T23:30:00Z", date(2025, 2, 1)),
            ("2025-02-01T23:30:00-05:00", date(2025, 2, 2)),
            ("02/15/2025", date(2025, 2, 15)),
            ("2025/02/15", date(2025, 2, 15)),
            ("15 Feb 2025", date(2025, 2, 15)),
            (date(2025, 3, 1), date(2025, 3, 1)),
        ],
    )
    def test_parses_supported_formats(self, raw, expected: date) -> None:
        assert safe_date(raw) == expected

    @pytest.mark.parametrize("raw", ["", "   ", None, "not a date", "2025-13-45"])
    def test_unparsable_is_none(self, raw) -> None:
        assert safe_date(raw) is None


# ---------------------------------------------------------------------------
# CSV rows
# ---------------------------------------------------------------------------


class TestNormalizeCsvRows:
    def test_headers_drive_column_selection(self, normalizer: RowNormalizer) -> None:
        headers = ["Campaign", "Day", "Impressions", "Clicks", "Cost", "Conversions"]

        rows = normalizer.normalize_csv_rows(
            ["Brand_Search,2025-02-01,1000,20,99.5,2"],
            Platform.GOOGLE,
            headers,
        )

        assert len(rows) == 1
        row = rows[0]
        assert row.campaign == "Brand_Search"
        assert row.date == date(2025, 2, 1)
        assert row.impressions == 1000
        assert row.clicks == 20
        assert row.spend == Decimal("99.5")
        assert row.conversions == 2
        assert row.line_number == 1

    def test_legacy_column_order_without_headers(self, normalizer: RowNormalizer) -> None:
        rows = normalizer.normalize_csv_rows(["2025-02-01,Brand,100,10,5.5,1"])

        assert rows[0].campaign == "Brand"
        assert rows[0].date == date(2025, 2, 1)
        assert rows[0].spend == Decimal("5.5")

    def test_short_lines_fall_back_to_defaults(self, normalizer: RowNormalizer) -> None:
        headers = ["Campaign", "Day", "Impressions", "Clicks", "Cost", "Conversions"]

        rows = normalizer.normalize_csv_rows(["Brand,2025-02-01"], Platform.GOOGLE, headers)

        assert rows[0].impressions == 0
        assert rows[0].spend == Decimal("0")
        assert rows[0].conversions == 0

    def test_blank_campaign_becomes_unknown(self, normalizer: RowNormalizer) -> None:
        headers = ["Campaign", "Day", "Cost"]

        rows = normalizer.normalize_csv_rows([" ,2025-02-01,10"], Platform.GOOGLE, headers)

        assert rows[0].campaign == UNKNOWN_CAMPAIGN

    def test_output_length_matches_input(self, normalizer: RowNormalizer) -> None:
        headers = ["Campaign", "Day", "Cost"]
        lines = ["a,2025-02-01,1", "", "garbage", ",,,,,,,,", "b,x,y"]

        rows = normalizer.normalize_csv_rows(lines, Platform.GOOGLE, headers)

        assert len(rows) == len(lines)
        assert [row.line_number for row in rows] == [1, 2, 3, 4, 5]

    def test_empty_input(self, normalizer: RowNormalizer) -> None:
        assert normalizer.normalize_csv_rows([], Platform.GOOGLE, ["Campaign"]) == []


# ---------------------------------------------------------------------------
# API objects
# ---------------------------------------------------------------------------


class TestNormalizeApiObjects:
    def test_meta_object_with_missing_fields(self, normalizer: RowNormalizer) -> None:
        rows = normalizer.normalize_api_objects(
            [{"Campaign_Name": "X", "Spend": "1200", "Conversions": 0}],
            Platform.META,
        )

        row = rows[0]
        assert row.campaign == "X"
        assert row.spend == Decimal("1200")
        assert row.impressions == 0
        assert row.clicks == 0
        assert row.date is None

    def test_raw_campaign_fallback(self, normalizer: RowNormalizer) -> None:
        rows = normalizer.normalize_api_objects(
            [{"campaign": "", "campaignName": "Fallback", "date": "2025-01-01"}],
            Platform.GOOGLE,
        )

        assert rows[0].campaign == "Fallback"

    def test_non_mapping_entries_keep_their_position(self, normalizer: RowNormalizer) -> None:
        rows = normalizer.normalize_api_objects(
            [{"campaign": "A", "cost": 1}, "oops", None],
            Platform.GOOGLE,
        )

        assert len(rows) == 3
        assert rows[0].campaign == "A"
        assert rows[1].campaign == UNKNOWN_CAMPAIGN
        assert rows[2].campaign == UNKNOWN_CAMPAIGN

    def test_unknown_platform_uses_fallback_variants(self, normalizer: RowNormalizer) -> None:
        rows = normalizer.normalize_api_objects(
            [{"Campaign": "A", "Day": "2025-02-01", "Cost": "5"}],
            Platform.UNKNOWN,
        )

        assert rows[0].spend == Decimal("5")
        assert rows[0].date == date(2025, 2, 1)
