"""
tests/test_platform_detector.py

Pytest unit tests for PlatformDetector scoring and ranking.
"""

from __future__ import annotations

import random

import pytest

from app.domain.campaign import Platform
from app.mappers.platform_detector import (
    DISQUALIFIED,
    PlatformDetector,
    extract_field_names,
    score_platform,
)
from app.mappers.platforms import PLATFORM_SIGNATURES, normalize_field_name


@pytest.fixture()
def detector() -> PlatformDetector:
    return PlatformDetector()


# ---------------------------------------------------------------------------
# Field name handling
# ---------------------------------------------------------------------------


class TestFieldNames:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("Campaign Name", "campaignname"),
            ("campaign_name", "campaignname"),
            ("Campaign-Name", "campaignname"),
            ("DATE_START", "datestart"),
        ],
    )
    def test_normalize_field_name(self, raw: str, expected: str) -> None:
        assert normalize_field_name(raw) == expected

    def test_extract_from_header_line(self) -> None:
        assert extract_field_names("Campaign, Day ,Cost") == ["campaign", "day", "cost"]

    def test_extract_from_api_object(self) -> None:
        assert extract_field_names({"Campaign_Name": "x", "Spend": 1}) == ["campaign_name", "spend"]

    def test_extract_from_unsupported_sample(self) -> None:
        assert extract_field_names(42) == []


# ---------------------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------------------


class TestScorePlatform:
    def test_exclude_disqualifies_before_required_check(self) -> None:
        score = score_platform(["campaign", "cost"], PLATFORM_SIGNATURES[Platform.META])
        assert score == DISQUALIFIED

    def test_missing_required_field_scores_zero(self) -> None:
        score = score_platform(["day", "impressions"], PLATFORM_SIGNATURES[Platform.META])
        assert score == 0

    def test_required_field_matches_fuzzily(self) -> None:
        # "campaign" is contained in "campaignname".
        score = score_platform(["campaign_name"], PLATFORM_SIGNATURES[Platform.META])
        assert score == 30

    def test_priority_divides_score(self) -> None:
        score = score_platform(["campaign"], PLATFORM_SIGNATURES[Platform.AMAZON])
        assert score == 15

    def test_google_full_header_score(self) -> None:
        fields = ["campaign", "day", "impressions", "clicks", "cost", "conversions", "ctr"]
        score = score_platform(fields, PLATFORM_SIGNATURES[Platform.GOOGLE])
        # required 2x30 + strong 3x10 + identifier "cost" 20, divided by priority 3
        assert score == pytest.approx(110 / 3)


# ---------------------------------------------------------------------------
# Detection
# ---------------------------------------------------------------------------


class TestDetect:
    @pytest.mark.parametrize(
        "header, expected",
        [
            ("Campaign,Day,Impressions,Clicks,Cost,Conversions,CTR", Platform.GOOGLE),
            (
                "campaign_name,date_start,impressions,reach,clicks,spend,purchases",
                Platform.META,
            ),
            ("seller_id,campaign,listing,date,views,clicks,spend,orders", Platform.FLIPKART),
            ("campaign_name,date,impressions,clicks,spend,orders,asin", Platform.AMAZON),
            (
                "campaign_name,start_at,impressions,clicks,cost_in_local_currency,leads",
                Platform.LINKEDIN,
            ),
            (
                "campaign_name,date,impressions,url_clicks,engagements,spend,tweet_id",
                Platform.TWITTER,
            ),
        ],
    )
    def test_detects_platform_from_header(
        self,
        detector: PlatformDetector,
        header: str,
        expected: str,
    ) -> None:
        assert detector.detect([header, "ignored,data,row"]) == expected

    def test_unrecognised_fields_are_unknown(self, detector: PlatformDetector) -> None:
        assert detector.detect(["foo,bar,baz"]) == Platform.UNKNOWN

    def test_empty_batch_is_unknown(self, detector: PlatformDetector) -> None:
        assert detector.detect([]) == Platform.UNKNOWN
        assert detector.detect_from_fields([]) == Platform.UNKNOWN

    def test_detects_from_first_api_object(self, detector: PlatformDetector) -> None:
        rows = [{"Campaign": "Brand", "Cost": 10, "Impressions": 100}, {"anything": 1}]
        assert detector.detect(rows) == Platform.GOOGLE

    def test_below_threshold_is_unknown(self) -> None:
        strict = PlatformDetector(min_score=1000)
        assert strict.detect(["Campaign,Day,Impressions,Clicks,Cost"]) == Platform.UNKNOWN

    def test_rank_is_sorted_best_first(self, detector: PlatformDetector) -> None:
        ranked = detector.rank(["campaign_name", "date", "impressions", "clicks", "spend", "orders", "asin"])
        assert ranked[0].platform == Platform.AMAZON
        scores = [entry.score for entry in ranked]
        assert scores == sorted(scores, reverse=True)
        assert all(entry.score > 0 for entry in ranked)

    def test_detection_is_order_independent(self, detector: PlatformDetector) -> None:
        fields = ["campaign_name", "start_at", "impressions", "clicks", "cost_in_local_currency", "leads"]
        expected = detector.detect_from_fields(fields)
        shuffler = random.Random(7)
        for _ in range(10):
            shuffled = fields[:]
            shuffler.shuffle(shuffled)
            assert detector.detect_from_fields(shuffled) == expected

    def test_repeated_detection_is_stable(self, detector: PlatformDetector) -> None:
        header = "date,campaign_name,impressions,clicks,spend,conversions"
        results = {detector.detect([header]) for _ in range(5)}
        assert len(results) == 1
