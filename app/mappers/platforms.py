"""
app/mappers/platforms.py

Per-platform detection signatures and canonical field variant lists.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from app.domain.campaign import Platform

_SEPARATORS = re.compile(r"[_\s-]")


def normalize_field_name(name: object) -> str:
    """
    Lowercase and strip underscores, whitespace and hyphens so that
    ``Campaign Name``, ``campaign_name`` and ``campaignname`` compare equal.
    """

    return _SEPARATORS.sub("", str(name).lower())


@dataclass(frozen=True)
class PlatformSignature:
    """
    Scoring criteria for one ad platform.

    required:    every entry must fuzzy-match a field (30 points each)
    strong:      bonus indicator fields (10 points each)
    identifiers: substrings of the joined field list (20 points each)
    excludes:    any hit disqualifies the platform
    priority:    1 = most specific; the score is divided by it
    """

    required: tuple[str, ...]
    strong: tuple[str, ...]
    identifiers: tuple[str, ...]
    excludes: tuple[str, ...]
    priority: int


# Ordered most specific first; ties on score and priority keep this order.
PLATFORM_SIGNATURES: dict[str, PlatformSignature] = {
    Platform.FLIPKART: PlatformSignature(
        required=("seller",),
        strong=("campaign", "listing", "product_id", "fassured", "orders"),
        identifiers=("flipkart", "seller_id", "fassured"),
        excludes=("amazon", "asin"),
        priority=1,
    ),
    Platform.META: PlatformSignature(
        required=("campaign",),
        strong=("adset", "ad_id", "ad_name", "reach", "frequency"),
        identifiers=(
            "facebook",
            "instagram",
            "fb_pixel",
            "meta",
            "link_clicks",
            "link clicks",
            "purchases",
            "date_start",
            "datestart",
        ),
        excludes=("google", "amazon", "flipkart", "cost"),
        priority=1,
    ),
    Platform.AMAZON: PlatformSignature(
        required=("campaign",),
        strong=("asin", "sku", "sponsored", "orders"),
        identifiers=("amazon", "sponsored products", "sponsored brands", "asin"),
        excludes=("flipkart", "seller", "cost"),
        priority=2,
    ),
    Platform.LINKEDIN: PlatformSignature(
        required=("campaign",),
        strong=("leads", "start_at", "startat"),
        identifiers=(
            "linkedin",
            "li_",
            "cost_in_local_currency",
            "costinlocalcurrency",
            "start_at",
            "startat",
        ),
        excludes=("facebook", "google", "twitter"),
        priority=2,
    ),
    Platform.TWITTER: PlatformSignature(
        required=("campaign",),
        strong=("tweet_id", "engagements", "retweets"),
        identifiers=(
            "twitter",
            "x ads",
            "promoted tweet",
            "tweet",
            "url_clicks",
            "urlclicks",
        ),
        excludes=("facebook", "google", "linkedin"),
        priority=2,
    ),
    Platform.GOOGLE: PlatformSignature(
        required=("campaign", "cost"),
        strong=("impressions", "conversions", "ctr"),
        identifiers=("google ads", "adwords", "gclid", "cost"),
        excludes=(
            "facebook",
            "meta",
            "instagram",
            "adset",
            "seller",
            "link_clicks",
            "link clicks",
            "purchases",
            "orders",
            "spend",
        ),
        priority=3,
    ),
}

# Canonical field -> source name variants, consulted in order.
PLATFORM_FIELD_VARIANTS: dict[str, dict[str, tuple[str, ...]]] = {
    Platform.GOOGLE: {
        "campaign": ("campaign", "campaign_name", "campaignname", "name", "campaign name"),
        "date": ("day", "date", "date_served"),
        "impressions": ("impressions", "impr"),
        "clicks": ("clicks",),
        "spend": ("cost", "spend", "cost_micros"),
        "conversions": ("conversions", "conv", "all_conversions"),
    },
    Platform.META: {
        "campaign": ("campaign_name", "campaign name", "campaign", "campaignname"),
        "date": ("date_start", "datestart", "date start", "date", "day"),
        "impressions": ("impressions", "reach"),
        "clicks": ("clicks", "link_clicks", "link clicks"),
        "spend": ("spend", "amount_spent"),
        "conversions": ("conversions", "purchases", "actions"),
    },
    Platform.AMAZON: {
        "campaign": ("campaign", "campaign_name"),
        "date": ("date", "day"),
        "impressions": ("impressions",),
        "clicks": ("clicks",),
        "spend": ("cost", "spend"),
        "conversions": ("conversions", "orders", "purchases"),
    },
    Platform.FLIPKART: {
        "campaign": ("campaign", "campaign_name"),
        "date": ("date", "day"),
        "impressions": ("impressions", "views"),
        "clicks": ("clicks",),
        "spend": ("spend", "cost"),
        "conversions": ("conversions", "orders"),
    },
    Platform.LINKEDIN: {
        "campaign": ("campaign_name", "campaign name", "campaign"),
        "date": ("start_at", "startat", "start at", "date", "day"),
        "impressions": ("impressions",),
        "clicks": ("clicks",),
        "spend": (
            "cost_in_local_currency",
            "costinlocalcurrency",
            "cost in local currency",
            "spend",
            "cost",
        ),
        "conversions": ("conversions", "leads"),
    },
    Platform.TWITTER: {
        "campaign": ("campaign_name", "campaign name", "campaign"),
        "date": ("date", "day"),
        "impressions": ("impressions",),
        "clicks": ("clicks", "url_clicks", "url clicks", "urlclicks"),
        "spend": ("spend", "billed_charge_local_micro"),
        "conversions": ("conversions",),
    },
}

FALLBACK_PLATFORM = Platform.GOOGLE


def field_variants_for(platform: str | None) -> dict[str, tuple[str, ...]]:
    """
    Return the variant table for a platform; unknown platforms fall back to Google.
    """

    return PLATFORM_FIELD_VARIANTS.get(platform or "", PLATFORM_FIELD_VARIANTS[FALLBACK_PLATFORM])
