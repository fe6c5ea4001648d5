"""
app/mappers/platform_detector.py

Scores a sample row's field names against per-platform signatures.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from app.domain.campaign import Platform
from app.mappers.platforms import PLATFORM_SIGNATURES, PlatformSignature, normalize_field_name

REQUIRED_FIELD_POINTS = 30
STRONG_FIELD_POINTS = 10
IDENTIFIER_POINTS = 20
MIN_SCORE_THRESHOLD = 30
DISQUALIFIED = -1.0


@dataclass(frozen=True)
class PlatformScore:
    platform: str
    score: float
    priority: int


@dataclass(frozen=True)
class _FieldIndex:
    """
    Normalized field names plus their space-joined form, built once per call.
    """

    names: tuple[str, ...]
    joined: str

    @classmethod
    def build(cls, field_names: Sequence[str]) -> _FieldIndex:
        names = tuple(
            normalized
            for normalized in (normalize_field_name(name) for name in field_names)
            if normalized
        )
        return cls(names=names, joined=" ".join(names))

    def has_field(self, target: str) -> bool:
        # Fuzzy: containment in either direction.
        needle = normalize_field_name(target)
        return any(needle in name or name in needle for name in self.names)

    def contains(self, fragment: str) -> bool:
        return normalize_field_name(fragment) in self.joined


def extract_field_names(sample: Any) -> list[str]:
    """
    Field names from a CSV header line or an API object's keys.
    """

    if isinstance(sample, str):
        return [field.strip().lower() for field in sample.split(",")]
    if isinstance(sample, Mapping):
        return [str(key).lower() for key in sample.keys()]
    if isinstance(sample, Sequence):
        return [str(item).strip().lower() for item in sample]
    return []


def score_platform(field_names: Sequence[str], signature: PlatformSignature) -> float:
    """
    Score one signature. Returns -1 when an exclude matches, 0 when any
    required field is missing.
    """

    return _score(_FieldIndex.build(field_names), signature)


def _score(index: _FieldIndex, signature: PlatformSignature) -> float:
    if any(index.contains(exclude) for exclude in signature.excludes):
        return DISQUALIFIED

    if not all(index.has_field(required) for required in signature.required):
        return 0.0

    score = REQUIRED_FIELD_POINTS * len(signature.required)
    score += STRONG_FIELD_POINTS * sum(1 for strong in signature.strong if index.has_field(strong))
    score += IDENTIFIER_POINTS * sum(1 for ident in signature.identifiers if index.contains(ident))
    return score / (signature.priority or 1)


class PlatformDetector:
    """
    Picks the best-scoring ad platform for a batch, or ``unknown``.

    Stateless; every call builds its own field index.
    """

    def __init__(
        self,
        signatures: Mapping[str, PlatformSignature] | None = None,
        *,
        min_score: float = MIN_SCORE_THRESHOLD,
    ) -> None:
        self._signatures = dict(signatures or PLATFORM_SIGNATURES)
        self._min_score = min_score

    def rank(self, field_names: Sequence[str]) -> list[PlatformScore]:
        """
        Positive-scoring platforms, best first (score desc, priority asc).
        """

        index = _FieldIndex.build(field_names)
        scores = [
            PlatformScore(platform=platform, score=_score(index, signature), priority=signature.priority)
            for platform, signature in self._signatures.items()
        ]
        positive = [entry for entry in scores if entry.score > 0]
        return sorted(positive, key=lambda entry: (-entry.score, entry.priority))

    def detect_from_fields(self, field_names: Sequence[str]) -> str:
        if not field_names:
            return Platform.UNKNOWN

        ranked = self.rank(field_names)
        if not ranked or ranked[0].score < self._min_score:
            return Platform.UNKNOWN
        return ranked[0].platform

    def detect(self, raw_rows: Sequence[Any]) -> str:
        """
        Detect the platform from the first raw row of a batch (a CSV header
        line or an API object).
        """

        if not raw_rows:
            return Platform.UNKNOWN
        return self.detect_from_fields(extract_field_names(raw_rows[0]))
