"""
app/mappers/field_mapper.py

Maps platform-specific column/key names onto canonical campaign fields.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from app.domain.campaign import CANONICAL_FIELDS
from app.mappers.platforms import field_variants_for, normalize_field_name


@dataclass(frozen=True)
class ColumnMapping:
    """
    Resolved canonical field -> source column index for one CSV.
    Unmapped fields are simply absent.
    """

    platform: str
    canonical_to_index: dict[str, int]
    source_headers: tuple[str, ...]

    def index_of(self, canonical_field: str) -> int | None:
        return self.canonical_to_index.get(canonical_field)

    def source_column(self, canonical_field: str) -> str | None:
        index = self.index_of(canonical_field)
        return None if index is None else self.source_headers[index]


class FieldMapper:
    """
    Builds canonical-field lookups from a platform's variant lists.
    """

    def variant_table(self, platform: str | None) -> dict[str, tuple[str, ...]]:
        """
        Canonical field -> normalized variants, in priority order.
        """

        variants = field_variants_for(platform)
        table: dict[str, tuple[str, ...]] = {}
        for canonical_field in CANONICAL_FIELDS:
            normalized: list[str] = []
            for variant in variants.get(canonical_field, ()):
                key = normalize_field_name(variant)
                if key not in normalized:
                    normalized.append(key)
            table[canonical_field] = tuple(normalized)
        return table

    def build_column_mapping(self, headers: Sequence[str], platform: str | None) -> ColumnMapping:
        """
        Resolve each canonical field to the first header matching one of its
        variants. Variants are tried in order; the first header wins per variant.
        """

        header_positions: dict[str, int] = {}
        for position, header in enumerate(headers):
            normalized = normalize_field_name(header)
            if normalized and normalized not in header_positions:
                header_positions[normalized] = position

        mapping: dict[str, int] = {}
        for canonical_field, variants in self.variant_table(platform).items():
            for variant in variants:
                position = header_positions.get(variant)
                if position is not None:
                    mapping[canonical_field] = position
                    break

        return ColumnMapping(
            platform=platform or "",
            canonical_to_index=mapping,
            source_headers=tuple(headers),
        )

    def map_object(self, obj: Mapping[str, Any], platform: str | None) -> dict[str, Any]:
        """
        Pick the raw value for each canonical field from an API object.
        Keys are compared in normalized form; missing fields are omitted.
        """

        normalized_obj = {normalize_field_name(key): value for key, value in obj.items()}

        mapped: dict[str, Any] = {}
        for canonical_field, variants in self.variant_table(platform).items():
            for variant in variants:
                if variant in normalized_obj:
                    mapped[canonical_field] = normalized_obj[variant]
                    break
        return mapped
