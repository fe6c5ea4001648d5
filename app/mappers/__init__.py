"""
app/mappers package marker.
"""

from app.mappers.field_mapper import ColumnMapping, FieldMapper
from app.mappers.platform_detector import PlatformDetector, PlatformScore, extract_field_names
from app.mappers.platforms import (
    PLATFORM_FIELD_VARIANTS,
    PLATFORM_SIGNATURES,
    PlatformSignature,
    normalize_field_name,
)
from app.mappers.row_normalizer import RowNormalizer, safe_date, safe_decimal, safe_int

__all__ = [
    "PLATFORM_FIELD_VARIANTS",
    "PLATFORM_SIGNATURES",
    "ColumnMapping",
    "FieldMapper",
    "PlatformDetector",
    "PlatformScore",
    "PlatformSignature",
    "RowNormalizer",
    "extract_field_names",
    "normalize_field_name",
    "safe_date",
    "safe_decimal",
    "safe_int",
]
