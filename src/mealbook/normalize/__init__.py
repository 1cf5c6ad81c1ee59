"""Normalize noisy source URLs and free-text quantities."""

from mealbook.normalize.quantities import (
    CombinedQuantity,
    ParsedQuantity,
    QuantityEntry,
    QuantityItem,
    combine_quantities,
    normalize_unit,
    parse_quantity,
)
from mealbook.normalize.urls import (
    canonicalize,
    detect_source_type,
    extract_video_id,
    is_video_url,
)

__all__ = [
    "CombinedQuantity",
    "ParsedQuantity",
    "QuantityEntry",
    "QuantityItem",
    "canonicalize",
    "combine_quantities",
    "detect_source_type",
    "extract_video_id",
    "is_video_url",
    "normalize_unit",
    "parse_quantity",
]
