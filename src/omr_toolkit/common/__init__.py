"""Common utilities shared across the toolkit."""

from __future__ import annotations

from .identifiers import (
    build_identifier,
    parse_identifier,
    identifier_matches,
    normalize_folio,
)
from .units import PAGE_WIDTH_PT, PAGE_HEIGHT_PT, mm_to_points, points_to_pixels

__all__ = [
    # identifiers
    "build_identifier",
    "parse_identifier",
    "identifier_matches",
    "normalize_folio",
    # units
    "PAGE_WIDTH_PT",
    "PAGE_HEIGHT_PT",
    "mm_to_points",
    "points_to_pixels",
]
