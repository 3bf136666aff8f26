"""
Module: common.units

Purpose:
    Unit conversion helpers and the fixed reference page size.
    All document-space geometry is expressed in PDF points (1/72 inch),
    origin bottom-left, independent of any print or scan DPI.

Key Functions:
    - mm_to_points(): Millimetres to PDF points
    - points_to_pixels(): PDF points to pixels at a given DPI

Used By:
    - builder.layout: Page geometry
    - scanner.registration: Fallback scale and anchor points
"""

from __future__ import annotations

from reportlab.lib.pagesizes import letter

# US letter, the only supported sheet size
PAGE_WIDTH_PT, PAGE_HEIGHT_PT = letter

MM_TO_POINTS = 72.0 / 25.4


def mm_to_points(mm: float) -> float:
    """
    Convert millimetres to PDF points.

    Example:
        >>> round(mm_to_points(10), 2)
        28.35
    """
    return mm * MM_TO_POINTS


def points_to_pixels(points: float, dpi: float) -> float:
    """Convert PDF points to pixels at the given DPI."""
    return points * dpi / 72.0
