"""
Module: builder.layout

Purpose:
    Page layout for exam sheets.
    Converts questions in variant order into positioned page plans plus
    the coordinate map recovery relies on.

Key Functions:
    - compose_question(): Geometry of one question block
    - compose_exam(): Every block in printed order
    - paginate(): Arrange blocks onto pages
    - build_page_map(): Coordinate map entry for a page
    - wrap_mixed(): Mixed plain/monospace text wrapping

Key Classes:
    - LayoutConfig: Configuration for page layout
    - QuestionLayout: Composed question block
    - PagePlan: Single page layout plan

Dependencies:
    - reportlab.pdfbase.pdfmetrics: Font metrics
    - PIL: Question images and logos

Used By:
    - builder.controller: render_exam()
"""

from .config import LayoutConfig
from .models import (
    LayoutResult,
    PagePlan,
    QuestionLayout,
    QuestionPlacement,
    TextLine,
    TextSegment,
)
from .text import TextStyle, wrap_mixed, wrap_plain
from .composer import compose_exam, compose_question
from .paginator import build_page_map, page_metrics, paginate

__all__ = [
    # Config
    "LayoutConfig",
    # Models
    "LayoutResult",
    "PagePlan",
    "QuestionLayout",
    "QuestionPlacement",
    "TextLine",
    "TextSegment",
    # Functions
    "TextStyle",
    "wrap_mixed",
    "wrap_plain",
    "compose_question",
    "compose_exam",
    "paginate",
    "build_page_map",
    "page_metrics",
]
