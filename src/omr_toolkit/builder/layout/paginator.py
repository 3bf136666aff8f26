"""
Module: builder.layout.paginator

Purpose:
    Arrange composed question blocks onto pages using simple space-based
    placement, and derive the coordinate map and fill metrics from the
    resulting page plans.

Key Functions:
    - paginate(): Main pagination function
    - build_page_map(): Coordinate map entry for one page
    - page_metrics(): Fill diagnostics for one page

Algorithm:
    1. Page 1 gets the full header and the instructions box
    2. For each block, check if it fits above the bottom limit
    3. If not, finalize the page and start a new one
    4. A block on an untouched page is always placed (overflow warned)
    5. Append empty pages up to min_pages

Dependencies:
    - builder.layout.header: Header and instructions ops
    - common.identifiers: QR payload per page

Used By:
    - builder.controller: render_exam()
"""

from __future__ import annotations

import logging
from typing import List, Sequence

from omr_toolkit.builder.config import ExamConfig
from omr_toolkit.common.identifiers import build_identifier
from omr_toolkit.core.models import (
    BubblePosition,
    Fiducials,
    PageMap,
    PageMetrics,
    Point,
    QuestionMarks,
    registration_anchors,
)

from .config import LayoutConfig
from .header import compose_first_page_header, compose_instructions, compose_running_header
from .models import DrawOp, LayoutResult, PagePlan, QuestionLayout, QuestionPlacement

logger = logging.getLogger(__name__)


class _PageBuilder:
    """Mutable state of the page currently being filled."""

    def __init__(self, number: int, header_ops: List[DrawOp], area_top: float, config: LayoutConfig):
        self.number = number
        self.header_ops = header_ops
        self.area_top = area_top
        self.cursor = area_top
        self.placements: List[QuestionPlacement] = []
        # Untouched = nothing placed and the full question area available
        self.untouched = area_top >= config.question_area_top(number)

    def place(self, layout: QuestionLayout) -> None:
        self.placements.append(QuestionPlacement(layout=layout, top=self.cursor))
        self.cursor -= layout.height
        self.untouched = False

    def close(self, folio: str) -> PagePlan:
        return PagePlan(
            number=self.number,
            identifier=build_identifier(folio, self.number),
            header_ops=tuple(self.header_ops),
            placements=tuple(self.placements),
            area_top=self.area_top,
            cursor=self.cursor,
        )


def _first_page(exam: ExamConfig, config: LayoutConfig, warnings: List[str]) -> _PageBuilder:
    header_ops = compose_first_page_header(exam.header, config, warnings)
    area_top = config.question_area_top(1)

    header = exam.header
    if header.show_instructions and header.instructions.strip():
        top = config.header_height(1) + config.header_gap
        instructions = compose_instructions(
            header.instructions, top, area_top - config.bottom_limit, config,
        )
        header_ops += instructions.ops
        if instructions.fits:
            area_top -= instructions.height + config.header_gap
        else:
            warnings.append(
                "instructions do not fit on page 1 at the smallest size; "
                "questions start on page 2"
            )
            # Nothing else goes on page 1
            area_top = config.bottom_limit - 1

    return _PageBuilder(1, header_ops, area_top, config)


def _next_page(number: int, exam: ExamConfig, config: LayoutConfig) -> _PageBuilder:
    header_ops = compose_running_header(exam.header, number, config)
    return _PageBuilder(number, header_ops, config.question_area_top(number), config)


def paginate(
    layouts: Sequence[QuestionLayout],
    exam: ExamConfig,
    config: LayoutConfig,
) -> LayoutResult:
    """
    Arrange question blocks onto pages.

    Rules:
    1. A block is never split across pages.
    2. If a block doesn't fit, the page is finalized and a new one started.
    3. A block taller than an empty page is placed anyway with a warning,
       so pagination always terminates.
    4. At least ``exam.min_pages`` pages are produced.

    Args:
        layouts: Composed blocks in printed order
        exam: Exam configuration (header, folio, min_pages)
        config: Layout configuration

    Returns:
        LayoutResult with page plans
    """
    warnings: List[str] = []
    pages: List[PagePlan] = []
    page = _first_page(exam, config, warnings)

    for layout in layouts:
        fits = page.cursor - layout.height >= config.bottom_limit
        if not fits and not page.untouched:
            pages.append(page.close(exam.folio))
            page = _next_page(page.number + 1, exam, config)
            fits = page.cursor - layout.height >= config.bottom_limit

        if not fits:
            available = page.cursor - config.bottom_limit
            message = (
                f"question {layout.number} overflows page {page.number}: "
                f"{layout.height:.1f}pt needed, {available:.1f}pt available"
            )
            logger.warning(message)
            warnings.append(message)
        page.place(layout)

    pages.append(page.close(exam.folio))
    while len(pages) < exam.min_pages:
        pages.append(_next_page(len(pages) + 1, exam, config).close(exam.folio))

    logger.info(f"Paginated {len(layouts)} questions onto {len(pages)} pages")
    return LayoutResult(pages=tuple(pages), warnings=warnings)


def build_page_map(page: PagePlan, config: LayoutConfig) -> PageMap:
    """
    Coordinate map entry for a page, in PDF points (origin bottom-left).
    """
    questions = []
    for placement in page.placements:
        layout = placement.layout
        bubbles = tuple(
            BubblePosition(b.letter, b.x, placement.top - b.offset) for b in layout.bubbles
        )
        fiducials = None
        if layout.fiducials is not None:
            (top_x, top_off), (bottom_x, bottom_off) = layout.fiducials
            fiducials = Fiducials(
                top=Point(top_x, placement.top - top_off),
                bottom=Point(bottom_x, placement.top - bottom_off),
            )
        questions.append(QuestionMarks(
            number=layout.number,
            question_id=layout.question_id,
            bubbles=bubbles,
            fiducials=fiducials,
        ))
    return PageMap(
        page_number=page.number,
        registration=registration_anchors(config.margin_mm),
        questions=tuple(questions),
    )


def page_metrics(page: PagePlan, config: LayoutConfig) -> PageMetrics:
    """Fraction of the page's question area left empty."""
    usable = max(1.0, config.question_area_top(page.number) - config.bottom_limit)
    remaining = max(0.0, page.cursor - config.bottom_limit)
    return PageMetrics(
        number=page.number,
        empty_fraction=max(0.0, min(1.0, remaining / usable)),
        question_count=len(page.placements),
    )
