"""
Module: builder.controller

Purpose:
    Orchestrate exam sheet generation.
    Order → Compose → Paginate → Map → Render

Key Functions:
    - render_exam(): Main entry point for generating an exam

Key Classes:
    - RenderResult: PDF bytes, page descriptors, coordinate map, diagnostics

Dependencies:
    - builder.layout: Composition and pagination
    - builder.output: PDF rendering

Used By:
    - cli: ``omr-toolkit generate``
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, replace
from typing import Any, List, Optional, Sequence

from omr_toolkit.core.models import (
    CoordinateMap,
    PageDescriptor,
    PageMetrics,
    Question,
    VariantMap,
)

from .config import ExamConfig
from .layout import LayoutConfig, build_page_map, compose_exam, page_metrics, paginate
from .output.renderer import render_to_pdf

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RenderResult:
    """
    Complete generation result (immutable).

    The document, page descriptors and coordinate map are produced by the
    same layout pass and returned together.

    Attributes:
        document_bytes: PDF bytes
        pages: One descriptor per page
        coordinate_map: Bubble/fiducial/registration geometry per page
        warnings: Non-fatal layout problems
        metrics: Fill diagnostics per page

    Example:
        >>> result = render_exam(config, questions, variant_map)
        >>> print(f"Generated {result.page_count} pages")
    """

    document_bytes: bytes
    pages: tuple[PageDescriptor, ...]
    coordinate_map: CoordinateMap
    warnings: tuple[str, ...] = ()
    metrics: tuple[PageMetrics, ...] = ()

    @property
    def page_count(self) -> int:
        return len(self.pages)

    def metadata(self, config: ExamConfig) -> dict[str, Any]:
        """Summary written next to the PDF by the CLI."""
        return {
            "folio": config.folio,
            "title": config.header.title,
            "page_count": self.page_count,
            "question_count": self.coordinate_map.question_count,
            "pages": [p.to_dict() for p in self.pages],
            "metrics": [m.to_dict() for m in self.metrics],
            "warnings": list(self.warnings),
        }


def render_exam(
    config: ExamConfig,
    questions: Sequence[Question],
    variant_map: VariantMap,
    layout_config: Optional[LayoutConfig] = None,
) -> RenderResult:
    """
    Generate an exam from start to finish.

    Pipeline:
    1. Order questions and options by the variant map
    2. Compose one block per question
    3. Paginate blocks (header and instructions on page 1)
    4. Derive page descriptors, coordinate map and metrics
    5. Render to PDF

    Layout problems never raise: an unreadable image becomes a note, an
    oversize question is placed on its own page, and both are reported
    in ``warnings``.

    Args:
        config: Exam configuration
        questions: Selected questions (any order)
        variant_map: Question and option order for this exam
        layout_config: Optional template override; its margin is replaced
            by ``config.margin_mm``

    Returns:
        RenderResult

    Raises:
        ValueError: If a question is missing from ``variant_map``

    Example:
        >>> config = ExamConfig(folio="A1B2", header=ExamHeader(title="Unit 3"))
        >>> result = render_exam(config, questions, generate_variant(questions))
        >>> result.pages[0].identifier
        'EXAM:A1B2:P1'
    """
    warnings: List[str] = []
    start_time = time.perf_counter()

    if layout_config is None:
        layout_config = LayoutConfig(margin_mm=config.margin_mm)
    elif layout_config.margin_mm != config.margin_mm:
        layout_config = replace(layout_config, margin_mm=config.margin_mm)

    logger.info(f"Starting exam {config.folio}: {variant_map.question_count} questions")

    # 1-2. Compose blocks in variant order
    layouts = compose_exam(questions, variant_map, layout_config, warnings)
    logger.info(f"Composed {len(layouts)} question blocks")

    # 3. Paginate
    layout = paginate(layouts, config, layout_config)
    warnings.extend(layout.warnings)

    # 4. Descriptors, coordinate map, metrics
    pages = tuple(
        PageDescriptor(
            number=page.number,
            identifier=page.identifier,
            first_question=page.first_question,
            last_question=page.last_question,
        )
        for page in layout.pages
    )
    coordinate_map = CoordinateMap(
        margin_mm=config.margin_mm,
        pages=tuple(build_page_map(page, layout_config) for page in layout.pages),
    )
    metrics = tuple(page_metrics(page, layout_config) for page in layout.pages)

    # 5. Render
    document_bytes = render_to_pdf(layout, layout_config, title=config.header.title)

    elapsed = time.perf_counter() - start_time
    logger.info(f"Exam {config.folio} generated in {elapsed:.2f}s: {len(pages)} pages")
    for warning in warnings:
        logger.debug(f"Layout warning: {warning}")

    return RenderResult(
        document_bytes=document_bytes,
        pages=pages,
        coordinate_map=coordinate_map,
        warnings=tuple(warnings),
        metrics=metrics,
    )
