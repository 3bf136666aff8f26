"""
Module: builder.layout.models

Purpose:
    Data models for page layout.
    Immutable dataclasses for text runs, draw operations, composed
    question blocks and page plans.

Key Classes:
    - TextSegment / TextLine: Output of the mixed-mode wrapper
    - TextRun, ImageBox, Box, Circle, Rule: Draw operations
    - QuestionLayout: Composed question block (ops + marks + height)
    - QuestionPlacement: Block positioned on a page
    - PagePlan: Complete page layout
    - LayoutResult: Final layout output

Dependencies:
    - PIL: Image type
    - dataclasses (std)

Used By:
    - builder.layout.composer: Creates QuestionLayouts
    - builder.layout.paginator: Creates PagePlans
    - builder.output.renderer: Draws them
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Tuple, Union

from PIL import Image

Color = Tuple[float, float, float]


@dataclass(frozen=True)
class TextSegment:
    """A run of text in one font."""

    text: str
    font: str
    size: float
    monospace: bool = False


@dataclass(frozen=True)
class TextLine:
    """
    One wrapped line.

    Attributes:
        segments: Runs drawn left to right
        line_height: Vertical advance after this line
    """

    segments: tuple[TextSegment, ...]
    line_height: float

    @property
    def text(self) -> str:
        return "".join(s.text for s in self.segments)


# ─────────────────────────────────────────────────────────────────────────────
# Draw operations
#
# Vertical positions are offsets measured downward from the top of the
# owning block (a question block or the page content top).
# ─────────────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class TextRun:
    x: float
    baseline: float
    text: str
    font: str
    size: float
    color: Color = (0.0, 0.0, 0.0)


@dataclass(frozen=True)
class ImageBox:
    x: float
    top: float
    width: float
    height: float
    image: Image.Image


@dataclass(frozen=True)
class Box:
    x: float
    top: float
    width: float
    height: float
    stroke: Optional[Color] = None
    fill: Optional[Color] = None
    line_width: float = 1.0


@dataclass(frozen=True)
class Circle:
    x: float
    center: float
    radius: float
    line_width: float = 1.0
    stroke: Color = (0.0, 0.0, 0.0)


@dataclass(frozen=True)
class Rule:
    x1: float
    y1: float
    x2: float
    y2: float
    color: Color = (0.0, 0.0, 0.0)
    line_width: float = 1.0


DrawOp = Union[TextRun, ImageBox, Box, Circle, Rule]


@dataclass(frozen=True)
class BubbleMark:
    """Bubble centre relative to the block top."""

    letter: str
    x: float
    offset: float


@dataclass(frozen=True)
class QuestionLayout:
    """
    Fully composed question block (immutable).

    Produced by compose_question(); the same object is used to measure
    the block for pagination and to draw it, so measured and drawn
    geometry cannot diverge.

    Attributes:
        number: Printed question number
        question_id: Question bank id
        height: Total block height including trailing spacing
        ops: Draw operations
        bubbles: Bubble centres, in letter order
        fiducials: (x, offset) of the top and bottom fiducial squares
        warnings: Non-fatal layout problems (e.g. unreadable image)
    """

    number: int
    question_id: str
    height: float
    ops: tuple[DrawOp, ...]
    bubbles: tuple[BubbleMark, ...]
    fiducials: Optional[tuple[tuple[float, float], tuple[float, float]]] = None
    warnings: tuple[str, ...] = ()


@dataclass(frozen=True)
class QuestionPlacement:
    """
    A question block positioned on a page.

    Attributes:
        layout: The composed block
        top: Y of the block top in PDF coordinates

    Example:
        >>> placement = QuestionPlacement(layout, top=600.0)
        >>> placement.bottom
        500.0  # top - layout.height
    """

    layout: QuestionLayout
    top: float

    @property
    def bottom(self) -> float:
        return self.top - self.layout.height


@dataclass(frozen=True)
class PagePlan:
    """
    Complete layout plan for a single page.

    Attributes:
        number: 1-based page number
        identifier: QR payload for the page
        header_ops: Header (and instructions) ops, offsets from content_top
        placements: Question blocks on the page
        area_top: Y where question blocks may start
        cursor: Y below the last placed block
    """

    number: int
    identifier: str
    header_ops: tuple[DrawOp, ...]
    placements: tuple[QuestionPlacement, ...]
    area_top: float
    cursor: float

    @property
    def is_empty(self) -> bool:
        return len(self.placements) == 0

    @property
    def first_question(self) -> Optional[int]:
        return self.placements[0].layout.number if self.placements else None

    @property
    def last_question(self) -> Optional[int]:
        return self.placements[-1].layout.number if self.placements else None


@dataclass(frozen=True)
class LayoutResult:
    """
    Final layout output with diagnostics.

    Attributes:
        pages: Tuple of PagePlans
        warnings: Warning messages collected during layout
    """

    pages: tuple[PagePlan, ...]
    warnings: list[str] = field(default_factory=list)

    @property
    def page_count(self) -> int:
        return len(self.pages)

    @property
    def question_count(self) -> int:
        return sum(len(p.placements) for p in self.pages)
