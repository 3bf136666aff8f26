"""
Module: coordinates

Purpose:
    Provides the Coordinate Map models - bubble centres, fiducials and
    registration anchors recorded when a sheet is generated.

    All coordinates are PDF points with the origin at the bottom-left
    corner of the page. The map is produced once by the layout engine and
    stored with the exam; recovery reads it verbatim and never recomputes
    it from the questions.

Key Classes:
    - Point: (x, y) in document space
    - BubblePosition: Centre of one lettered bubble
    - Fiducials: Top/bottom squares next to a question's bubble column
    - QuestionMarks: Everything recovery needs for one question
    - PageMap: Registration anchors + question marks for one page
    - CoordinateMap: margin + one PageMap per page

Used By:
    - builder.layout.paginator: Produces PageMaps
    - scanner.pipeline: Consumes a PageMap
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from omr_toolkit.common.thresholds import REGISTRATION_MARK
from omr_toolkit.common.units import PAGE_HEIGHT_PT, PAGE_WIDTH_PT, mm_to_points

from ..errors import CoordinateMapError

CORNER_NAMES: tuple[str, ...] = ("top_left", "top_right", "bottom_left", "bottom_right")


@dataclass(frozen=True)
class Point:
    """A point in document space (points, origin bottom-left)."""

    x: float
    y: float

    def to_dict(self) -> dict[str, float]:
        return {"x": self.x, "y": self.y}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Point":
        return cls(x=float(data["x"]), y=float(data["y"]))


def registration_anchors(margin_mm: float) -> dict[str, Point]:
    """
    Ink centroids of the four L-shaped corner marks for a margin.

    Each mark has its vertex on the margin corner and two arms pointing
    inward; the anchor sits ``centroid_inset`` inside the vertex on both axes.
    """
    m = mm_to_points(margin_mm)
    a = REGISTRATION_MARK.centroid_inset
    return {
        "top_left": Point(m + a, PAGE_HEIGHT_PT - m - a),
        "top_right": Point(PAGE_WIDTH_PT - m - a, PAGE_HEIGHT_PT - m - a),
        "bottom_left": Point(m + a, m + a),
        "bottom_right": Point(PAGE_WIDTH_PT - m - a, m + a),
    }


@dataclass(frozen=True)
class BubblePosition:
    """Centre of the bubble rendered for ``letter``."""

    letter: str
    x: float
    y: float

    @property
    def point(self) -> Point:
        return Point(self.x, self.y)

    def to_dict(self) -> dict[str, Any]:
        return {"letter": self.letter, "x": self.x, "y": self.y}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "BubblePosition":
        return cls(letter=str(data["letter"]), x=float(data["x"]), y=float(data["y"]))


@dataclass(frozen=True)
class Fiducials:
    """Centres of the two squares bracketing a question's bubble column."""

    top: Point
    bottom: Point

    def to_dict(self) -> dict[str, Any]:
        return {"top": self.top.to_dict(), "bottom": self.bottom.to_dict()}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Fiducials":
        return cls(top=Point.from_dict(data["top"]), bottom=Point.from_dict(data["bottom"]))


@dataclass(frozen=True)
class QuestionMarks:
    """
    Recovery geometry for one rendered question.

    Attributes:
        number: Sequential question number as printed (1-based)
        question_id: Question bank id
        bubbles: One BubblePosition per rendered letter, in letter order
        fiducials: Optional local alignment squares
    """

    number: int
    question_id: str
    bubbles: tuple[BubblePosition, ...]
    fiducials: Optional[Fiducials] = None

    def __post_init__(self) -> None:
        letters = [b.letter for b in self.bubbles]
        if len(set(letters)) != len(letters):
            raise ValueError(f"question {self.number} has duplicate bubble letters: {letters}")

    @property
    def letters(self) -> tuple[str, ...]:
        return tuple(b.letter for b in self.bubbles)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "number": self.number,
            "question_id": self.question_id,
            "bubbles": [b.to_dict() for b in self.bubbles],
        }
        if self.fiducials is not None:
            data["fiducials"] = self.fiducials.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "QuestionMarks":
        fiducials = data.get("fiducials")
        return cls(
            number=int(data["number"]),
            question_id=str(data.get("question_id", "")),
            bubbles=tuple(BubblePosition.from_dict(b) for b in data.get("bubbles", [])),
            fiducials=Fiducials.from_dict(fiducials) if fiducials else None,
        )


@dataclass(frozen=True)
class PageMap:
    """
    Coordinate map for one page.

    Attributes:
        page_number: 1-based page number
        registration: Ink centroids of the four corner marks, keyed by
            CORNER_NAMES. Empty when an older map omitted them; recovery
            then derives them from the margin.
        questions: Marks for each question on the page, in number order
    """

    page_number: int
    registration: dict[str, Point] = field(default_factory=dict)
    questions: tuple[QuestionMarks, ...] = ()

    def __post_init__(self) -> None:
        unknown = set(self.registration) - set(CORNER_NAMES)
        if unknown:
            raise ValueError(f"unknown registration corners: {sorted(unknown)}")

    @property
    def has_registration(self) -> bool:
        return all(name in self.registration for name in CORNER_NAMES)

    def to_dict(self) -> dict[str, Any]:
        return {
            "page_number": self.page_number,
            "registration": {name: p.to_dict() for name, p in self.registration.items()},
            "questions": [q.to_dict() for q in self.questions],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PageMap":
        return cls(
            page_number=int(data["page_number"]),
            registration={
                str(name): Point.from_dict(p)
                for name, p in (data.get("registration") or {}).items()
            },
            questions=tuple(QuestionMarks.from_dict(q) for q in data.get("questions", [])),
        )


@dataclass(frozen=True)
class CoordinateMap:
    """
    Coordinate map for a whole exam.

    Attributes:
        margin_mm: Page margin used at generation time
        pages: One PageMap per page, in page order
    """

    margin_mm: float
    pages: tuple[PageMap, ...] = ()

    def page(self, number: int) -> PageMap:
        """
        Return the map for a page.

        Raises:
            CoordinateMapError: If the page is not part of this map
        """
        for page_map in self.pages:
            if page_map.page_number == number:
                return page_map
        raise CoordinateMapError(f"page {number} not found in coordinate map")

    @property
    def question_count(self) -> int:
        return sum(len(p.questions) for p in self.pages)

    def to_dict(self) -> dict[str, Any]:
        return {"margin_mm": self.margin_mm, "pages": [p.to_dict() for p in self.pages]}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CoordinateMap":
        return cls(
            margin_mm=float(data.get("margin_mm", 10.0)),
            pages=tuple(PageMap.from_dict(p) for p in data.get("pages", [])),
        )
