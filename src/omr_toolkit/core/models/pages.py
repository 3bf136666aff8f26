"""
Module: pages

Purpose:
    Per-page descriptors returned by the layout engine: the page's QR
    identifier and the range of questions it carries, plus fill metrics.

Key Classes:
    - PageDescriptor: number, identifier, question range
    - PageMetrics: how much of the page was left empty

Used By:
    - builder.controller: RenderResult
    - External persistence: stored alongside the coordinate map
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional


@dataclass(frozen=True)
class PageDescriptor:
    """
    One generated page.

    Attributes:
        number: 1-based page number
        identifier: QR payload ``EXAM:<folio>:P<number>``
        first_question: First question number on the page (inclusive)
        last_question: Last question number on the page (inclusive)

    Both bounds are None for a page that renders no questions.
    """

    number: int
    identifier: str
    first_question: Optional[int] = None
    last_question: Optional[int] = None

    def __post_init__(self) -> None:
        if self.number < 1:
            raise ValueError(f"page number must be >= 1: {self.number}")
        if (self.first_question is None) != (self.last_question is None):
            raise ValueError("first_question and last_question must both be set or both be None")
        if self.first_question is not None and self.last_question < self.first_question:
            raise ValueError(
                f"invalid question range {self.first_question}-{self.last_question}"
            )

    @property
    def is_empty(self) -> bool:
        return self.first_question is None

    @property
    def question_numbers(self) -> range:
        if self.first_question is None:
            return range(0)
        return range(self.first_question, self.last_question + 1)

    def to_dict(self) -> dict[str, Any]:
        return {
            "number": self.number,
            "identifier": self.identifier,
            "first_question": self.first_question,
            "last_question": self.last_question,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PageDescriptor":
        first = data.get("first_question")
        last = data.get("last_question")
        return cls(
            number=int(data["number"]),
            identifier=str(data["identifier"]),
            first_question=int(first) if first is not None else None,
            last_question=int(last) if last is not None else None,
        )


@dataclass(frozen=True)
class PageMetrics:
    """Fill diagnostics for one page."""

    number: int
    empty_fraction: float  # 0.0 = full, 1.0 = nothing in the question area
    question_count: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "number": self.number,
            "empty_fraction": round(self.empty_fraction, 4),
            "question_count": self.question_count,
        }
