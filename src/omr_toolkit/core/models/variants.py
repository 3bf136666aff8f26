"""
Module: variants

Purpose:
    Provides the VariantMap dataclass - the randomized question order and
    per-question option order assigned to one generated exam.

    A VariantMap is generated once and persisted verbatim. Grading must
    invert exactly this permutation, so it is never regenerated.

Key Classes:
    - VariantMap: Question order + option order per question

Used By:
    - builder.variants: Creates VariantMaps
    - builder.layout.paginator: Orders questions and options
    - Grading (external): original_choice_index()
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

from .questions import BUBBLE_LETTERS


@dataclass(frozen=True)
class VariantMap:
    """
    Randomized ordering for one exam instance (immutable).

    Attributes:
        question_order: Question ids in rendering order
        option_order: For each question id, a permutation of indices into
            that question's original choice list. Position i holds the
            original index rendered under letter BUBBLE_LETTERS[i].

    Invariants:
        - question_order has no duplicates
        - every option_order entry is a permutation of 0..n-1

    Example:
        >>> vm = VariantMap(("q2", "q1"), {"q1": (1, 0), "q2": (0, 1)})
        >>> vm.original_choice_index("q1", "A")
        1
    """

    question_order: tuple[str, ...]
    option_order: Mapping[str, tuple[int, ...]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        """Validate permutations on construction."""
        if len(set(self.question_order)) != len(self.question_order):
            raise ValueError("question_order contains duplicate ids")
        for question_id, order in self.option_order.items():
            if sorted(order) != list(range(len(order))):
                raise ValueError(
                    f"option_order for {question_id!r} is not a permutation: {list(order)}"
                )
            if len(order) > len(BUBBLE_LETTERS):
                raise ValueError(
                    f"option_order for {question_id!r} exceeds {len(BUBBLE_LETTERS)} choices"
                )

    @property
    def question_count(self) -> int:
        return len(self.question_order)

    def options_for(self, question_id: str, choice_count: int) -> tuple[int, ...]:
        """
        Option order for a question, identity order if the map has none.

        Raises:
            ValueError: If the stored permutation length disagrees with choice_count
        """
        order = self.option_order.get(question_id)
        if order is None:
            return tuple(range(choice_count))
        if len(order) != choice_count:
            raise ValueError(
                f"option_order for {question_id!r} has {len(order)} entries, "
                f"question has {choice_count} choices"
            )
        return tuple(order)

    def original_choice_index(self, question_id: str, letter: str) -> int:
        """
        Translate a detected letter back to the original choice index.

        The letter position indexes the stored permutation.

        Raises:
            KeyError: If the question is not part of this variant
            ValueError: If the letter was not rendered for this question
        """
        order = self.option_order[question_id]
        position = BUBBLE_LETTERS.index(letter.strip().upper())
        if position >= len(order):
            raise ValueError(f"letter {letter!r} not rendered for question {question_id!r}")
        return order[position]

    def to_dict(self) -> dict[str, Any]:
        return {
            "question_order": list(self.question_order),
            "option_order": {qid: list(order) for qid, order in self.option_order.items()},
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "VariantMap":
        return cls(
            question_order=tuple(str(q) for q in data.get("question_order", [])),
            option_order={
                str(qid): tuple(int(i) for i in order)
                for qid, order in data.get("option_order", {}).items()
            },
        )
