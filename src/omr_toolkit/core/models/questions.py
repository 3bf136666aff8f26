"""
Module: questions

Purpose:
    Provides the Question and Choice dataclasses - the snapshot of a
    question-bank entry handed to the layout engine. Questions are owned
    by an external question bank; this module only validates the shape
    the exam template can render.

Key Classes:
    - Choice: One answer option (text + correctness flag)
    - Question: Statement, optional image and its answer choices

Key Functions:
    - Question.to_dict() / Question.from_dict(): Serialization

Dependencies:
    - dataclasses (std)
    - base64 (std): Image payloads in JSON form

Used By:
    - builder.variants: Variant generation
    - builder.layout.composer: Question rendering
"""

from __future__ import annotations

import base64
from dataclasses import dataclass
from typing import Any, Optional

# The answer panel renders one bubble per letter; five is the template maximum.
BUBBLE_LETTERS: tuple[str, ...] = ("A", "B", "C", "D", "E")
MIN_CHOICES = 2
MAX_CHOICES = len(BUBBLE_LETTERS)


@dataclass(frozen=True)
class Choice:
    """
    A single answer option.

    Attributes:
        text: Option text (may embed inline or fenced monospace spans)
        is_correct: Whether this is the correct option
    """

    text: str
    is_correct: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {"text": self.text, "is_correct": self.is_correct}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Choice":
        return cls(text=str(data.get("text", "")), is_correct=bool(data.get("is_correct", False)))


@dataclass(frozen=True)
class Question:
    """
    Question snapshot (immutable).

    Attributes:
        id: Stable identifier assigned by the question bank
        statement: Statement text; ```fenced``` and `inline` spans
            are rendered in a monospace font
        choices: Answer options in their original (bank) order
        image: Optional raw image bytes (PNG/JPEG) shown under the statement

    Invariants:
        - MIN_CHOICES <= len(choices) <= MAX_CHOICES
        - Exactly one choice is correct

    Example:
        >>> q = Question(
        ...     id="q1",
        ...     statement="What does `len([1, 2])` return?",
        ...     choices=(Choice("2", True), Choice("1"), Choice("0"),
        ...              Choice("None"), Choice("Error")),
        ... )
        >>> q.correct_index
        0
    """

    id: str
    statement: str
    choices: tuple[Choice, ...]
    image: Optional[bytes] = None

    def __post_init__(self) -> None:
        """Validate question on construction."""
        if not str(self.id).strip():
            raise ValueError("question id must not be empty")
        if not (MIN_CHOICES <= len(self.choices) <= MAX_CHOICES):
            raise ValueError(
                f"question {self.id!r} must have {MIN_CHOICES}-{MAX_CHOICES} choices, "
                f"got {len(self.choices)}"
            )
        correct = sum(1 for choice in self.choices if choice.is_correct)
        if correct != 1:
            raise ValueError(
                f"question {self.id!r} must have exactly one correct choice, got {correct}"
            )

    @property
    def correct_index(self) -> int:
        """Index of the correct choice in the original order."""
        return next(i for i, choice in enumerate(self.choices) if choice.is_correct)

    @property
    def has_image(self) -> bool:
        return bool(self.image)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "statement": self.statement,
            "choices": [choice.to_dict() for choice in self.choices],
        }
        if self.image:
            data["image"] = base64.b64encode(self.image).decode("ascii")
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Question":
        """
        Build a Question from its JSON form.

        The optional ``image`` may be plain base64 or a ``data:image/...;base64,`` URL.
        """
        image = data.get("image")
        image_bytes = None
        if image:
            payload = str(image)
            if payload.startswith("data:"):
                payload = payload.split(",", 1)[-1]
            image_bytes = base64.b64decode(payload)
        return cls(
            id=str(data["id"]),
            statement=str(data.get("statement", "")),
            choices=tuple(Choice.from_dict(c) for c in data.get("choices", [])),
            image=image_bytes,
        )
