"""
Module: recovery

Purpose:
    Result types produced by the recovery engine. A result is handed back
    to the caller and never persisted by this package.

Key Classes:
    - DetectedAnswer: Opinion + confidence for one question
    - RecoveryResult: All answers, warnings and the decoded QR text
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional


@dataclass(frozen=True)
class DetectedAnswer:
    """
    Detected mark for one question.

    Attributes:
        question_number: Printed question number
        opinion: Detected letter, or None when nothing crossed the threshold
        confidence: 0..1
    """

    question_number: int
    opinion: Optional[str]
    confidence: float

    def __post_init__(self) -> None:
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"confidence must be within [0, 1]: {self.confidence}")

    def to_dict(self) -> dict[str, Any]:
        return {
            "question_number": self.question_number,
            "opinion": self.opinion,
            "confidence": round(self.confidence, 4),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DetectedAnswer":
        return cls(
            question_number=int(data["question_number"]),
            opinion=data.get("opinion"),
            confidence=float(data.get("confidence", 0.0)),
        )


@dataclass(frozen=True)
class RecoveryResult:
    """Outcome of one recovery call."""

    answers: tuple[DetectedAnswer, ...]
    warnings: tuple[str, ...] = ()
    qr_text: Optional[str] = None

    @property
    def answered(self) -> dict[int, str]:
        """Question number -> letter for every question with an opinion."""
        return {a.question_number: a.opinion for a in self.answers if a.opinion is not None}

    def answer_for(self, question_number: int) -> Optional[DetectedAnswer]:
        return next((a for a in self.answers if a.question_number == question_number), None)

    def to_dict(self) -> dict[str, Any]:
        return {
            "answers": [a.to_dict() for a in self.answers],
            "warnings": list(self.warnings),
            "qr_text": self.qr_text,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RecoveryResult":
        return cls(
            answers=tuple(DetectedAnswer.from_dict(a) for a in data.get("answers", [])),
            warnings=tuple(str(w) for w in data.get("warnings", [])),
            qr_text=data.get("qr_text"),
        )
