"""
Core Models Package

Immutable, validated data models shared by the builder and the scanner.

All models are frozen dataclasses with ``to_dict()`` / ``from_dict()``:
the coordinate map and variant map are persisted contracts, so whatever the
builder writes must be read back by the scanner unchanged.
"""

from .questions import BUBBLE_LETTERS, MAX_CHOICES, MIN_CHOICES, Choice, Question
from .variants import VariantMap
from .coordinates import (
    CORNER_NAMES,
    BubblePosition,
    CoordinateMap,
    Fiducials,
    PageMap,
    Point,
    QuestionMarks,
    registration_anchors,
)
from .pages import PageDescriptor, PageMetrics
from .recovery import DetectedAnswer, RecoveryResult

__all__ = [
    "BUBBLE_LETTERS",
    "MAX_CHOICES",
    "MIN_CHOICES",
    "Choice",
    "Question",
    "VariantMap",
    "CORNER_NAMES",
    "BubblePosition",
    "CoordinateMap",
    "Fiducials",
    "PageMap",
    "Point",
    "QuestionMarks",
    "registration_anchors",
    "PageDescriptor",
    "PageMetrics",
    "DetectedAnswer",
    "RecoveryResult",
]
