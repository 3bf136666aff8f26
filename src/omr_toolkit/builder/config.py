"""
Module: builder.config

Purpose:
    Configuration dataclasses for exam generation. Immutable
    configuration with validation on construction.

Key Classes:
    - ExamHeader: Institution, title and the rest of the page-1 header
    - ExamConfig: Header + folio, page budget and margin

Dependencies:
    - dataclasses (std)

Used By:
    - builder.controller: render_exam()
    - builder.layout.header: Header block measurement and drawing
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from omr_toolkit.common.identifiers import normalize_folio

DEFAULT_MARGIN_MM = 10.0

DEFAULT_INSTRUCTIONS = (
    "Answer every question. Fill the bubble of the single best answer completely, "
    "without marking outside it. Erase changes fully; a second mark may void the answer."
)


@dataclass(frozen=True)
class ExamHeader:
    """
    Content of the page-1 header block (immutable).

    Attributes:
        institution: Institution name (first header line)
        title: Exam title
        motto: Optional line under the institution
        subject: Subject shown in the meta line
        teacher: Teacher shown in the meta line
        instructions: Text of the instructions box
        show_instructions: Draw the instructions box on page 1
        student_name: Pre-filled student name, blank line when None
        group: Pre-filled group, blank line when None
        logo_left: Optional PNG/JPEG bytes
        logo_right: Optional PNG/JPEG bytes
        show_logo_placeholders: Draw outlined "LOGO" boxes where a logo is missing
    """

    institution: str = ""
    title: str = "Exam"
    motto: str = ""
    subject: str = ""
    teacher: str = ""
    instructions: str = DEFAULT_INSTRUCTIONS
    show_instructions: bool = True
    student_name: Optional[str] = None
    group: Optional[str] = None
    logo_left: Optional[bytes] = None
    logo_right: Optional[bytes] = None
    show_logo_placeholders: bool = True

    @property
    def meta_line(self) -> str:
        """``Subject: x | Teacher: y`` without the empty parts."""
        parts = []
        if self.subject.strip():
            parts.append(f"Subject: {self.subject.strip()}")
        if self.teacher.strip():
            parts.append(f"Teacher: {self.teacher.strip()}")
        return " | ".join(parts)


@dataclass(frozen=True)
class ExamConfig:
    """
    Configuration for rendering one exam (immutable).

    Attributes:
        folio: Identifier seed printed under and encoded in each page QR
        header: Header content
        min_pages: Page budget hint; empty trailing pages are appended to reach it
        margin_mm: Page margin in millimetres (registration marks sit on it)

    Example:
        >>> config = ExamConfig(folio="a1b2", header=ExamHeader(title="Unit 3"))
        >>> config.folio
        'A1B2'
    """

    folio: str
    header: ExamHeader = field(default_factory=ExamHeader)
    min_pages: int = 1
    margin_mm: float = DEFAULT_MARGIN_MM

    def __post_init__(self) -> None:
        """Validate configuration on construction."""
        folio = normalize_folio(self.folio)
        if not folio:
            raise ValueError("folio must not be empty")
        if ":" in folio or any(ch.isspace() for ch in folio) or "|" in folio:
            raise ValueError(f"folio must not contain ':', '|' or whitespace: {self.folio!r}")
        object.__setattr__(self, "folio", folio)
        if self.min_pages < 1:
            raise ValueError(f"min_pages must be >= 1: {self.min_pages}")
        if not 5.0 <= self.margin_mm <= 30.0:
            raise ValueError(f"margin_mm must be within [5, 30]: {self.margin_mm}")
