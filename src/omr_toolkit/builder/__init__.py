"""
Module: builder

Purpose:
    Exam sheet generation: variant generation and the layout engine.
    Produces the print-ready PDF, the per-page descriptors and the
    coordinate map that the scanner later relies on.

Key Functions:
    - generate_variant(): Randomized question/option order
    - render_exam(): Main entry point for exam generation

Key Classes:
    - ExamConfig / ExamHeader: Configuration for one exam
    - RenderResult: Complete generation result

Dependencies:
    - reportlab: PDF generation, font metrics, QR
    - PIL: Question images and logos

Used By:
    - cli: ``omr-toolkit generate``
"""

from .config import DEFAULT_INSTRUCTIONS, ExamConfig, ExamHeader
from .variants import generate_variant
from .controller import RenderResult, render_exam

__all__ = [
    # Config
    "DEFAULT_INSTRUCTIONS",
    "ExamConfig",
    "ExamHeader",
    # Variants
    "generate_variant",
    # Controller
    "render_exam",
    "RenderResult",
]
