"""
Module: builder.layout.config

Purpose:
    Configuration for the exam page template.
    Defines page geometry, typography and answer-panel dimensions.

Key Classes:
    - LayoutConfig: Immutable layout configuration (all values in PDF points)

Dependencies:
    - dataclasses (std)
    - common.units: Letter page size, mm -> pt

Used By:
    - builder.layout.composer: Question geometry
    - builder.layout.header: Header and instructions
    - builder.layout.paginator: Page arrangement
    - builder.output.renderer: Page chrome
"""

from __future__ import annotations

from dataclasses import dataclass

from omr_toolkit.common.units import PAGE_HEIGHT_PT, PAGE_WIDTH_PT, mm_to_points

# RGB colours (0..1)
COLOR_PRIMARY = (0.07, 0.22, 0.42)
COLOR_GRAY = (0.38, 0.38, 0.38)
COLOR_RULE = (0.75, 0.79, 0.84)  # Light enough to stay above every ink threshold
COLOR_HEADER_FILL = (0.97, 0.98, 0.99)
COLOR_TEXT = (0.1, 0.1, 0.1)
COLOR_BLACK = (0.0, 0.0, 0.0)
COLOR_WHITE = (1.0, 1.0, 1.0)


@dataclass(frozen=True)
class LayoutConfig:
    """
    Configuration for page layout (immutable).

    Every length is in PDF points. Offsets inside a question block are
    measured downward from the block top.

    Attributes:
        margin_mm: Page margin; registration marks sit on it
        question_size / option_size / note_size: Body font sizes
        inline_code_size / block_code_size: Monospace sizes
        *_line_height: Line advance per text kind
        question_spacing / question_reserve: Gap after each question block
        answer_column_width: Width of the bubble panel on the right
        answer_gutter: Gap between prose and the panel
        panel_header_offset: First bubble centre below the panel top
        bubble_pitch: Distance between bubble centres
        image_max_height: Tallest embedded question image

    Example:
        >>> config = LayoutConfig()
        >>> round(config.margin, 2)
        28.35
    """

    margin_mm: float = 10.0
    page_width: float = PAGE_WIDTH_PT
    page_height: float = PAGE_HEIGHT_PT

    # Fonts (standard PDF fonts, no embedding)
    font_regular: str = "Helvetica"
    font_bold: str = "Helvetica-Bold"
    font_italic: str = "Helvetica-Oblique"
    font_mono: str = "Courier"

    # Typography
    title_size: float = 14.0
    meta_size: float = 9.0
    question_size: float = 10.0
    option_size: float = 9.0
    note_size: float = 8.5
    inline_code_size: float = 9.0
    block_code_size: float = 8.5

    question_line_height: float = 12.0
    option_line_height: float = 11.0
    note_line_height: float = 11.0
    code_line_height: float = 10.0
    baseline_ratio: float = 0.78  # Baseline position within a line box

    # Question block
    number_indent: float = 18.0
    column_gutter: float = 10.0
    option_spacing: float = 2.0
    question_spacing: float = 4.0
    question_reserve: float = 4.0
    image_max_height: float = 120.0
    image_spacing: float = 4.0

    # Answer panel
    answer_column_width: float = 120.0
    answer_gutter: float = 10.0
    panel_padding: float = 8.0
    panel_header_offset: float = 18.0
    panel_label_offset: float = 11.0
    panel_label_size: float = 8.0
    panel_bottom_padding: float = 7.0
    bubble_pitch: float = 13.0
    bubble_radius: float = 5.2
    bubble_border: float = 1.1
    bubble_label_offset: float = 12.0
    fiducial_size: float = 4.0
    fiducial_inset: float = 12.0

    # Page chrome
    qr_size: float = 96.0
    qr_gap: float = 6.0  # Keeps the QR clear of the top-right mark
    folio_size: float = 9.0
    header_height_first: float = 118.0
    header_height_other: float = 112.0  # Clears the QR and the folio under it
    header_gap: float = 10.0
    bottom_reserve: float = 24.0

    def __post_init__(self) -> None:
        """Validate configuration on construction."""
        if self.margin_mm <= 0:
            raise ValueError(f"margin_mm must be positive: {self.margin_mm}")
        if self.text_width <= 60:
            raise ValueError("Margins leave no room for question text")
        if self.bubble_pitch <= 2 * self.bubble_radius:
            raise ValueError("bubble_pitch must exceed the bubble diameter")

    @property
    def margin(self) -> float:
        """Margin in points."""
        return mm_to_points(self.margin_mm)

    @property
    def content_top(self) -> float:
        """Y of the top margin line (PDF coordinates)."""
        return self.page_height - self.margin

    @property
    def bottom_limit(self) -> float:
        """Lowest Y a question block may reach."""
        return self.margin + self.bottom_reserve

    @property
    def panel_x(self) -> float:
        """Left edge of the answer panel."""
        return self.page_width - self.margin - self.answer_column_width

    @property
    def number_x(self) -> float:
        return self.margin

    @property
    def text_x(self) -> float:
        """Left edge of statement text and the first option column."""
        return self.margin + self.number_indent

    @property
    def text_width(self) -> float:
        """Width available for statement text."""
        return self.panel_x - self.answer_gutter - self.text_x

    @property
    def bubble_x(self) -> float:
        """X of every bubble centre."""
        return self.panel_x + self.panel_padding + 8.0

    @property
    def fiducial_x(self) -> float:
        """X of the fiducial square centres."""
        return self.panel_x + self.answer_column_width - self.fiducial_inset

    @property
    def qr_x(self) -> float:
        return self.page_width - self.margin - self.qr_gap - self.qr_size

    @property
    def qr_y(self) -> float:
        """Bottom edge of the QR."""
        return self.page_height - self.margin - self.qr_gap - self.qr_size

    def header_height(self, page_number: int) -> float:
        return self.header_height_first if page_number == 1 else self.header_height_other

    def question_area_top(self, page_number: int) -> float:
        """Y where the first block on a page may start (before instructions)."""
        return self.content_top - self.header_height(page_number) - self.header_gap

    def panel_height(self, bubble_count: int) -> float:
        """Height of the answer panel for ``bubble_count`` bubbles."""
        return (
            self.panel_header_offset
            + (bubble_count - 1) * self.bubble_pitch
            + self.bubble_radius
            + self.panel_bottom_padding
        )

    def bubble_offset(self, index: int) -> float:
        """Offset of bubble ``index`` below the block top."""
        return self.panel_header_offset + index * self.bubble_pitch
