"""
Module: builder.layout.header

Purpose:
    Compose the page-1 header, the running header of later pages and the
    instructions box. All offsets are measured downward from the top
    margin line (LayoutConfig.content_top).

Key Functions:
    - compose_first_page_header(): Institution, title, meta, logos, student fields
    - compose_running_header(): Title and page line for pages >= 2
    - compose_instructions(): Instructions box, shrunk until it fits

Dependencies:
    - PIL: Logo decoding
    - common.thresholds: Instruction shrink schedule

Used By:
    - builder.layout.paginator
"""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass
from typing import List, Optional

from PIL import Image

from omr_toolkit.builder.config import ExamHeader
from omr_toolkit.common.thresholds import INSTRUCTION_THRESHOLDS, InstructionThresholds

from .config import (
    COLOR_GRAY,
    COLOR_HEADER_FILL,
    COLOR_PRIMARY,
    COLOR_RULE,
    COLOR_TEXT,
    COLOR_WHITE,
    LayoutConfig,
)
from .models import Box, DrawOp, ImageBox, Rule, TextRun
from .text import wrap_plain

logger = logging.getLogger(__name__)

LOGO_INSET = 18.0  # Keeps logos out of the corner mark search box
LOGO_MAX_HEIGHT = 44.0
LOGO_PLACEHOLDER_SIZE = (56.0, 36.0)
HEADER_TEXT_INDENT = 84.0
INSTRUCTIONS_LABEL = "Instructions:"
INSTRUCTIONS_LABEL_BLOCK = 16.0


@dataclass(frozen=True)
class InstructionsLayout:
    """
    Composed instructions box.

    Attributes:
        ops: Draw ops (offsets from content_top)
        height: Box height
        font_size: Body size actually used
        fits: False when even the smallest size overflows the page
    """

    ops: tuple[DrawOp, ...]
    height: float
    font_size: float
    fits: bool


def _decode_logo(data: bytes) -> Optional[Image.Image]:
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.load()
            return img.convert("RGB") if img.mode not in ("RGB", "L") else img.copy()
    except (OSError, ValueError, Image.DecompressionBombError) as e:
        logger.warning(f"Logo could not be decoded: {e}")
        return None


def _background(config: LayoutConfig, height: float) -> list[DrawOp]:
    x = config.margin + 2
    width = config.page_width - 2 * config.margin - 4
    return [
        Box(x, 0.0, width, height, fill=COLOR_HEADER_FILL),
        Rule(x, height, x + width, height, COLOR_RULE),
    ]


def _logo_ops(
    logo: Optional[bytes],
    x_left: Optional[float],
    x_right_limit: Optional[float],
    max_width: float,
    config: LayoutConfig,
    show_placeholder: bool,
    warnings: List[str],
) -> list[DrawOp]:
    """
    Logo anchored at ``x_left`` or right-aligned to ``x_right_limit``.

    A missing or unreadable logo becomes an outlined placeholder.
    """
    img = _decode_logo(logo) if logo else None
    if logo and img is None:
        warnings.append("logo could not be decoded; placeholder drawn")

    if img is not None:
        scale = min(1.0, LOGO_MAX_HEIGHT / max(1, img.height), max_width / max(1, img.width))
        width, height = img.width * scale, img.height * scale
    elif show_placeholder:
        width, height = LOGO_PLACEHOLDER_SIZE
    else:
        return []

    x = x_left if x_left is not None else x_right_limit - width
    if x < config.margin + LOGO_INSET or (x_right_limit is not None and x + width > x_right_limit):
        return []

    if img is not None:
        return [ImageBox(x, LOGO_INSET, width, height, img)]
    return [
        Box(x, LOGO_INSET, width, height, stroke=COLOR_RULE, fill=COLOR_WHITE),
        TextRun(x + 10, LOGO_INSET + 22, "LOGO", config.font_bold, 9, COLOR_GRAY),
    ]


def compose_first_page_header(
    header: ExamHeader,
    config: LayoutConfig,
    warnings: Optional[List[str]] = None,
) -> list[DrawOp]:
    """
    Page-1 header block.

    Lines: institution, title, optional motto, meta line with the page
    number, then student name and group fields.
    """
    warnings = warnings if warnings is not None else []
    ops = _background(config, config.header_height(1))

    ops += _logo_ops(
        header.logo_left, config.margin + LOGO_INSET, None,
        HEADER_TEXT_INDENT - LOGO_INSET - 6, config,
        header.show_logo_placeholders, warnings,
    )
    right_logo = _logo_ops(
        header.logo_right, None, config.qr_x - 10, 120.0, config,
        header.show_logo_placeholders, warnings,
    )
    ops += right_logo

    x = config.margin + HEADER_TEXT_INDENT
    text_right = right_logo[0].x - 8 if right_logo else config.qr_x - 12
    max_width = max(120.0, text_right - x)

    def first_line(text: str, font: str, size: float) -> str:
        return wrap_plain(text, max_width, font, size)[0]

    if header.institution.strip():
        ops.append(TextRun(
            x, 22, first_line(header.institution, config.font_bold, 12),
            config.font_bold, 12, COLOR_PRIMARY,
        ))
    ops.append(TextRun(
        x, 42, first_line(header.title, config.font_bold, config.title_size),
        config.font_bold, config.title_size, COLOR_TEXT,
    ))
    if header.motto.strip():
        ops.append(TextRun(
            x, 58, first_line(header.motto, config.font_italic, 9),
            config.font_italic, 9, COLOR_GRAY,
        ))
    meta = " | ".join(part for part in (header.meta_line, "Page: 1") if part)
    ops.append(TextRun(
        x, 72, first_line(meta, config.font_regular, config.meta_size),
        config.font_regular, config.meta_size, COLOR_GRAY,
    ))

    fields_baseline = 92.0
    ops += _field_ops("Student:", header.student_name, x, 52, 220, 160, fields_baseline, config)
    ops += _field_ops("Group:", header.group, x + 236, 38, 104, 60, fields_baseline, config)
    return ops


def _field_ops(
    label: str,
    value: Optional[str],
    x: float,
    line_start: float,
    line_end: float,
    value_width: float,
    baseline: float,
    config: LayoutConfig,
) -> list[DrawOp]:
    """Label, writing line and optional pre-filled value."""
    ops: list[DrawOp] = [
        TextRun(x, baseline, label, config.font_bold, 10, COLOR_TEXT),
        Rule(x + line_start, baseline - 3, x + line_end, baseline - 3, COLOR_RULE),
    ]
    if value and value.strip():
        text = wrap_plain(value, value_width, config.font_regular, 10)[0]
        ops.append(TextRun(x + line_start + 4, baseline, text, config.font_regular, 10, COLOR_TEXT))
    return ops


def compose_running_header(
    header: ExamHeader,
    page_number: int,
    config: LayoutConfig,
) -> list[DrawOp]:
    """Header for pages after the first: title and a page/subject line."""
    ops = _background(config, config.header_height(page_number))
    x = config.margin + 10
    max_width = max(120.0, config.qr_x - 12 - x)
    title = wrap_plain(header.title, max_width, config.font_bold, 12)[0]
    ops.append(TextRun(x, 26, title, config.font_bold, 12, COLOR_PRIMARY))
    subject = f"Subject: {header.subject.strip()}" if header.subject.strip() else ""
    meta = " | ".join(part for part in (f"Page: {page_number}", subject) if part)
    ops.append(TextRun(x, 42, meta, config.font_regular, config.meta_size, COLOR_GRAY))
    return ops


def compose_instructions(
    text: str,
    top: float,
    available_height: float,
    config: LayoutConfig,
    thresholds: InstructionThresholds = INSTRUCTION_THRESHOLDS,
) -> InstructionsLayout:
    """
    Instructions box, shrunk step by step until it fits.

    Font size and line height shrink together. The text is never
    truncated: if the smallest size still overflows ``available_height``
    the box is returned whole with ``fits=False``.

    Args:
        text: Instructions text
        top: Offset of the box top below content_top
        available_height: Room left on the page for the box
        config: Layout configuration
        thresholds: Shrink schedule

    Returns:
        InstructionsLayout
    """
    x = config.margin + 10
    width = min(thresholds.max_width, config.panel_x - config.answer_gutter - x)
    inner_width = width - 2 * thresholds.padding

    layout: Optional[InstructionsLayout] = None
    for step in range(thresholds.max_shrink_steps + 1):
        size = thresholds.default_font_size - step * thresholds.shrink_step
        line_height = size * thresholds.line_height_ratio
        lines = wrap_plain(text, inner_width, config.font_regular, size)
        height = 2 * thresholds.padding + INSTRUCTIONS_LABEL_BLOCK + len(lines) * line_height

        ops: list[DrawOp] = [
            Box(x, top, width, height, stroke=COLOR_RULE, fill=COLOR_WHITE),
            TextRun(
                x + thresholds.padding, top + thresholds.padding + 6, INSTRUCTIONS_LABEL,
                config.font_bold, thresholds.label_font_size, COLOR_PRIMARY,
            ),
        ]
        line_top = top + thresholds.padding + INSTRUCTIONS_LABEL_BLOCK
        for line in lines:
            ops.append(TextRun(
                x + thresholds.padding, line_top + line_height * config.baseline_ratio,
                line, config.font_regular, size, COLOR_GRAY,
            ))
            line_top += line_height

        fits = height <= available_height
        layout = InstructionsLayout(tuple(ops), height, size, fits)
        if fits:
            if step:
                logger.debug(f"Instructions shrunk to {size}pt to fit page 1")
            return layout

    logger.warning(
        f"Instructions do not fit on page 1 even at {layout.font_size}pt; drawn whole"
    )
    return layout
