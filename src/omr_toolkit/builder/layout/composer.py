"""
Module: builder.layout.composer

Purpose:
    Compose question blocks from questions and their option order.
    One pure function produces the full geometry of a block: draw
    operations, bubble centres, fiducials and height. Pagination
    measures with it and the renderer draws its output.

Key Functions:
    - compose_question(): Lay out a single question
    - compose_exam(): Lay out every question in variant order

Layout of a block (offsets downward from the block top):
    - Number and wrapped statement on the left
    - Optional image under the statement
    - Options in two columns (first ceil(n/2) in column one)
    - Answer panel on the right: label, one bubble per letter at a fixed
      pitch from a fixed header offset, fiducial squares beside the
      first and last bubbles

Dependencies:
    - PIL: Question image decoding
    - reportlab.pdfbase.pdfmetrics: Label widths

Used By:
    - builder.layout.paginator: Page layout
"""

from __future__ import annotations

import io
import logging
import math
from typing import List, Optional, Sequence

from PIL import Image
from reportlab.pdfbase.pdfmetrics import stringWidth

from omr_toolkit.core.models import BUBBLE_LETTERS, Question, VariantMap

from .config import COLOR_BLACK, COLOR_GRAY, COLOR_PRIMARY, COLOR_RULE, COLOR_TEXT, LayoutConfig
from .models import BubbleMark, Box, Circle, DrawOp, ImageBox, QuestionLayout, TextLine, TextRun
from .text import TextStyle, segment_width, wrap_mixed

logger = logging.getLogger(__name__)

PANEL_LABEL = "ANSWER"
IMAGE_UNAVAILABLE_NOTE = "(image unavailable)"
OPTION_PREFIX_SAMPLE = "E) "


def statement_style(config: LayoutConfig) -> TextStyle:
    return TextStyle(
        font=config.font_regular,
        mono_font=config.font_mono,
        size=config.question_size,
        inline_code_size=config.inline_code_size,
        block_code_size=config.block_code_size,
        line_height=config.question_line_height,
        code_line_height=config.code_line_height,
    )


def option_style(config: LayoutConfig) -> TextStyle:
    return TextStyle(
        font=config.font_regular,
        mono_font=config.font_mono,
        size=config.option_size,
        inline_code_size=min(config.inline_code_size, config.option_size),
        block_code_size=config.block_code_size,
        line_height=config.option_line_height,
        code_line_height=config.code_line_height,
    )


def _line_ops(
    lines: Sequence[TextLine],
    x: float,
    top: float,
    config: LayoutConfig,
    color=COLOR_TEXT,
) -> tuple[list[DrawOp], float]:
    """Draw ops for wrapped lines starting at ``top``; returns (ops, height)."""
    ops: list[DrawOp] = []
    y = top
    for line in lines:
        baseline = y + line.line_height * config.baseline_ratio
        cursor = x
        for segment in line.segments:
            if segment.text:
                ops.append(TextRun(cursor, baseline, segment.text, segment.font, segment.size, color))
                cursor += segment_width(segment)
        y += line.line_height
    return ops, y - top


def _load_image(data: bytes) -> Image.Image:
    with Image.open(io.BytesIO(data)) as img:
        img.load()
        if img.mode not in ("RGB", "L"):
            img = img.convert("RGB")
        else:
            img = img.copy()
    return img


def _image_ops(
    question: Question,
    number: int,
    top: float,
    config: LayoutConfig,
    warnings: List[str],
) -> tuple[list[DrawOp], float]:
    """Image (or an "unavailable" note) under the statement."""
    try:
        img = _load_image(question.image)
    except (OSError, ValueError, Image.DecompressionBombError) as e:
        warnings.append(f"question {number}: image could not be decoded ({e})")
        logger.warning(f"Question {question.id}: image could not be decoded: {e}")
        baseline = top + config.note_line_height * config.baseline_ratio
        note = TextRun(
            config.text_x, baseline, IMAGE_UNAVAILABLE_NOTE,
            config.font_italic, config.note_size, COLOR_GRAY,
        )
        return [note], config.note_line_height

    width, height = img.size
    # 1px == 1pt; shrink to fit, never enlarge
    scale = min(1.0, config.text_width / max(1, width), config.image_max_height / max(1, height))
    box = ImageBox(
        x=config.text_x,
        top=top + config.image_spacing,
        width=width * scale,
        height=height * scale,
        image=img,
    )
    return [box], box.height + 2 * config.image_spacing


def _panel_ops(
    letters: Sequence[str],
    config: LayoutConfig,
) -> tuple[list[DrawOp], list[BubbleMark], tuple, float]:
    """Answer panel: border, label, bubbles and fiducials."""
    panel_height = config.panel_height(len(letters))
    ops: list[DrawOp] = [
        Box(config.panel_x, 0.0, config.answer_column_width, panel_height, stroke=COLOR_RULE),
        TextRun(
            config.panel_x + config.panel_padding, config.panel_label_offset, PANEL_LABEL,
            config.font_bold, config.panel_label_size, COLOR_PRIMARY,
        ),
    ]
    bubbles: list[BubbleMark] = []
    for index, letter in enumerate(letters):
        offset = config.bubble_offset(index)
        ops.append(Circle(config.bubble_x, offset, config.bubble_radius, config.bubble_border))
        ops.append(TextRun(
            config.bubble_x + config.bubble_label_offset, offset + config.option_size * 0.35,
            letter, config.font_regular, config.option_size, COLOR_TEXT,
        ))
        bubbles.append(BubbleMark(letter, config.bubble_x, offset))

    size = config.fiducial_size
    first, last = config.bubble_offset(0), config.bubble_offset(len(letters) - 1)
    for offset in (first, last):
        ops.append(Box(config.fiducial_x - size / 2, offset - size / 2, size, size, fill=COLOR_BLACK))
    fiducials = ((config.fiducial_x, first), (config.fiducial_x, last))
    return ops, bubbles, fiducials, panel_height


def compose_question(
    question: Question,
    number: int,
    option_order: Sequence[int],
    config: LayoutConfig,
) -> QuestionLayout:
    """
    Lay out one question block.

    Args:
        question: Question to lay out
        number: Printed question number
        option_order: Original choice index rendered under each letter
        config: Layout configuration

    Returns:
        QuestionLayout; identical inputs always give identical geometry

    Example:
        >>> layout = compose_question(question, 1, (2, 0, 1, 3, 4), LayoutConfig())
        >>> [b.letter for b in layout.bubbles]
        ['A', 'B', 'C', 'D', 'E']
    """
    warnings: List[str] = []
    ops: List[DrawOp] = []

    # Statement
    lines = wrap_mixed(question.statement, config.text_width, statement_style(config))
    first_baseline = lines[0].line_height * config.baseline_ratio
    ops.append(TextRun(
        config.number_x, first_baseline, f"{number}.",
        config.font_bold, config.question_size, COLOR_TEXT,
    ))
    text_ops, y = _line_ops(lines, config.text_x, 0.0, config)
    ops.extend(text_ops)

    if question.has_image:
        image_ops, image_height = _image_ops(question, number, y, config, warnings)
        ops.extend(image_ops)
        y += image_height

    # Options in two columns
    letters = BUBBLE_LETTERS[: len(option_order)]
    split = math.ceil(len(option_order) / 2)
    if len(option_order) > 1:
        column_width = (config.text_width - config.column_gutter) / 2
    else:
        column_width = config.text_width
    prefix_width = stringWidth(OPTION_PREFIX_SAMPLE, config.font_bold, config.option_size)
    wrap_width = max(30.0, column_width - prefix_width)
    style = option_style(config)

    column_heights = [0.0, 0.0]
    for position, original_index in enumerate(option_order):
        column = 0 if position < split else 1
        x = config.text_x + column * (column_width + config.column_gutter)
        top = y + column_heights[column]
        option_lines = wrap_mixed(question.choices[original_index].text, wrap_width, style)
        ops.append(TextRun(
            x, top + option_lines[0].line_height * config.baseline_ratio,
            f"{letters[position]})", config.font_bold, config.option_size, COLOR_TEXT,
        ))
        option_ops, option_height = _line_ops(option_lines, x + prefix_width, top, config)
        ops.extend(option_ops)
        column_heights[column] += option_height + config.option_spacing
    content_height = y + max(column_heights)

    panel_ops, bubbles, fiducials, panel_height = _panel_ops(letters, config)
    ops.extend(panel_ops)

    height = (
        max(content_height, panel_height)
        + config.question_spacing
        + config.question_reserve
    )
    return QuestionLayout(
        number=number,
        question_id=question.id,
        height=height,
        ops=tuple(ops),
        bubbles=tuple(bubbles),
        fiducials=fiducials,
        warnings=tuple(warnings),
    )


def order_questions(
    questions: Sequence[Question],
    variant_map: VariantMap,
    warnings: Optional[List[str]] = None,
) -> list[Question]:
    """
    Questions in variant order.

    Ids in the variant map with no matching question are skipped with a
    warning.

    Raises:
        ValueError: If a supplied question is absent from the variant map
    """
    by_id = {q.id: q for q in questions}
    unplaced = [q.id for q in questions if q.id not in variant_map.question_order]
    if unplaced:
        raise ValueError(f"questions missing from the variant map: {', '.join(unplaced)}")

    ordered = []
    for question_id in variant_map.question_order:
        question = by_id.get(question_id)
        if question is None:
            message = f"question {question_id!r} in variant map was not supplied; skipped"
            logger.warning(message)
            if warnings is not None:
                warnings.append(message)
            continue
        ordered.append(question)
    return ordered


def compose_exam(
    questions: Sequence[Question],
    variant_map: VariantMap,
    config: LayoutConfig,
    warnings: Optional[List[str]] = None,
) -> list[QuestionLayout]:
    """
    Compose every question in variant order, numbered from 1.

    Args:
        questions: Selected questions (any order)
        variant_map: Question and option order
        config: Layout configuration
        warnings: Optional list collecting non-fatal problems

    Returns:
        List of QuestionLayouts in printed order
    """
    layouts = []
    for number, question in enumerate(order_questions(questions, variant_map, warnings), start=1):
        option_order = variant_map.options_for(question.id, len(question.choices))
        layout = compose_question(question, number, option_order, config)
        if warnings is not None:
            warnings.extend(layout.warnings)
        layouts.append(layout)
    logger.debug(f"Composed {len(layouts)} question blocks")
    return layouts
