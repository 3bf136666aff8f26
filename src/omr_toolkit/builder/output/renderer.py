"""
Module: builder.output.renderer

Purpose:
    Render a LayoutResult to PDF bytes using ReportLab.
    Each PagePlan becomes one US-letter page carrying its header,
    question blocks, four registration marks and the page QR.

Key Functions:
    - render_to_pdf(): Main rendering function

Dependencies:
    - reportlab: PDF canvas, QR widget
    - PIL: Image handling
    - builder.layout.models: LayoutResult, PagePlan, draw ops

Used By:
    - builder.controller: render_exam()
"""

from __future__ import annotations

import io
import logging
from typing import Optional

from PIL import Image
from reportlab.graphics import renderPDF
from reportlab.graphics.barcode.qr import QrCodeWidget
from reportlab.graphics.shapes import Drawing
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from omr_toolkit.builder.layout.config import COLOR_BLACK, COLOR_PRIMARY, LayoutConfig
from omr_toolkit.builder.layout.models import (
    Box,
    Circle,
    DrawOp,
    ImageBox,
    LayoutResult,
    PagePlan,
    Rule,
    TextRun,
)
from omr_toolkit.common.identifiers import parse_identifier
from omr_toolkit.common.thresholds import REGISTRATION_MARK

logger = logging.getLogger(__name__)

QR_ERROR_LEVEL = "M"
QR_QUIET_ZONE_MODULES = 4


def render_to_pdf(
    layout: LayoutResult,
    config: LayoutConfig,
    *,
    title: Optional[str] = None,
) -> bytes:
    """
    Render layout result to PDF bytes.

    Output is byte-for-byte reproducible for identical input (no
    timestamps or random document ids are written).

    Args:
        layout: Layout result from paginator
        config: Layout configuration used to build it
        title: Optional PDF document title

    Returns:
        PDF document bytes

    Example:
        >>> pdf = render_to_pdf(layout, LayoutConfig())
        >>> pdf[:5]
        b'%PDF-'
    """
    if layout.page_count == 0:
        logger.warning("Empty layout, creating empty PDF")

    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=(config.page_width, config.page_height), invariant=1)
    if title:
        c.setTitle(title)

    for page in layout.pages:
        _render_page(c, page, config)
        c.showPage()

    c.save()
    data = buf.getvalue()
    logger.info(f"Rendered {layout.page_count} pages ({len(data)} bytes)")
    return data


def _render_page(c: canvas.Canvas, page: PagePlan, config: LayoutConfig) -> None:
    """
    Render a single page to the canvas.

    Header background goes first so the marks and QR are drawn over it.
    """
    for op in page.header_ops:
        _draw_op(c, op, config.content_top)

    for placement in page.placements:
        for op in placement.layout.ops:
            _draw_op(c, op, placement.top)

    _draw_registration_marks(c, config)
    _draw_qr(c, page.identifier, config)


def _draw_op(c: canvas.Canvas, op: DrawOp, origin_top: float) -> None:
    """Draw one op whose vertical offsets are measured down from ``origin_top``."""
    c.saveState()
    if isinstance(op, TextRun):
        c.setFillColorRGB(*op.color)
        c.setFont(op.font, op.size)
        c.drawString(op.x, origin_top - op.baseline, op.text)
    elif isinstance(op, ImageBox):
        c.drawImage(
            _pil_to_reader(op.image),
            op.x,
            origin_top - op.top - op.height,
            width=op.width,
            height=op.height,
        )
    elif isinstance(op, Box):
        if op.stroke is not None:
            c.setStrokeColorRGB(*op.stroke)
            c.setLineWidth(op.line_width)
        if op.fill is not None:
            c.setFillColorRGB(*op.fill)
        c.rect(
            op.x,
            origin_top - op.top - op.height,
            op.width,
            op.height,
            stroke=int(op.stroke is not None),
            fill=int(op.fill is not None),
        )
    elif isinstance(op, Circle):
        c.setStrokeColorRGB(*op.stroke)
        c.setLineWidth(op.line_width)
        c.circle(op.x, origin_top - op.center, op.radius, stroke=1, fill=0)
    elif isinstance(op, Rule):
        c.setStrokeColorRGB(*op.color)
        c.setLineWidth(op.line_width)
        c.line(op.x1, origin_top - op.y1, op.x2, origin_top - op.y2)
    else:
        raise TypeError(f"Unknown draw op: {type(op).__name__}")
    c.restoreState()


def _draw_registration_marks(c: canvas.Canvas, config: LayoutConfig) -> None:
    """
    Draw the four L-shaped corner marks.

    Each vertex sits on the margin corner with both arms pointing inward.
    """
    m = config.margin
    arm = REGISTRATION_MARK.arm_length
    w, h = config.page_width, config.page_height
    corners = (
        (m, h - m, 1, -1),
        (w - m, h - m, -1, -1),
        (m, m, 1, 1),
        (w - m, m, -1, 1),
    )

    c.saveState()
    c.setStrokeColorRGB(*COLOR_BLACK)
    c.setLineWidth(REGISTRATION_MARK.stroke_width)
    c.setLineJoin(0)  # Mitered outer corner
    c.setLineCap(0)
    for vx, vy, dx, dy in corners:
        path = c.beginPath()
        path.moveTo(vx + dx * arm, vy)
        path.lineTo(vx, vy)
        path.lineTo(vx, vy + dy * arm)
        c.drawPath(path, stroke=1, fill=0)
    c.restoreState()


def _draw_qr(c: canvas.Canvas, identifier: str, config: LayoutConfig) -> None:
    """Draw the page QR in the top-right corner and the folio under it."""
    widget = QrCodeWidget(identifier, barLevel=QR_ERROR_LEVEL, barBorder=QR_QUIET_ZONE_MODULES)
    x1, y1, x2, y2 = widget.getBounds()
    size = config.qr_size
    drawing = Drawing(size, size, transform=[size / (x2 - x1), 0, 0, size / (y2 - y1), 0, 0])
    drawing.add(widget)
    renderPDF.draw(drawing, c, config.qr_x, config.qr_y)

    parsed = parse_identifier(identifier)
    folio = parsed[0] if parsed else identifier
    c.saveState()
    c.setFillColorRGB(*COLOR_PRIMARY)
    c.setFont("Helvetica-Bold", config.folio_size)
    c.drawString(config.qr_x, config.qr_y - 12, folio)
    c.restoreState()


def _pil_to_reader(img: Image.Image) -> ImageReader:
    """
    Convert PIL image to ReportLab ImageReader.

    Args:
        img: PIL Image object

    Returns:
        ImageReader for use with ReportLab
    """
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    buf.seek(0)
    return ImageReader(buf)
