"""
Module: builder.output.preview

Purpose:
    Rasterize generated pages with PyMuPDF, for on-screen previews and
    for producing synthetic scans in tests.

Key Functions:
    - render_page_image(): One page as a PIL image
    - render_page_preview(): One page as PNG bytes

Dependencies:
    - fitz (PyMuPDF): PDF rasterization
    - PIL: Image conversion

Used By:
    - cli: ``omr-toolkit generate --preview``
    - tests/e2e: Round-trip recovery
"""

from __future__ import annotations

import io
import logging

import fitz
from PIL import Image

logger = logging.getLogger(__name__)

DEFAULT_PREVIEW_DPI = 150


def render_page_image(
    document_bytes: bytes,
    page_number: int,
    dpi: int = DEFAULT_PREVIEW_DPI,
    *,
    grayscale: bool = False,
) -> Image.Image:
    """
    Rasterize one page of a PDF.

    Args:
        document_bytes: PDF bytes
        page_number: 1-based page number
        dpi: Resolution for rendering
        grayscale: Render a single-channel image

    Returns:
        PIL image ("L" or "RGB")

    Raises:
        ValueError: If the page does not exist
    """
    with fitz.open(stream=document_bytes, filetype="pdf") as doc:
        if not 1 <= page_number <= doc.page_count:
            raise ValueError(f"page {page_number} out of range 1..{doc.page_count}")
        page = doc[page_number - 1]
        matrix = fitz.Matrix(dpi / 72.0, dpi / 72.0)
        if grayscale:
            pix = page.get_pixmap(matrix=matrix, alpha=False, colorspace=fitz.csGRAY)
            image = Image.frombytes("L", (pix.width, pix.height), pix.samples)
        else:
            pix = page.get_pixmap(matrix=matrix, alpha=False)
            image = Image.frombytes("RGB", (pix.width, pix.height), pix.samples)
    logger.debug(f"Rendered page {page_number} at {dpi} DPI: {image.size}")
    return image


def render_page_preview(document_bytes: bytes, page_number: int, dpi: int = DEFAULT_PREVIEW_DPI) -> bytes:
    """One page as PNG bytes."""
    image = render_page_image(document_bytes, page_number, dpi)
    buf = io.BytesIO()
    image.save(buf, format="PNG")
    return buf.getvalue()
