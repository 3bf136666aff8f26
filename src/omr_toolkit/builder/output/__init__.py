"""
Module: builder.output

Purpose:
    PDF rendering and page previews.
    Converts LayoutResult to PDF bytes using ReportLab and rasterizes
    pages with PyMuPDF.

Key Functions:
    - render_to_pdf(): Render layout to PDF bytes
    - render_page_preview(): PNG preview of one page
    - render_page_image(): PIL image of one page

Dependencies:
    - reportlab: PDF generation
    - fitz (PyMuPDF): Rasterization
    - PIL: Image handling

Used By:
    - builder.controller: Pipeline orchestration
"""

from .renderer import render_to_pdf
from .preview import render_page_image, render_page_preview

__all__ = [
    "render_to_pdf",
    "render_page_image",
    "render_page_preview",
]
