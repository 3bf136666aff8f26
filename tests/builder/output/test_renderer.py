"""
Unit Tests for PDF rendering and page previews.

PDF content is checked with pypdf; previews are rasterized with PyMuPDF.
"""

import io

import pytest
from PIL import Image
from pypdf import PdfReader

from omr_toolkit.builder import ExamConfig, ExamHeader, render_exam
from omr_toolkit.builder.output import render_page_image, render_page_preview
from omr_toolkit.core.models import VariantMap


@pytest.fixture
def rendered(sample_questions):
    config = ExamConfig(
        folio="r42",
        header=ExamHeader(
            institution="Northfield College",
            title="Unit Test Exam",
            subject="Computing",
            teacher="R. Lee",
            motto="Learn by doing",
        ),
        min_pages=2,
    )
    vm = VariantMap(tuple(q.id for q in sample_questions))
    return render_exam(config, sample_questions, vm)


class TestRenderToPdf:
    """Tests for the rendered document."""

    def test_valid_pdf_with_page_count(self, rendered):
        assert rendered.document_bytes.startswith(b"%PDF-")
        reader = PdfReader(io.BytesIO(rendered.document_bytes))
        assert len(reader.pages) == rendered.page_count == 2

    def test_letter_size_pages(self, rendered):
        page = PdfReader(io.BytesIO(rendered.document_bytes)).pages[0]
        assert float(page.mediabox.width) == pytest.approx(612)
        assert float(page.mediabox.height) == pytest.approx(792)

    def test_header_and_folio_text(self, rendered):
        text = PdfReader(io.BytesIO(rendered.document_bytes)).pages[0].extract_text()
        assert "Northfield College" in text
        assert "Unit Test Exam" in text
        assert "R42" in text
        assert "ANSWER" in text

    def test_running_header_on_later_pages(self, rendered):
        text = PdfReader(io.BytesIO(rendered.document_bytes)).pages[1].extract_text()
        assert "Page: 2" in text

    def test_deterministic_bytes(self, sample_questions):
        config = ExamConfig(folio="same")
        vm = VariantMap(tuple(q.id for q in sample_questions))
        first = render_exam(config, sample_questions, vm)
        second = render_exam(config, sample_questions, vm)
        assert first.document_bytes == second.document_bytes


class TestPreview:
    """Tests for PyMuPDF previews."""

    def test_preview_png_size(self, rendered):
        png = render_page_preview(rendered.document_bytes, 1, dpi=72)
        with Image.open(io.BytesIO(png)) as img:
            assert img.format == "PNG"
            assert img.size == (612, 792)

    def test_grayscale_render(self, rendered):
        image = render_page_image(rendered.document_bytes, 2, dpi=36, grayscale=True)
        assert image.mode == "L"

    def test_page_out_of_range(self, rendered):
        with pytest.raises(ValueError):
            render_page_image(rendered.document_bytes, 3)
