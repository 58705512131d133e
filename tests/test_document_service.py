"""Tests for resume text extraction."""

from unittest.mock import MagicMock, patch

import pytest

from app.core.exceptions import UnsupportedFormat, EmptyDocument, ValidationError
from app.services.document_service import DocumentService

PDF_BYTES = b"%PDF-1.4\n% fake body"


def _fake_pdf(*page_texts):
    pdf = MagicMock()
    pages = []
    for text in page_texts:
        page = MagicMock()
        page.extract_text.return_value = text
        pages.append(page)
    pdf.pages = pages
    opened = MagicMock()
    opened.__enter__.return_value = pdf
    opened.__exit__.return_value = False
    return opened


class TestExtract:

    @pytest.mark.asyncio
    async def test_extracts_text_from_all_pages(self):
        with patch("app.services.document_service.pdfplumber.open", return_value=_fake_pdf("Jane Doe", None, " Python ")):
            result = await DocumentService().extract(PDF_BYTES, "application/pdf", "cv.pdf")

        assert result == {"text": "Jane Doe\n\nPython", "page_count": 3}

    @pytest.mark.asyncio
    async def test_blank_document(self):
        with patch("app.services.document_service.pdfplumber.open", return_value=_fake_pdf("  ", "\n")):
            with pytest.raises(EmptyDocument):
                await DocumentService().extract(PDF_BYTES, "application/pdf", "scan.pdf")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("content_type, data", [
        ("application/msword", PDF_BYTES),
        ("image/png", b"\x89PNG..."),
        ("application/pdf", b"not really a pdf"),
        (None, PDF_BYTES),
    ])
    async def test_unsupported_format(self, content_type, data):
        with patch("app.services.document_service.pdfplumber.open") as mock_open:
            with pytest.raises(UnsupportedFormat):
                await DocumentService().extract(data, content_type, "cv")
            mock_open.assert_not_called()

    @pytest.mark.asyncio
    async def test_unreadable_pdf(self):
        with patch("app.services.document_service.pdfplumber.open", side_effect=ValueError("broken xref")):
            with pytest.raises(UnsupportedFormat):
                await DocumentService().extract(PDF_BYTES, "application/pdf", "cv.pdf")

    @pytest.mark.asyncio
    async def test_size_limit(self):
        with pytest.raises(ValidationError):
            await DocumentService(max_size=8).extract(PDF_BYTES, "application/pdf", "cv.pdf")
