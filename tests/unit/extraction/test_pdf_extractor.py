# tests/unit/extraction/test_pdf_extractor.py — v2
"""Tests for extraction/pdf_extractor.py (requires pymupdf)."""

from __future__ import annotations

import pytest

from invoicex.extraction.base_extractor import DocumentParseError
from invoicex.extraction.pdf_extractor import PdfExtractor

fitz = pytest.importorskip("fitz")


def _make_pdf(*pages: str) -> bytes:
    doc = fitz.open()
    for text in pages:
        page = doc.new_page()
        page.insert_text((72, 72), text)
    data = doc.tobytes()
    doc.close()
    return data


class TestPdfExtractor:
    @pytest.mark.asyncio
    async def test_extracts_all_pages(self):
        text = await PdfExtractor().extract_text(_make_pdf("INVOICE #123", "Total: $45.00"))
        assert "INVOICE #123" in text
        assert "Total: $45.00" in text
        assert text.index("INVOICE") < text.index("Total")

    @pytest.mark.asyncio
    async def test_blank_pdf_yields_no_text(self):
        text = await PdfExtractor().extract_text(_make_pdf(""))
        assert text.strip() == ""

    @pytest.mark.asyncio
    async def test_corrupt_pdf_raises(self):
        with pytest.raises(DocumentParseError):
            await PdfExtractor().extract_text(b"not a pdf at all")
