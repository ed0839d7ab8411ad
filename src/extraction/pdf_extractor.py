# src/extraction/pdf_extractor.py — v2
"""PDF text extractor using PyMuPDF (fitz).

Requires the 'pymupdf' package.
"""

from __future__ import annotations

import logging

from invoicex.extraction.base_extractor import BaseTextExtractor, DocumentParseError

logger = logging.getLogger(__name__)


class PdfExtractor(BaseTextExtractor):
    """Extractor for PDF files using PyMuPDF."""

    @property
    def supported_extensions(self) -> list[str]:
        return [".pdf"]

    async def extract_text(self, data: bytes) -> str:
        """Concatenate the text layer of every page, one page per block."""
        try:
            import fitz  # PyMuPDF
        except ImportError as e:
            raise ImportError(
                "pymupdf package required for PDF extraction: pip install pymupdf"
            ) from e

        try:
            doc = fitz.open(stream=data, filetype="pdf")
        except Exception as e:
            raise DocumentParseError(f"Failed to parse PDF: {e}") from e

        try:
            pages = [doc[i].get_text("text") for i in range(len(doc))]
        except Exception as e:
            raise DocumentParseError(f"Failed to read PDF text: {e}") from e
        finally:
            doc.close()

        logger.debug("Extracted text from %d PDF page(s)", len(pages))
        return "\n".join(pages)
