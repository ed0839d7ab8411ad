# src/extraction/txt_extractor.py — v3
"""Plain text extractor — passthrough with minimal processing."""

from __future__ import annotations

from invoicex.extraction.base_extractor import BaseTextExtractor


class TxtExtractor(BaseTextExtractor):
    """Extractor for plain text files (.txt, .md, .csv)."""

    @property
    def supported_extensions(self) -> list[str]:
        return [".txt", ".md", ".csv"]

    async def extract_text(self, data: bytes) -> str:
        # BOM-aware; undecodable bytes are replaced rather than rejected
        return data.decode("utf-8-sig", errors="replace")
