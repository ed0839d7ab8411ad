# src/extraction/base_extractor.py — v2
"""Abstract text extractor interface for text-bearing document formats."""

from __future__ import annotations

from abc import ABC, abstractmethod


class DocumentParseError(Exception):
    """The document bytes could not be turned into text."""


class BaseTextExtractor(ABC):
    """Unified interface for document format extractors."""

    @property
    @abstractmethod
    def supported_extensions(self) -> list[str]:
        """File extensions this extractor handles (e.g., ['.pdf'])."""

    @abstractmethod
    async def extract_text(self, data: bytes) -> str:
        """Extract the plain text of a document.

        Raises:
            DocumentParseError: If the bytes are corrupt or unreadable.
        """
