# src/extraction/extractor_factory.py — v4
"""Reference classification and text extractor selection.

A reference is either an image (sent to the vision model as-is) or a
text-bearing document whose text is extracted locally.
"""

from __future__ import annotations

import logging
import posixpath
from typing import Literal
from urllib.parse import urlparse

from invoicex.extraction.base_extractor import BaseTextExtractor
from invoicex.extraction.pdf_extractor import PdfExtractor
from invoicex.extraction.txt_extractor import TxtExtractor

logger = logging.getLogger(__name__)

IMAGE_MEDIA_TYPES: dict[str, str] = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".bmp": "image/bmp",
    ".webp": "image/webp",
    ".tiff": "image/tiff",
    ".tif": "image/tiff",
}

_PDF_MAGIC = b"%PDF"

# Registry maps extension → extractor class.
_EXTRACTOR_REGISTRY: dict[str, type[BaseTextExtractor]] = {}


def register_extractor(extension: str, cls: type[BaseTextExtractor]) -> None:
    """Register an extractor class for an extension (case-insensitive)."""
    _EXTRACTOR_REGISTRY[extension.lower()] = cls


def supported_extensions() -> list[str]:
    return sorted(_EXTRACTOR_REGISTRY.keys())


def _register_defaults() -> None:
    for cls in [TxtExtractor, PdfExtractor]:
        for ext in cls().supported_extensions:
            register_extractor(ext, cls)


_register_defaults()


def reference_extension(reference: str) -> str:
    """Lower-cased extension of a path or URL path, query string ignored."""
    path = urlparse(reference).path if "://" in reference else reference
    return posixpath.splitext(path.replace("\\", "/"))[1].lower()


def classify_reference(
    reference: str, content_type: str | None = None
) -> Literal["image", "text"]:
    """Decide whether a document goes down the vision or the text path."""
    if reference_extension(reference) in IMAGE_MEDIA_TYPES:
        return "image"
    if content_type and content_type.split(";")[0].strip().lower().startswith("image/"):
        return "image"
    return "text"


def media_type_for(reference: str, content_type: str | None = None) -> str:
    """MIME type for an image reference (defaults to image/jpeg)."""
    media_type = IMAGE_MEDIA_TYPES.get(reference_extension(reference))
    if media_type:
        return media_type
    if content_type and content_type.lower().startswith("image/"):
        return content_type.split(";")[0].strip().lower()
    return "image/jpeg"


def create_text_extractor(reference: str, data: bytes = b"") -> BaseTextExtractor:
    """Pick the extractor by extension, sniffing PDF magic bytes as a fallback.

    Anything that is neither a registered extension nor a PDF is read as
    plain text.
    """
    if data.startswith(_PDF_MAGIC):
        return PdfExtractor()
    extension = reference_extension(reference)
    cls = _EXTRACTOR_REGISTRY.get(extension)
    if cls is None:
        logger.debug(
            "No extractor registered for %r (supported: %s), reading as plain text",
            extension, ", ".join(supported_extensions()),
        )
        cls = TxtExtractor
    return cls()
