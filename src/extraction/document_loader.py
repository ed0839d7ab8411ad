# src/extraction/document_loader.py — v1
"""Fetch document bytes from an http(s) URL or a local path."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

import httpx
from pydantic import BaseModel

logger = logging.getLogger(__name__)

_HTTP_SCHEMES = ("http://", "https://")


class DocumentFetchError(Exception):
    """The document could not be retrieved."""

    def __init__(self, reference: str, reason: str):
        self.reference = reference
        self.reason = reason
        super().__init__(f"Failed to fetch document {reference!r}: {reason}")


class LoadedDocument(BaseModel):
    """Raw document bytes plus what the source said about them."""

    reference: str
    data: bytes
    content_type: str | None = None


class DocumentLoader:
    """Loads documents over HTTP or from disk.

    Args:
        timeout_s: HTTP timeout in seconds.
        transport: Optional httpx transport (tests inject a MockTransport).
    """

    def __init__(
        self,
        timeout_s: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._timeout_s = timeout_s
        self._transport = transport

    async def load(self, reference: str) -> LoadedDocument:
        """Fetch a document.

        Raises:
            DocumentFetchError: On any network, HTTP status or file error.
        """
        if reference.lower().startswith(_HTTP_SCHEMES):
            return await self._load_url(reference)
        return await self._load_path(reference)

    async def _load_url(self, url: str) -> LoadedDocument:
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout_s,
                transport=self._transport,
                follow_redirects=True,
            ) as client:
                response = await client.get(url)
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise DocumentFetchError(url, f"HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise DocumentFetchError(url, str(e) or type(e).__name__) from e

        logger.debug("Fetched %d bytes from %s", len(response.content), url)
        return LoadedDocument(
            reference=url,
            data=response.content,
            content_type=response.headers.get("content-type"),
        )

    async def _load_path(self, reference: str) -> LoadedDocument:
        path = Path(reference).expanduser()
        try:
            data = await asyncio.to_thread(path.read_bytes)
        except OSError as e:
            raise DocumentFetchError(reference, e.strerror or str(e)) from e
        return LoadedDocument(reference=reference, data=data)
