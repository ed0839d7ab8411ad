# src/cache/models.py — v2
"""Cache domain models: CacheEntry."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel

from invoicex.core.models import ExtractedResult, TokenUsage


class CacheEntry(BaseModel):
    """One prompt-cache row, unique per fingerprint."""

    id: str
    fingerprint: str
    prompt: str
    result: str
    token_usage: str
    created_at: datetime
    updated_at: datetime

    def decode_result(self) -> ExtractedResult:
        """Deserialize the stored extraction (raises pydantic.ValidationError)."""
        return ExtractedResult.model_validate_json(self.result)

    def decode_usage(self) -> TokenUsage:
        """Deserialize the stored token usage (raises pydantic.ValidationError)."""
        return TokenUsage.model_validate_json(self.token_usage)
