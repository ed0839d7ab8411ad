# src/core/models.py — v1
"""Shared Pydantic domain models used across modules.

No module redefines these types — all imports come from core.models.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from invoicex.cache.fingerprint import normalize_text

NOT_FOUND = "[Not Found]"
NOT_AN_INVOICE = "[Not an Invoice]"
PROCESSING_ERROR = "[Processing Error]"
DEFAULT_CURRENCY = "USD"

ExtractionMethod = Literal["vision", "text", "validation_failed", "failed"]


# === EXTRACTION INPUT ===


class TextExtractionInput(BaseModel):
    """Normalized document text handed to the LLM."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["text"] = "text"
    normalized_text: str

    @classmethod
    def from_raw(cls, text: str) -> TextExtractionInput:
        """Build from raw extracted text, applying whitespace normalization."""
        return cls(normalized_text=normalize_text(text))


class ImageExtractionInput(BaseModel):
    """Image document, identified by its stable reference."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["image"] = "image"
    reference: str
    media_type: str = "image/jpeg"


ExtractionInput = Annotated[
    Union[TextExtractionInput, ImageExtractionInput],
    Field(discriminator="kind"),
]


# === TOKEN ACCOUNTING ===


class TokenUsage(BaseModel):
    """Token counts and cost of one real LLM extraction call."""

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0
    cost: float = 0.0
    model: str = ""


class UsageEnvelope(BaseModel):
    """Usage attached to an ExtractedResult.

    On a cache hit the actual fields are zero (nothing was charged) and the
    original_* fields carry the usage of the extraction being reused.
    """

    model_config = ConfigDict(frozen=True)

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0
    cost: float = 0.0
    original_prompt_tokens: int | None = None
    original_completion_tokens: int | None = None
    original_total_tokens: int | None = None
    original_cost: float | None = None
    cached: bool = False

    @model_validator(mode="after")
    def _check_hit_shape(self) -> UsageEnvelope:
        if not self.cached:
            return self
        if self.prompt_tokens or self.completion_tokens or self.total_tokens or self.cost:
            raise ValueError("cached usage must carry zero actual usage")
        originals = (
            self.original_prompt_tokens,
            self.original_completion_tokens,
            self.original_total_tokens,
            self.original_cost,
        )
        if any(v is None for v in originals):
            raise ValueError("cached usage must carry the original usage")
        return self

    @classmethod
    def for_miss(cls, usage: TokenUsage) -> UsageEnvelope:
        return cls(
            prompt_tokens=usage.prompt_tokens,
            completion_tokens=usage.completion_tokens,
            total_tokens=usage.total_tokens,
            cost=usage.cost,
            cached=False,
        )

    @classmethod
    def for_hit(cls, original: TokenUsage) -> UsageEnvelope:
        return cls(
            original_prompt_tokens=original.prompt_tokens,
            original_completion_tokens=original.completion_tokens,
            original_total_tokens=original.total_tokens,
            original_cost=original.cost,
            cached=True,
        )


# === EXTRACTION RESULT ===


def _today() -> date:
    return datetime.now(timezone.utc).date()


class ExtractedResult(BaseModel):
    """Structured fields extracted from one invoice document."""

    model_config = ConfigDict(frozen=True)

    customer_name: str
    vendor_name: str
    invoice_number: str
    invoice_date: date = Field(default_factory=_today)
    due_date: date | None = None
    amount: int = 0  # minor currency units
    currency: str = DEFAULT_CURRENCY
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    extraction_method: ExtractionMethod
    processing_errors: list[str] = Field(default_factory=list)
    original_file_url: str = ""
    usage: UsageEnvelope | None = None

    @classmethod
    def rejected(cls, reference: str, message: str) -> ExtractedResult:
        """Placeholder result for content that failed pre-validation."""
        return cls(
            customer_name=NOT_AN_INVOICE,
            vendor_name=NOT_AN_INVOICE,
            invoice_number=NOT_AN_INVOICE,
            amount=0,
            confidence=0.0,
            extraction_method="validation_failed",
            processing_errors=[message],
            original_file_url=reference,
        )

    @classmethod
    def failed(cls, reference: str, message: str) -> ExtractedResult:
        """Placeholder result for an extraction that could not complete."""
        return cls(
            customer_name=PROCESSING_ERROR,
            vendor_name=PROCESSING_ERROR,
            invoice_number=PROCESSING_ERROR,
            amount=0,
            confidence=0.0,
            extraction_method="failed",
            processing_errors=[message],
            original_file_url=reference,
        )

    def fields_json(self) -> str:
        """Serialize everything except usage (the cached representation)."""
        return self.model_dump_json(exclude={"usage"})

    def with_usage(self, usage: UsageEnvelope) -> ExtractedResult:
        return self.model_copy(update={"usage": usage})
