# src/pipeline/agents/invoice_validator.py — v2
"""Pre-validation agent — is this document an invoice at all?

Runs before any cache lookup or extraction. A failed validation call is
treated as a negative verdict, never as an error.
"""

from __future__ import annotations

import logging
import math
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from invoicex.core.models import ExtractionInput, ImageExtractionInput
from invoicex.llm.base_client import BaseLLMClient
from invoicex.llm.models import ImageInput, LLMResponse, Message
from invoicex.llm.retry import with_retry
from invoicex.pipeline.response_parser import parse_json_object

logger = logging.getLogger(__name__)

_PROMPT_PATH = Path(__file__).parent.parent / "prompts" / "invoice_validation.txt"
_IMAGE_INSTRUCTION = "Does this image show an invoice?"


class ValidationVerdict(BaseModel):
    """Outcome of pre-validation."""

    is_invoice: bool
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    reason: str = ""
    response: LLMResponse | None = None


class InvoiceValidator:
    """Classify a document as invoice / not an invoice with one LLM call."""

    def __init__(self, llm: BaseLLMClient, max_tokens: int = 200) -> None:
        self._llm = llm
        self._max_tokens = max_tokens
        self._prompt_template: str | None = None

    @property
    def name(self) -> str:
        return "invoice_validator"

    def _load_prompt(self) -> str:
        if self._prompt_template is None:
            self._prompt_template = _PROMPT_PATH.read_text(encoding="utf-8")
        return self._prompt_template

    async def validate(
        self, extraction_input: ExtractionInput, image: ImageInput | None = None
    ) -> ValidationVerdict:
        """Return a verdict. Never raises."""
        try:
            response = await self._call(extraction_input, image)
            return _to_verdict(parse_json_object(response.content), response)
        except Exception as e:  # any failure is a negative verdict
            logger.warning("Invoice validation failed: %s", e)
            return ValidationVerdict(is_invoice=False, reason=f"Validation failed: {e}")

    async def _call(
        self, extraction_input: ExtractionInput, image: ImageInput | None
    ) -> LLMResponse:
        system = self._load_prompt()
        if isinstance(extraction_input, ImageExtractionInput):
            if image is None:
                raise ValueError("image payload required for image validation")
            return await with_retry(
                self._llm.complete_with_vision,
                messages=[Message(role="user", content=_IMAGE_INSTRUCTION)],
                images=[image],
                system=system,
                max_tokens=self._max_tokens,
                operation=self.name,
            )
        return await with_retry(
            self._llm.complete,
            messages=[Message(role="user", content=extraction_input.normalized_text)],
            system=system,
            max_tokens=self._max_tokens,
            temperature=0.0,
            response_format="json",
            operation=self.name,
        )


def _to_verdict(payload: dict[str, Any], response: LLMResponse) -> ValidationVerdict:
    """Verdict from the decoded payload; only a literal true is an invoice."""
    is_invoice = payload.get("isInvoice", payload.get("is_invoice"))
    confidence = payload.get("confidence")
    if isinstance(confidence, bool) or not isinstance(confidence, (int, float)):
        confidence = 0.0
    confidence = float(confidence)
    if not math.isfinite(confidence):
        confidence = 0.0
    return ValidationVerdict(
        is_invoice=is_invoice is True,
        confidence=min(max(confidence, 0.0), 1.0),
        reason=str(payload.get("reason") or ""),
        response=response,
    )
