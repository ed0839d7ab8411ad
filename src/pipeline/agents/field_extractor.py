# src/pipeline/agents/field_extractor.py — v1
"""Field extraction agent — one LLM call per cache miss.

Text documents go to the text model in JSON mode; images go to the vision
model with the same schema instruction.
"""

from __future__ import annotations

import logging
from pathlib import Path

from pydantic import BaseModel

from invoicex.core.models import ExtractionInput, ImageExtractionInput
from invoicex.llm.base_client import BaseLLMClient
from invoicex.llm.models import ImageInput, LLMResponse, Message
from invoicex.llm.retry import with_retry
from invoicex.pipeline.response_parser import (
    InvoiceFields,
    decode_invoice_fields,
    parse_json_object,
)

logger = logging.getLogger(__name__)

_PROMPT_PATH = Path(__file__).parent.parent / "prompts" / "invoice_extraction.txt"
_IMAGE_INSTRUCTION = "Extract the invoice fields from this image."


class FieldExtraction(BaseModel):
    """Decoded fields plus the raw response they came from."""

    fields: InvoiceFields
    response: LLMResponse


class InvoiceFieldExtractor:
    """Extract structured invoice fields with an LLM.

    Args:
        llm: Client for text documents.
        vision_llm: Client for image documents (defaults to llm).
        max_tokens: Output token cap per call.
        temperature: Sampling temperature for text calls.
    """

    def __init__(
        self,
        llm: BaseLLMClient,
        vision_llm: BaseLLMClient | None = None,
        max_tokens: int = 1000,
        temperature: float = 0.0,
    ) -> None:
        self._llm = llm
        self._vision_llm = vision_llm or llm
        self._max_tokens = max_tokens
        self._temperature = temperature
        self._prompt_template: str | None = None

    @property
    def name(self) -> str:
        return "field_extractor"

    def _load_prompt(self) -> str:
        if self._prompt_template is None:
            self._prompt_template = _PROMPT_PATH.read_text(encoding="utf-8")
        return self._prompt_template

    async def extract(
        self, extraction_input: ExtractionInput, image: ImageInput | None = None
    ) -> FieldExtraction:
        """Run the extraction call and decode its output.

        Raises:
            LLMRetryExhausted: The LLM call failed.
            ResponseParseError: The output could not be decoded.
        """
        system = self._load_prompt()
        if isinstance(extraction_input, ImageExtractionInput):
            if image is None:
                raise ValueError("image payload required for vision extraction")
            response = await with_retry(
                self._vision_llm.complete_with_vision,
                messages=[Message(role="user", content=_IMAGE_INSTRUCTION)],
                images=[image],
                system=system,
                max_tokens=self._max_tokens,
                operation=self.name,
            )
        else:
            response = await with_retry(
                self._llm.complete,
                messages=[Message(role="user", content=extraction_input.normalized_text)],
                system=system,
                max_tokens=self._max_tokens,
                temperature=self._temperature,
                response_format="json",
                operation=self.name,
            )

        fields = decode_invoice_fields(parse_json_object(response.content))
        logger.debug(
            "Extracted invoice %s (%d+%d tokens, %s)",
            fields.invoice_number, response.input_tokens, response.output_tokens,
            response.model,
        )
        return FieldExtraction(fields=fields, response=response)
