# src/pipeline/invoice_processor.py — v2
"""Invoice extraction orchestrator.

Start → Classified → PreValidated → CacheChecked → Hit → Done
                                                 → Miss → Extracted → DuplicateChecked
                                                        → CachePersisted → Done
Any state may end in Rejected (not an invoice) or Failed (extraction error).

Only successful extractions are cached and ledgered. Rejected or failed
content runs the whole pipeline again on every submission.

A fresh extraction whose invoice number is already stored under another
fingerprint is still returned, with a duplicate note in processing_errors.
The note is not cached.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from pydantic import ValidationError

from invoicex.cache.fingerprint import compute_fingerprint
from invoicex.cache.models import CacheEntry
from invoicex.cache.prompt_cache import PromptCache
from invoicex.core.models import (
    NOT_FOUND,
    ExtractedResult,
    ExtractionInput,
    ImageExtractionInput,
    TextExtractionInput,
    TokenUsage,
    UsageEnvelope,
)
from invoicex.extraction.base_extractor import DocumentParseError
from invoicex.extraction.document_loader import DocumentLoader
from invoicex.extraction.extractor_factory import (
    classify_reference,
    create_text_extractor,
    media_type_for,
)
from invoicex.llm.models import ImageInput, LLMResponse
from invoicex.llm.retry import LLMRetryExhausted
from invoicex.logging.context import (
    clear_context,
    set_document_context,
    set_fingerprint,
    set_step,
)
from invoicex.pipeline.agents.field_extractor import InvoiceFieldExtractor
from invoicex.pipeline.agents.invoice_validator import InvoiceValidator
from invoicex.pipeline.response_parser import ResponseParseError
from invoicex.tracking.cost_calculator import CostModel
from invoicex.tracking.models import UsageRecord
from invoicex.tracking.usage_ledger import BaseUsageLedger, new_record_id

logger = logging.getLogger(__name__)

OPERATION = "invoice_processing"

_NOT_AN_INVOICE_MESSAGE = "The document does not appear to be a valid invoice"
_NO_TEXT_MESSAGE = "No text could be extracted from the document"


class InvoiceProcessor:
    """Runs one document through validation, cache and extraction.

    Args:
        validator: Pre-validation agent.
        extractor: Field extraction agent.
        cache: Prompt cache (already carries the enable flag).
        cost_model: Prices fresh calls and recomputes original cost on hits.
        ledger: Usage ledger, or None to skip usage records.
        loader: Document loader for URLs and local paths.
    """

    def __init__(
        self,
        validator: InvoiceValidator,
        extractor: InvoiceFieldExtractor,
        cache: PromptCache,
        cost_model: CostModel,
        ledger: BaseUsageLedger | None = None,
        loader: DocumentLoader | None = None,
    ) -> None:
        self._validator = validator
        self._extractor = extractor
        self._cache = cache
        self._cost_model = cost_model
        self._ledger = ledger
        self._loader = loader or DocumentLoader()

    @property
    def cache(self) -> PromptCache:
        return self._cache

    @property
    def ledger(self) -> BaseUsageLedger | None:
        return self._ledger

    def close(self) -> None:
        """Release the cache and ledger backends."""
        self._cache.close()
        if self._ledger is not None:
            self._ledger.close()

    async def process_document(
        self,
        reference: str,
        force_no_cache: bool = False,
        document_id: str | None = None,
    ) -> ExtractedResult:
        """Extract invoice fields from a document.

        Args:
            reference: URL or local path of the document.
            force_no_cache: Skip the cache lookup (the result is still stored).
            document_id: Caller's identifier, recorded in logs and the ledger.

        Returns:
            ExtractedResult. Rejections and extraction failures are results,
            not exceptions.

        Raises:
            DocumentFetchError: The document could not be retrieved.
        """
        set_document_context(reference, document_id)
        try:
            return await self._process(reference, force_no_cache, document_id)
        finally:
            clear_context()

    async def _process(
        self, reference: str, force_no_cache: bool, document_id: str | None
    ) -> ExtractedResult:
        set_step("load")
        document = await self._loader.load(reference)

        set_step("classify")
        image: ImageInput | None = None
        extraction_input: ExtractionInput
        if classify_reference(reference, document.content_type) == "image":
            media_type = media_type_for(reference, document.content_type)
            extraction_input = ImageExtractionInput(reference=reference, media_type=media_type)
            image = ImageInput(data=document.data, media_type=media_type, source_id=reference)
        else:
            extractor = create_text_extractor(reference, document.data)
            try:
                text = await extractor.extract_text(document.data)
            except DocumentParseError as e:
                logger.error("Text extraction failed: %s", e)
                return ExtractedResult.failed(reference, str(e))
            extraction_input = TextExtractionInput.from_raw(text)
            if not extraction_input.normalized_text:
                logger.info("Document has no extractable text, rejecting")
                return ExtractedResult.rejected(reference, _NO_TEXT_MESSAGE)
        logger.info("Classified document as %s", extraction_input.kind)

        set_step("validate")
        verdict = await self._validator.validate(extraction_input, image)
        if verdict.response is not None:
            self._log_call_usage("Validation", verdict.response)
        if not verdict.is_invoice:
            message = _NOT_AN_INVOICE_MESSAGE
            if verdict.reason:
                message = f"{message}: {verdict.reason}"
            logger.info("Document rejected by pre-validation: %s", verdict.reason)
            return ExtractedResult.rejected(reference, message)

        fingerprint = compute_fingerprint(extraction_input)
        set_fingerprint(fingerprint)

        set_step("cache")
        if not force_no_cache:
            entry = await self._cache.lookup(fingerprint)
            if entry is not None:
                hit = await self._serve_hit(entry, document_id)
                if hit is not None:
                    return hit
        else:
            logger.info("Cache lookup skipped (force_no_cache)")

        set_step("extract")
        try:
            extraction = await self._extractor.extract(extraction_input, image)
        except (LLMRetryExhausted, ResponseParseError) as e:
            logger.error("Invoice extraction failed: %s", e)
            return ExtractedResult.failed(reference, str(e))

        response = extraction.response
        usage = TokenUsage(
            prompt_tokens=response.input_tokens,
            completion_tokens=response.output_tokens,
            total_tokens=response.total_tokens,
            cost=self._cost_model.cost(
                response.input_tokens, response.output_tokens, response.model
            ),
            model=response.model,
        )
        fields = extraction.fields
        result = ExtractedResult(
            customer_name=fields.customer_name,
            vendor_name=fields.vendor_name,
            invoice_number=fields.invoice_number,
            invoice_date=fields.invoice_date,
            due_date=fields.due_date,
            amount=fields.amount,
            currency=fields.currency,
            confidence=fields.confidence,
            extraction_method="vision" if image is not None else "text",
            original_file_url=reference,
        )
        logger.info(
            "Extracted invoice %s: %d tokens, $%.6f",
            result.invoice_number, usage.total_tokens, usage.cost,
        )

        set_step("duplicate_check")
        duplicate_note = ""
        if result.invoice_number != NOT_FOUND:
            duplicate = await self._cache.find_invoice(result.invoice_number, fingerprint)
            if duplicate is not None:
                duplicate_note = (
                    f"Duplicate invoice detected: invoice {result.invoice_number} "
                    f"was already extracted from {duplicate.original_file_url}"
                )
                logger.warning(duplicate_note)

        set_step("persist")
        prompt = (
            extraction_input.reference
            if isinstance(extraction_input, ImageExtractionInput)
            else extraction_input.normalized_text
        )
        stored = await self._cache.upsert(
            fingerprint, prompt, result.fields_json(), usage.model_dump_json()
        )

        envelope = UsageEnvelope.for_miss(usage)
        await self._record_usage(
            UsageRecord(
                id=new_record_id(),
                prompt_tokens=usage.prompt_tokens,
                completion_tokens=usage.completion_tokens,
                total_tokens=usage.total_tokens,
                cost=usage.cost,
                timestamp=datetime.now(timezone.utc),
                operation=OPERATION,
                invoice_id=document_id,
                cached=stored,
                cache_key=fingerprint,
                cache_hit=False,
            )
        )
        if duplicate_note:
            result = result.model_copy(
                update={"processing_errors": [*result.processing_errors, duplicate_note]}
            )
        return result.with_usage(envelope)

    async def _serve_hit(
        self, entry: CacheEntry, document_id: str | None
    ) -> ExtractedResult | None:
        """Build the hit result, or None if the entry cannot be decoded."""
        try:
            stored_result = entry.decode_result()
            stored_usage = entry.decode_usage()
        except ValidationError:
            logger.warning(
                "Undecodable cache entry %s, treating as miss", entry.fingerprint,
                exc_info=True,
            )
            return None

        original_cost = stored_usage.cost
        if self._cost_model.knows(stored_usage.model):
            original_cost = self._cost_model.cost(
                stored_usage.prompt_tokens, stored_usage.completion_tokens, stored_usage.model
            )
        original = stored_usage.model_copy(update={"cost": original_cost})

        logger.info(
            "Cache hit: reusing extraction of invoice %s (saved %d tokens, $%.6f)",
            stored_result.invoice_number, original.total_tokens, original.cost,
        )
        await self._record_usage(
            UsageRecord(
                id=new_record_id(),
                prompt_tokens=0,
                completion_tokens=0,
                total_tokens=0,
                cost=0.0,
                timestamp=datetime.now(timezone.utc),
                operation=OPERATION,
                invoice_id=document_id,
                cached=True,
                cache_key=entry.fingerprint,
                cache_hit=True,
                original_prompt_tokens=original.prompt_tokens,
                original_completion_tokens=original.completion_tokens,
                original_total_tokens=original.total_tokens,
                original_cost=original.cost,
            )
        )
        return stored_result.with_usage(UsageEnvelope.for_hit(original))

    async def _record_usage(self, record: UsageRecord) -> None:
        """Best-effort ledger append."""
        if self._ledger is None:
            return
        try:
            await self._ledger.append(record)
        except Exception:
            logger.warning("Failed to record token usage %s", record.id, exc_info=True)

    def _log_call_usage(self, label: str, response: LLMResponse) -> None:
        cost = self._cost_model.cost(
            response.input_tokens, response.output_tokens, response.model
        )
        logger.info(
            "%s call: %d prompt + %d completion tokens, $%.6f (%s)",
            label, response.input_tokens, response.output_tokens, cost, response.model,
            extra={"data": {
                "prompt_tokens": response.input_tokens,
                "completion_tokens": response.output_tokens,
                "cost": cost,
                "model": response.model,
            }},
        )
