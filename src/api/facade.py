# src/api/facade.py — v3
"""Public API facade — the supported entry points of the package.

Usage:
    from invoicex.api.facade import process_document, usage_statistics
    result = await process_document("https://example.com/invoice.pdf")
    stats = await usage_statistics()
"""

from __future__ import annotations

import logging

from invoicex.cache.cache_factory import create_prompt_cache
from invoicex.chat.assistant import InvoiceAssistant
from invoicex.chat.conversation_store import ConversationStore
from invoicex.config.settings import Settings, load_settings
from invoicex.core.models import ExtractedResult
from invoicex.extraction.document_loader import DocumentLoader
from invoicex.llm.client_factory import create_component_client
from invoicex.pipeline.agents.field_extractor import InvoiceFieldExtractor
from invoicex.pipeline.agents.invoice_validator import InvoiceValidator
from invoicex.pipeline.invoice_processor import OPERATION, InvoiceProcessor
from invoicex.tracking.cost_calculator import CostModel
from invoicex.tracking.models import UsageStats
from invoicex.tracking.stats_aggregator import compute_usage_stats
from invoicex.tracking.usage_ledger import BaseUsageLedger, SqliteUsageLedger

logger = logging.getLogger(__name__)


def create_cost_model(settings: Settings) -> CostModel:
    return CostModel(settings.model_pricing)


def create_usage_ledger(settings: Settings) -> BaseUsageLedger:
    """Usage ledger in the configured database file."""
    return SqliteUsageLedger(settings.resolved_database_path)


def create_processor(settings: Settings | None = None) -> InvoiceProcessor:
    """Wire an InvoiceProcessor from settings.

    Raises:
        UnsupportedProviderError: A component names an unknown LLM provider.
    """
    settings = settings or load_settings()
    processor = InvoiceProcessor(
        validator=InvoiceValidator(create_component_client("validator", settings)),
        extractor=InvoiceFieldExtractor(
            create_component_client("extractor", settings),
            vision_llm=create_component_client("vision_extractor", settings),
            max_tokens=settings.llm_max_output_tokens,
            temperature=settings.llm_temperature,
        ),
        cache=create_prompt_cache(settings),
        cost_model=create_cost_model(settings),
        ledger=create_usage_ledger(settings),
        loader=DocumentLoader(timeout_s=settings.fetch_timeout_s),
    )
    logger.debug(
        "Processor ready (cache=%s, backend=%s)",
        "on" if settings.enable_prompt_cache else "off", settings.cache_backend,
    )
    return processor


def create_assistant(settings: Settings | None = None) -> InvoiceAssistant:
    """Wire the invoice assistant with its conversation store."""
    settings = settings or load_settings()
    return InvoiceAssistant(
        llm=create_component_client("assistant", settings),
        store=ConversationStore(settings.resolved_database_path),
        cost_model=create_cost_model(settings),
        max_tokens=settings.assistant_max_tokens,
        temperature=settings.assistant_temperature,
    )


async def process_document(
    reference: str,
    force_no_cache: bool = False,
    document_id: str | None = None,
    settings: Settings | None = None,
    processor: InvoiceProcessor | None = None,
) -> ExtractedResult:
    """Extract invoice fields from a document URL or path.

    A processor built here is closed afterwards; a caller-supplied one is
    left open for reuse.

    Raises:
        DocumentFetchError: The document could not be retrieved.
    """
    if processor is not None:
        return await processor.process_document(
            reference, force_no_cache=force_no_cache, document_id=document_id
        )

    owned = create_processor(settings)
    try:
        return await owned.process_document(
            reference, force_no_cache=force_no_cache, document_id=document_id
        )
    finally:
        owned.close()


async def usage_statistics(
    settings: Settings | None = None,
    ledger: BaseUsageLedger | None = None,
    operation: str | None = OPERATION,
) -> UsageStats:
    """Aggregate token usage and cache savings from the ledger.

    Args:
        settings: Used to open the ledger when none is given.
        ledger: Ledger to read (left open).
        operation: Restrict to one operation tag; None reads every record.
    """
    if ledger is not None:
        return compute_usage_stats(await ledger.list_records(operation=operation))

    owned = create_usage_ledger(settings or load_settings())
    try:
        return compute_usage_stats(await owned.list_records(operation=operation))
    finally:
        owned.close()
