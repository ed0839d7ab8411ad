# tests/conftest.py — v2
"""Shared test fixtures for all unit and integration tests.

Provides scripted LLM clients, sample invoice documents, and processors wired
to temporary SQLite databases. No network access — all I/O is local or mocked.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable
from unittest.mock import AsyncMock, MagicMock

import pytest

from invoicex.cache.prompt_cache import PromptCache
from invoicex.cache.sqlite_store import SqliteCacheStore
from invoicex.llm.base_client import BaseLLMClient
from invoicex.llm.models import LLMResponse
from invoicex.pipeline.agents.field_extractor import InvoiceFieldExtractor
from invoicex.pipeline.agents.invoice_validator import InvoiceValidator
from invoicex.pipeline.invoice_processor import InvoiceProcessor
from invoicex.tracking.cost_calculator import CostModel
from invoicex.tracking.usage_ledger import SqliteUsageLedger

EXTRACTION_MODEL = "gpt-4-0125-preview"

SAMPLE_INVOICE_TEXT = (
    "INVOICE #123\r\n"
    "Date: 2024-03-01\r\n"
    "Bill to: Globex Inc\r\n\r\n"
    "Consulting services        $45.00\r\n"
    "Total: $45.00\r\n"
    "Acme Corp, 1 Main Street"
)

SAMPLE_EXTRACTION = {
    "customerName": "Globex Inc",
    "vendorName": "Acme Corp",
    "invoiceNumber": "123",
    "invoiceDate": "2024-03-01",
    "dueDate": None,
    "amount": 4500,
    "currency": "USD",
    "confidence": 0.9,
}

VALID_VERDICT = {"isInvoice": True, "confidence": 0.95, "reason": "Has invoice number and total"}
INVALID_VERDICT = {"isInvoice": False, "confidence": 0.9, "reason": "This is a recipe"}


# === FIXTURES: Sample data ===


@pytest.fixture
def sample_invoice_text() -> str:
    return SAMPLE_INVOICE_TEXT


@pytest.fixture
def sample_extraction() -> dict[str, Any]:
    return dict(SAMPLE_EXTRACTION)


@pytest.fixture
def valid_verdict() -> dict[str, Any]:
    return dict(VALID_VERDICT)


@pytest.fixture
def invalid_verdict() -> dict[str, Any]:
    return dict(INVALID_VERDICT)


@pytest.fixture
def invoice_file(tmp_path: Path) -> Path:
    """Plain-text invoice on disk."""
    path = tmp_path / "invoice.txt"
    path.write_text(SAMPLE_INVOICE_TEXT, encoding="utf-8")
    return path


@pytest.fixture
def image_file(tmp_path: Path) -> Path:
    """Tiny fake PNG (content is never decoded locally)."""
    path = tmp_path / "scan.png"
    path.write_bytes(b"\x89PNG\r\n\x1a\nfake-image-bytes")
    return path


# === FIXTURES: Mock LLM ===


@pytest.fixture
def make_llm_response() -> Callable[..., LLMResponse]:
    def _make(
        content: str | dict,
        input_tokens: int = 120,
        output_tokens: int = 40,
        model: str = EXTRACTION_MODEL,
    ) -> LLMResponse:
        if isinstance(content, dict):
            content = json.dumps(content)
        return LLMResponse(
            content=content,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            model=model,
            provider="openai",
            latency_ms=250,
        )

    return _make


@pytest.fixture
def make_llm(make_llm_response) -> Callable[..., AsyncMock]:
    """Build a mock BaseLLMClient.

    Each item of ``outputs`` is returned by successive calls (text or vision);
    a dict is JSON-encoded, an exception is raised. A single output is
    returned for every call.
    """

    def _make(*outputs: Any, **response_kwargs: Any) -> AsyncMock:
        client = AsyncMock(spec=BaseLLMClient)

        def _produce(item: Any) -> LLMResponse:
            if isinstance(item, BaseException):
                raise item
            return make_llm_response(item, **response_kwargs)

        if len(outputs) == 1:
            side_effect: Any = lambda *a, **kw: _produce(outputs[0])  # noqa: E731
        else:
            queue = list(outputs)
            side_effect = lambda *a, **kw: _produce(queue.pop(0))  # noqa: E731

        client.complete = AsyncMock(side_effect=side_effect)
        client.complete_with_vision = AsyncMock(side_effect=side_effect)
        client.supports_vision = True
        client.provider_name = "openai"
        return client

    return _make


# === FIXTURES: Wired processor ===


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "invoicex.db"


@pytest.fixture
def make_processor(db_path: Path, make_llm) -> Callable[..., InvoiceProcessor]:
    """Processor over temp SQLite cache + ledger with scripted LLMs.

    Returns the processor; the validator and extractor mocks are attached as
    ``processor.validator_llm`` and ``processor.extractor_llm``.
    """
    created: list[InvoiceProcessor] = []

    def _make(
        verdict: Any = None,
        extraction: Any = None,
        enabled: bool = True,
        cache_store: Any = None,
        ledger: Any = None,
    ) -> InvoiceProcessor:
        validator_llm = make_llm(VALID_VERDICT if verdict is None else verdict, model="gpt-4-turbo")
        extractor_llm = make_llm(SAMPLE_EXTRACTION if extraction is None else extraction)
        processor = InvoiceProcessor(
            validator=InvoiceValidator(validator_llm),
            extractor=InvoiceFieldExtractor(extractor_llm),
            cache=PromptCache(cache_store or SqliteCacheStore(db_path), enabled=enabled),
            cost_model=CostModel(),
            ledger=ledger if ledger is not None else SqliteUsageLedger(db_path),
        )
        processor.validator_llm = validator_llm  # type: ignore[attr-defined]
        processor.extractor_llm = extractor_llm  # type: ignore[attr-defined]
        created.append(processor)
        return processor

    yield _make

    for processor in created:
        try:
            processor.close()
        except Exception:
            pass


@pytest.fixture
def failing_store() -> MagicMock:
    """Cache store whose every operation raises."""
    store = MagicMock()
    store.get = AsyncMock(side_effect=RuntimeError("cache backend down"))
    store.upsert = AsyncMock(side_effect=RuntimeError("cache backend down"))
    store.purge = AsyncMock(side_effect=RuntimeError("cache backend down"))
    store.list_entries = AsyncMock(side_effect=RuntimeError("cache backend down"))
    return store
