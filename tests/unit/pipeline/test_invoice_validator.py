# tests/unit/pipeline/test_invoice_validator.py — v1
"""Tests for pipeline/agents/invoice_validator.py."""

from __future__ import annotations

import pytest

from invoicex.core.models import ImageExtractionInput, TextExtractionInput
from invoicex.llm.models import ImageInput
from invoicex.pipeline.agents.invoice_validator import InvoiceValidator


def _text_input() -> TextExtractionInput:
    return TextExtractionInput.from_raw("INVOICE #1 Total $10")


class TestInvoiceValidator:
    @pytest.mark.asyncio
    async def test_positive_verdict(self, make_llm, valid_verdict):
        llm = make_llm(valid_verdict)
        verdict = await InvoiceValidator(llm).validate(_text_input())
        assert verdict.is_invoice is True
        assert verdict.confidence == 0.95
        assert verdict.response is not None
        kwargs = llm.complete.await_args.kwargs
        assert kwargs["response_format"] == "json"
        assert kwargs["max_tokens"] == 200
        assert kwargs["messages"][0].content == "INVOICE #1 Total $10"
        assert "isInvoice" in kwargs["system"]

    @pytest.mark.asyncio
    async def test_negative_verdict(self, make_llm, invalid_verdict):
        verdict = await InvoiceValidator(make_llm(invalid_verdict)).validate(_text_input())
        assert verdict.is_invoice is False
        assert verdict.reason == "This is a recipe"

    @pytest.mark.asyncio
    async def test_truthy_non_bool_is_not_an_invoice(self, make_llm):
        verdict = await InvoiceValidator(make_llm({"isInvoice": "yes"})).validate(_text_input())
        assert verdict.is_invoice is False

    @pytest.mark.asyncio
    async def test_confidence_clamped(self, make_llm):
        verdict = await InvoiceValidator(
            make_llm({"isInvoice": True, "confidence": 7})
        ).validate(_text_input())
        assert verdict.confidence == 1.0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("raw", [
        '{"isInvoice": true, "confidence": NaN}',
        '{"isInvoice": true, "confidence": Infinity}',
    ])
    async def test_non_finite_confidence(self, make_llm, raw):
        verdict = await InvoiceValidator(make_llm(raw)).validate(_text_input())
        assert verdict.is_invoice is True
        assert verdict.confidence == 0.0

    @pytest.mark.asyncio
    async def test_llm_error_is_negative(self, make_llm):
        verdict = await InvoiceValidator(make_llm(RuntimeError("provider down"))).validate(_text_input())
        assert verdict.is_invoice is False
        assert "provider down" in verdict.reason
        assert verdict.response is None

    @pytest.mark.asyncio
    async def test_garbage_output_is_negative(self, make_llm):
        verdict = await InvoiceValidator(make_llm("not json")).validate(_text_input())
        assert verdict.is_invoice is False

    @pytest.mark.asyncio
    async def test_image_uses_vision(self, make_llm, valid_verdict):
        llm = make_llm(valid_verdict)
        image = ImageInput(data=b"img", media_type="image/png", source_id="scan.png")
        verdict = await InvoiceValidator(llm).validate(
            ImageExtractionInput(reference="scan.png", media_type="image/png"), image
        )
        assert verdict.is_invoice is True
        llm.complete_with_vision.assert_awaited_once()
        assert llm.complete_with_vision.await_args.kwargs["images"] == [image]
        llm.complete.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_image_without_payload_is_negative(self, make_llm, valid_verdict):
        llm = make_llm(valid_verdict)
        verdict = await InvoiceValidator(llm).validate(ImageExtractionInput(reference="scan.png"))
        assert verdict.is_invoice is False
        llm.complete_with_vision.assert_not_awaited()
