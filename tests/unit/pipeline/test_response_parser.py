# tests/unit/pipeline/test_response_parser.py — v2
"""Tests for pipeline/response_parser.py — JSON decoding and field defaults."""

from __future__ import annotations

from datetime import date, datetime, timezone

import pytest

from invoicex.core.models import NOT_FOUND
from invoicex.pipeline.response_parser import (
    InvoiceFields,
    ResponseParseError,
    decode_invoice_fields,
    parse_json_object,
    strip_code_fences,
)


class TestStripCodeFences:
    def test_json_fence(self):
        assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_no_fence(self):
        assert strip_code_fences('  {"a": 1} ') == '{"a": 1}'


class TestParseJsonObject:
    def test_object(self):
        assert parse_json_object('{"amount": 100}') == {"amount": 100}

    @pytest.mark.parametrize("text", ["", "   ", "```\n```"])
    def test_empty(self, text):
        with pytest.raises(ResponseParseError, match="Empty"):
            parse_json_object(text)

    def test_invalid_json(self):
        with pytest.raises(ResponseParseError, match="not valid JSON"):
            parse_json_object("Sure! Here are the fields: ...")

    def test_not_an_object(self):
        with pytest.raises(ResponseParseError, match="not a JSON object"):
            parse_json_object("[1, 2]")


class TestDecodeInvoiceFields:
    def test_full_payload(self, sample_extraction):
        fields = decode_invoice_fields(sample_extraction)
        assert fields.customer_name == "Globex Inc"
        assert fields.vendor_name == "Acme Corp"
        assert fields.invoice_number == "123"
        assert fields.invoice_date == date(2024, 3, 1)
        assert fields.due_date is None
        assert fields.amount == 4500
        assert fields.confidence == 0.9

    def test_defaults_for_missing_fields(self):
        fields = decode_invoice_fields({"invoiceNumber": "INV-9"})
        assert fields.customer_name == NOT_FOUND
        assert fields.vendor_name == NOT_FOUND
        assert fields.amount == 0
        assert fields.currency == "USD"
        assert fields.confidence == 0.5
        assert fields.invoice_date == datetime.now(timezone.utc).date()

    def test_nulls_and_blanks_use_defaults(self):
        fields = decode_invoice_fields(
            {"customerName": "  ", "vendorName": None, "currency": "", "confidence": None}
        )
        assert fields.customer_name == NOT_FOUND
        assert fields.vendor_name == NOT_FOUND
        assert fields.currency == "USD"
        assert fields.confidence == 0.5

    def test_coercions(self):
        fields = decode_invoice_fields(
            {
                "invoiceNumber": 42,
                "amount": "1999.6",
                "currency": "eur",
                "invoiceDate": "2024-05-02T10:00:00Z",
                "dueDate": "2024-06-01",
            }
        )
        assert fields.invoice_number == "42"
        assert fields.amount == 2000
        assert fields.currency == "EUR"
        assert fields.invoice_date == date(2024, 5, 2)
        assert fields.due_date == date(2024, 6, 1)

    def test_snake_case_keys_accepted(self):
        fields = decode_invoice_fields({"invoice_number": "A-1", "amount": 10})
        assert fields.invoice_number == "A-1"

    def test_no_recognised_keys(self):
        with pytest.raises(ResponseParseError, match="no invoice fields"):
            decode_invoice_fields({"answer": "I cannot read this"})

    @pytest.mark.parametrize(
        "payload",
        [
            {"amount": "forty five"},
            {"amount": True},
            {"confidence": 3},
            {"invoiceDate": "yesterday"},
            {"customerName": ["a", "b"]},
            {"amount": float("inf")},
            {"amount": float("nan")},
            {"amount": "inf"},
            {"amount": "-Infinity"},
        ],
    )
    def test_wrong_types_rejected(self, payload):
        with pytest.raises(ResponseParseError, match="Invalid invoice fields"):
            decode_invoice_fields(payload)


def test_invoice_fields_serialize_camel_case():
    dumped = InvoiceFields(invoice_number="1").model_dump(by_alias=True)
    assert "invoiceNumber" in dumped


@pytest.mark.parametrize("raw", ['{"amount": Infinity}', '{"amount": 1e999}', '{"amount": NaN}'])
def test_non_finite_json_amount_rejected(raw):
    with pytest.raises(ResponseParseError, match="finite"):
        decode_invoice_fields(parse_json_object(raw))
