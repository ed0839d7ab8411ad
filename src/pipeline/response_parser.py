# src/pipeline/response_parser.py — v2
"""Decode model output into invoice fields.

The extraction prompt asks for a camelCase JSON object. Missing values get
the documented defaults; values of the wrong type are rejected.
"""

from __future__ import annotations

import json
import math
from datetime import date, datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from invoicex.core.models import DEFAULT_CURRENCY, NOT_FOUND


class ResponseParseError(Exception):
    """Model output could not be decoded into invoice fields."""


class InvoiceFields(BaseModel):
    """Fields returned by the extraction model, defaults applied."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    customer_name: str = NOT_FOUND
    vendor_name: str = NOT_FOUND
    invoice_number: str = NOT_FOUND
    invoice_date: date = Field(default_factory=lambda: datetime.now(timezone.utc).date())
    due_date: date | None = None
    amount: int = 0
    currency: str = DEFAULT_CURRENCY
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)

    @field_validator("customer_name", "vendor_name", "invoice_number", mode="before")
    @classmethod
    def _text_or_not_found(cls, v: Any) -> Any:
        if v is None:
            return NOT_FOUND
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            v = str(v)
        if isinstance(v, str) and not v.strip():
            return NOT_FOUND
        return v.strip() if isinstance(v, str) else v

    @field_validator("currency", mode="before")
    @classmethod
    def _currency_code(cls, v: Any) -> Any:
        if v is None or (isinstance(v, str) and not v.strip()):
            return DEFAULT_CURRENCY
        return v.strip().upper() if isinstance(v, str) else v

    @field_validator("amount", mode="before")
    @classmethod
    def _amount_minor_units(cls, v: Any) -> Any:
        if v is None:
            return 0
        if isinstance(v, bool):
            raise ValueError("amount must be a number")
        if isinstance(v, str):
            try:
                v = float(v.strip())
            except ValueError as e:
                raise ValueError(f"amount is not numeric: {v!r}") from e
        if isinstance(v, float):
            if not math.isfinite(v):
                raise ValueError("amount must be finite")
            return round(v)
        return v

    @field_validator("confidence", mode="before")
    @classmethod
    def _confidence_default(cls, v: Any) -> Any:
        if v is None:
            return 0.5
        if isinstance(v, bool):
            raise ValueError("confidence must be a number")
        return v

    @field_validator("invoice_date", mode="before")
    @classmethod
    def _invoice_date(cls, v: Any) -> Any:
        parsed = _parse_date(v)
        return parsed if parsed is not None else datetime.now(timezone.utc).date()

    @field_validator("due_date", mode="before")
    @classmethod
    def _due_date(cls, v: Any) -> Any:
        return _parse_date(v)


_RECOGNISED_KEYS = frozenset(
    key
    for name, field in InvoiceFields.model_fields.items()
    for key in (name, field.alias)
    if key
)


def _parse_date(v: Any) -> date | None:
    """ISO date or datetime string → date. Empty → None."""
    if v is None or isinstance(v, date):
        return v
    if not isinstance(v, str):
        raise ValueError(f"date must be an ISO string, got {type(v).__name__}")
    text = v.strip()
    if not text:
        return None
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        pass
    try:
        return date.fromisoformat(text[:10])
    except ValueError as e:
        raise ValueError(f"unparseable date: {v!r}") from e


def strip_code_fences(text: str) -> str:
    """Remove a surrounding ``` or ```json fence, if present."""
    text = text.strip()
    if text.startswith("```"):
        lines = text.split("\n")
        lines = [ln for ln in lines if not ln.strip().startswith("```")]
        text = "\n".join(lines).strip()
    return text


def parse_json_object(text: str) -> dict[str, Any]:
    """Parse model output as a single JSON object.

    Raises:
        ResponseParseError: Empty, non-JSON, or non-object content.
    """
    cleaned = strip_code_fences(text or "")
    if not cleaned:
        raise ResponseParseError("Empty response from model")
    try:
        payload = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise ResponseParseError(f"Model response is not valid JSON: {e}") from e
    if not isinstance(payload, dict):
        raise ResponseParseError(
            f"Model response is not a JSON object (got {type(payload).__name__})"
        )
    return payload


def decode_invoice_fields(payload: dict[str, Any]) -> InvoiceFields:
    """Validate a decoded payload into InvoiceFields.

    Raises:
        ResponseParseError: No recognised invoice key, or a value of the
            wrong type.
    """
    if not _RECOGNISED_KEYS.intersection(payload):
        raise ResponseParseError("Model response contains no invoice fields")
    try:
        return InvoiceFields.model_validate(payload)
    except ValidationError as e:
        raise ResponseParseError(f"Invalid invoice fields: {e}") from e
