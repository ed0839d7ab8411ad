# src/tracking/models.py — v2
"""Tracking domain models: UsageRecord, UsageStats, ModelPricing."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class UsageRecord(BaseModel):
    """One ledger row per extraction attempt (cache hit or miss).

    For a hit the actual counters are zero and original_* carry the usage
    of the reused extraction.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    prompt_tokens: int
    completion_tokens: int
    total_tokens: int
    cost: float
    timestamp: datetime
    operation: str
    invoice_id: str | None = None
    cached: bool = False
    cache_key: str = ""
    cache_hit: bool = False
    original_prompt_tokens: int = 0
    original_completion_tokens: int = 0
    original_total_tokens: int = 0
    original_cost: float = 0.0


class UsageStats(BaseModel):
    """Aggregate view over the usage ledger."""

    total_tokens: int = 0
    total_cost: float = 0.0
    total_requests: int = 0
    cache_hits: int = 0
    cache_hit_rate: float = 0.0
    saved_tokens: int = 0
    saved_cost: float = 0.0


class ModelPricing(BaseModel):
    """LLM model pricing configuration (USD per 1M tokens)."""

    model: str
    input_price_per_1m: float
    output_price_per_1m: float
