# src/tracking/cost_calculator.py — v3
"""Cost calculation from token counts.

The same CostModel prices fresh extraction calls and recomputes the original
cost of cache hits, so savings figures come from one price table. A price
change therefore re-prices historical token counts at current rates.
"""

from __future__ import annotations

import logging

from invoicex.tracking.models import ModelPricing

logger = logging.getLogger(__name__)

# Default pricing per 1M tokens
DEFAULT_PRICING: dict[str, ModelPricing] = {
    "gpt-4-turbo": ModelPricing(
        model="gpt-4-turbo",
        input_price_per_1m=10.0, output_price_per_1m=30.0,
    ),
    "gpt-4-0125-preview": ModelPricing(
        model="gpt-4-0125-preview",
        input_price_per_1m=10.0, output_price_per_1m=30.0,
    ),
    "gpt-4o": ModelPricing(
        model="gpt-4o",
        input_price_per_1m=2.50, output_price_per_1m=10.0,
    ),
    "gpt-4o-mini": ModelPricing(
        model="gpt-4o-mini",
        input_price_per_1m=0.15, output_price_per_1m=0.60,
    ),
    "claude-sonnet-4-20250514": ModelPricing(
        model="claude-sonnet-4-20250514",
        input_price_per_1m=3.0, output_price_per_1m=15.0,
    ),
    "claude-haiku-4-5-20251001": ModelPricing(
        model="claude-haiku-4-5-20251001",
        input_price_per_1m=0.80, output_price_per_1m=4.0,
    ),
}


class CostModel:
    """Per-model unit price table."""

    def __init__(self, pricing: dict[str, ModelPricing] | None = None) -> None:
        self._pricing = dict(DEFAULT_PRICING)
        if pricing:
            self._pricing.update(pricing)

    def knows(self, model: str) -> bool:
        return model in self._pricing

    def cost(self, prompt_tokens: int, completion_tokens: int, model: str) -> float:
        """Estimated USD cost of one call. Unknown models cost 0.0."""
        p = self._pricing.get(model)
        if p is None:
            logger.debug("No pricing for model %r, costing as 0", model)
            return 0.0
        return (prompt_tokens * p.input_price_per_1m / 1_000_000
                + completion_tokens * p.output_price_per_1m / 1_000_000)
