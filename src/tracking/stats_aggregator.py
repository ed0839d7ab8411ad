# src/tracking/stats_aggregator.py — v2
"""Read-side usage statistics over the append-only ledger.

Pure summation; holds no state of its own.
"""

from __future__ import annotations

from collections.abc import Iterable

from invoicex.tracking.models import UsageRecord, UsageStats


def compute_usage_stats(records: Iterable[UsageRecord]) -> UsageStats:
    """Aggregate ledger records.

    total_* sum what was actually charged. saved_* sum the original usage of
    cache-hit records only; a hit's own counters are zero and are never
    counted as savings.

    Args:
        records: Usage records (any order).

    Returns:
        UsageStats with cache_hit_rate in [0, 1].
    """
    total_tokens = 0
    total_cost = 0.0
    total_requests = 0
    cache_hits = 0
    saved_tokens = 0
    saved_cost = 0.0

    for r in records:
        total_requests += 1
        total_tokens += r.total_tokens
        total_cost += r.cost
        if r.cache_hit:
            cache_hits += 1
            saved_tokens += r.original_total_tokens
            saved_cost += r.original_cost

    return UsageStats(
        total_tokens=total_tokens,
        total_cost=total_cost,
        total_requests=total_requests,
        cache_hits=cache_hits,
        cache_hit_rate=cache_hits / total_requests if total_requests else 0.0,
        saved_tokens=saved_tokens,
        saved_cost=saved_cost,
    )
