# src/llm/retry.py — v3
"""Retry policy with exponential backoff for LLM calls.

Only transient provider errors are retried (rate limit, timeout, server
error). Anything else fails on the first attempt.
"""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

logger = logging.getLogger(__name__)


class LLMRetryExhausted(Exception):
    """An LLM call failed and will not be retried further."""

    def __init__(self, operation: str, error_type: str, attempts: int, last_error: Exception):
        self.operation = operation
        self.error_type = error_type
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(str(last_error))


@dataclass(frozen=True)
class RetryConfig:
    """Retry configuration for a specific error type."""

    max_retries: int
    base_delay_s: float
    backoff_factor: float = 2.0
    jitter: bool = True


DEFAULT_RETRY_CONFIGS: dict[str, RetryConfig] = {
    "rate_limit": RetryConfig(max_retries=3, base_delay_s=2.0),
    "timeout": RetryConfig(max_retries=2, base_delay_s=1.0, backoff_factor=1.0),
    "server_error": RetryConfig(max_retries=3, base_delay_s=5.0),
}


def _status_code(error: Exception) -> int | None:
    """HTTP status carried by an SDK error, on the error or its response."""
    status = getattr(error, "status_code", None)
    if status is None:
        status = getattr(getattr(error, "response", None), "status_code", None)
    return status if isinstance(status, int) else None


def classify_error(error: Exception) -> str:
    """Classify an exception into a retry error type.

    Decided by the HTTP status when the error carries one, then by the
    exception type. Message text is only consulted for wording, never for
    bare numbers.
    """
    status = _status_code(error)
    if status is not None:
        if status == 429:
            return "rate_limit"
        if status == 408:
            return "timeout"
        if status >= 500:
            return "server_error"
        return "unknown"

    name = type(error).__name__.lower()
    msg = str(error).lower()
    if "ratelimit" in name or "rate limit" in msg:
        return "rate_limit"
    if "timeout" in name or "timed out" in msg:
        return "timeout"
    if "internalserver" in name or "overloaded" in name or "connection" in name:
        return "server_error"
    return "unknown"


def _compute_delay(config: RetryConfig, attempt: int) -> float:
    """Compute delay for a given attempt (0-based)."""
    delay = config.base_delay_s * (config.backoff_factor ** attempt)
    if config.jitter:
        delay *= 0.5 + random.random()  # noqa: S311
    return delay


async def with_retry(
    fn: Callable[..., Awaitable[Any]],
    *args: Any,
    operation: str = "unknown",
    retry_configs: dict[str, RetryConfig] | None = None,
    **kwargs: Any,
) -> Any:
    """Execute an async function with retry logic.

    Raises:
        LLMRetryExhausted: On a non-retryable error or once retries run out.
            Its message is the last underlying error's message.
    """
    configs = DEFAULT_RETRY_CONFIGS if retry_configs is None else retry_configs
    attempts = 0

    while True:
        try:
            return await fn(*args, **kwargs)
        except Exception as e:
            error_type = classify_error(e)
            attempts += 1
            config = configs.get(error_type)

            if config is None or attempts > config.max_retries:
                raise LLMRetryExhausted(operation, error_type, attempts, e) from e

            delay = _compute_delay(config, attempts - 1)
            logger.warning(
                "%s: %s (attempt %d/%d), retrying in %.1fs",
                operation, error_type, attempts, config.max_retries, delay,
            )
            await asyncio.sleep(delay)
