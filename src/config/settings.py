# src/config/settings.py — v3
"""Typed configuration loaded from .env via pydantic-settings.

Single source of truth for all deployment-specific settings. Values are read
once and threaded into components at construction; nothing below reads the
environment ad hoc.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from invoicex.tracking.models import ModelPricing


class ConfigurationError(Exception):
    """Raised when configuration is internally inconsistent."""


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === LLM PROVIDERS ===
    llm_default_provider: str = "openai"
    llm_default_model: str = "gpt-4-turbo"
    llm_temperature: float = 0.0
    llm_max_output_tokens: int = 1000

    # Provider API keys
    openai_api_key: str = ""
    anthropic_api_key: str = ""

    # Per-component LLM assignment ("provider:model", highest priority)
    llm_validator: str = ""
    llm_extractor: str = "openai:gpt-4-0125-preview"
    llm_vision_extractor: str = "openai:gpt-4-turbo"
    llm_assistant: str = "openai:gpt-4o"

    # === Invoice assistant ===
    assistant_max_tokens: int = 500
    assistant_temperature: float = 0.7

    # === Prompt cache ===
    enable_prompt_cache: bool = True
    cache_backend: Literal["sqlite", "redis"] = "sqlite"
    cache_redis_url: str = ""

    # === Durable store (cache, usage ledger, conversations) ===
    database_path: Path = Path("~/.invoicex/invoicex.db")

    # === Pricing (per 1M tokens, merged over the built-in table) ===
    model_pricing: dict[str, ModelPricing] = {}

    # === Document transport ===
    fetch_timeout_s: float = 30.0

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "json"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 30

    # --- Validators ---

    @field_validator("fetch_timeout_s", "llm_max_output_tokens", "assistant_max_tokens")
    @classmethod
    def validate_positive(cls, v: float, info) -> float:  # noqa: N805
        if v <= 0:
            raise ValueError(f"{info.field_name} must be > 0")
        return v

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Validate cross-field consistency rules."""
        errors: list[str] = []

        if self.cache_backend == "redis" and not self.cache_redis_url:
            errors.append("CACHE_BACKEND=redis requires CACHE_REDIS_URL")

        for model, pricing in self.model_pricing.items():
            if pricing.input_price_per_1m < 0 or pricing.output_price_per_1m < 0:
                errors.append(f"MODEL_PRICING for {model!r} has a negative price")

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self

    # --- Helpers ---

    @property
    def resolved_database_path(self) -> Path:
        """Database path with ~ expanded."""
        return self.database_path.expanduser()


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Args:
        **overrides: Field-level overrides (for testing or per-call config).

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]
