# src/llm/config.py — v2
"""Per-component LLM routing with cascade resolution.

Resolution order:
  1. Per-component env var (LLM_EXTRACTOR=openai:gpt-4-0125-preview)
  2. Default provider + model (LLM_DEFAULT_PROVIDER + LLM_DEFAULT_MODEL)
  3. Hardcoded fallback (openai:gpt-4-turbo)
"""

from __future__ import annotations

from dataclasses import dataclass

from invoicex.config.settings import Settings

_FALLBACK_PROVIDER = "openai"
_FALLBACK_MODEL = "gpt-4-turbo"

COMPONENTS: tuple[str, ...] = ("validator", "extractor", "vision_extractor", "assistant")


@dataclass(frozen=True)
class LLMAssignment:
    """Resolved LLM provider:model for a component."""

    provider: str
    model: str
    source: str  # "component", "default", or "fallback"

    @property
    def key(self) -> str:
        return f"{self.provider}:{self.model}"


def _parse_assignment(value: str) -> tuple[str, str] | None:
    """Parse 'provider:model' string. Returns None if empty."""
    if not value or ":" not in value:
        return None
    provider, model = value.split(":", 1)
    return (provider.strip(), model.strip())


def resolve_llm(component: str, settings: Settings) -> LLMAssignment:
    """Resolve LLM assignment for a component.

    Args:
        component: One of COMPONENTS.
        settings: Application settings.

    Returns:
        Resolved LLMAssignment with provider, model, and resolution source.
    """
    if component not in COMPONENTS:
        raise ValueError(f"Unknown LLM component: {component!r}")

    parsed = _parse_assignment(getattr(settings, f"llm_{component}", ""))
    if parsed:
        return LLMAssignment(provider=parsed[0], model=parsed[1], source="component")

    if settings.llm_default_provider and settings.llm_default_model:
        return LLMAssignment(
            provider=settings.llm_default_provider,
            model=settings.llm_default_model,
            source="default",
        )

    return LLMAssignment(
        provider=_FALLBACK_PROVIDER,
        model=_FALLBACK_MODEL,
        source="fallback",
    )


def resolve_all(settings: Settings) -> dict[str, LLMAssignment]:
    """Resolve LLM assignments for every component."""
    return {comp: resolve_llm(comp, settings) for comp in COMPONENTS}
