# src/llm/base_client.py — v2
"""Abstract LLM client interface and the errors adapters raise."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Literal

from invoicex.llm.models import ImageInput, LLMResponse, Message


class LLMClientError(Exception):
    """Base class for errors raised at the LLM boundary."""


class EmptyCompletionError(LLMClientError):
    """The provider answered but returned no content."""

    def __init__(self, provider: str, model: str):
        self.provider = provider
        self.model = model
        super().__init__(f"No content returned from {provider} API (model {model})")


class BaseLLMClient(ABC):
    """Unified interface for all LLM providers."""

    @abstractmethod
    async def complete(
        self,
        messages: list[Message],
        system: str | None = None,
        max_tokens: int = 1000,
        temperature: float = 0.0,
        response_format: Literal["json"] | None = None,
    ) -> LLMResponse:
        """Text completion.

        Raises:
            EmptyCompletionError: If the provider returns no content.
        """

    @abstractmethod
    async def complete_with_vision(
        self,
        messages: list[Message],
        images: list[ImageInput],
        system: str | None = None,
        max_tokens: int = 1000,
    ) -> LLMResponse:
        """Vision-enabled completion (images + text)."""

    @property
    @abstractmethod
    def supports_vision(self) -> bool:
        """Whether this provider/model supports image inputs."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Provider identifier (openai, anthropic)."""
