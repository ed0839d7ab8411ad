# src/llm/adapters/anthropic_adapter.py — v3
"""Anthropic Claude adapter implementing BaseLLMClient.

Uses the official anthropic SDK. The Messages API has no JSON mode, so
response_format="json" is honoured by prefilling the assistant turn with
"{" and restoring it on the returned text.
"""

from __future__ import annotations

import base64
import logging
import time
from typing import Any, Literal

from invoicex.llm.base_client import BaseLLMClient, EmptyCompletionError
from invoicex.llm.models import ImageInput, LLMResponse, Message

logger = logging.getLogger(__name__)

_JSON_PREFILL = "{"


class AnthropicAdapter(BaseLLMClient):
    """Adapter for Anthropic Claude models."""

    def __init__(
        self,
        model: str = "claude-sonnet-4-20250514",
        api_key: str | None = None,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self.__client = None  # Lazy initialization

    @property
    def _client(self):
        """Lazy-init Anthropic client (only on first API call)."""
        if self.__client is None:
            try:
                import anthropic
            except ImportError as e:
                raise ImportError(
                    "anthropic package required: pip install anthropic"
                ) from e
            self.__client = anthropic.AsyncAnthropic(api_key=self._api_key or None)
        return self.__client

    async def complete(
        self,
        messages: list[Message],
        system: str | None = None,
        max_tokens: int = 1000,
        temperature: float = 0.0,
        response_format: Literal["json"] | None = None,
    ) -> LLMResponse:
        """Text completion via Anthropic Messages API."""
        api_messages = [self._to_api_message(m) for m in messages if m.role != "system"]
        prefill = ""
        if response_format == "json":
            prefill = _JSON_PREFILL
            api_messages.append({"role": "assistant", "content": prefill})

        kwargs: dict[str, Any] = {
            "model": self._model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": api_messages,
        }
        system_text = self._merge_system(system, messages)
        if system_text:
            kwargs["system"] = system_text

        start = time.monotonic()
        response = await self._client.messages.create(**kwargs)
        latency_ms = int((time.monotonic() - start) * 1000)

        text = self._extract_text(response)
        if not text:
            raise EmptyCompletionError("anthropic", self._model)

        return LLMResponse(
            content=prefill + text,
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
            model=response.model,
            provider="anthropic",
            latency_ms=latency_ms,
            raw_response=response,
        )

    async def complete_with_vision(
        self,
        messages: list[Message],
        images: list[ImageInput],
        system: str | None = None,
        max_tokens: int = 1000,
    ) -> LLMResponse:
        """Vision-enabled completion with images."""
        content_blocks: list[dict[str, Any]] = []
        for img in images:
            content_blocks.append(
                {
                    "type": "image",
                    "source": {
                        "type": "base64",
                        "media_type": img.media_type,
                        "data": base64.b64encode(img.data).decode("ascii"),
                    },
                }
            )

        # Images ride along with the last user message
        user_text = ""
        earlier: list[Message] = []
        for m in messages:
            if m.role == "user":
                user_text = m.content
            elif m.role == "assistant":
                earlier.append(m)
        content_blocks.append({"type": "text", "text": user_text})

        api_messages = [self._to_api_message(m) for m in earlier]
        api_messages.append({"role": "user", "content": content_blocks})

        params: dict[str, Any] = {
            "model": self._model,
            "max_tokens": max_tokens,
            "messages": api_messages,
        }
        system_text = self._merge_system(system, messages)
        if system_text:
            params["system"] = system_text

        start = time.monotonic()
        response = await self._client.messages.create(**params)
        latency_ms = int((time.monotonic() - start) * 1000)

        text = self._extract_text(response)
        if not text:
            raise EmptyCompletionError("anthropic", self._model)

        return LLMResponse(
            content=text,
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
            model=response.model,
            provider="anthropic",
            latency_ms=latency_ms,
            raw_response=response,
        )

    @property
    def supports_vision(self) -> bool:
        return True

    @property
    def provider_name(self) -> str:
        return "anthropic"

    # --- Internal helpers ---

    @staticmethod
    def _merge_system(system: str | None, messages: list[Message]) -> str:
        """System prompt plus any system-role messages (the API takes them separately)."""
        parts = [system] if system else []
        parts.extend(m.content for m in messages if m.role == "system")
        return "\n\n".join(parts)

    @staticmethod
    def _to_api_message(m: Message) -> dict[str, Any]:
        return {"role": m.role, "content": m.content}

    @staticmethod
    def _extract_text(response: Any) -> str:
        return "".join(
            block.text
            for block in response.content
            if getattr(block, "type", None) == "text"
        )
