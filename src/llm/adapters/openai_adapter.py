# src/llm/adapters/openai_adapter.py — v2
"""OpenAI GPT adapter implementing BaseLLMClient.

Uses the official openai SDK (chat completions). JSON mode is requested
with response_format={"type": "json_object"}.
"""

from __future__ import annotations

import base64
import time
from typing import Any, Literal

from invoicex.llm.base_client import BaseLLMClient, EmptyCompletionError
from invoicex.llm.models import ImageInput, LLMResponse, Message


class OpenAIAdapter(BaseLLMClient):
    """OpenAI GPT adapter."""

    def __init__(self, model: str = "gpt-4-turbo", api_key: str = "", **kwargs: Any):
        self._model = model
        self._api_key = api_key
        self.__client = None

    @property
    def _client(self):
        """Lazy-init OpenAI client (only on first API call)."""
        if self.__client is None:
            try:
                import openai
            except ImportError as e:
                raise ImportError("openai package required: pip install openai") from e
            self.__client = openai.AsyncOpenAI(api_key=self._api_key or None)
        return self.__client

    async def complete(
        self,
        messages: list[Message],
        system: str | None = None,
        max_tokens: int = 1000,
        temperature: float = 0.0,
        response_format: Literal["json"] | None = None,
    ) -> LLMResponse:
        oai_messages: list[dict[str, Any]] = []
        if system:
            oai_messages.append({"role": "system", "content": system})
        for m in messages:
            oai_messages.append({"role": m.role, "content": m.content})

        kwargs: dict[str, Any] = {
            "model": self._model,
            "messages": oai_messages,
            "max_tokens": max_tokens,
            "temperature": temperature,
        }
        if response_format == "json":
            kwargs["response_format"] = {"type": "json_object"}

        t0 = time.monotonic()
        resp = await self._client.chat.completions.create(**kwargs)
        return self._to_response(resp, int((time.monotonic() - t0) * 1000))

    async def complete_with_vision(
        self,
        messages: list[Message],
        images: list[ImageInput],
        system: str | None = None,
        max_tokens: int = 1000,
    ) -> LLMResponse:
        oai_messages: list[dict[str, Any]] = []
        if system:
            oai_messages.append({"role": "system", "content": system})

        content_parts: list[dict[str, Any]] = []
        for m in messages:
            content_parts.append({"type": "text", "text": m.content})
        for img in images:
            b64 = base64.b64encode(img.data).decode()
            content_parts.append({
                "type": "image_url",
                "image_url": {"url": f"data:{img.media_type};base64,{b64}"},
            })
        oai_messages.append({"role": "user", "content": content_parts})

        t0 = time.monotonic()
        resp = await self._client.chat.completions.create(
            model=self._model, messages=oai_messages, max_tokens=max_tokens,
        )
        return self._to_response(resp, int((time.monotonic() - t0) * 1000))

    @property
    def supports_vision(self) -> bool:
        return True

    @property
    def provider_name(self) -> str:
        return "openai"

    def _to_response(self, resp: Any, latency_ms: int) -> LLMResponse:
        content = resp.choices[0].message.content if resp.choices else None
        if not content:
            raise EmptyCompletionError("openai", self._model)
        usage = resp.usage
        return LLMResponse(
            content=content,
            input_tokens=usage.prompt_tokens if usage else 0,
            output_tokens=usage.completion_tokens if usage else 0,
            model=self._model,
            provider="openai",
            latency_ms=latency_ms,
            raw_response=resp,
        )
