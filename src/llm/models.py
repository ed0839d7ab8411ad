# src/llm/models.py — v2
"""LLM-specific types: Message, ImageInput, LLMResponse."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel


class Message(BaseModel):
    """Single message in a conversation."""

    role: Literal["user", "assistant", "system"]
    content: str


class ImageInput(BaseModel):
    """Image payload for vision-enabled completions."""

    data: bytes
    media_type: str
    source_id: str | None = None


class LLMResponse(BaseModel):
    """Normalized response from any LLM provider."""

    content: str
    input_tokens: int
    output_tokens: int
    model: str
    provider: str
    latency_ms: int
    raw_response: Any = None

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens
