# tests/unit/llm/test_client_factory.py — v2
"""Tests for llm/client_factory.py."""

from __future__ import annotations

import pytest

from invoicex.config.settings import Settings
from invoicex.llm import client_factory
from invoicex.llm.adapters.anthropic_adapter import AnthropicAdapter
from invoicex.llm.adapters.openai_adapter import OpenAIAdapter
from invoicex.llm.client_factory import (
    UnsupportedProviderError,
    create_component_client,
    create_llm_client,
    register_provider,
)


def _settings(**kw) -> Settings:
    return Settings(_env_file=None, openai_api_key="sk-openai", anthropic_api_key="sk-ant", **kw)


class TestCreateLLMClient:
    def test_openai(self):
        client = create_llm_client("openai", "gpt-4o", _settings())
        assert isinstance(client, OpenAIAdapter)
        assert client.provider_name == "openai"
        assert client._api_key == "sk-openai"

    def test_anthropic(self):
        client = create_llm_client("anthropic", "claude-3-haiku", _settings())
        assert isinstance(client, AnthropicAdapter)
        assert client._api_key == "sk-ant"

    def test_explicit_api_key_kept(self):
        client = create_llm_client("openai", "gpt-4o", _settings(), api_key="override")
        assert client._api_key == "override"

    def test_unsupported_provider(self):
        with pytest.raises(UnsupportedProviderError, match="Unsupported LLM provider"):
            create_llm_client("cohere", "command-r")


class TestComponentClient:
    def test_uses_cascade(self):
        client = create_component_client("extractor", _settings(llm_extractor="anthropic:claude-3-opus"))
        assert isinstance(client, AnthropicAdapter)
        assert client._model == "claude-3-opus"


def test_register_provider(monkeypatch):
    monkeypatch.setattr(client_factory, "_PROVIDER_REGISTRY", dict(client_factory._PROVIDER_REGISTRY))
    register_provider("azure", "invoicex.llm.adapters.openai_adapter.OpenAIAdapter")
    client = create_llm_client("azure", "gpt-4o")
    assert isinstance(client, OpenAIAdapter)
    assert client._model == "gpt-4o"
