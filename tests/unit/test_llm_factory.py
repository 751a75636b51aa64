"""Unit tests for model → backend resolution and client lifecycle."""

from __future__ import annotations

import pytest

from pageextract.cache.base import InMemoryResponseCache
from pageextract.exceptions import UnknownModelError
from pageextract.llm import LLMClientFactory, StructuredOutputStrategy, provider_for
from pageextract.llm.anthropic_client import AnthropicClient
from pageextract.llm.openai_client import OpenAIClient


class TestProviderFor:
    """Static model registry."""

    @pytest.mark.parametrize("model", ["gpt-4o", "gpt-4o-mini", "gpt-4o-2024-08-06"])
    def test_openai_models(self, model):
        assert provider_for(model) == "openai"

    @pytest.mark.parametrize(
        "model", ["claude-3-5-sonnet-latest", "claude-3-5-sonnet-20240620", "claude-3-5-sonnet-20241022"]
    )
    def test_anthropic_models(self, model):
        assert provider_for(model) == "anthropic"

    def test_unknown_model(self):
        with pytest.raises(UnknownModelError, match="gemini-pro") as exc_info:
            provider_for("gemini-pro")
        assert exc_info.value.model_name == "gemini-pro"

    def test_unknown_model_is_value_error(self):
        with pytest.raises(ValueError):
            provider_for("llama3")


class TestLLMClientFactory:
    """Adapter construction and memoization."""

    @pytest.mark.anyio
    async def test_openai_client_built(self) -> None:
        factory = LLMClientFactory(openai_api_key="sk-test")
        try:
            client = factory.get_client("gpt-4o")
            assert isinstance(client, OpenAIClient)
            assert client.strategy is StructuredOutputStrategy.NATIVE_SCHEMA
            assert client.model_name == "gpt-4o"
        finally:
            await factory.aclose()

    @pytest.mark.anyio
    async def test_anthropic_client_built(self) -> None:
        factory = LLMClientFactory(anthropic_api_key="sk-ant-test")
        try:
            client = factory.get_client("claude-3-5-sonnet-latest")
            assert isinstance(client, AnthropicClient)
            assert client.strategy is StructuredOutputStrategy.TOOL_FORCING
        finally:
            await factory.aclose()

    @pytest.mark.anyio
    async def test_clients_memoized(self) -> None:
        factory = LLMClientFactory(openai_api_key="sk-test")
        try:
            assert factory.get_client("gpt-4o") is factory.get_client("gpt-4o")
        finally:
            await factory.aclose()

    @pytest.mark.anyio
    async def test_cache_shared_across_clients(self) -> None:
        cache = InMemoryResponseCache()
        factory = LLMClientFactory(
            cache=cache, enable_caching=True, openai_api_key="sk-test", anthropic_api_key="sk-ant-test"
        )
        try:
            openai = factory.get_client("gpt-4o")
            anthropic = factory.get_client("claude-3-5-sonnet-latest")
            assert openai.cache is cache and anthropic.cache is cache
            assert openai.enable_caching and anthropic.enable_caching
        finally:
            await factory.aclose()

    def test_unknown_model_rejected(self):
        with pytest.raises(UnknownModelError):
            LLMClientFactory().get_client("not-a-model")

    @pytest.mark.anyio
    async def test_from_settings_without_caching(self, monkeypatch) -> None:
        monkeypatch.setenv("PAGEEXTRACT_LLM__ENABLE_CACHING", "false")
        factory = LLMClientFactory.from_settings()
        try:
            assert factory.cache is None
            assert factory.enable_caching is False
        finally:
            await factory.aclose()

    @pytest.mark.anyio
    async def test_from_settings_builds_cache(self, monkeypatch) -> None:
        monkeypatch.setenv("PAGEEXTRACT_LLM__ENABLE_CACHING", "true")
        monkeypatch.setenv("PAGEEXTRACT_CACHE__BACKEND", "memory")
        factory = LLMClientFactory.from_settings()
        try:
            assert isinstance(factory.cache, InMemoryResponseCache)
            assert factory.enable_caching is True
        finally:
            await factory.aclose()
