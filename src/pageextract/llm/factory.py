"""Factory mapping model names to completion backend adapters.

One adapter is built per model and memoized; every adapter shares the same
response cache and the same ``httpx.AsyncClient`` (which carries the request
timeout)::

    factory = LLMClientFactory.from_settings()
    client = factory.get_client("claude-3-5-sonnet-latest")
    result = await client.complete(request)
    await factory.aclose()
"""

from __future__ import annotations

import logging

import httpx

from pageextract.cache.base import ResponseCache
from pageextract.exceptions import UnknownModelError
from pageextract.llm.base import LLMClient

logger = logging.getLogger(__name__)

MODEL_PROVIDERS: dict[str, str] = {
    "gpt-4o": "openai",
    "gpt-4o-mini": "openai",
    "gpt-4o-2024-08-06": "openai",
    "claude-3-5-sonnet-latest": "anthropic",
    "claude-3-5-sonnet-20240620": "anthropic",
    "claude-3-5-sonnet-20241022": "anthropic",
}


def provider_for(model_name: str) -> str:
    """Return the backend name for *model_name*.

    Raises:
        UnknownModelError: If the model is not registered.
    """
    try:
        return MODEL_PROVIDERS[model_name]
    except KeyError:
        raise UnknownModelError(model_name, list(MODEL_PROVIDERS)) from None


class LLMClientFactory:
    """Build and memoize ``LLMClient`` instances.

    Args:
        cache: Shared response cache (``None`` disables caching).
        enable_caching: Whether adapters consult *cache*.
        openai_api_key: Explicit OpenAI key; empty falls back to the SDK's env lookup.
        anthropic_api_key: Explicit Anthropic key; same fallback.
        timeout_sec: HTTP timeout applied to every vendor call.
        max_retries: SDK-level transport retries.
    """

    def __init__(
        self,
        *,
        cache: ResponseCache | None = None,
        enable_caching: bool = False,
        openai_api_key: str = "",
        anthropic_api_key: str = "",
        timeout_sec: float = 120.0,
        max_retries: int = 2,
    ) -> None:
        self.cache = cache
        self.enable_caching = enable_caching
        self._openai_api_key = openai_api_key
        self._anthropic_api_key = anthropic_api_key
        self._timeout_sec = timeout_sec
        self._max_retries = max_retries
        self._http_client: httpx.AsyncClient | None = None
        self._clients: dict[str, LLMClient] = {}

    @classmethod
    def from_settings(cls, cache: ResponseCache | None = None) -> "LLMClientFactory":
        """Create a factory from settings, building the cache when caching is on."""
        from pageextract.settings import get_settings

        s = get_settings()
        if cache is None and s.llm.enable_caching:
            from pageextract.cache.factory import create_response_cache

            cache = create_response_cache()
        return cls(
            cache=cache,
            enable_caching=s.llm.enable_caching,
            openai_api_key=s.llm.openai_api_key,
            anthropic_api_key=s.llm.anthropic_api_key,
            timeout_sec=s.llm.request_timeout_sec,
            max_retries=s.llm.sdk_max_retries,
        )

    def get_client(self, model_name: str) -> LLMClient:
        """Return the adapter for *model_name*, creating it on first use.

        Raises:
            UnknownModelError: If the model is not registered.
        """
        if model_name in self._clients:
            return self._clients[model_name]

        provider = provider_for(model_name)
        client: LLMClient

        if provider == "openai":
            from pageextract.llm.openai_client import OpenAIClient

            client = OpenAIClient(
                model_name,
                cache=self.cache,
                enable_caching=self.enable_caching,
                api_key=self._openai_api_key or None,
                http_client=self._shared_http_client(),
                max_retries=self._max_retries,
            )
        else:
            from pageextract.llm.anthropic_client import AnthropicClient

            client = AnthropicClient(
                model_name,
                cache=self.cache,
                enable_caching=self.enable_caching,
                api_key=self._anthropic_api_key or None,
                http_client=self._shared_http_client(),
                max_retries=self._max_retries,
            )

        logger.info(
            "Created LLM client: provider=%s model=%s strategy=%s caching=%s",
            provider,
            model_name,
            client.strategy.value,
            client.enable_caching,
        )
        self._clients[model_name] = client
        return client

    def _shared_http_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self._timeout_sec)
        return self._http_client

    async def aclose(self) -> None:
        """Close every adapter, the shared HTTP client and the cache."""
        for client in self._clients.values():
            await client.aclose()
        self._clients.clear()
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None
        if self.cache is not None:
            self.cache.close()
