"""Canonical completion interface shared by every backend adapter.

Each adapter turns a ``CompletionRequest`` into one vendor call and returns
either a ``CanonicalCompletion`` (no schema requested) or the parsed
structured ``dict`` (schema requested).  Adapters differ only in how they get
schema-conformant output out of their backend, which is recorded in
``LLMClient.strategy``.
"""

from __future__ import annotations

import abc
import asyncio
import logging
from enum import Enum
from typing import Any

from pageextract.cache.base import ResponseCache
from pageextract.models.completion import (
    CanonicalCompletion,
    ChatMessage,
    CompletionRequest,
    ImageAttachment,
    ImagePart,
    ImageURL,
    TextPart,
)

logger = logging.getLogger(__name__)


class StructuredOutputStrategy(str, Enum):
    """How a backend is made to emit schema-conformant output."""

    NATIVE_SCHEMA = "native_schema"
    TOOL_FORCING = "tool_forcing"


def split_system_message(messages: list[ChatMessage]) -> tuple[ChatMessage | None, list[ChatMessage]]:
    """Separate the system prompt from the conversation turns.

    The system message is the first ``system`` message without image parts;
    every other ``system`` message is dropped, all non-system messages are
    returned in order.
    """
    system = next((m for m in messages if m.role == "system" and not m.has_image), None)
    rest = [m for m in messages if m.role != "system"]
    return system, rest


def image_user_message(image: ImageAttachment) -> ChatMessage:
    """Build the trailing user turn carrying a JPEG screenshot and its caption."""
    parts: list[Any] = [ImagePart(image_url=ImageURL(url=f"data:image/jpeg;base64,{image.to_base64()}"))]
    if image.description:
        parts.append(TextPart(text=image.description))
    return ChatMessage(role="user", content=parts)


class LLMClient(abc.ABC):
    """Abstract chat-completion adapter with response caching.

    Args:
        model_name: Vendor model identifier used for every call.
        cache: Shared response cache, or ``None`` to disable caching.
        enable_caching: Consult and populate *cache* when True.
    """

    strategy: StructuredOutputStrategy
    category: str = "llm"

    def __init__(
        self,
        model_name: str,
        *,
        cache: ResponseCache | None = None,
        enable_caching: bool = False,
    ) -> None:
        self.model_name = model_name
        self.cache = cache
        self.enable_caching = enable_caching and cache is not None

    @abc.abstractmethod
    async def complete(self, request: CompletionRequest) -> CanonicalCompletion | dict[str, Any]:
        """Run one logical completion.

        Returns:
            The parsed structured ``dict`` when ``request.response_schema`` is
            set, otherwise a ``CanonicalCompletion``.
        """

    @abc.abstractmethod
    def cache_options(self, request: CompletionRequest) -> dict[str, Any]:
        """Return the identity-relevant request fields, in a fixed order."""

    async def aclose(self) -> None:
        """Release SDK resources. Override if needed."""

    # ------------------------------------------------------------------
    # Shared helpers
    # ------------------------------------------------------------------

    def _base_cache_options(self, request: CompletionRequest) -> dict[str, Any]:
        return {
            "model": self.model_name,
            "messages": [m.model_dump(mode="json") for m in request.messages],
            "temperature": request.temperature,
            "image": request.image.fingerprint() if request.image else None,
            "response_model": request.response_schema.fingerprint() if request.response_schema else None,
        }

    async def _read_cache(self, request: CompletionRequest, options: dict[str, Any]) -> CanonicalCompletion | dict[str, Any] | None:
        """Return the cached response for *request*, treating cache failures as misses.

        Cache stores do blocking I/O, so lookups run in the default executor.
        """
        if not self.enable_caching:
            return None
        loop = asyncio.get_running_loop()
        try:
            cached = await loop.run_in_executor(None, self.cache.get, options, request.request_id)
        except Exception as e:
            logger.warning(
                "LLM cache read failed, treating as miss: %s",
                e,
                extra={"category": "llm_cache", "auxiliary": {"requestId": request.request_id}},
            )
            return None

        if cached is None:
            logger.info(
                "LLM cache miss - no cached response found",
                extra={"category": "llm_cache", "auxiliary": {"requestId": request.request_id}},
            )
            return None

        logger.info(
            "LLM cache hit - returning cached response",
            extra={"category": "llm_cache", "auxiliary": {"requestId": request.request_id, "cachedResponse": cached}},
        )
        if request.response_schema is not None:
            return cached
        return CanonicalCompletion.model_validate(cached)

    async def _write_cache(self, request: CompletionRequest, options: dict[str, Any], value: CanonicalCompletion | dict[str, Any]) -> None:
        """Store *value* for *request*; failures are logged, never raised."""
        if not self.enable_caching:
            return
        payload = value.model_dump(mode="json") if isinstance(value, CanonicalCompletion) else value
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, self.cache.set, options, payload, request.request_id)
        except Exception as e:
            logger.warning(
                "LLM cache write failed: %s",
                e,
                extra={"category": "llm_cache", "auxiliary": {"requestId": request.request_id}},
            )
            return
        logger.debug(
            "cached response",
            extra={"category": "llm_cache", "auxiliary": {"requestId": request.request_id}},
        )

    def _log_request(self, request: CompletionRequest) -> None:
        logger.info(
            "creating chat completion",
            extra={
                "category": self.category,
                "auxiliary": {
                    "modelName": self.model_name,
                    "requestId": request.request_id,
                    "messages": len(request.messages),
                    "hasImage": request.image is not None,
                    "responseSchema": request.response_schema.name if request.response_schema else None,
                },
            },
        )
