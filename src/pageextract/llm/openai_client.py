"""OpenAI chat-completions adapter (native schema-constrained decoding).

The target schema is sent as a strict ``json_schema`` response format, so the
assistant's text content is the structured result.  Because conformance is
enforced by the backend there is no retry here: content that still fails to
validate is surfaced to the caller as-is.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx
from openai import AsyncOpenAI
from openai.lib._pydantic import to_strict_json_schema
from pydantic import ValidationError

from pageextract.cache.base import ResponseCache
from pageextract.exceptions import StructuredOutputError
from pageextract.llm.base import LLMClient, StructuredOutputStrategy, image_user_message
from pageextract.models.completion import CanonicalCompletion, CompletionRequest, ResponseSchema

logger = logging.getLogger(__name__)


def response_format_for(schema: ResponseSchema) -> dict[str, Any]:
    """Build the ``response_format`` parameter for *schema*.

    The SDK's strict-mode conversion inlines ``$ref``s that carry sibling
    keys and marks every property required.
    """
    return {
        "type": "json_schema",
        "json_schema": {
            "name": schema.name,
            "schema": to_strict_json_schema(schema.schema),
            "strict": True,
        },
    }


class OpenAIClient(LLMClient):
    """Completion adapter backed by ``AsyncOpenAI``.

    Args:
        model_name: OpenAI model (e.g. ``gpt-4o``).
        cache: Shared response cache.
        enable_caching: Consult and populate *cache*.
        api_key: API key; ``None`` lets the SDK read ``OPENAI_API_KEY``.
        http_client: Shared ``httpx.AsyncClient`` carrying the request timeout.
        max_retries: SDK-level retries for transient transport errors.
        client: Pre-built SDK client (tests).
    """

    strategy = StructuredOutputStrategy.NATIVE_SCHEMA
    category = "openai"

    def __init__(
        self,
        model_name: str,
        *,
        cache: ResponseCache | None = None,
        enable_caching: bool = False,
        api_key: str | None = None,
        http_client: httpx.AsyncClient | None = None,
        max_retries: int = 2,
        client: AsyncOpenAI | None = None,
    ) -> None:
        super().__init__(model_name, cache=cache, enable_caching=enable_caching)
        self._client = client or AsyncOpenAI(api_key=api_key, http_client=http_client, max_retries=max_retries)
        # A shared http_client belongs to whoever passed it in
        self._owns_client = client is None and http_client is None

    def cache_options(self, request: CompletionRequest) -> dict[str, Any]:
        options = self._base_cache_options(request)
        options["top_p"] = request.top_p
        options["frequency_penalty"] = request.frequency_penalty
        options["presence_penalty"] = request.presence_penalty
        options["tools"] = request.tools
        return options

    async def complete(self, request: CompletionRequest) -> CanonicalCompletion | dict[str, Any]:
        self._log_request(request)
        options = self.cache_options(request)
        cached = await self._read_cache(request, options)
        if cached is not None:
            return cached

        body = self._build_body(request)
        response = await self._client.chat.completions.create(**body)

        logger.info(
            "response",
            extra={
                "category": self.category,
                "auxiliary": {"requestId": request.request_id, "response": response.model_dump(mode="json")},
            },
        )

        if request.response_schema is not None:
            result = self._parse_structured(response, request)
            await self._write_cache(request, options, result)
            return result

        completion = CanonicalCompletion.model_validate(response.model_dump(mode="json"))
        await self._write_cache(request, options, completion)
        return completion

    def _build_body(self, request: CompletionRequest) -> dict[str, Any]:
        messages = list(request.messages)
        if request.image is not None:
            messages.append(image_user_message(request.image))

        body: dict[str, Any] = {
            "model": self.model_name,
            "messages": [m.model_dump(mode="json") for m in messages],
            "stream": False,
        }
        for name in ("temperature", "top_p", "frequency_penalty", "presence_penalty", "max_tokens"):
            value = getattr(request, name)
            if value is not None:
                body[name] = value
        if request.response_schema is not None:
            body["response_format"] = response_format_for(request.response_schema)
        # Only OpenAI-style function tools are accepted by this backend
        tools = [tool for tool in request.tools or [] if "function" in tool]
        if tools:
            body["tools"] = tools
        return body

    def _parse_structured(self, response: Any, request: CompletionRequest) -> dict[str, Any]:
        message = response.choices[0].message
        refusal = getattr(message, "refusal", None)
        if refusal:
            logger.error(
                "model refused structured output: %s",
                refusal,
                extra={"category": self.category, "auxiliary": {"requestId": request.request_id}},
            )
            raise StructuredOutputError(f"Model refused to produce structured output: {refusal}")

        content = message.content or ""
        try:
            parsed = request.response_schema.schema.model_validate_json(content)
        except ValidationError:
            logger.error(
                "structured output failed schema validation",
                extra={
                    "category": self.category,
                    "auxiliary": {"requestId": request.request_id, "content": content},
                },
            )
            raise
        return parsed.model_dump(mode="json")

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.close()
