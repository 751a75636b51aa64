"""Anthropic messages adapter (tool-call forcing).

Claude has no native schema-constrained decoding, so structured output is
obtained by offering a single-purpose tool, ``print_extracted_data``, whose
input schema is the caller's target schema.  The input of the first tool
invocation in the response is the structured result.  When the model answers
without calling a tool the whole call is repeated, up to ``MAX_ATTEMPTS``
calls in total.

Message mapping:

- the first image-free ``system`` message becomes the ``system`` parameter;
- other turns keep their text only (inline image parts are dropped);
- an attached image is sent as one dedicated trailing user turn.
"""

from __future__ import annotations

import json
import logging
import time
from typing import Any

import httpx
from anthropic import AsyncAnthropic

from pageextract.cache.base import ResponseCache
from pageextract.exceptions import NoToolUseError
from pageextract.llm.base import LLMClient, StructuredOutputStrategy, split_system_message
from pageextract.models.completion import (
    CanonicalCompletion,
    ChatMessage,
    Choice,
    CompletionMessage,
    CompletionRequest,
    ImageAttachment,
    ResponseSchema,
    ToolCall,
    ToolCallFunction,
    Usage,
)

logger = logging.getLogger(__name__)

EXTRACTION_TOOL_NAME = "print_extracted_data"
MAX_ATTEMPTS = 5
DEFAULT_MAX_TOKENS = 1500


def extraction_tool(schema: ResponseSchema) -> dict[str, Any]:
    """Synthesize the tool whose input schema is the target output schema."""
    json_schema = schema.json_schema()
    input_schema: dict[str, Any] = {
        "type": "object",
        "properties": json_schema.get("properties", {}),
        "required": json_schema.get("required", []),
    }
    if "$defs" in json_schema:
        input_schema["$defs"] = json_schema["$defs"]
    return {
        "name": EXTRACTION_TOOL_NAME,
        "description": "Prints the extracted data based on the provided schema.",
        "input_schema": input_schema,
    }


def convert_tool(tool: dict[str, Any]) -> dict[str, Any]:
    """Translate an OpenAI function tool into Anthropic's tool format."""
    if tool.get("type") != "function":
        return tool
    function = tool["function"]
    parameters = function.get("parameters", {})
    return {
        "name": function["name"],
        "description": function.get("description", ""),
        "input_schema": {
            "type": "object",
            "properties": parameters.get("properties", {}),
            "required": parameters.get("required", []),
        },
    }


class AnthropicClient(LLMClient):
    """Completion adapter backed by ``AsyncAnthropic``.

    Args:
        model_name: Claude model (e.g. ``claude-3-5-sonnet-latest``).
        cache: Shared response cache.
        enable_caching: Consult and populate *cache*.
        api_key: API key; ``None`` lets the SDK read ``ANTHROPIC_API_KEY``.
        http_client: Shared ``httpx.AsyncClient`` carrying the request timeout.
        max_retries: SDK-level retries for transient transport errors.
        client: Pre-built SDK client (tests).
    """

    strategy = StructuredOutputStrategy.TOOL_FORCING
    category = "anthropic"

    def __init__(
        self,
        model_name: str,
        *,
        cache: ResponseCache | None = None,
        enable_caching: bool = False,
        api_key: str | None = None,
        http_client: httpx.AsyncClient | None = None,
        max_retries: int = 2,
        client: AsyncAnthropic | None = None,
    ) -> None:
        super().__init__(model_name, cache=cache, enable_caching=enable_caching)
        self._client = client or AsyncAnthropic(api_key=api_key, http_client=http_client, max_retries=max_retries)
        self._owns_client = client is None and http_client is None

    def cache_options(self, request: CompletionRequest) -> dict[str, Any]:
        options = self._base_cache_options(request)
        options["tools"] = request.tools
        options["top_p"] = request.top_p
        options["max_tokens"] = request.max_tokens
        return options

    async def complete(self, request: CompletionRequest) -> CanonicalCompletion | dict[str, Any]:
        self._log_request(request)
        options = self.cache_options(request)
        cached = await self._read_cache(request, options)
        if cached is not None:
            return cached

        params = self._build_params(request)

        if request.response_schema is None:
            response = await self._create(params, request)
            completion = self._transform(response, request)
            await self._write_cache(request, options, completion)
            return completion

        for attempt in range(1, MAX_ATTEMPTS + 1):
            state = "pending" if attempt == 1 else f"retrying({attempt - 1})"
            logger.debug(
                "requesting tool use: state=%s attempt=%d/%d",
                state,
                attempt,
                MAX_ATTEMPTS,
                extra={"category": self.category, "auxiliary": {"requestId": request.request_id}},
            )
            response = await self._create(params, request)

            tool_use = next((block for block in response.content if block.type == "tool_use"), None)
            if tool_use is not None:
                result = dict(tool_use.input)
                logger.debug(
                    "tool use received: state=succeeded attempt=%d/%d",
                    attempt,
                    MAX_ATTEMPTS,
                    extra={"category": self.category, "auxiliary": {"requestId": request.request_id}},
                )
                await self._write_cache(request, options, result)
                return result

            logger.warning(
                "no tool use in response (attempt %d/%d)",
                attempt,
                MAX_ATTEMPTS,
                extra={"category": self.category, "auxiliary": {"requestId": request.request_id}},
            )

        logger.error(
            "error creating chat completion: state=failed",
            extra={"category": self.category, "auxiliary": {"requestId": request.request_id, "attempts": MAX_ATTEMPTS}},
        )
        raise NoToolUseError(MAX_ATTEMPTS)

    # ------------------------------------------------------------------
    # Request / response translation
    # ------------------------------------------------------------------

    def _build_params(self, request: CompletionRequest) -> dict[str, Any]:
        system, turns = split_system_message(request.messages)

        messages = [formatted for formatted in (self._format_message(m) for m in turns) if formatted]
        if request.image is not None:
            messages.append(self._image_message(request.image))

        tools = [convert_tool(tool) for tool in request.tools or []]
        if request.response_schema is not None:
            tools.append(extraction_tool(request.response_schema))

        params: dict[str, Any] = {
            "model": self.model_name,
            "max_tokens": request.max_tokens or DEFAULT_MAX_TOKENS,
            "messages": messages,
        }
        if tools:
            params["tools"] = tools
        if system is not None:
            params["system"] = "\n".join(system.text_parts())
        if request.temperature is not None:
            params["temperature"] = request.temperature
        if request.top_p is not None:
            params["top_p"] = request.top_p
        return params

    @staticmethod
    def _format_message(message: ChatMessage) -> dict[str, Any] | None:
        if isinstance(message.content, str):
            return {"role": message.role, "content": message.content}

        blocks = [{"type": "text", "text": text} for text in message.text_parts()]
        if message.has_image:
            logger.debug("dropping inline image parts from %s turn", message.role)
        if not blocks:
            return None
        return {"role": message.role, "content": blocks}

    @staticmethod
    def _image_message(image: ImageAttachment) -> dict[str, Any]:
        content: list[dict[str, Any]] = [
            {
                "type": "image",
                "source": {"type": "base64", "media_type": "image/jpeg", "data": image.to_base64()},
            }
        ]
        if image.description:
            content.append({"type": "text", "text": image.description})
        return {"role": "user", "content": content}

    async def _create(self, params: dict[str, Any], request: CompletionRequest) -> Any:
        response = await self._client.messages.create(**params)
        logger.info(
            "response",
            extra={
                "category": self.category,
                "auxiliary": {"requestId": request.request_id, "response": response.model_dump(mode="json")},
            },
        )
        return response

    def _transform(self, response: Any, request: CompletionRequest) -> CanonicalCompletion:
        text = next((block.text for block in response.content if block.type == "text"), None)
        tool_calls = [
            ToolCall(
                id=block.id,
                function=ToolCallFunction(name=block.name, arguments=json.dumps(block.input)),
            )
            for block in response.content
            if block.type == "tool_use"
        ]
        completion = CanonicalCompletion(
            id=response.id,
            created=int(time.time()),
            model=response.model,
            choices=[
                Choice(
                    index=0,
                    message=CompletionMessage(role="assistant", content=text, tool_calls=tool_calls),
                    finish_reason=response.stop_reason,
                )
            ],
            usage=Usage(
                prompt_tokens=response.usage.input_tokens,
                completion_tokens=response.usage.output_tokens,
                total_tokens=response.usage.input_tokens + response.usage.output_tokens,
            ),
        )
        logger.debug(
            "transformed response",
            extra={
                "category": self.category,
                "auxiliary": {"requestId": request.request_id, "transformedResponse": completion.model_dump(mode="json")},
            },
        )
        return completion

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.close()
