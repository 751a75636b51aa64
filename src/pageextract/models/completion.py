"""Canonical, backend-independent completion models.

Requests are described once in OpenAI's chat shape (role-tagged messages
whose content is a string or a list of ``text`` / ``image_url`` parts, and
function tools) and every backend adapter translates from it.  Responses are
normalized back into ``CanonicalCompletion``, again in the OpenAI
``chat.completion`` shape.
"""

from __future__ import annotations

import base64
import hashlib
import time
from dataclasses import dataclass
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field

# ---------------------------------------------------------------------------
# Request side
# ---------------------------------------------------------------------------


class TextPart(BaseModel):
    """A plain-text content part."""

    type: Literal["text"] = "text"
    text: str


class ImageURL(BaseModel):
    url: str


class ImagePart(BaseModel):
    """An image content part, usually a ``data:`` URL."""

    type: Literal["image_url"] = "image_url"
    image_url: ImageURL


ContentPart = Annotated[Union[TextPart, ImagePart], Field(discriminator="type")]


class ChatMessage(BaseModel):
    """One role-tagged chat turn."""

    role: Literal["system", "user", "assistant"]
    content: Union[str, list[ContentPart]]

    @property
    def has_image(self) -> bool:
        """Return True if any content part is an image."""
        if isinstance(self.content, str):
            return False
        return any(isinstance(part, ImagePart) for part in self.content)

    def text_parts(self) -> list[str]:
        """Return the text of every text part (or the whole string content)."""
        if isinstance(self.content, str):
            return [self.content]
        return [part.text for part in self.content if isinstance(part, TextPart)]


@dataclass
class ImageAttachment:
    """A screenshot or other image to attach to the final user turn."""

    buffer: bytes
    description: str | None = None

    def to_base64(self) -> str:
        return base64.b64encode(self.buffer).decode("ascii")

    def fingerprint(self) -> dict[str, Any]:
        """Stable identity for cache keys without embedding the raw bytes."""
        return {
            "sha256": hashlib.sha256(self.buffer).hexdigest(),
            "description": self.description,
        }


@dataclass
class ResponseSchema:
    """Target output schema for a structured completion."""

    name: str
    schema: type[BaseModel]

    def json_schema(self) -> dict[str, Any]:
        return self.schema.model_json_schema()

    def fingerprint(self) -> dict[str, Any]:
        return {"name": self.name, "schema": self.json_schema()}


@dataclass
class CompletionRequest:
    """Canonical chat-completion request accepted by every ``LLMClient``.

    ``request_id`` is tracing metadata only and never part of cache identity.
    """

    messages: list[ChatMessage]
    model: str | None = None
    temperature: float | None = None
    top_p: float | None = None
    frequency_penalty: float | None = None
    presence_penalty: float | None = None
    max_tokens: int | None = None
    image: ImageAttachment | None = None
    response_schema: ResponseSchema | None = None
    tools: list[dict[str, Any]] | None = None
    request_id: str | None = None


# ---------------------------------------------------------------------------
# Response side
# ---------------------------------------------------------------------------


class ToolCallFunction(BaseModel):
    name: str
    arguments: str


class ToolCall(BaseModel):
    """A function invocation requested by the model; ``arguments`` is JSON text."""

    id: str
    type: Literal["function"] = "function"
    function: ToolCallFunction


class CompletionMessage(BaseModel):
    role: str = "assistant"
    content: str | None = None
    tool_calls: list[ToolCall] | None = None


class Choice(BaseModel):
    index: int = 0
    message: CompletionMessage
    finish_reason: str | None = None


class Usage(BaseModel):
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class CanonicalCompletion(BaseModel):
    """Backend-independent chat completion in the OpenAI ``chat.completion`` shape."""

    id: str
    object: str = "chat.completion"
    created: int = Field(default_factory=lambda: int(time.time()))
    model: str
    choices: list[Choice]
    usage: Usage = Field(default_factory=Usage)
