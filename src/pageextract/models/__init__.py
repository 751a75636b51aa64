"""Data models shared across the extraction pipeline."""

from pageextract.models.annotation import BoundingBox, Point, TextAnnotation, Viewport
from pageextract.models.completion import (
    CanonicalCompletion,
    ChatMessage,
    Choice,
    CompletionMessage,
    CompletionRequest,
    ImageAttachment,
    ImagePart,
    ResponseSchema,
    TextPart,
    ToolCall,
    Usage,
)
from pageextract.models.extraction import ExtractionRequest

__all__ = [
    "BoundingBox",
    "CanonicalCompletion",
    "ChatMessage",
    "Choice",
    "CompletionMessage",
    "CompletionRequest",
    "ExtractionRequest",
    "ImageAttachment",
    "ImagePart",
    "Point",
    "ResponseSchema",
    "TextAnnotation",
    "TextPart",
    "ToolCall",
    "Usage",
    "Viewport",
]
