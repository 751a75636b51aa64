"""pageextract exception hierarchy."""

from __future__ import annotations

from typing import Any


class PageExtractError(Exception):
    """Base exception for all pageextract errors."""


class ExtractionIncompleteError(PageExtractError):
    """Raised when the model reports that it could not finish the extraction.

    Distinct from transport or parse failures: the call itself succeeded, but
    the model flagged ``completed=false``.

    Attributes:
        instruction: The extraction instruction that was sent.
        partial: Whatever schema-shaped data the model returned alongside the flag.
    """

    def __init__(self, instruction: str, partial: dict[str, Any] | None = None) -> None:
        self.instruction = instruction
        self.partial = partial or {}
        super().__init__("Extraction not completed")


class StructuredOutputError(PageExtractError):
    """Raised when a backend returns no usable structured output."""


class NoToolUseError(StructuredOutputError):
    """Raised when the model never invoked the extraction tool.

    Attributes:
        attempts: Number of completion calls made before giving up.
    """

    def __init__(self, attempts: int) -> None:
        self.attempts = attempts
        super().__init__("Create Chat Completion Failed: No tool use with input in response")


class UnknownModelError(PageExtractError, ValueError):
    """Raised when a model name has no registered backend."""

    def __init__(self, model_name: str, supported: list[str]) -> None:
        self.model_name = model_name
        super().__init__(f"Unknown model: {model_name!r}. Supported: {', '.join(sorted(supported))}")
