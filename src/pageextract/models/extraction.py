"""Request model for the structured extraction orchestrator."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel


@dataclass
class ExtractionRequest:
    """A natural-language extraction instruction plus its target schema.

    ``prior_content`` seeds the object the model should extend or correct,
    which lets callers run extraction iteratively over the same page.
    """

    instruction: str
    schema: type[BaseModel]
    prior_content: dict[str, Any] = field(default_factory=dict)
    model_name: str | None = None
    request_id: str | None = None
    dom_settle_timeout_ms: int | None = None
