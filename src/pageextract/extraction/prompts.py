"""Prompt and schema construction for structured extraction."""

from __future__ import annotations

import json
from typing import Any

from pydantic import BaseModel, Field, create_model

from pageextract.models.completion import ChatMessage

# ---- System prompt --------------------------------------------------------

_SYSTEM_PROMPT = """\
You are extracting content on behalf of a user from a web page.

You will be given:
1. An instruction describing what to extract.
2. Content that was already extracted in an earlier pass (possibly empty).
3. The visible text of the page, one text element per line, each followed by
   its position on screen as (x, y) fractions of the viewport.

RULES:
1. If the user asks for a "list" of information or "all" information, extract
   ALL of it. Do not stop early.
2. Copy text exactly as it appears, including symbols and punctuation.
3. Extend or correct the previously extracted content rather than starting
   over. Keep values that are still valid.
4. Use null or an empty string when the page has no value for a field.
5. Set "completed" to true only when the extracted data fully satisfies the
   instruction. Set it to false when information is missing from the page or
   you could not finish.
"""

_USER_PROMPT = """\
Instruction: {instruction}

Previously extracted content:
{previous}

Page text:
{dom_elements}
"""

COMPLETED_FIELD_DESCRIPTION = (
    "true if the extracted data fully satisfies the instruction, false if more work is needed"
)


def build_extraction_schema(schema: type[BaseModel]) -> type[BaseModel]:
    """Extend *schema* with the required ``completed`` metadata flag."""
    return create_model(
        f"{schema.__name__}Extraction",
        __base__=schema,
        completed=(bool, Field(description=COMPLETED_FIELD_DESCRIPTION)),
    )


def build_messages(instruction: str, dom_elements: str, previous: dict[str, Any] | None = None) -> list[ChatMessage]:
    """Build the system + user turns for one extraction call."""
    user = _USER_PROMPT.format(
        instruction=instruction,
        previous=json.dumps(previous or {}, indent=2, default=str),
        dom_elements=dom_elements or "(no visible text)",
    )
    return [
        ChatMessage(role="system", content=_SYSTEM_PROMPT),
        ChatMessage(role="user", content=user),
    ]
