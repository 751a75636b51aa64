"""Completion backend adapters.

Two structured-output strategies behind one ``LLMClient`` interface:
``openai`` (native schema-constrained decoding) and ``anthropic``
(tool-call forcing).
"""

from pageextract.llm.base import LLMClient, StructuredOutputStrategy
from pageextract.llm.factory import LLMClientFactory, provider_for

__all__ = ["LLMClient", "LLMClientFactory", "StructuredOutputStrategy", "provider_for"]
