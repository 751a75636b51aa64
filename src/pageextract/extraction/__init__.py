"""Structured extraction orchestration."""

from pageextract.extraction.handler import ExtractHandler
from pageextract.extraction.prompts import build_extraction_schema, build_messages

__all__ = ["ExtractHandler", "build_extraction_schema", "build_messages"]
