"""LLM-driven structured data extraction from live browser pages."""

from __future__ import annotations

try:
    from importlib.metadata import version

    __version__ = version("pageextract")
except Exception:
    __version__ = "0.0.0"
