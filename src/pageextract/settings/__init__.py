"""Layered configuration for pageextract."""

from pageextract.settings.config import Settings, get_settings

__all__ = ["Settings", "get_settings"]
