"""Response cache for completion results, keyed by a canonical request fingerprint."""

from pageextract.cache.base import InMemoryResponseCache, ResponseCache, fingerprint
from pageextract.cache.factory import create_response_cache
from pageextract.cache.sql_store import SQLResponseCache

__all__ = [
    "InMemoryResponseCache",
    "ResponseCache",
    "SQLResponseCache",
    "create_response_cache",
    "fingerprint",
]
