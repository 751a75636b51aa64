"""Build the process-wide response cache from settings."""

from __future__ import annotations

import logging

from pageextract.cache.base import InMemoryResponseCache, ResponseCache

logger = logging.getLogger(__name__)


def create_response_cache(backend: str | None = None) -> ResponseCache:
    """Create a response cache from settings or an explicit backend name.

    Args:
        backend: ``sqlite`` or ``memory``.  If None, reads
            ``get_settings().cache.backend``.

    Raises:
        ValueError: If the backend name is not recognized.
    """
    from pageextract.settings import get_settings

    settings = get_settings()
    backend_name = (backend or settings.cache.backend).lower().strip()

    if backend_name == "memory":
        cache: ResponseCache = InMemoryResponseCache()
    elif backend_name == "sqlite":
        from pageextract.cache.sql_store import SQLResponseCache

        cache = SQLResponseCache(db_path=settings.cache.sqlite_path)
    else:
        raise ValueError(f"Unknown cache backend: {backend_name!r}. Supported: memory, sqlite")

    logger.info("Created response cache: backend=%s", backend_name)
    return cache
