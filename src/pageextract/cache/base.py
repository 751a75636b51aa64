"""Response cache interface and the in-memory implementation.

A cache maps the *fingerprint* of a completion request to the value that was
returned for it.  The fingerprint is the SHA-256 of an order-preserving JSON
serialization of the identity-relevant request fields; the caller decides
which fields those are.  ``request_id`` is accepted on every call for tracing
but never contributes to identity.
"""

from __future__ import annotations

import abc
import copy
import hashlib
import json
import logging
from typing import Any

logger = logging.getLogger(__name__)


def fingerprint(options: dict[str, Any]) -> str:
    """Return the canonical cache key for *options*.

    Key order is preserved, so callers must build *options* in a fixed order.
    """
    serialized = json.dumps(options, separators=(",", ":"), ensure_ascii=False, default=str)
    return hashlib.sha256(serialized.encode("utf-8")).hexdigest()


class ResponseCache(abc.ABC):
    """Persistent key-value store from request fingerprint to last-written value.

    No TTL and no eviction; a later ``set`` for the same fingerprint
    overwrites the earlier value.
    """

    @abc.abstractmethod
    def get(self, options: dict[str, Any], request_id: str | None = None) -> Any | None:
        """Return the cached value for *options*, or ``None`` on a miss."""

    @abc.abstractmethod
    def set(self, options: dict[str, Any], value: Any, request_id: str | None = None) -> None:
        """Store *value* as the response for *options*."""

    def close(self) -> None:
        """Release resources. Override if needed."""


class InMemoryResponseCache(ResponseCache):
    """Dict-backed cache for tests and short-lived processes."""

    def __init__(self) -> None:
        self._entries: dict[str, Any] = {}

    def get(self, options: dict[str, Any], request_id: str | None = None) -> Any | None:
        key = fingerprint(options)
        value = self._entries.get(key)
        logger.debug("cache %s key=%s request_id=%s", "hit" if value is not None else "miss", key[:12], request_id)
        return copy.deepcopy(value)

    def set(self, options: dict[str, Any], value: Any, request_id: str | None = None) -> None:
        key = fingerprint(options)
        self._entries[key] = copy.deepcopy(value)
        logger.debug("cache write key=%s request_id=%s", key[:12], request_id)

    def __len__(self) -> int:
        return len(self._entries)
