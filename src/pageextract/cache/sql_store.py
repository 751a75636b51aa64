"""SQL-backed response cache.

``SQLResponseCache`` follows the usual store constructor pattern: accept an
optional *db_path* for convenience or a pre-built *session_factory* for a
shared engine.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import sqlalchemy as sa
from sqlalchemy.orm import sessionmaker

from pageextract.cache.base import ResponseCache, fingerprint
from pageextract.cache.sql import METADATA, build_session_factory, dialect_insert, llm_cache

logger = logging.getLogger(__name__)


class SQLResponseCache(ResponseCache):
    """Persist fingerprint → completion value pairs in a SQL table.

    Args:
        db_path: Convenience path for a local SQLite file.  Mutually
            exclusive with *session_factory*.
        session_factory: Pre-configured ``sessionmaker`` (e.g. a shared test
            fixture).
    """

    def __init__(
        self,
        db_path: str | Path | None = None,
        *,
        session_factory: sessionmaker | None = None,
    ) -> None:
        if session_factory is not None:
            self._session_factory = session_factory
        else:
            self._session_factory = build_session_factory(db_path=db_path)

        # Ensure schema exists (auto-create for SQLite / local dev)
        with self._session_factory() as session:
            METADATA.create_all(session.connection())
            session.commit()

    def get(self, options: dict[str, Any], request_id: str | None = None) -> Any | None:
        """Return the stored value for *options*, or ``None`` on a miss."""
        key = fingerprint(options)
        with self._session_factory() as session:
            row = session.execute(
                sa.select(llm_cache.c.value).where(llm_cache.c.fingerprint == key)
            ).first()
        logger.debug("cache %s key=%s request_id=%s", "hit" if row else "miss", key[:12], request_id)
        return row.value if row else None

    def set(self, options: dict[str, Any], value: Any, request_id: str | None = None) -> None:
        """Upsert *value* under the fingerprint of *options*."""
        key = fingerprint(options)
        now = datetime.now(timezone.utc)
        with self._session_factory() as session:
            stmt = dialect_insert(session, llm_cache).values(
                fingerprint=key,
                value=value,
                request_id=request_id,
                created_at=now,
                updated_at=now,
            )
            stmt = stmt.on_conflict_do_update(
                index_elements=[llm_cache.c.fingerprint],
                set_={"value": stmt.excluded.value, "request_id": stmt.excluded.request_id, "updated_at": now},
            )
            session.execute(stmt)
            session.commit()
        logger.debug("cache write key=%s request_id=%s", key[:12], request_id)

    def count(self) -> int:
        """Return the number of cached entries."""
        with self._session_factory() as session:
            return session.execute(sa.select(sa.func.count()).select_from(llm_cache)).scalar_one()

    def close(self) -> None:
        """Dispose of the underlying engine."""
        bind = self._session_factory.kw.get("bind")
        if bind is not None:
            bind.dispose()
