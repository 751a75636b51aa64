"""SQLAlchemy table definition and engine helpers for the response cache.

The cache lives in its own ``METADATA`` so it can share a database with other
tables without clashing on ``create_all``.
"""

from __future__ import annotations

from pathlib import Path

import sqlalchemy as sa
from sqlalchemy.orm import Session, sessionmaker

TIMESTAMP = sa.DateTime(timezone=True)

METADATA = sa.MetaData()

# ---------------------------------------------------------------------------
# llm_cache: one row per request fingerprint, last write wins
# ---------------------------------------------------------------------------

llm_cache = sa.Table(
    "llm_cache",
    METADATA,
    sa.Column("fingerprint", sa.String(length=64), primary_key=True),
    sa.Column("value", sa.JSON(), nullable=False),
    sa.Column("request_id", sa.Text(), nullable=True),
    sa.Column("created_at", TIMESTAMP, nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
    sa.Column("updated_at", TIMESTAMP, nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
)


# ---------------------------------------------------------------------------
# Engine / session helpers
# ---------------------------------------------------------------------------


def build_engine(*, db_path: str | Path | None = None, echo: bool = False) -> sa.Engine:
    """Create a SQLite engine for the response cache.

    Args:
        db_path: Override path for the SQLite file.  Defaults to
            ``settings.cache.sqlite_path``.
        echo: When True, log all SQL statements.
    """
    if db_path is None:
        from pageextract.settings import get_settings

        db_path = get_settings().cache.sqlite_path

    resolved = Path(db_path)
    resolved.parent.mkdir(parents=True, exist_ok=True)
    url = f"sqlite:///{resolved.as_posix()}"
    return sa.create_engine(
        url,
        echo=echo,
        pool_pre_ping=True,
        connect_args={"check_same_thread": False, "timeout": 30},
    )


def build_session_factory(*, db_path: str | Path | None = None) -> sessionmaker:
    """Return a ``sessionmaker`` bound to the cache engine."""
    engine = build_engine(db_path=db_path)
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)


def dialect_insert(session: Session, table: sa.Table) -> sa.Insert:
    """Return a dialect-aware INSERT that supports ``on_conflict_do_update``.

    Picks the correct dialect (SQLite or PostgreSQL) based on the session's
    bound engine.
    """
    bind = session.get_bind()
    dialect_name = bind.dialect.name
    if dialect_name == "postgresql":
        from sqlalchemy.dialects.postgresql import insert
    else:
        from sqlalchemy.dialects.sqlite import insert
    return insert(table)
