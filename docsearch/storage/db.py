"""Database utilities for the document catalog (SQLite or PostgreSQL)."""

from __future__ import annotations

import os
from typing import Any, Iterable, Set

from sqlalchemy import create_engine, event, inspect
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import StaticPool

from docsearch.exceptions import ConfigError, StorageError


def normalize_db_url(url: str) -> str:
    """Route plain ``postgresql://`` URLs through the psycopg 3 driver."""

    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+psycopg://", 1)
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql+psycopg://", 1)
    return url


def _is_memory_sqlite(url: str) -> bool:
    return url in ("sqlite://", "sqlite:///:memory:") or "mode=memory" in url


def _configure_sqlite(engine: Engine, *, wal: bool) -> None:
    # pysqlite's own transaction handling does not begin a transaction before
    # SELECT or DDL; let SQLAlchemy emit BEGIN so reads see one snapshot.
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection: Any, _record: Any) -> None:
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        if wal:
            cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn: Connection) -> None:
        conn.exec_driver_sql("BEGIN")


def get_engine(url: str | None = None, **kwargs: Any) -> Engine:
    """Create an engine for the provided or environment catalog URL."""

    resolved_url = url or os.getenv("DOCSEARCH_DB_URL")
    if not resolved_url:
        raise ConfigError(
            "Catalog URL is not configured. Set DOCSEARCH_DB_URL or pass url explicitly."
        )
    resolved_url = normalize_db_url(resolved_url)

    is_sqlite = resolved_url.startswith("sqlite")
    if is_sqlite and _is_memory_sqlite(resolved_url):
        kwargs.setdefault("poolclass", StaticPool)
        kwargs.setdefault("connect_args", {"check_same_thread": False})

    try:
        engine = create_engine(resolved_url, **kwargs)
    except (SQLAlchemyError, ImportError, ValueError) as exc:
        raise StorageError(f"Failed to create catalog engine: {exc}") from exc

    if is_sqlite:
        _configure_sqlite(engine, wal=not _is_memory_sqlite(resolved_url))
    return engine


def fetch_existing_tables(conn: Connection, table_names: Iterable[str]) -> Set[str]:
    """Return the subset of ``table_names`` that exist in the current database."""

    names = set(table_names)
    if not names:
        return set()
    return names & set(inspect(conn).get_table_names())
