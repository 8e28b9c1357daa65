import os
from pathlib import Path

import pytest

from docsearch.storage.db import fetch_existing_tables, get_engine
from docsearch.storage.migrations import downgrade_migrations, run_migrations

REQUIRED_TABLES = {
    "alembic_version",
    "index_settings",
    "documents",
    "document_chunks",
    "chunk_vectors",
}


def test_sqlite_migrations_apply_and_tables_exist(tmp_path: Path) -> None:
    engine = get_engine(f"sqlite:///{tmp_path / 'migrations.db'}")
    try:
        run_migrations(engine)
        # Running again should be safe
        run_migrations(engine)

        with engine.connect() as conn:
            existing_tables = fetch_existing_tables(conn, REQUIRED_TABLES)
        assert REQUIRED_TABLES.issubset(existing_tables)

        downgrade_migrations(engine, "base")
        with engine.connect() as conn:
            remaining = fetch_existing_tables(conn, REQUIRED_TABLES - {"alembic_version"})
        assert remaining == set()
    finally:
        engine.dispose()


def test_in_memory_sqlite_is_migrated_in_place() -> None:
    engine = get_engine("sqlite://")
    try:
        run_migrations(engine)
        with engine.connect() as conn:
            assert REQUIRED_TABLES.issubset(fetch_existing_tables(conn, REQUIRED_TABLES))
    finally:
        engine.dispose()


@pytest.mark.integration
@pytest.mark.skipif(
    os.getenv("DOCSEARCH_TEST_DB_URL") is None,
    reason="DOCSEARCH_TEST_DB_URL not set",
)
def test_postgres_migrations_apply_and_tables_exist() -> None:
    engine = get_engine(os.getenv("DOCSEARCH_TEST_DB_URL"))
    try:
        run_migrations(engine)
        run_migrations(engine)

        with engine.connect() as conn:
            existing_tables = fetch_existing_tables(conn, REQUIRED_TABLES)
        assert REQUIRED_TABLES.issubset(existing_tables)
    finally:
        engine.dispose()
