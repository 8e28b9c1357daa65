"""Migration utilities for running Alembic migrations programmatically."""

from __future__ import annotations

from pathlib import Path

from alembic import command
from alembic.config import Config
from sqlalchemy.engine import Engine

from docsearch.storage.db import normalize_db_url

SCHEMA_DIR = Path(__file__).resolve().parent / "schema"


def get_alembic_config(url: str | None = None) -> Config:
    """Create an Alembic configuration pointing at the bundled schema scripts."""

    config = Config()
    config.set_main_option("script_location", str(SCHEMA_DIR))
    if url:
        # ConfigParser interpolation treats "%" specially.
        config.set_main_option("sqlalchemy.url", normalize_db_url(url).replace("%", "%%"))
    return config


def run_migrations(engine: Engine, revision: str = "head") -> None:
    """Upgrade the catalog behind ``engine`` to ``revision``.

    The engine's connection is shared with Alembic so in-memory SQLite
    databases are migrated in place.
    """

    config = get_alembic_config()
    with engine.begin() as connection:
        config.attributes["connection"] = connection
        command.upgrade(config, revision)


def downgrade_migrations(engine: Engine, revision: str = "-1") -> None:
    """Downgrade migrations."""

    config = get_alembic_config()
    with engine.begin() as connection:
        config.attributes["connection"] = connection
        command.downgrade(config, revision)
