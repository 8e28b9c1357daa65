"""Relational catalog of documents, chunks and persisted chunk vectors."""

from .catalog import DocumentCatalog
from .db import fetch_existing_tables, get_engine, normalize_db_url
from .migrations import run_migrations
from .models import Chunk, ChunkWithDocument, Document

__all__ = [
    "Chunk",
    "ChunkWithDocument",
    "Document",
    "DocumentCatalog",
    "fetch_existing_tables",
    "get_engine",
    "normalize_db_url",
    "run_migrations",
]
