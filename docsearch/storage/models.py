"""Pydantic models representing catalog entities."""

from __future__ import annotations

import hashlib
import json
import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Document(BaseModel):
    """Metadata describing one indexed document."""

    model_config = ConfigDict(from_attributes=True)

    id: str  # UUID string, stable across reindexing of the same filename
    filename: str
    filepath: str
    file_type: str
    total_chunks: int = Field(0, ge=0)
    indexed_at: datetime | None = None
    size_bytes: int | None = None
    metadata: dict[str, str] = Field(default_factory=dict)
    content_hash: str | None = None

    @field_validator("metadata", mode="before")
    @classmethod
    def _decode_metadata(cls, value: Any) -> Any:
        if value is None:
            return {}
        if isinstance(value, (str, bytes)):
            return json.loads(value)
        return value


class Chunk(BaseModel):
    """A stored chunk of a document's extracted text."""

    model_config = ConfigDict(from_attributes=True)

    id: int | None = None  # Surrogate key assigned on insert
    document_id: str
    chunk_index: int = Field(ge=0)
    content: str
    page_number: int | None = None
    char_start: int | None = None
    char_end: int | None = None


class ChunkWithDocument(Chunk):
    """Chunk row joined with the owning document's descriptive fields."""

    filename: str
    filepath: str
    file_type: str


# ─────────────────────────────────────────────────────────────────────────────
# Utility functions
# ─────────────────────────────────────────────────────────────────────────────


def generate_document_id() -> str:
    """Generate a new UUID for a document."""
    return str(uuid.uuid4())


def compute_content_hash(content: str) -> str:
    """Compute a SHA-256 hash of extracted text for fingerprinting."""
    return hashlib.sha256(content.encode("utf-8")).hexdigest()
