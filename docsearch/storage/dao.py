"""Data-access layer for documents, chunks and persisted chunk vectors."""

from __future__ import annotations

import json
from typing import Iterable, Iterator, Sequence

from sqlalchemy import bindparam, text
from sqlalchemy.engine import Connection

from docsearch.storage.models import Chunk, ChunkWithDocument, Document

_DOCUMENT_COLUMNS = """
    id, filename, filepath, file_type, total_chunks, indexed_at,
    size_bytes, metadata_json AS metadata, content_hash
"""

_CHUNK_WITH_DOCUMENT_COLUMNS = """
    dc.id, dc.document_id, dc.chunk_index, dc.content, dc.page_number,
    dc.char_start, dc.char_end, d.filename, d.filepath, d.file_type
"""


def _chunk_filter_clause(document_id: str | None, page_number: int | None) -> tuple[str, dict]:
    clauses: list[str] = []
    params: dict = {}
    if document_id is not None:
        clauses.append("dc.document_id = :document_id")
        params["document_id"] = document_id
    if page_number is not None:
        clauses.append("dc.page_number = :page_number")
        params["page_number"] = page_number
    where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
    return where, params


# ─────────────────────────────────────────────────────────────────────────────
# Index settings
# ─────────────────────────────────────────────────────────────────────────────


def get_index_setting(conn: Connection, key: str) -> str | None:
    """Return a persisted index setting or ``None`` when unset."""

    sql = text("SELECT value FROM index_settings WHERE name = :key")
    return conn.execute(sql, {"key": key}).scalar_one_or_none()


def set_index_setting(conn: Connection, key: str, value: str) -> None:
    """Insert or replace an index setting."""

    conn.execute(text("DELETE FROM index_settings WHERE name = :key"), {"key": key})
    conn.execute(
        text("INSERT INTO index_settings (name, value) VALUES (:key, :value)"),
        {"key": key, "value": value},
    )


# ─────────────────────────────────────────────────────────────────────────────
# Documents
# ─────────────────────────────────────────────────────────────────────────────


def insert_document(conn: Connection, document: Document) -> Document:
    """Insert a document row and return the persisted model."""

    sql = text(
        """
        INSERT INTO documents (
            id, filename, filepath, file_type, total_chunks, indexed_at,
            size_bytes, metadata_json, content_hash
        )
        VALUES (
            :id, :filename, :filepath, :file_type, :total_chunks, :indexed_at,
            :size_bytes, :metadata_json, :content_hash
        )
        """
    )
    conn.execute(
        sql,
        {
            "id": document.id,
            "filename": document.filename,
            "filepath": document.filepath,
            "file_type": document.file_type,
            "total_chunks": document.total_chunks,
            "indexed_at": document.indexed_at.isoformat() if document.indexed_at else None,
            "size_bytes": document.size_bytes,
            "metadata_json": json.dumps(document.metadata, sort_keys=True),
            "content_hash": document.content_hash,
        },
    )
    return document


def get_document(conn: Connection, document_id: str) -> Document | None:
    """Fetch a document by identifier."""

    sql = text(f"SELECT {_DOCUMENT_COLUMNS} FROM documents WHERE id = :id")
    row = conn.execute(sql, {"id": document_id}).mappings().first()
    return Document.model_validate(dict(row)) if row else None


def get_document_by_filename(conn: Connection, filename: str) -> Document | None:
    """Fetch the document indexed under ``filename``."""

    sql = text(f"SELECT {_DOCUMENT_COLUMNS} FROM documents WHERE filename = :filename")
    row = conn.execute(sql, {"filename": filename}).mappings().first()
    return Document.model_validate(dict(row)) if row else None


def get_all_documents(conn: Connection) -> list[Document]:
    """Fetch all documents, most recently indexed first."""

    sql = text(f"SELECT {_DOCUMENT_COLUMNS} FROM documents ORDER BY indexed_at DESC, id")
    rows = conn.execute(sql).mappings().all()
    return [Document.model_validate(dict(row)) for row in rows]


def get_all_filenames(conn: Connection) -> list[str]:
    """Return indexed filenames, most recently indexed first."""

    sql = text("SELECT filename FROM documents ORDER BY indexed_at DESC, id")
    return list(conn.execute(sql).scalars().all())


def delete_document(conn: Connection, document_id: str) -> tuple[bool, list[int]]:
    """Delete a document with its chunks and vectors.

    Returns whether the document existed and the ids of the removed chunks.
    Runs inside the caller's transaction.
    """

    chunk_ids = list(
        conn.execute(
            text("SELECT id FROM document_chunks WHERE document_id = :document_id ORDER BY id"),
            {"document_id": document_id},
        )
        .scalars()
        .all()
    )
    conn.execute(
        text(
            """
            DELETE FROM chunk_vectors
            WHERE chunk_id IN (
                SELECT id FROM document_chunks WHERE document_id = :document_id
            )
            """
        ),
        {"document_id": document_id},
    )
    conn.execute(
        text("DELETE FROM document_chunks WHERE document_id = :document_id"),
        {"document_id": document_id},
    )
    result = conn.execute(
        text("DELETE FROM documents WHERE id = :document_id"),
        {"document_id": document_id},
    )
    return result.rowcount > 0, chunk_ids


# ─────────────────────────────────────────────────────────────────────────────
# Chunks and vectors
# ─────────────────────────────────────────────────────────────────────────────


def insert_chunks(conn: Connection, chunks: Iterable[Chunk]) -> list[Chunk]:
    """Insert chunks in order and return them with generated identifiers."""

    sql = text(
        """
        INSERT INTO document_chunks (
            document_id, chunk_index, content, page_number, char_start, char_end
        )
        VALUES (
            :document_id, :chunk_index, :content, :page_number, :char_start, :char_end
        )
        RETURNING id
        """
    )
    inserted: list[Chunk] = []
    for chunk in chunks:
        chunk_id = conn.execute(
            sql,
            {
                "document_id": chunk.document_id,
                "chunk_index": chunk.chunk_index,
                "content": chunk.content,
                "page_number": chunk.page_number,
                "char_start": chunk.char_start,
                "char_end": chunk.char_end,
            },
        ).scalar_one()
        inserted.append(chunk.model_copy(update={"id": int(chunk_id)}))
    return inserted


def insert_chunk_vectors(conn: Connection, vectors: Iterable[tuple[int, bytes]]) -> int:
    """Persist serialized embeddings keyed by chunk id."""

    rows = [{"chunk_id": chunk_id, "embedding": blob} for chunk_id, blob in vectors]
    if not rows:
        return 0
    conn.execute(
        text("INSERT INTO chunk_vectors (chunk_id, embedding) VALUES (:chunk_id, :embedding)"),
        rows,
    )
    return len(rows)


def get_chunks_for_document(conn: Connection, document_id: str) -> list[Chunk]:
    """Fetch all chunks for a document ordered by chunk sequence."""

    sql = text(
        """
        SELECT id, document_id, chunk_index, content, page_number, char_start, char_end
        FROM document_chunks
        WHERE document_id = :document_id
        ORDER BY chunk_index, id
        """
    )
    rows = conn.execute(sql, {"document_id": document_id}).mappings().all()
    return [Chunk.model_validate(dict(row)) for row in rows]


def get_chunks_by_ids(conn: Connection, chunk_ids: Sequence[int]) -> list[ChunkWithDocument]:
    """Fetch chunks joined with their documents, ordered by chunk id."""

    if not chunk_ids:
        return []

    sql = text(
        f"""
        SELECT {_CHUNK_WITH_DOCUMENT_COLUMNS}
        FROM document_chunks dc
        JOIN documents d ON d.id = dc.document_id
        WHERE dc.id IN :chunk_ids
        ORDER BY dc.id
        """
    ).bindparams(bindparam("chunk_ids", expanding=True))
    rows = conn.execute(sql, {"chunk_ids": [int(chunk_id) for chunk_id in chunk_ids]})
    return [ChunkWithDocument.model_validate(dict(row)) for row in rows.mappings()]


def get_filtered_chunks(
    conn: Connection,
    *,
    document_id: str | None = None,
    page_number: int | None = None,
) -> list[ChunkWithDocument]:
    """Fetch every chunk passing the optional document and page filters."""

    where, params = _chunk_filter_clause(document_id, page_number)
    sql = text(
        f"""
        SELECT {_CHUNK_WITH_DOCUMENT_COLUMNS}
        FROM document_chunks dc
        JOIN documents d ON d.id = dc.document_id
        {where}
        ORDER BY dc.document_id, dc.chunk_index
        """
    )
    rows = conn.execute(sql, params).mappings().all()
    return [ChunkWithDocument.model_validate(dict(row)) for row in rows]


def get_chunk_ids(
    conn: Connection,
    *,
    document_id: str | None = None,
    page_number: int | None = None,
) -> list[int]:
    """Return ids of the chunks passing the filters (uses the chunk indexes)."""

    where, params = _chunk_filter_clause(document_id, page_number)
    sql = text(f"SELECT dc.id FROM document_chunks dc {where} ORDER BY dc.id")
    return [int(chunk_id) for chunk_id in conn.execute(sql, params).scalars().all()]


def iter_chunk_vectors(conn: Connection) -> Iterator[tuple[int, bytes]]:
    """Yield ``(chunk_id, embedding_bytes)`` for every persisted vector."""

    result = conn.execute(text("SELECT chunk_id, embedding FROM chunk_vectors ORDER BY chunk_id"))
    for chunk_id, blob in result:
        yield int(chunk_id), bytes(blob)


def count_chunks(conn: Connection, document_id: str | None = None) -> int:
    """Count chunk rows, optionally for one document."""

    where, params = _chunk_filter_clause(document_id, None)
    sql = text(f"SELECT COUNT(*) FROM document_chunks dc {where}")
    return int(conn.execute(sql, params).scalar_one())


def count_vectors(conn: Connection, document_id: str | None = None) -> int:
    """Count persisted vectors, optionally for one document's chunks."""

    if document_id is None:
        return int(conn.execute(text("SELECT COUNT(*) FROM chunk_vectors")).scalar_one())
    sql = text(
        """
        SELECT COUNT(*)
        FROM chunk_vectors cv
        JOIN document_chunks dc ON dc.id = cv.chunk_id
        WHERE dc.document_id = :document_id
        """
    )
    return int(conn.execute(sql, {"document_id": document_id}).scalar_one())


def count_orphaned_vectors(conn: Connection) -> int:
    """Count vectors whose chunk row no longer exists."""

    sql = text(
        """
        SELECT COUNT(*)
        FROM chunk_vectors cv
        LEFT JOIN document_chunks dc ON dc.id = cv.chunk_id
        WHERE dc.id IS NULL
        """
    )
    return int(conn.execute(sql).scalar_one())
