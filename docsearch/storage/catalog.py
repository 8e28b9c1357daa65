"""Transactional catalog coordinating relational rows with the vector index."""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager, nullcontext
from typing import TYPE_CHECKING, ContextManager, Iterator, List, Sequence, Tuple

from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import StaticPool

from docsearch.embeddings import Embedding
from docsearch.exceptions import ConfigError, StorageError
from docsearch.storage import dao
from docsearch.storage.migrations import run_migrations
from docsearch.storage.models import Chunk, ChunkWithDocument, Document

if TYPE_CHECKING:
    from docsearch.index.chunk_index import ChunkVectorIndex

logger = logging.getLogger(__name__)

DIMENSION_SETTING = "embedding_dimension"


class DocumentCatalog:
    """Owns the catalog engine, the vector index and the single writer lock.

    Writes run one at a time. Each write transaction is committed and its
    vectors published while holding the write side of the vector index lock,
    so readers (which hold the read side) never observe a commit whose
    vectors are missing from the index, or the reverse.
    """

    def __init__(self, engine: Engine, vector_index: "ChunkVectorIndex") -> None:
        self.engine = engine
        self.vector_index = vector_index
        self._write_lock = threading.Lock()
        # A StaticPool hands every caller the same DBAPI connection, so reads
        # cannot overlap a write transaction.
        self._shared_connection = isinstance(engine.pool, StaticPool)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def initialize(self) -> int:
        """Migrate the schema, check the vector dimension and load vectors."""

        dimension = self.vector_index.dimension
        try:
            run_migrations(self.engine)
            with self.engine.begin() as conn:
                stored = dao.get_index_setting(conn, DIMENSION_SETTING)
                if stored is None:
                    dao.set_index_setting(conn, DIMENSION_SETTING, str(dimension))
                elif int(stored) != dimension:
                    raise ConfigError(
                        f"Index was created with embedding dimension {stored}, "
                        f"but {dimension} was configured"
                    )
            with self.vector_index.lock.write_locked(), self.engine.connect() as conn:
                return self.vector_index.load(conn)
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to open catalog: {exc}") from exc

    def close(self) -> None:
        self.engine.dispose()

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------
    def replace_document(
        self,
        document: Document,
        chunks: Sequence[Chunk],
        vectors: Sequence[Embedding],
    ) -> Tuple[Document, List[Chunk]]:
        """Store ``document`` with its chunks and vectors, replacing any prior version.

        A document already indexed under the same filename keeps its id; its
        old chunk rows and vectors are removed in the same transaction that
        inserts the new ones.
        """

        if len(chunks) != len(vectors):
            raise ValueError("Each chunk requires exactly one vector")

        with self._write_lock, self._exclusive():
            conn = self.engine.connect()
            try:
                transaction = conn.begin()
                try:
                    existing = dao.get_document_by_filename(conn, document.filename)
                    removed_ids: List[int] = []
                    if existing is not None:
                        document = document.model_copy(update={"id": existing.id})
                        _, removed_ids = dao.delete_document(conn, existing.id)

                    document = document.model_copy(update={"total_chunks": len(chunks)})
                    dao.insert_document(conn, document)
                    stored_chunks = dao.insert_chunks(
                        conn,
                        (chunk.model_copy(update={"document_id": document.id}) for chunk in chunks),
                    )
                    added = [
                        (int(chunk.id), vector)  # type: ignore[arg-type]
                        for chunk, vector in zip(stored_chunks, vectors)
                    ]
                    dao.insert_chunk_vectors(
                        conn, ((chunk_id, vector.to_bytes()) for chunk_id, vector in added)
                    )
                    with self._publishing():
                        transaction.commit()
                        self._publish(removed=removed_ids, added=added)
                except SQLAlchemyError as exc:
                    if transaction.is_active:
                        transaction.rollback()
                    raise StorageError(
                        f"Failed to store document {document.filename!r}: {exc}"
                    ) from exc
                except BaseException:
                    if transaction.is_active:
                        transaction.rollback()
                    raise
            finally:
                conn.close()

        logger.info(
            "Stored document %s (%s) with %d chunks%s",
            document.id,
            document.filename,
            len(stored_chunks),
            " (replaced)" if existing is not None else "",
        )
        return document, stored_chunks

    def delete_document(self, document_id: str) -> bool:
        """Remove a document, its chunks and their vectors; report whether it existed."""

        with self._write_lock, self._exclusive():
            conn = self.engine.connect()
            try:
                transaction = conn.begin()
                try:
                    existed, removed_ids = dao.delete_document(conn, document_id)
                    with self._publishing():
                        transaction.commit()
                        self._publish(removed=removed_ids, added=())
                except SQLAlchemyError as exc:
                    if transaction.is_active:
                        transaction.rollback()
                    raise StorageError(f"Failed to delete document {document_id}: {exc}") from exc
            finally:
                conn.close()

        if existed:
            logger.info("Deleted document %s (%d chunks)", document_id, len(removed_ids))
        return existed

    def _publish(self, *, removed: Sequence[int], added: Sequence[Tuple[int, Embedding]]) -> None:
        # The commit already happened; on failure the index is rebuilt from
        # the persisted vectors so it matches the catalog again.
        try:
            self.vector_index.publish(removed=removed, added=added)
        except Exception:
            logger.exception("Vector publication failed; reloading the vector index")
            with self.engine.connect() as conn:
                self.vector_index.load(conn)

    def _exclusive(self) -> ContextManager[None]:
        if self._shared_connection:
            return self.vector_index.lock.write_locked()
        return nullcontext()

    def _publishing(self) -> ContextManager[None]:
        if self._shared_connection:
            return nullcontext()
        return self.vector_index.lock.write_locked()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    @contextmanager
    def reading(self) -> Iterator[Connection]:
        """Yield a connection while holding the read side of the vector index lock."""

        lock = (
            self.vector_index.lock.write_locked()
            if self._shared_connection
            else self.vector_index.lock.read_locked()
        )
        with lock:
            try:
                with self.engine.connect() as conn:
                    yield conn
            except SQLAlchemyError as exc:
                raise StorageError(f"Catalog read failed: {exc}") from exc

    def list_documents(self) -> List[Document]:
        with self.reading() as conn:
            return dao.get_all_documents(conn)

    def get_document(self, document_id: str) -> Document | None:
        with self.reading() as conn:
            return dao.get_document(conn, document_id)

    def get_chunks(self, document_id: str) -> List[Chunk]:
        with self.reading() as conn:
            return dao.get_chunks_for_document(conn, document_id)

    def filenames(self) -> List[str]:
        with self.reading() as conn:
            return dao.get_all_filenames(conn)

    def filtered_chunks(
        self, *, document_id: str | None = None, page_number: int | None = None
    ) -> List[ChunkWithDocument]:
        with self.reading() as conn:
            return dao.get_filtered_chunks(conn, document_id=document_id, page_number=page_number)


__all__ = ["DIMENSION_SETTING", "DocumentCatalog"]
