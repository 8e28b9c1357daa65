"""Chunk, embed and store documents as one atomic unit."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from datetime import datetime, timezone
from typing import TYPE_CHECKING, List, Optional, Sequence

from docsearch.chunking import TextChunker, TextSpan
from docsearch.embeddings import Embedder, Embedding
from docsearch.exceptions import EmbeddingError, IndexCancelledError
from docsearch.models import (
    STAGE_COMPLETED,
    STAGE_EMBEDDING,
    STAGE_INDEXING,
    DocumentMeta,
    IndexProgress,
    IndexResult,
    ProgressCallback,
)
from docsearch.storage.models import Chunk, Document, compute_content_hash, generate_document_id

if TYPE_CHECKING:  # pragma: no cover
    from docsearch.storage.catalog import DocumentCatalog

logger = logging.getLogger(__name__)

EMBEDDING_PROGRESS_START = 30
EMBEDDING_PROGRESS_SPAN = 40


class IndexingPipeline:
    """Turn extracted text into stored chunks and vectors.

    Embeddings for a document are computed concurrently before anything is
    written. Any failure, timeout or cancellation during that phase leaves the
    catalog untouched; the write phase is a single catalog transaction.
    """

    def __init__(
        self,
        catalog: "DocumentCatalog",
        embedder: Embedder,
        *,
        chunker: Optional[TextChunker] = None,
        embed_workers: int = 4,
        embed_timeout_s: float = 30.0,
    ) -> None:
        if embed_workers <= 0:
            raise ValueError("embed_workers must be positive")
        self.catalog = catalog
        self.embedder = embedder
        self.chunker = chunker or TextChunker()
        self.embed_workers = embed_workers
        self.embed_timeout_s = embed_timeout_s

    @property
    def dimension(self) -> int:
        return self.catalog.vector_index.dimension

    def index_document(
        self,
        meta: DocumentMeta,
        full_text: str,
        spans: Optional[Sequence[TextSpan]] = None,
        *,
        progress: Optional[ProgressCallback] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> IndexResult:
        """Embed ``spans`` (or the chunker's split of ``full_text``) and store them.

        A document already stored under ``meta.filename`` is replaced and keeps
        its id. Raises :class:`EmbeddingError`, :class:`StorageError` or
        :class:`IndexCancelledError`.
        """

        result = IndexResult(filepath=meta.filepath)
        if spans is None:
            spans = self.chunker.split(full_text)

        vectors = self.embed_texts(
            [span.content for span in spans], progress=progress, cancel_event=cancel_event
        )
        _check_cancelled(cancel_event)
        _report(progress, STAGE_INDEXING, 70, len(spans), len(spans))

        document = Document(
            id=generate_document_id(),
            filename=meta.filename,
            filepath=meta.filepath,
            file_type=meta.file_type,
            total_chunks=len(spans),
            indexed_at=datetime.now(timezone.utc),
            size_bytes=meta.size_bytes,
            metadata=meta.metadata,
            content_hash=compute_content_hash(full_text),
        )
        chunks = [
            Chunk(
                document_id=document.id,
                chunk_index=position,
                content=span.content,
                page_number=span.page_number,
                char_start=span.char_start,
                char_end=span.char_end,
            )
            for position, span in enumerate(spans)
        ]
        stored, stored_chunks = self.catalog.replace_document(document, chunks, vectors)

        result.document_id = stored.id
        result.total_chunks = len(stored_chunks)
        result.finish()
        _report(progress, STAGE_COMPLETED, 100, len(spans), len(spans))
        logger.info(
            "Indexed %s as %s: %d chunks in %.1f ms",
            meta.filename,
            stored.id,
            result.total_chunks,
            result.duration_ms,
        )
        return result

    def delete_document(self, document_id: str) -> bool:
        return self.catalog.delete_document(document_id)

    def embed_texts(
        self,
        texts: Sequence[str],
        *,
        progress: Optional[ProgressCallback] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> List[Embedding]:
        """Embed ``texts`` on a bounded thread pool and return vectors in input order."""

        if not texts:
            return []

        total = len(texts)
        pool = ThreadPoolExecutor(
            max_workers=min(self.embed_workers, total), thread_name_prefix="docsearch-embed"
        )
        try:
            futures = [pool.submit(self.embedder.embed, text) for text in texts]
            vectors: List[Embedding] = []
            for position, future in enumerate(futures):
                _check_cancelled(cancel_event)
                try:
                    values = future.result(timeout=self.embed_timeout_s)
                except FutureTimeoutError as exc:
                    raise EmbeddingError(
                        f"Embedding chunk {position} timed out after {self.embed_timeout_s}s"
                    ) from exc
                except EmbeddingError:
                    raise
                except Exception as exc:
                    raise EmbeddingError(f"Failed to embed chunk {position}: {exc}") from exc

                vectors.append(Embedding(values, self.dimension))
                done = position + 1
                _report(
                    progress,
                    STAGE_EMBEDDING,
                    EMBEDDING_PROGRESS_START + EMBEDDING_PROGRESS_SPAN * done // total,
                    done,
                    total,
                )
            return vectors
        finally:
            # Workers still blocked in embed() are abandoned, not joined.
            pool.shutdown(wait=False, cancel_futures=True)


def _check_cancelled(cancel_event: Optional[threading.Event]) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise IndexCancelledError("Indexing was cancelled")


def _report(
    progress: Optional[ProgressCallback],
    stage: str,
    percentage: int,
    current_chunk: int,
    total_chunks: int,
) -> None:
    if progress is not None:
        progress(IndexProgress(stage, percentage, current_chunk, total_chunks))


__all__ = ["IndexingPipeline"]
