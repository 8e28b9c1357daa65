"""Primary entrypoint for indexing and searching documents."""

from __future__ import annotations

import logging
import threading
from dataclasses import replace
from enum import Enum
from pathlib import Path
from typing import Iterable, List, Optional

from docsearch.chunking import TextChunker, TextSpan
from docsearch.config import SearchConfig
from docsearch.embeddings import Embedder, SentenceTransformerEmbedder
from docsearch.exceptions import ConfigError, DocSearchError, NotInitializedError
from docsearch.index import ChunkVectorIndex
from docsearch.models import (
    STAGE_PARSING,
    BatchIndexProgress,
    BatchProgressCallback,
    DocumentMeta,
    IndexProgress,
    IndexResult,
    ProgressCallback,
)
from docsearch.parsing import ParsedDocument, ParserRegistry, default_registry
from docsearch.pipeline import IndexingPipeline
from docsearch.retrieval import (
    FuzzyMatcher,
    HybridRetrievalConfig,
    HybridRetriever,
    SearchMode,
    SearchResult,
)
from docsearch.storage import Chunk, Document, DocumentCatalog, get_engine

logger = logging.getLogger(__name__)


class IndexState(str, Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"


class SearchEngine:
    """Coordinates parsing, indexing, and hybrid retrieval over one index."""

    def __init__(
        self,
        config: Optional[SearchConfig] = None,
        *,
        embedder: Optional[Embedder] = None,
        parsers: Optional[ParserRegistry] = None,
    ) -> None:
        self.config = config or SearchConfig()
        self.embedder = embedder
        self.parsers = parsers or default_registry()
        self.chunker = TextChunker(
            max_chars=self.config.chunk_size, overlap_chars=self.config.chunk_overlap
        )
        self._state = IndexState.UNINITIALIZED
        self._state_lock = threading.Lock()
        self._catalog: Optional[DocumentCatalog] = None
        self._pipeline: Optional[IndexingPipeline] = None
        self._retriever: Optional[HybridRetriever] = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    @property
    def state(self) -> IndexState:
        return self._state

    @property
    def is_ready(self) -> bool:
        return self._state is IndexState.READY

    def initialize(self) -> None:
        """Open the catalog and load the vector index. Safe to call repeatedly."""

        with self._state_lock:
            if self._state is IndexState.READY:
                return
            self._state = IndexState.INITIALIZING
            logger.info("Initializing search index")
            catalog: Optional[DocumentCatalog] = None
            try:
                embedder = self.embedder or SentenceTransformerEmbedder(self.config.embedding_model)
                self._check_embedder_dimension(embedder)
                self._ensure_data_dir()
                db_engine = get_engine(self.config.resolved_db_url)
                catalog = DocumentCatalog(
                    db_engine, ChunkVectorIndex(self.config.embedding_dimension)
                )
                vector_count = catalog.initialize()
            except Exception:
                self._state = IndexState.UNINITIALIZED
                if catalog is not None:
                    catalog.close()
                logger.exception("Search index initialization failed")
                raise

            self.embedder = embedder
            self._catalog = catalog
            self._pipeline = IndexingPipeline(
                catalog,
                embedder,
                chunker=self.chunker,
                embed_workers=self.config.embed_workers,
                embed_timeout_s=self.config.embed_timeout_s,
            )
            self._retriever = HybridRetriever(
                catalog,
                embedder,
                config=HybridRetrievalConfig(
                    semantic_weight=self.config.semantic_weight,
                    fuzzy_weight=self.config.fuzzy_weight,
                    fuzzy_threshold=self.config.fuzzy_threshold,
                ),
            )
            self._state = IndexState.READY
            logger.info("Search index ready (%d vectors)", vector_count)

    def close(self) -> None:
        with self._state_lock:
            if self._catalog is not None:
                self._catalog.close()
            self._catalog = None
            self._pipeline = None
            self._retriever = None
            self._state = IndexState.UNINITIALIZED

    def __enter__(self) -> "SearchEngine":
        self.initialize()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _ensure_data_dir(self) -> None:
        if self.config.db_url:
            return
        path = self.config.data_dir
        if path.exists() and not path.is_dir():
            raise ConfigError(f"Configured path is not a directory: {path}")
        path.mkdir(parents=True, exist_ok=True)

    def _check_embedder_dimension(self, embedder: Embedder) -> None:
        # Embedders that do not advertise a dimension are checked per vector.
        try:
            dimension = getattr(embedder, "dimension", None)
        except Exception as exc:
            raise ConfigError(f"Could not determine the embedder's dimension: {exc}") from exc
        if dimension is None:
            return
        if int(dimension) != self.config.embedding_dimension:
            raise ConfigError(
                f"Embedder produces {dimension}-dimensional vectors, "
                f"but embedding_dimension is {self.config.embedding_dimension}"
            )

    def _require_ready(self) -> None:
        if self._state is not IndexState.READY:
            raise NotInitializedError(
                f"Search index is {self._state.value}; call initialize() first"
            )

    @property
    def catalog(self) -> DocumentCatalog:
        self._require_ready()
        assert self._catalog is not None
        return self._catalog

    @property
    def pipeline(self) -> IndexingPipeline:
        self._require_ready()
        assert self._pipeline is not None
        return self._pipeline

    @property
    def retriever(self) -> HybridRetriever:
        self._require_ready()
        assert self._retriever is not None
        return self._retriever

    # ------------------------------------------------------------------
    # Indexing
    # ------------------------------------------------------------------
    def index_document(
        self,
        file_path: Path | str,
        progress: Optional[ProgressCallback] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> IndexResult:
        """Parse, chunk, embed and store one file.

        Raises :class:`ParseError` or an :class:`IndexError` subclass on
        failure; the catalog is unchanged in that case.
        """

        self._require_ready()
        if progress is not None:
            progress(IndexProgress(STAGE_PARSING, 0))
        parsed = self.parsers.parse(file_path)
        return self._index_parsed(parsed, progress=progress, cancel_event=cancel_event)

    def index_text(
        self,
        text: str,
        filename: str,
        *,
        filepath: Optional[str] = None,
        file_type: str = "txt",
        metadata: Optional[dict] = None,
        progress: Optional[ProgressCallback] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> IndexResult:
        """Index already extracted ``text`` under ``filename``."""

        self._require_ready()
        parsed = ParsedDocument(
            filename=filename,
            filepath=filepath or filename,
            file_type=file_type,
            full_text=text,
            size_bytes=len(text.encode("utf-8")),
            metadata=dict(metadata or {}),
        )
        return self._index_parsed(parsed, progress=progress, cancel_event=cancel_event)

    def index_documents(
        self,
        file_paths: Iterable[Path | str],
        progress: Optional[BatchProgressCallback] = None,
    ) -> List[IndexResult]:
        """Index several files; a failing file yields a failed result and the batch continues."""

        self._require_ready()
        paths = [Path(path) for path in file_paths]
        total = len(paths)
        results: List[IndexResult] = []

        for position, path in enumerate(paths):

            def report_file(file_progress: IndexProgress) -> None:
                if progress is None:
                    return
                overall = (position * 100 + file_progress.percentage) // total
                progress(
                    BatchIndexProgress(
                        current_file=position + 1,
                        total_files=total,
                        current_filename=path.name,
                        overall_percentage=overall,
                        file_progress=file_progress,
                    )
                )

            try:
                result = self.index_document(path, progress=report_file)
            except DocSearchError as exc:
                logger.warning("Failed to index %s: %s", path, exc)
                result = IndexResult(filepath=str(path)).finish(error=str(exc))
            except Exception as exc:
                logger.exception("Unexpected error while indexing %s", path)
                result = IndexResult(filepath=str(path)).finish(
                    error=f"{type(exc).__name__}: {exc}"
                )
            results.append(result)

        if progress is not None:
            progress(
                BatchIndexProgress(
                    current_file=total,
                    total_files=total,
                    current_filename=paths[-1].name if paths else "",
                    overall_percentage=100,
                    is_completed=True,
                )
            )
        succeeded = sum(1 for result in results if result.success)
        logger.info("Batch indexing finished: %d of %d documents indexed", succeeded, total)
        return results

    def _index_parsed(
        self,
        parsed: ParsedDocument,
        *,
        progress: Optional[ProgressCallback],
        cancel_event: Optional[threading.Event],
    ) -> IndexResult:
        spans = [self._with_page(parsed, span) for span in self.chunker.split(parsed.full_text)]
        return self.pipeline.index_document(
            DocumentMeta.from_parsed(parsed),
            parsed.full_text,
            spans,
            progress=progress,
            cancel_event=cancel_event,
        )

    @staticmethod
    def _with_page(parsed: ParsedDocument, span: TextSpan) -> TextSpan:
        return replace(span, page_number=parsed.page_for_offset(span.char_start))

    def delete_document(self, document_id: str) -> bool:
        return self.pipeline.delete_document(document_id)

    # ------------------------------------------------------------------
    # Retrieval
    # ------------------------------------------------------------------
    def search(
        self,
        query: str,
        limit: int = 10,
        mode: SearchMode | str = SearchMode.HYBRID,
        document_id: Optional[str] = None,
        page_number: Optional[int] = None,
    ) -> List[SearchResult]:
        return self.retriever.search(
            query, limit, mode, document_id=document_id, page_number=page_number
        )

    def suggest_corrections(self, query: str, max_suggestions: int = 5) -> List[str]:
        """Suggest filename terms close to ``query``."""

        filenames = self.catalog.filenames()
        return FuzzyMatcher().suggest_corrections(query, filenames, max_suggestions)

    def list_documents(self) -> List[Document]:
        return self.catalog.list_documents()

    def get_document(self, document_id: str) -> Optional[Document]:
        return self.catalog.get_document(document_id)

    def get_chunks(self, document_id: str) -> List[Chunk]:
        return self.catalog.get_chunks(document_id)


__all__ = ["IndexState", "SearchEngine"]
