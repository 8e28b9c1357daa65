from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Dict, Iterable, List, Optional

from sqlalchemy.engine import Connection

from docsearch.embeddings import Embedder, Embedding
from docsearch.exceptions import EmbeddingError
from docsearch.storage import dao
from docsearch.storage.models import ChunkWithDocument

from .fuzzy import FuzzyMatcher
from .types import MatchType, SearchMode, SearchResult

if TYPE_CHECKING:  # pragma: no cover
    from docsearch.storage.catalog import DocumentCatalog

logger = logging.getLogger(__name__)


@dataclass
class HybridRetrievalConfig:
    semantic_weight: float = 0.7
    fuzzy_weight: float = 0.3
    fuzzy_threshold: int = 70
    candidate_multiplier: int = 2


def fuse_results(
    semantic: Iterable[SearchResult],
    fuzzy: Iterable[SearchResult],
    *,
    limit: int,
    semantic_weight: float = 0.7,
    fuzzy_weight: float = 0.3,
) -> List[SearchResult]:
    """Merge semantic and fuzzy candidates into one ranking.

    A chunk found by both retrievers is scored
    ``semantic_weight * semantic + fuzzy_weight * fuzzy`` and tagged
    :attr:`MatchType.BOTH`; a chunk found by one keeps that retriever's raw
    score. Results are ordered by descending combined score, ties broken by
    chunk id, and cut to ``limit``.
    """

    if limit <= 0:
        return []

    fused: Dict[int, SearchResult] = {result.chunk_id: result for result in semantic}
    for result in fuzzy:
        existing = fused.get(result.chunk_id)
        if existing is None:
            fused[result.chunk_id] = result
            continue
        semantic_score = existing.semantic_score or 0.0
        fuzzy_score = result.fuzzy_score or 0.0
        fused[result.chunk_id] = replace(
            existing,
            fuzzy_score=fuzzy_score,
            combined_score=semantic_weight * semantic_score + fuzzy_weight * fuzzy_score,
            match_type=MatchType.BOTH,
        )

    ranked = sorted(fused.values(), key=lambda item: (-item.combined_score, item.chunk_id))
    return ranked[:limit]


def _result_from_chunk(
    chunk: ChunkWithDocument,
    *,
    score: float,
    match_type: MatchType,
) -> SearchResult:
    return SearchResult(
        chunk_id=int(chunk.id),  # type: ignore[arg-type]
        document_id=chunk.document_id,
        content=chunk.content,
        chunk_index=chunk.chunk_index,
        page_number=chunk.page_number,
        filename=chunk.filename,
        filepath=chunk.filepath,
        file_type=chunk.file_type,
        semantic_score=score if match_type is MatchType.SEMANTIC else None,
        fuzzy_score=score if match_type is MatchType.FUZZY else None,
        combined_score=score,
        match_type=match_type,
    )


class HybridRetriever:
    """Combine FAISS vector search with fuzzy matching over stored chunk text."""

    def __init__(
        self,
        catalog: "DocumentCatalog",
        embedder: Embedder,
        *,
        config: Optional[HybridRetrievalConfig] = None,
    ) -> None:
        self.catalog = catalog
        self.embedder = embedder
        self.config = config or HybridRetrievalConfig()
        self.matcher = FuzzyMatcher(threshold=self.config.fuzzy_threshold)

    def search(
        self,
        query: str,
        limit: int = 10,
        mode: SearchMode | str = SearchMode.HYBRID,
        *,
        document_id: Optional[str] = None,
        page_number: Optional[int] = None,
    ) -> List[SearchResult]:
        """Rank chunks for ``query``.

        Both retrieval phases read through one catalog connection under one
        hold of the read lock, so a hybrid result never mixes chunks from
        before and after a concurrent commit.
        """

        mode = SearchMode(mode)
        if not query or not query.strip() or limit <= 0:
            return []

        use_semantic = mode in (SearchMode.SEMANTIC, SearchMode.HYBRID)
        use_fuzzy = mode in (SearchMode.FUZZY, SearchMode.HYBRID)
        query_vector = self._embed_query(query) if use_semantic else None

        semantic: List[SearchResult] = []
        fuzzy: List[SearchResult] = []
        with self.catalog.reading() as conn:
            if query_vector is not None:
                k = limit * self.config.candidate_multiplier if mode is SearchMode.HYBRID else limit
                semantic = self._semantic_candidates(
                    conn, query_vector, k, document_id=document_id, page_number=page_number
                )
            if use_fuzzy:
                fuzzy = self._fuzzy_candidates(
                    conn, query, document_id=document_id, page_number=page_number
                )

        results = fuse_results(
            semantic,
            fuzzy,
            limit=limit,
            semantic_weight=self.config.semantic_weight,
            fuzzy_weight=self.config.fuzzy_weight,
        )
        logger.debug(
            "Search %r (%s): %d semantic, %d fuzzy, %d returned",
            query,
            mode.value,
            len(semantic),
            len(fuzzy),
            len(results),
        )
        return results

    def semantic_search(
        self,
        query: str,
        k: int,
        *,
        document_id: Optional[str] = None,
        page_number: Optional[int] = None,
    ) -> List[SearchResult]:
        """Return the ``k`` nearest chunks scored by ``1 / (1 + distance)``."""

        query_vector = self._embed_query(query)
        with self.catalog.reading() as conn:
            return self._semantic_candidates(
                conn, query_vector, k, document_id=document_id, page_number=page_number
            )

    def fuzzy_search(
        self,
        query: str,
        *,
        document_id: Optional[str] = None,
        page_number: Optional[int] = None,
    ) -> List[SearchResult]:
        """Scan chunks passing the filters and keep those above the fuzzy threshold."""

        with self.catalog.reading() as conn:
            return self._fuzzy_candidates(
                conn, query, document_id=document_id, page_number=page_number
            )

    def _semantic_candidates(
        self,
        conn: Connection,
        query_vector: Embedding,
        k: int,
        *,
        document_id: Optional[str],
        page_number: Optional[int],
    ) -> List[SearchResult]:
        hits = self.catalog.vector_index.search(
            conn, query_vector, k, document_id=document_id, page_number=page_number
        )
        chunk_map = {
            chunk.id: chunk
            for chunk in dao.get_chunks_by_ids(conn, [hit.chunk_id for hit in hits])
        }
        results: List[SearchResult] = []
        for hit in hits:
            chunk = chunk_map.get(hit.chunk_id)
            if chunk is None:
                continue
            results.append(
                _result_from_chunk(chunk, score=hit.similarity, match_type=MatchType.SEMANTIC)
            )
        return results

    def _fuzzy_candidates(
        self,
        conn: Connection,
        query: str,
        *,
        document_id: Optional[str],
        page_number: Optional[int],
    ) -> List[SearchResult]:
        chunks = dao.get_filtered_chunks(conn, document_id=document_id, page_number=page_number)
        results: List[SearchResult] = []
        for chunk in chunks:
            score = self.matcher.score(query, chunk.content)
            if score >= self.matcher.threshold:
                results.append(
                    _result_from_chunk(chunk, score=score / 100.0, match_type=MatchType.FUZZY)
                )
        return results

    def _embed_query(self, query: str) -> Embedding:
        try:
            values = self.embedder.embed(query)
        except EmbeddingError:
            raise
        except Exception as exc:
            raise EmbeddingError(f"Failed to embed query: {exc}") from exc
        return Embedding(values, self.catalog.vector_index.dimension)


__all__ = ["HybridRetrievalConfig", "HybridRetriever", "fuse_results"]
