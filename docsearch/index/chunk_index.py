"""Vector index over chunk embeddings, rebuilt from and published with the catalog."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from sqlalchemy.engine import Connection

from docsearch.concurrency import ReadWriteLock
from docsearch.embeddings import Embedding
from docsearch.index.faiss_index import FaissVectorIndex
from docsearch.storage import dao

logger = logging.getLogger(__name__)

_LOAD_BATCH_SIZE = 1024


def distance_to_similarity(distance: float) -> float:
    """Map a squared L2 distance onto ``(0, 1]``."""

    return 1.0 / (1.0 + max(distance, 0.0))


@dataclass(frozen=True)
class VectorHit:
    chunk_id: int
    distance: float

    @property
    def similarity(self) -> float:
        return distance_to_similarity(self.distance)


class ChunkVectorIndex:
    """k-NN store keyed by chunk id.

    The persisted ``chunk_vectors`` table is the source of truth; the FAISS
    index is derived from it on :meth:`load` and kept current through
    :meth:`publish`. Callers hold ``lock`` for reading around :meth:`search`
    and for writing around :meth:`publish`.
    """

    def __init__(self, dimension: int, *, backend: Optional[FaissVectorIndex] = None) -> None:
        self.dimension = dimension
        self._backend = backend or FaissVectorIndex(dimension)
        self.lock = ReadWriteLock()

    def __len__(self) -> int:
        return len(self._backend)

    def insert(self, chunk_id: int, embedding: Embedding) -> None:
        self._backend.insert(chunk_id, embedding)

    def delete(self, chunk_id: int) -> bool:
        return self._backend.delete(chunk_id)

    def load(self, conn: Connection) -> int:
        """Rebuild the in-memory index from the persisted vectors."""

        self._backend.reset()
        loaded = 0
        batch: List[Tuple[int, Embedding]] = []
        for chunk_id, blob in dao.iter_chunk_vectors(conn):
            batch.append((chunk_id, Embedding.from_bytes(blob, self.dimension)))
            if len(batch) >= _LOAD_BATCH_SIZE:
                loaded += self._backend.insert_many(batch)
                batch = []
        loaded += self._backend.insert_many(batch)
        logger.info("Loaded %d chunk vectors into the vector index", loaded)
        return loaded

    def publish(
        self,
        *,
        removed: Iterable[int] = (),
        added: Iterable[Tuple[int, Embedding]] = (),
    ) -> None:
        """Apply a committed change set to the in-memory index."""

        removed_count = self._backend.delete_many(removed)
        added_count = self._backend.insert_many(added)
        logger.debug("Published vectors: removed=%d added=%d", removed_count, added_count)

    def search(
        self,
        conn: Connection,
        query: Embedding,
        k: int,
        *,
        document_id: Optional[str] = None,
        page_number: Optional[int] = None,
    ) -> List[VectorHit]:
        """Return up to ``k`` hits ordered by ascending distance.

        Document and page filters are resolved to candidate chunk ids in the
        catalog, so only matching vectors are scored.
        """

        if k <= 0 or len(self._backend) == 0:
            return []

        candidate_ids: Optional[List[int]] = None
        if document_id is not None or page_number is not None:
            candidate_ids = dao.get_chunk_ids(
                conn, document_id=document_id, page_number=page_number
            )
            if not candidate_ids:
                return []

        hits = self._backend.search(query, k=k, candidate_ids=candidate_ids)
        return [VectorHit(chunk_id=chunk_id, distance=distance) for chunk_id, distance in hits]


__all__ = ["ChunkVectorIndex", "VectorHit", "distance_to_similarity"]
