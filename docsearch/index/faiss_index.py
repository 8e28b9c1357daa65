from __future__ import annotations

from typing import Any, Iterable, List, Tuple

import numpy as np

from docsearch.embeddings import Embedding, stack_embeddings


class FaissVectorIndex:
    """Exact L2 vector index built on FAISS, keyed by integer chunk ids."""

    def __init__(self, dimension: int) -> None:
        if dimension <= 0:
            raise ValueError("dimension must be positive")
        self.dimension = dimension
        self._faiss = _load_faiss()
        self._index: Any = self._new_index()

    def _new_index(self) -> Any:
        return self._faiss.IndexIDMap2(self._faiss.IndexFlatL2(self.dimension))

    def __len__(self) -> int:
        return int(self._index.ntotal)

    def _check_dimension(self, embedding: Embedding) -> None:
        if embedding.dimension != self.dimension:
            raise ValueError(
                f"Embedding dimension mismatch: expected {self.dimension}, got {embedding.dimension}"
            )

    def insert(self, chunk_id: int, embedding: Embedding) -> None:
        self.insert_many([(chunk_id, embedding)])

    def insert_many(self, items: Iterable[Tuple[int, Embedding]]) -> int:
        pairs = list(items)
        if not pairs:
            return 0
        for _chunk_id, embedding in pairs:
            self._check_dimension(embedding)
        ids = np.array([chunk_id for chunk_id, _embedding in pairs], dtype="int64")
        self._index.add_with_ids(stack_embeddings(embedding for _id, embedding in pairs), ids)
        return len(pairs)

    def delete(self, chunk_id: int) -> bool:
        return self.delete_many([chunk_id]) > 0

    def delete_many(self, chunk_ids: Iterable[int]) -> int:
        ids = np.array(sorted(set(chunk_ids)), dtype="int64")
        if ids.size == 0 or len(self) == 0:
            return 0
        return int(self._index.remove_ids(ids))

    def reset(self) -> None:
        self._index = self._new_index()

    def search(
        self,
        query: Embedding,
        *,
        k: int = 10,
        candidate_ids: Iterable[int] | None = None,
    ) -> List[Tuple[int, float]]:
        """Return ``(chunk_id, squared_l2_distance)`` pairs, nearest first.

        When ``candidate_ids`` is given only those vectors are scored.
        """

        if k <= 0 or len(self) == 0:
            return []
        self._check_dimension(query)
        matrix = stack_embeddings([query])

        if candidate_ids is None:
            distances, labels = self._index.search(matrix, min(k, len(self)))
        else:
            ids = np.array(sorted(set(candidate_ids)), dtype="int64")
            if ids.size == 0:
                return []
            selector = self._faiss.IDSelectorBatch(ids.size, self._faiss.swig_ptr(ids))
            params = self._faiss.SearchParameters()
            params.sel = selector
            distances, labels = self._index.search(
                matrix, min(k, ids.size, len(self)), params=params
            )

        results: List[Tuple[int, float]] = []
        for distance, label in zip(distances[0], labels[0]):
            if label == -1:
                continue
            results.append((int(label), float(distance)))
        return results


__all__ = ["FaissVectorIndex"]


def _load_faiss():
    try:
        import faiss
    except ImportError as exc:  # pragma: no cover - dependency is declared
        raise ImportError(
            "Vector search requires the dependency 'faiss-cpu'. "
            "Install it with `pip install faiss-cpu`."
        ) from exc
    return faiss
