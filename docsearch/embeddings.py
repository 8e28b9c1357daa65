from __future__ import annotations

import hashlib
import re
from typing import Any, Iterable, Protocol, Sequence

import numpy as np

from docsearch.exceptions import EmbeddingError

_VECTOR_DTYPE = np.dtype("<f4")


class Embedder(Protocol):
    """Simple embedding interface for pluggable models."""

    def embed(self, text: str) -> Sequence[float]:
        """Return an L2-normalized vector representation of ``text``."""


class Embedding:
    """Immutable float32 vector whose length is fixed at construction.

    Construction fails with :class:`EmbeddingError` when the values do not
    match ``dimension``, so every instance that exists has exactly ``D``
    finite components.
    """

    __slots__ = ("_values",)

    def __init__(self, values: Sequence[float] | np.ndarray, dimension: int) -> None:
        try:
            array = np.array(values, dtype=_VECTOR_DTYPE)
        except (TypeError, ValueError) as exc:
            raise EmbeddingError(f"Embedding is not a numeric vector: {exc}") from exc
        if array.ndim != 1 or array.shape[0] != dimension:
            raise EmbeddingError(
                f"Embedding dimension mismatch: expected {dimension}, got {array.size}"
            )
        if not np.all(np.isfinite(array)):
            raise EmbeddingError("Embedding contains non-finite values")
        array.setflags(write=False)
        self._values = array

    @property
    def dimension(self) -> int:
        return int(self._values.shape[0])

    @property
    def values(self) -> np.ndarray:
        return self._values

    def to_bytes(self) -> bytes:
        """Serialize as ``D * 4`` little-endian float32 bytes."""

        return self._values.tobytes()

    @classmethod
    def from_bytes(cls, data: bytes, dimension: int) -> "Embedding":
        if len(data) != dimension * _VECTOR_DTYPE.itemsize:
            raise EmbeddingError(
                f"Stored embedding has {len(data)} bytes, expected {dimension * _VECTOR_DTYPE.itemsize}"
            )
        return cls(np.frombuffer(data, dtype=_VECTOR_DTYPE), dimension)

    def __len__(self) -> int:
        return self.dimension

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Embedding):
            return NotImplemented
        return bool(np.array_equal(self._values, other._values))

    def __hash__(self) -> int:
        return hash(self._values.tobytes())

    def __repr__(self) -> str:
        return f"Embedding(dimension={self.dimension})"


def stack_embeddings(embeddings: Iterable[Embedding]) -> np.ndarray:
    """Return a contiguous ``(n, D)`` float32 matrix for FAISS calls."""

    rows = [embedding.values for embedding in embeddings]
    if not rows:
        return np.empty((0, 0), dtype="float32")
    return np.ascontiguousarray(np.vstack(rows), dtype="float32")


class HashingEmbedder:
    """Deterministic feature-hashing embedder.

    Tokens are hashed into ``dimension`` signed buckets and the result is
    L2-normalized. It needs no model download, which makes it suitable for
    tests and offline indexing where lexical overlap is a good enough proxy
    for similarity.
    """

    _token_pattern = re.compile(r"[\w]+", re.UNICODE)

    def __init__(self, dimension: int = 384) -> None:
        if dimension <= 0:
            raise ValueError("dimension must be positive")
        self.dimension = dimension

    def embed(self, text: str) -> list[float]:
        vector = np.zeros(self.dimension, dtype="float32")
        for token in self._token_pattern.findall(text.lower()):
            digest = hashlib.blake2b(token.encode("utf-8"), digest_size=8).digest()
            bucket = int.from_bytes(digest[:4], "little") % self.dimension
            sign = 1.0 if digest[4] & 1 else -1.0
            vector[bucket] += sign
        norm = float(np.linalg.norm(vector))
        if norm > 0:
            vector /= norm
        return vector.tolist()


class SentenceTransformerEmbedder:
    """Embedder backed by a ``sentence-transformers`` model loaded on first use."""

    def __init__(self, model_name: str = "all-MiniLM-L6-v2", *, device: str | None = None) -> None:
        self.model_name = model_name
        self.device = device
        self._model: Any | None = None

    @property
    def model(self) -> Any:
        if self._model is None:
            sentence_transformers = _load_sentence_transformers()
            self._model = sentence_transformers.SentenceTransformer(
                self.model_name, device=self.device
            )
        return self._model

    @property
    def dimension(self) -> int:
        return int(self.model.get_sentence_embedding_dimension())

    def embed(self, text: str) -> list[float]:
        vector = self.model.encode(text, normalize_embeddings=True, convert_to_numpy=True)
        return np.asarray(vector, dtype="float32").tolist()


__all__ = [
    "Embedder",
    "Embedding",
    "HashingEmbedder",
    "SentenceTransformerEmbedder",
    "stack_embeddings",
]


def _load_sentence_transformers():
    try:
        import sentence_transformers
    except ImportError as exc:  # pragma: no cover - optional dependency
        raise ImportError(
            "SentenceTransformerEmbedder requires the optional dependency "
            "'sentence-transformers'. Install it with `pip install sentence-transformers`."
        ) from exc
    return sentence_transformers
