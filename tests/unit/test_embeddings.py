import math

import numpy as np
import pytest

from docsearch.embeddings import Embedding, HashingEmbedder, stack_embeddings
from docsearch.exceptions import EmbeddingError


def test_embedding_rejects_wrong_dimension() -> None:
    with pytest.raises(EmbeddingError, match="expected 4, got 3"):
        Embedding([0.1, 0.2, 0.3], 4)


def test_embedding_rejects_non_finite_values() -> None:
    with pytest.raises(EmbeddingError):
        Embedding([0.1, float("nan"), 0.3], 3)


def test_embedding_rejects_non_numeric_values() -> None:
    with pytest.raises(EmbeddingError):
        Embedding(["a", "b"], 2)


def test_embedding_is_read_only() -> None:
    embedding = Embedding([1.0, 2.0], 2)

    with pytest.raises(ValueError):
        embedding.values[0] = 5.0


def test_serialized_form_is_little_endian_float32() -> None:
    embedding = Embedding([1.0, -2.5, 0.25], 3)

    data = embedding.to_bytes()

    assert len(data) == 12
    assert np.frombuffer(data, dtype="<f4").tolist() == [1.0, -2.5, 0.25]
    assert Embedding.from_bytes(data, 3) == embedding


def test_from_bytes_rejects_truncated_data() -> None:
    with pytest.raises(EmbeddingError):
        Embedding.from_bytes(b"\x00" * 10, 3)


def test_stack_embeddings_builds_contiguous_matrix() -> None:
    matrix = stack_embeddings([Embedding([1, 0], 2), Embedding([0, 1], 2)])

    assert matrix.shape == (2, 2)
    assert matrix.dtype == np.float32
    assert matrix.flags["C_CONTIGUOUS"]


def test_hashing_embedder_is_deterministic_and_normalized() -> None:
    embedder = HashingEmbedder(dimension=32)

    first = embedder.embed("Hybrid search over documents")
    second = embedder.embed("hybrid SEARCH over documents")

    assert len(first) == 32
    assert first == second
    assert math.isclose(float(np.linalg.norm(first)), 1.0, rel_tol=1e-5)


def test_hashing_embedder_returns_zero_vector_for_empty_text() -> None:
    assert HashingEmbedder(dimension=8).embed("   ") == [0.0] * 8


def test_similar_texts_are_closer_than_unrelated_texts() -> None:
    embedder = HashingEmbedder(dimension=256)
    query = np.array(embedder.embed("quarterly revenue report"))
    related = np.array(embedder.embed("the quarterly revenue report for 2023"))
    unrelated = np.array(embedder.embed("mountain hiking trail guide"))

    assert np.linalg.norm(query - related) < np.linalg.norm(query - unrelated)
