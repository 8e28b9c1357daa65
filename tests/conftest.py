import sys
from pathlib import Path

import pytest

# Ensure repository root is on the import path for local package imports during tests.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from docsearch.config import SearchConfig  # noqa: E402
from docsearch.embeddings import HashingEmbedder  # noqa: E402
from docsearch.engine import SearchEngine  # noqa: E402

TEST_DIMENSION = 256


@pytest.fixture
def embedder() -> HashingEmbedder:
    return HashingEmbedder(dimension=TEST_DIMENSION)


@pytest.fixture
def config(tmp_path: Path) -> SearchConfig:
    return SearchConfig(
        db_url=f"sqlite:///{tmp_path / 'index.db'}",
        data_dir=tmp_path,
        embedding_dimension=TEST_DIMENSION,
        chunk_size=500,
        chunk_overlap=100,
        embed_workers=2,
        embed_timeout_s=5.0,
    )


@pytest.fixture
def engine(config: SearchConfig, embedder: HashingEmbedder):
    pytest.importorskip("faiss")
    search_engine = SearchEngine(config, embedder=embedder)
    search_engine.initialize()
    yield search_engine
    search_engine.close()
