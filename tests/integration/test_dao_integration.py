import os
from datetime import datetime, timezone

import pytest

from docsearch.embeddings import Embedding
from docsearch.storage import dao
from docsearch.storage.db import get_engine
from docsearch.storage.migrations import run_migrations
from docsearch.storage.models import Chunk, Document, generate_document_id

pytestmark = [
    pytest.mark.integration,
    pytest.mark.skipif(
        os.getenv("DOCSEARCH_TEST_DB_URL") is None,
        reason="DOCSEARCH_TEST_DB_URL not set",
    ),
]


def test_dao_crud_round_trip() -> None:
    engine = get_engine(os.getenv("DOCSEARCH_TEST_DB_URL"))
    run_migrations(engine)
    document_id = generate_document_id()

    try:
        with engine.begin() as conn:
            dao.insert_document(
                conn,
                Document(
                    id=document_id,
                    filename=f"integration-{document_id}.txt",
                    filepath="/tmp/integration.txt",
                    file_type="txt",
                    total_chunks=2,
                    indexed_at=datetime.now(timezone.utc),
                    size_bytes=128,
                    metadata={"origin": "integration"},
                ),
            )
            chunks = dao.insert_chunks(
                conn,
                [
                    Chunk(document_id=document_id, chunk_index=0, content="First chunk.", page_number=1),
                    Chunk(document_id=document_id, chunk_index=1, content="Second chunk.", page_number=2),
                ],
            )
            assert all(chunk.id is not None for chunk in chunks)
            dao.insert_chunk_vectors(
                conn,
                [(chunk.id, Embedding([0.5, 0.5], 2).to_bytes()) for chunk in chunks],
            )

        with engine.connect() as conn:
            stored = dao.get_document(conn, document_id)
            assert stored is not None
            assert stored.metadata == {"origin": "integration"}
            assert dao.count_vectors(conn, document_id) == 2
            assert dao.get_chunk_ids(conn, document_id=document_id, page_number=2) == [chunks[1].id]
            joined = dao.get_chunks_by_ids(conn, [chunk.id for chunk in chunks])
            assert [chunk.filename for chunk in joined] == [stored.filename] * 2

        with engine.begin() as conn:
            existed, removed = dao.delete_document(conn, document_id)
        assert existed is True
        assert sorted(removed) == sorted(chunk.id for chunk in chunks)

        with engine.connect() as conn:
            assert dao.count_orphaned_vectors(conn) == 0
    finally:
        engine.dispose()
