"""initial_schema

Revision ID: 7c3d1e52a9b4
Revises:
Create Date: 2026-10-19 09:12:44.218301

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '7c3d1e52a9b4'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

# SQLite only accepts AUTOINCREMENT on an INTEGER PRIMARY KEY.
_CHUNK_ID_TYPE = sa.BigInteger().with_variant(sa.Integer(), "sqlite")


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "index_settings",
        sa.Column("name", sa.String(64), primary_key=True),
        sa.Column("value", sa.Text(), nullable=False),
    )

    op.create_table(
        "documents",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("filename", sa.Text(), nullable=False),
        sa.Column("filepath", sa.Text(), nullable=False),
        sa.Column("file_type", sa.String(32), nullable=False),
        sa.Column("total_chunks", sa.Integer(), nullable=False, server_default="0"),
        # ISO-8601 UTC timestamps sort lexicographically on every backend.
        sa.Column("indexed_at", sa.Text(), nullable=True),
        sa.Column("size_bytes", sa.BigInteger(), nullable=True),
        sa.Column("metadata_json", sa.Text(), nullable=True),
        sa.Column("content_hash", sa.String(64), nullable=True),
    )
    op.create_index("idx_documents_filename", "documents", ["filename"], unique=True)

    op.create_table(
        "document_chunks",
        sa.Column("id", _CHUNK_ID_TYPE, primary_key=True, autoincrement=True),
        sa.Column(
            "document_id",
            sa.String(36),
            sa.ForeignKey("documents.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("chunk_index", sa.Integer(), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("page_number", sa.Integer(), nullable=True),
        sa.Column("char_start", sa.Integer(), nullable=True),
        sa.Column("char_end", sa.Integer(), nullable=True),
        sa.UniqueConstraint("document_id", "chunk_index", name="uq_chunks_document_index"),
        # Chunk ids key the vector index; a deleted id must never come back.
        sqlite_autoincrement=True,
    )
    op.create_index("idx_chunks_document", "document_chunks", ["document_id"])
    op.create_index("idx_chunks_page", "document_chunks", ["page_number"])

    op.create_table(
        "chunk_vectors",
        sa.Column(
            "chunk_id",
            _CHUNK_ID_TYPE,
            sa.ForeignKey("document_chunks.id", ondelete="CASCADE"),
            primary_key=True,
            autoincrement=False,
        ),
        sa.Column("embedding", sa.LargeBinary(), nullable=False),
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table("chunk_vectors")
    op.drop_index("idx_chunks_page", table_name="document_chunks")
    op.drop_index("idx_chunks_document", table_name="document_chunks")
    op.drop_table("document_chunks")
    op.drop_index("idx_documents_filename", table_name="documents")
    op.drop_table("documents")
    op.drop_table("index_settings")
