"""Value objects passed between the engine, the pipeline and progress callbacks."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Dict, Optional

from docsearch.parsing.documents import ParsedDocument


@dataclass(frozen=True)
class DocumentMeta:
    """Descriptive fields of a document about to be indexed."""

    filename: str
    filepath: str
    file_type: str
    size_bytes: int = 0
    metadata: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_parsed(cls, parsed: ParsedDocument) -> "DocumentMeta":
        return cls(
            filename=parsed.filename,
            filepath=parsed.filepath,
            file_type=parsed.file_type,
            size_bytes=parsed.size_bytes,
            metadata=dict(parsed.metadata),
        )


@dataclass
class IndexResult:
    """Outcome of indexing one document."""

    filepath: str
    document_id: Optional[str] = None
    total_chunks: int = 0
    success: bool = False
    error: Optional[str] = None
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    finished_at: Optional[datetime] = None

    @property
    def duration_ms(self) -> float:
        if self.finished_at is None:
            return 0.0
        return (self.finished_at - self.started_at).total_seconds() * 1000.0

    def finish(self, *, error: Optional[str] = None) -> "IndexResult":
        self.finished_at = datetime.now(timezone.utc)
        self.success = error is None
        self.error = error
        return self


@dataclass(frozen=True)
class IndexProgress:
    stage: str
    percentage: int
    current_chunk: int = 0
    total_chunks: int = 0


@dataclass(frozen=True)
class BatchIndexProgress:
    current_file: int
    total_files: int
    current_filename: str
    overall_percentage: int
    is_completed: bool = False
    file_progress: Optional[IndexProgress] = None


ProgressCallback = Callable[[IndexProgress], None]
BatchProgressCallback = Callable[[BatchIndexProgress], None]

STAGE_PARSING = "Parsing"
STAGE_EMBEDDING = "Generating Embeddings"
STAGE_INDEXING = "Indexing"
STAGE_COMPLETED = "Completed"

__all__ = [
    "BatchIndexProgress",
    "BatchProgressCallback",
    "DocumentMeta",
    "IndexProgress",
    "IndexResult",
    "ProgressCallback",
    "STAGE_COMPLETED",
    "STAGE_EMBEDDING",
    "STAGE_INDEXING",
    "STAGE_PARSING",
]
