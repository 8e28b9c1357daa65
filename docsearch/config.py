"""Application configuration for the document search engine."""

from pathlib import Path
from typing import Any, Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class SearchConfig(BaseSettings):  # type: ignore[misc]
    """Settings controlling storage, chunking, embedding and ranking."""

    db_url: Optional[str] = Field(
        None,
        description="SQLAlchemy URL for the catalog; defaults to a SQLite file in data_dir",
    )
    data_dir: Path = Field(Path(".docsearch"), description="Directory for local index data")
    embedding_dimension: int = Field(384, gt=0, description="Fixed embedding dimension D")
    embedding_model: str = Field(
        "all-MiniLM-L6-v2", description="sentence-transformers model used by default"
    )
    chunk_size: int = Field(500, gt=0, description="Maximum characters per chunk (best effort)")
    chunk_overlap: int = Field(100, ge=0, description="Characters carried into the next chunk")
    fuzzy_threshold: int = Field(70, description="Minimum fuzzy score (0-100) for a match")
    semantic_weight: float = Field(0.7, description="Weight of the semantic score in fusion")
    fuzzy_weight: float = Field(0.3, description="Weight of the fuzzy score in fusion")
    embed_workers: int = Field(4, gt=0, description="Concurrent embedding calls per document")
    embed_timeout_s: float = Field(
        30.0, gt=0, description="Timeout (in seconds) for a single embedding call"
    )

    model_config = SettingsConfigDict(env_prefix="DOCSEARCH_", env_file=".env", extra="ignore")

    def model_post_init(self, __context: Any) -> None:
        """Normalize paths to absolute locations."""

        self.data_dir = self.data_dir.expanduser().resolve()

    @field_validator("fuzzy_threshold")
    @classmethod
    def validate_fuzzy_threshold(cls, value: int) -> int:
        if not 0 <= value <= 100:
            raise ValueError("fuzzy_threshold must be between 0 and 100")
        return value

    @field_validator("semantic_weight", "fuzzy_weight")
    @classmethod
    def validate_weight(cls, value: float) -> float:
        if not 0.0 <= value <= 1.0:
            raise ValueError("fusion weights must be between 0 and 1")
        return value

    @model_validator(mode="after")
    def validate_overlap(self) -> "SearchConfig":
        if self.chunk_overlap >= self.chunk_size:
            raise ValueError("chunk_overlap must be smaller than chunk_size")
        return self

    @property
    def resolved_db_url(self) -> str:
        """Return the configured catalog URL or the default SQLite location."""

        if self.db_url:
            return self.db_url
        return f"sqlite:///{self.data_dir / 'docsearch.db'}"
