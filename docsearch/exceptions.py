"""Custom exception hierarchy for the document search engine."""


class DocSearchError(Exception):
    """Base exception for document search errors."""


class ConfigError(DocSearchError):
    """Raised when configuration is invalid or incomplete."""


class ParseError(DocSearchError):
    """Raised when a document cannot be parsed or its format is unsupported."""


class NotInitializedError(DocSearchError):
    """Raised when the index is used before initialization completed."""


class IndexError(DocSearchError):
    """Raised when indexing or search operations fail."""


class EmbeddingError(IndexError):
    """Raised when the embedder fails, times out or returns a malformed vector."""


class StorageError(IndexError):
    """Raised when catalog or vector storage operations fail."""


class IndexCancelledError(IndexError):
    """Raised when an indexing run is cancelled before anything was written."""
