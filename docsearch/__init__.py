"""Process-wide document index with semantic, fuzzy and hybrid search."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, List, Optional

import atexit

from .engine import IndexState, SearchEngine
from .models import IndexResult
from .retrieval import MatchType, SearchMode, SearchResult
from .storage import Document

_default_engine: Optional[SearchEngine] = None
_close_callback_registered = False


def get_default_engine() -> SearchEngine:
    """Return the default ``SearchEngine``, creating and initializing it lazily."""

    global _default_engine, _close_callback_registered
    if _default_engine is None:
        _default_engine = SearchEngine()
    if not _close_callback_registered:
        atexit.register(_default_engine.close)
        _close_callback_registered = True
    _default_engine.initialize()
    return _default_engine


def index_document(file_path: Path | str) -> IndexResult:
    """Index (or reindex) a file in the default index."""

    return get_default_engine().index_document(file_path)


def index_documents(file_paths: Iterable[Path | str]) -> List[IndexResult]:
    return get_default_engine().index_documents(file_paths)


def search(
    query: str,
    limit: int = 10,
    mode: SearchMode | str = SearchMode.HYBRID,
    document_id: Optional[str] = None,
    page_number: Optional[int] = None,
) -> List[SearchResult]:
    """Search the default index."""

    return get_default_engine().search(
        query, limit=limit, mode=mode, document_id=document_id, page_number=page_number
    )


def delete_document(document_id: str) -> bool:
    return get_default_engine().delete_document(document_id)


def list_documents() -> List[Document]:
    return get_default_engine().list_documents()


def suggest_corrections(query: str, max_suggestions: int = 5) -> List[str]:
    return get_default_engine().suggest_corrections(query, max_suggestions=max_suggestions)


__all__ = [
    "Document",
    "IndexResult",
    "IndexState",
    "MatchType",
    "SearchEngine",
    "SearchMode",
    "SearchResult",
    "delete_document",
    "get_default_engine",
    "index_document",
    "index_documents",
    "list_documents",
    "search",
    "suggest_corrections",
]
