"""Semantic, fuzzy and hybrid retrieval over indexed chunks."""

from .fuzzy import FuzzyMatcher
from .hybrid import HybridRetrievalConfig, HybridRetriever, fuse_results
from .types import MatchType, SearchMode, SearchResult

__all__ = [
    "FuzzyMatcher",
    "HybridRetrievalConfig",
    "HybridRetriever",
    "MatchType",
    "SearchMode",
    "SearchResult",
    "fuse_results",
]
