"""Document parsers producing :class:`ParsedDocument` inputs for chunking."""

from .documents import ParsedDocument
from .html import HtmlParser
from .registry import DocumentParser, ParserRegistry, default_registry
from .text import TextParser

__all__ = [
    "DocumentParser",
    "HtmlParser",
    "ParsedDocument",
    "ParserRegistry",
    "TextParser",
    "default_registry",
]
