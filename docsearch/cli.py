"""Command-line utilities for the document search engine."""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Any

from docsearch.config import SearchConfig
from docsearch.embeddings import Embedder, HashingEmbedder, SentenceTransformerEmbedder
from docsearch.engine import SearchEngine
from docsearch.exceptions import DocSearchError
from docsearch.retrieval import SearchMode


def _positive_int(value: str) -> int:
    try:
        parsed = int(value)
    except ValueError as exc:  # pragma: no cover - user input validation
        raise argparse.ArgumentTypeError("Expected an integer") from exc
    if parsed <= 0:
        raise argparse.ArgumentTypeError("Expected a positive integer")
    return parsed


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Index documents and run hybrid searches")
    parser.add_argument("--db-url", default=None, help="Catalog URL (SQLite or PostgreSQL)")
    parser.add_argument(
        "--embedder",
        choices=("hashing", "sentence-transformers"),
        default="sentence-transformers",
        help="Embedding backend used for indexing and queries",
    )
    parser.add_argument(
        "--dimension", type=_positive_int, default=None, help="Embedding dimension of the index"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    index = subparsers.add_parser("index", help="Index or reindex files")
    index.add_argument("paths", nargs="+", help="Files to index")

    search = subparsers.add_parser("search", help="Search indexed documents")
    search.add_argument("query", help="Query text")
    search.add_argument("--limit", type=_positive_int, default=10)
    search.add_argument(
        "--mode", choices=[mode.value for mode in SearchMode], default=SearchMode.HYBRID.value
    )
    search.add_argument("--document-id", default=None, help="Restrict to one document")
    search.add_argument("--page", type=_positive_int, default=None, help="Restrict to one page")

    delete = subparsers.add_parser("delete", help="Delete a document by id")
    delete.add_argument("document_id")

    subparsers.add_parser("list", help="List indexed documents")

    suggest = subparsers.add_parser("suggest", help="Suggest spellings from indexed filenames")
    suggest.add_argument("query")
    suggest.add_argument("--max", type=_positive_int, default=5, dest="max_suggestions")

    return parser


def _build_engine(args: argparse.Namespace) -> SearchEngine:
    overrides: dict[str, Any] = {}
    if args.db_url:
        overrides["db_url"] = args.db_url
    if args.dimension:
        overrides["embedding_dimension"] = args.dimension
    config = SearchConfig(**overrides)

    embedder: Embedder
    if args.embedder == "hashing":
        embedder = HashingEmbedder(dimension=config.embedding_dimension)
    else:
        embedder = SentenceTransformerEmbedder(config.embedding_model)
    return SearchEngine(config, embedder=embedder)


def _run_index(engine: SearchEngine, args: argparse.Namespace) -> int:
    results = engine.index_documents(args.paths)
    for result in results:
        if result.success:
            print(f"Indexed {result.filepath}: {result.total_chunks} chunks ({result.document_id})")
        else:
            print(f"Failed {result.filepath}: {result.error}", file=sys.stderr)
    return 0 if all(result.success for result in results) else 1


def _run_search(engine: SearchEngine, args: argparse.Namespace) -> int:
    results = engine.search(
        args.query,
        limit=args.limit,
        mode=args.mode,
        document_id=args.document_id,
        page_number=args.page,
    )
    if not results:
        print("No results")
    for rank, result in enumerate(results, start=1):
        page = f" p.{result.page_number}" if result.page_number is not None else ""
        print(
            f"{rank}. [{result.combined_score:.3f} {result.match_type.value}] "
            f"{result.filename}{page} #{result.chunk_index}"
        )
        print(f"   {result.highlight(args.query)}")
    return 0


def _run_delete(engine: SearchEngine, args: argparse.Namespace) -> int:
    if engine.delete_document(args.document_id):
        print(f"Deleted {args.document_id}")
        return 0
    print(f"Document not found: {args.document_id}", file=sys.stderr)
    return 1


def _run_list(engine: SearchEngine, _args: argparse.Namespace) -> int:
    for document in engine.list_documents():
        indexed_at = document.indexed_at.isoformat() if document.indexed_at else "-"
        print(f"{document.id}\t{document.filename}\t{document.total_chunks}\t{indexed_at}")
    return 0


def _run_suggest(engine: SearchEngine, args: argparse.Namespace) -> int:
    for suggestion in engine.suggest_corrections(args.query, args.max_suggestions):
        print(suggestion)
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    commands: dict[str, Any] = {
        "index": _run_index,
        "search": _run_search,
        "delete": _run_delete,
        "list": _run_list,
        "suggest": _run_suggest,
    }

    handler = commands.get(args.command)
    if handler is None:
        parser.error("Unknown command")
        return 1

    try:
        with _build_engine(args) as engine:
            return handler(engine, args)
    except DocSearchError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
