"""Command-line access to a persisted search index.

Examples:
    post-search --store posts.json index corpus.json
    post-search --store posts.json search pen --highlight
    post-search --store posts.json remove 42
    post-search --store posts.json metrics > post_search.prom
"""

from __future__ import annotations

import argparse
from collections.abc import Sequence
import logging
from pathlib import Path
import sys
from typing import Any

import orjson
from pydantic import ValidationError

from post_search.config import Settings
from post_search.engine import SearchEngine
from post_search.observability import (
    configure_log_exporter,
    configure_logging,
    configure_metrics_exporter,
    configure_trace_exporter,
    get_metrics,
    shutdown_tracing,
)
from post_search.search.errors import EmptyIndex, InvalidDocument, StorageError
from post_search.search.models import Document


logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_EMPTY_INDEX = 2


def build_argument_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="post-search",
        description="Index documents and run full-text searches against them",
    )
    parser.add_argument(
        "--store",
        type=Path,
        help="JSON document store (defaults to POST_SEARCH_STORE_PATH)",
    )
    parser.add_argument(
        "--log-level",
        help="Override POST_SEARCH_LOG_LEVEL",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    index_parser = subparsers.add_parser("index", help="Index documents from a JSON corpus file")
    index_parser.add_argument(
        "corpus",
        type=Path,
        help='JSON list of {"id": ..., "fields": {...}} objects',
    )

    search_parser = subparsers.add_parser("search", help="Search the index")
    search_parser.add_argument("query", help="Free-text query")
    search_parser.add_argument(
        "--field",
        action="append",
        dest="fields",
        metavar="FIELD",
        help="Restrict matching to FIELD (repeatable)",
    )
    mode = search_parser.add_mutually_exclusive_group()
    mode.add_argument("--prefix", dest="prefix", action="store_true", default=None, help="Prefix-match terms")
    mode.add_argument("--exact", dest="prefix", action="store_false", help="Require whole-lexeme matches")
    search_parser.add_argument("--limit", type=int, help="Maximum results (defaults to POST_SEARCH_RESULT_LIMIT)")
    search_parser.add_argument("--highlight", action="store_true", help="Include highlighted excerpts")

    remove_parser = subparsers.add_parser("remove", help="Remove a document from the index")
    remove_parser.add_argument("doc_id", help="Document identifier")

    subparsers.add_parser(
        "metrics",
        help="Print Prometheus metrics (document count per scope) in text exposition format",
    )
    return parser


def _load_corpus(path: Path) -> list[Document]:
    data = orjson.loads(path.read_bytes())
    if not isinstance(data, list):
        raise ValueError(f"{path} must contain a JSON list of documents")
    documents: list[Document] = []
    for position, entry in enumerate(data):
        if not isinstance(entry, dict) or "id" not in entry:
            raise ValueError(f"Entry {position} in {path} needs an 'id' and 'fields'")
        documents.append(Document(doc_id=str(entry["id"]), fields=entry.get("fields") or {}))
    return documents


def _emit(payload: Any) -> None:
    sys.stdout.write(orjson.dumps(payload, option=orjson.OPT_INDENT_2).decode("utf-8") + "\n")


def _run(engine: SearchEngine, args: argparse.Namespace, settings: Settings) -> int:
    if args.command == "index":
        count = engine.index_documents(_load_corpus(args.corpus))
        logger.info("Indexed %d documents", count)
        _emit({"indexed": count, "total": len(engine)})
        return EXIT_OK

    if args.command == "remove":
        removed = engine.remove_document(args.doc_id)
        _emit({"removed": removed, "total": len(engine)})
        return EXIT_OK

    if args.command == "metrics":
        sys.stdout.write(get_metrics().decode("utf-8"))
        return EXIT_OK

    limit = args.limit if args.limit is not None else settings.result_limit
    if args.highlight:
        response = engine.search_with_highlights(args.query, args.fields, args.prefix, limit=limit)
        _emit([{"id": hit.doc_id, "score": hit.score, "highlights": dict(hit.highlights)} for hit in response.hits])
    else:
        results = engine.search(args.query, args.fields, args.prefix, limit=limit)
        _emit([{"id": result.doc_id, "score": result.score} for result in results])
    return EXIT_OK


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_argument_parser()
    args = parser.parse_args(argv)

    try:
        settings = Settings()
    except ValidationError as exc:
        configure_logging("INFO", json_output=False)
        logger.error("Invalid configuration: %s", exc)
        return EXIT_ERROR

    configure_logging(args.log_level or settings.log_level, json_output=settings.json_logs)
    configure_trace_exporter(settings.observability, service_name=settings.service_name)
    configure_metrics_exporter(settings.observability, service_name=settings.service_name)
    configure_log_exporter(settings.observability, service_name=settings.service_name)

    if args.store is not None:
        settings = settings.model_copy(update={"store_path": args.store})
    if settings.store_path is None:
        logger.error("No document store configured; pass --store or set POST_SEARCH_STORE_PATH")
        return EXIT_ERROR

    try:
        with SearchEngine.from_settings(settings) as engine:
            return _run(engine, args, settings)
    except EmptyIndex as exc:
        logger.warning("%s", exc)
        return EXIT_EMPTY_INDEX
    except (InvalidDocument, StorageError, ValueError, OSError) as exc:
        logger.error("%s", exc)
        return EXIT_ERROR
    finally:
        shutdown_tracing()


if __name__ == "__main__":
    sys.exit(main())
