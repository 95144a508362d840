"""Search engine facade: the boundary used by callers.

``SearchEngine`` owns one index for its lifetime. Create it at process start,
feed it document create/update/delete events, run searches against it, and
close it at shutdown:

    with SearchEngine.from_settings(Settings()) as engine:
        engine.index_document("1", {"title": "Penne with Arrabiata"})
        engine.search("pen")  # [RankedDocument(doc_id="1", score=1.0)]

When a ``JsonDocumentStore`` is attached, documents are loaded on ``open()``
and written back on ``save()``/``close()`` (or after every write with
``autosave=True``).
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
import logging
import threading
from typing import Any

from opentelemetry.trace import SpanKind

from post_search.config import Settings
from post_search.observability import (
    INDEX_DOC_COUNT,
    INDEX_OPERATIONS,
    SEARCH_LATENCY,
    SEARCH_RESULTS,
    bound_context,
    create_span,
    track_latency,
)
from post_search.search.errors import EmptyIndex, InvalidDocument, StorageError
from post_search.search.index import DocumentIndex, IndexSnapshot
from post_search.search.models import Document, Posting, Query, RankedDocument, SearchHit, SearchResponse
from post_search.search.query import QueryParser
from post_search.search.ranker import Ranker
from post_search.search.schema import SearchScope, create_default_scope
from post_search.search.snippet import HighlightOptions, build_highlight
from post_search.search.storage import JsonDocumentStore


logger = logging.getLogger(__name__)


class SearchEngine:
    """Full-text search over title/body style documents."""

    def __init__(
        self,
        scope: SearchScope | None = None,
        *,
        store: JsonDocumentStore | None = None,
        autosave: bool = False,
        highlight_options: HighlightOptions | None = None,
    ) -> None:
        self.scope = scope or create_default_scope()
        self.store = store
        self.autosave = autosave
        self.highlight_options = highlight_options or HighlightOptions()
        self.index = DocumentIndex(self.scope)
        self.parser = QueryParser(self.scope)
        self.ranker = Ranker(self.scope)
        self._documents: dict[str, Document] = {}
        self._lock = threading.Lock()
        self._open_lock = threading.Lock()
        self._dirty = False
        self._opened = False

    @classmethod
    def from_settings(cls, settings: Settings, *, autosave: bool = False) -> SearchEngine:
        store = JsonDocumentStore(settings.store_path) if settings.store_path else None
        return cls(
            settings.build_scope(),
            store=store,
            autosave=autosave,
            highlight_options=HighlightOptions(max_chars=settings.snippet_length),
        )

    def __enter__(self) -> SearchEngine:
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __len__(self) -> int:
        return len(self.index)

    def open(self) -> None:
        """Load persisted documents (if a store is attached) and build the index.

        Writes, searches and ``save()`` call this on first use, so stored
        documents are never overwritten by an engine that skipped it.
        """
        with self._open_lock:
            if self._opened:
                return
            if self.store is not None:
                corpus = self.store.load()
                if corpus.scope is not None and corpus.scope != self.scope:
                    logger.warning(
                        "Stored scope %s differs from configured scope %s; rebuilding index with configured scope",
                        corpus.scope.name,
                        self.scope.name,
                    )
                self.index = DocumentIndex(self.scope, ever_indexed=corpus.ever_indexed)
                try:
                    self.index.index_documents(corpus.documents)
                except InvalidDocument as exc:
                    msg = f"Stored document cannot be indexed under the current scope: {exc}"
                    raise StorageError(msg) from exc
                with self._lock:
                    self._documents = {document.doc_id: document for document in corpus.documents}
                self._record_doc_count()
            self._opened = True
        logger.info("Search engine opened with %d documents", len(self.index))

    def close(self) -> None:
        """Persist pending changes and release the engine."""
        if not self._opened:
            return
        if self._dirty:
            self.save()
        self._opened = False
        logger.info("Search engine closed")

    def save(self) -> None:
        """Write every document to the attached store."""
        if self.store is None:
            return
        self._ensure_open()
        with self._lock:
            documents = list(self._documents.values())
            self.store.save(documents, self.scope, ever_indexed=self.index.ever_indexed)
            self._dirty = False

    def get_document(self, doc_id: str) -> Document | None:
        return self._documents.get(doc_id)

    def snapshot(self) -> IndexSnapshot:
        return self.index.snapshot()

    def index_document(self, doc_id: str, fields: Mapping[str, Any]) -> None:
        """Create or update a document.

        Raises:
            InvalidDocument: the request is malformed; nothing changes.
        """
        self._ensure_open()
        with bound_context(operation="index", doc_id=doc_id), create_span(
            "index.document", kind=SpanKind.INTERNAL, attributes={"index.doc_id": str(doc_id)}
        ):
            try:
                with self._lock:
                    self.index.index_document(doc_id, fields)
                    self._documents[doc_id] = Document(doc_id=doc_id, fields=fields)
                    self._dirty = True
            except InvalidDocument:
                INDEX_OPERATIONS.labels(scope=self.scope.name, operation="index", status="rejected").inc()
                raise
            INDEX_OPERATIONS.labels(scope=self.scope.name, operation="index", status="ok").inc()
            self._after_write()

    def index_documents(self, documents: Iterable[Document]) -> int:
        """Index a batch atomically; returns the number of documents indexed."""
        self._ensure_open()
        batch = list(documents)
        with bound_context(operation="index_batch"), create_span(
            "index.batch", kind=SpanKind.INTERNAL, attributes={"index.batch_size": len(batch)}
        ):
            try:
                with self._lock:
                    self.index.index_documents(batch)
                    self._documents.update((document.doc_id, document) for document in batch)
                    self._dirty = bool(batch) or self._dirty
            except InvalidDocument:
                INDEX_OPERATIONS.labels(scope=self.scope.name, operation="index_batch", status="rejected").inc()
                raise
            INDEX_OPERATIONS.labels(scope=self.scope.name, operation="index_batch", status="ok").inc()
            self._after_write()
        return len(batch)

    def remove_document(self, doc_id: str) -> bool:
        """Delete a document; unknown ids are a no-op and return False."""
        self._ensure_open()
        with bound_context(operation="remove", doc_id=doc_id), create_span(
            "index.remove", kind=SpanKind.INTERNAL, attributes={"index.doc_id": str(doc_id)}
        ):
            with self._lock:
                removed = self.index.remove_document(doc_id)
                if removed:
                    self._documents.pop(doc_id, None)
                    self._dirty = True
            status = "ok" if removed else "noop"
            INDEX_OPERATIONS.labels(scope=self.scope.name, operation="remove", status=status).inc()
            if removed:
                self._after_write()
        return removed

    def lookup(self, lexeme: str, field_filter: Iterable[str] | str | None = None) -> list[Posting]:
        return self.index.lookup(lexeme, field_filter)

    def parse(self, query_text: str, prefix: bool | None = None) -> Query:
        return self.parser.parse(query_text, prefix=prefix)

    def search(
        self,
        query_text: str,
        field_filter: Iterable[str] | str | None = None,
        prefix: bool | None = None,
        *,
        limit: int | None = None,
    ) -> list[RankedDocument]:
        """Return ``(doc_id, score)`` results ordered by score, then id.

        Raises:
            EmptyIndex: nothing has ever been indexed.
        """
        _query, results = self._run_search(query_text, field_filter, prefix, limit)
        return results

    def search_with_highlights(
        self,
        query_text: str,
        field_filter: Iterable[str] | str | None = None,
        prefix: bool | None = None,
        *,
        limit: int | None = None,
        options: HighlightOptions | None = None,
    ) -> SearchResponse:
        """Search and attach a highlighted excerpt for every targeted field."""
        query, results = self._run_search(query_text, field_filter, prefix, limit)
        options = options or self.highlight_options
        fields = self.scope.resolve_fields(field_filter)
        hits: list[SearchHit] = []
        for result in results:
            document = self._documents.get(result.doc_id)
            highlights: dict[str, str] = {}
            if document is not None:
                for field_name in fields:
                    text = document.fields.get(field_name)
                    if text:
                        highlights[field_name] = build_highlight(text, query.terms, self.scope.analyzer, options)
            hits.append(SearchHit(doc_id=result.doc_id, score=result.score, highlights=highlights))
        return SearchResponse(query=query, hits=tuple(hits))

    def _run_search(
        self,
        query_text: str,
        field_filter: Iterable[str] | str | None,
        prefix: bool | None,
        limit: int | None,
    ) -> tuple[Query, list[RankedDocument]]:
        self._ensure_open()
        with (
            bound_context(operation="search"),
            create_span(
                "search.query",
                kind=SpanKind.INTERNAL,
                attributes={"search.query": (query_text or "")[:100], "search.scope": self.scope.name},
            ) as span,
            track_latency(SEARCH_LATENCY, scope=self.scope.name),
        ):
            snapshot = self.index.snapshot()
            query = self.parser.parse(query_text, prefix=prefix)
            try:
                results = self.ranker.rank(snapshot, query, field_filter, limit=limit)
            except EmptyIndex:
                SEARCH_RESULTS.labels(scope=self.scope.name, outcome="empty_index").inc()
                span.set_attribute("search.result_count", 0)
                raise
            outcome = "hit" if results else "miss"
            SEARCH_RESULTS.labels(scope=self.scope.name, outcome=outcome).inc()
            span.set_attribute("search.result_count", len(results))
            span.set_attribute("search.snapshot_version", snapshot.version)
            logger.debug("Search %r returned %d results", query_text, len(results))
            return query, results

    def _ensure_open(self) -> None:
        if not self._opened:
            self.open()

    def _after_write(self) -> None:
        self._record_doc_count()
        if self.autosave:
            self.save()

    def _record_doc_count(self) -> None:
        INDEX_DOC_COUNT.labels(scope=self.scope.name).set(len(self.index))
