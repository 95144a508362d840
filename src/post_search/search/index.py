"""Copy-on-write inverted index over caller-owned documents.

The index maps ``lexeme -> field -> doc_id -> positions``. Every write builds a
new ``IndexSnapshot`` that shares untouched inner mappings with its
predecessor and publishes it with a single reference assignment. Readers grab
the current snapshot without locking and keep a consistent view for as long
as they hold it; writers serialize on one lock.

Snapshot mappings are never mutated after publication.
"""

from __future__ import annotations

from bisect import bisect_left
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
import logging
import threading
from typing import Any

from post_search.search.errors import InvalidDocument
from post_search.search.models import Document, Posting, doc_id_sort_key
from post_search.search.schema import SearchScope


logger = logging.getLogger(__name__)

# lexeme -> field -> doc_id -> positions
PostingsMap = dict[str, dict[str, dict[str, tuple[int, ...]]]]
# doc_id -> {(lexeme, field), ...}
DocTermsMap = dict[str, frozenset[tuple[str, str]]]


@dataclass(frozen=True)
class IndexSnapshot:
    """Immutable, point-in-time view of all postings."""

    version: int = 0
    ever_indexed: bool = False
    postings: PostingsMap = field(default_factory=dict)
    doc_terms: DocTermsMap = field(default_factory=dict)
    vocabulary: tuple[str, ...] = ()

    @property
    def doc_count(self) -> int:
        return len(self.doc_terms)

    def __contains__(self, doc_id: object) -> bool:
        return doc_id in self.doc_terms

    def doc_ids(self) -> list[str]:
        return sorted(self.doc_terms, key=doc_id_sort_key)

    def field_postings(self, lexeme: str, field_name: str) -> Mapping[str, tuple[int, ...]]:
        """Return ``doc_id -> positions`` for a lexeme within one field."""
        return self.postings.get(lexeme, {}).get(field_name, {})

    def lookup(self, lexeme: str, fields: Iterable[str] | None = None) -> list[Posting]:
        by_field = self.postings.get(lexeme)
        if not by_field:
            return []
        wanted = None if fields is None else set(fields)
        results: list[Posting] = []
        for field_name, doc_map in by_field.items():
            if wanted is not None and field_name not in wanted:
                continue
            results.extend(
                Posting(lexeme=lexeme, field=field_name, doc_id=doc_id, positions=positions)
                for doc_id, positions in doc_map.items()
            )
        results.sort(key=lambda posting: (doc_id_sort_key(posting.doc_id), posting.field))
        return results

    def expand_prefix(self, prefix: str) -> Iterator[str]:
        """Yield every indexed lexeme that starts with ``prefix``, in sorted order."""
        vocabulary = self.vocabulary
        idx = bisect_left(vocabulary, prefix)
        while idx < len(vocabulary) and vocabulary[idx].startswith(prefix):
            yield vocabulary[idx]
            idx += 1

    def to_dict(self) -> dict[str, Any]:
        """Plain nested copy of the postings, for comparison and debugging."""
        return {
            lexeme: {field_name: dict(doc_map) for field_name, doc_map in by_field.items()}
            for lexeme, by_field in self.postings.items()
        }


class DocumentIndex:
    """Inverted index whose content is a pure function of indexed documents."""

    def __init__(self, scope: SearchScope, *, ever_indexed: bool = False) -> None:
        self.scope = scope
        self._snapshot = IndexSnapshot(ever_indexed=ever_indexed)
        self._write_lock = threading.Lock()

    def __len__(self) -> int:
        return self._snapshot.doc_count

    def __contains__(self, doc_id: object) -> bool:
        return doc_id in self._snapshot

    def snapshot(self) -> IndexSnapshot:
        """Return the current snapshot; it stays valid after later writes."""
        return self._snapshot

    @property
    def ever_indexed(self) -> bool:
        return self._snapshot.ever_indexed

    def index_document(self, doc_id: str, fields: Mapping[str, Any]) -> IndexSnapshot:
        """Replace every posting for ``doc_id`` with postings for ``fields``.

        Raises:
            InvalidDocument: ``doc_id`` is empty or no scoped field carries text.
                The index is left unchanged.
        """
        entries = self._analyze(doc_id, fields)
        with self._write_lock:
            snapshot = self._commit({doc_id: entries})
        logger.debug("Indexed document %s (%d postings)", doc_id, len(entries))
        return snapshot

    def index_documents(self, documents: Iterable[Document]) -> IndexSnapshot:
        """Index a batch of documents as one atomic update.

        Every document is validated before anything is published, so one
        invalid document rejects the whole batch.
        """
        batch: dict[str, dict[tuple[str, str], tuple[int, ...]]] = {}
        for document in documents:
            batch[document.doc_id] = self._analyze(document.doc_id, document.fields)
        if not batch:
            return self._snapshot
        with self._write_lock:
            snapshot = self._commit(batch)
        logger.debug("Indexed batch of %d documents", len(batch))
        return snapshot

    def remove_document(self, doc_id: str) -> bool:
        """Delete every posting for ``doc_id``; unknown ids are a no-op."""
        with self._write_lock:
            current = self._snapshot
            if doc_id not in current:
                return False
            self._commit({doc_id: None})
        logger.debug("Removed document %s", doc_id)
        return True

    def clear(self) -> None:
        """Drop every document while remembering that the index was used."""
        with self._write_lock:
            current = self._snapshot
            self._snapshot = IndexSnapshot(version=current.version + 1, ever_indexed=current.ever_indexed)

    def lookup(self, lexeme: str, field_filter: Iterable[str] | str | None = None) -> list[Posting]:
        """Return postings for an already-normalized lexeme.

        ``field_filter`` restricts the result to the named fields.
        """
        fields = None if field_filter is None else self.scope.resolve_fields(field_filter)
        return self._snapshot.lookup(lexeme, fields)

    def _analyze(self, doc_id: str, fields: Mapping[str, Any]) -> dict[tuple[str, str], tuple[int, ...]]:
        if not isinstance(doc_id, str) or not doc_id.strip():
            raise InvalidDocument(doc_id, "document id must be a non-empty string")
        if not isinstance(fields, Mapping) or not fields:
            raise InvalidDocument(doc_id, "document has no fields")

        analyzer = self.scope.analyzer
        has_text = False
        positions: dict[tuple[str, str], list[int]] = {}
        for field_name in self.scope.field_names:
            value = fields.get(field_name)
            if value is None:
                continue
            if not isinstance(value, str):
                raise InvalidDocument(doc_id, f"field '{field_name}' must be text, got {type(value).__name__}")
            if not value.strip():
                continue
            has_text = True
            for token in analyzer.tokens(value):
                positions.setdefault((token.text, field_name), []).append(token.position)

        if not has_text:
            raise InvalidDocument(doc_id, f"no text in searchable fields {list(self.scope.field_names)}")
        return {key: tuple(values) for key, values in positions.items()}

    def _commit(self, changes: Mapping[str, Mapping[tuple[str, str], tuple[int, ...]] | None]) -> IndexSnapshot:
        """Apply per-document replacements (``None`` removes) and publish a new snapshot.

        Callers hold the write lock.
        """
        current = self._snapshot
        postings: PostingsMap = dict(current.postings)
        doc_terms: DocTermsMap = dict(current.doc_terms)
        touched_lexemes: set[str] = set()
        copied: set[tuple[str, str]] = set()

        def field_map(lexeme: str, field_name: str) -> dict[str, tuple[int, ...]]:
            key = (lexeme, field_name)
            by_field = postings.get(lexeme, {})
            if lexeme not in touched_lexemes:
                by_field = dict(by_field)
                postings[lexeme] = by_field
                touched_lexemes.add(lexeme)
            if key not in copied:
                by_field[field_name] = dict(by_field.get(field_name, {}))
                copied.add(key)
            return by_field[field_name]

        for doc_id, entries in changes.items():
            for lexeme, field_name in doc_terms.pop(doc_id, frozenset()):
                field_map(lexeme, field_name).pop(doc_id, None)
            if entries is None:
                continue
            for (lexeme, field_name), positions in entries.items():
                field_map(lexeme, field_name)[doc_id] = positions
            doc_terms[doc_id] = frozenset(entries)

        added: list[str] = []
        removed: set[str] = set()
        for lexeme in touched_lexemes:
            by_field = postings[lexeme]
            for field_name in [name for name, doc_map in by_field.items() if not doc_map]:
                del by_field[field_name]
            was_present = lexeme in current.postings
            if by_field and not was_present:
                added.append(lexeme)
            elif not by_field:
                del postings[lexeme]
                if was_present:
                    removed.add(lexeme)

        vocabulary = current.vocabulary
        if removed:
            vocabulary = tuple(lexeme for lexeme in vocabulary if lexeme not in removed)
        if added:
            vocabulary = tuple(sorted((*vocabulary, *added)))

        snapshot = IndexSnapshot(
            version=current.version + 1,
            ever_indexed=current.ever_indexed or any(entries is not None for entries in changes.values()),
            postings=postings,
            doc_terms=doc_terms,
            vocabulary=vocabulary,
        )
        self._snapshot = snapshot
        return snapshot
