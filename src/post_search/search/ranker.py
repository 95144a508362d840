"""Match and score documents against parsed queries."""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Iterator, Mapping
import heapq

from post_search.search.errors import EmptyIndex
from post_search.search.index import IndexSnapshot
from post_search.search.models import Query, QueryTerm, RankedDocument, doc_id_sort_key
from post_search.search.schema import SearchScope, TextField


def _sort_key(item: tuple[str, float]) -> tuple[float, tuple[int, int, str]]:
    doc_id, score = item
    return (-score, doc_id_sort_key(doc_id))


class Ranker:
    """Score documents with an OR-of-terms policy.

    A document matches when any positive term matches any lexeme in any
    targeted field. Each matching occurrence adds the field's weight to the
    score. Results are ordered by descending score, then by document id.
    """

    def __init__(self, scope: SearchScope, *, field_weights: Mapping[str, float] | None = None) -> None:
        self.scope = scope
        self.field_weights = {name: scope.weight(name) for name in scope.field_names}
        for name, weight in (field_weights or {}).items():
            if name not in scope:
                msg = f"Cannot weight field '{name}': not in scope {list(scope.field_names)}"
                raise ValueError(msg)
            self.field_weights[name] = float(TextField(name, weight).weight)

    def matching_lexemes(self, snapshot: IndexSnapshot, term: QueryTerm) -> Iterator[str]:
        """Yield indexed lexemes matched by ``term``."""
        if term.is_prefix:
            yield from snapshot.expand_prefix(term.text)
        elif term.text in snapshot.postings:
            yield term.text

    def score(self, snapshot: IndexSnapshot, query: Query, fields: Iterable[str]) -> dict[str, float]:
        """Return unordered ``doc_id -> score`` for every matching document."""
        fields = tuple(fields)
        doc_scores: dict[str, float] = defaultdict(float)
        for term in query.positive_terms:
            for lexeme in self.matching_lexemes(snapshot, term):
                for field_name in fields:
                    weight = self.field_weights[field_name]
                    for doc_id, positions in snapshot.field_postings(lexeme, field_name).items():
                        doc_scores[doc_id] += len(positions) * weight

        if doc_scores and query.negated_terms:
            for doc_id in self._excluded(snapshot, query, fields):
                doc_scores.pop(doc_id, None)
        return dict(doc_scores)

    def rank(
        self,
        snapshot: IndexSnapshot,
        query: Query,
        fields: Iterable[str] | str | None = None,
        *,
        limit: int | None = None,
    ) -> list[RankedDocument]:
        """Return ranked results for a parsed query.

        Raises:
            EmptyIndex: nothing has ever been indexed.
        """
        if not snapshot.ever_indexed:
            raise EmptyIndex

        target_fields = self.scope.resolve_fields(fields)
        if not target_fields or not query.positive_terms:
            return []
        if limit is not None and limit <= 0:
            return []

        doc_scores = self.score(snapshot, query, target_fields)
        if limit is not None and limit < len(doc_scores):
            top_items = heapq.nsmallest(limit, doc_scores.items(), key=_sort_key)
        else:
            top_items = sorted(doc_scores.items(), key=_sort_key)
        return [RankedDocument(doc_id=doc_id, score=score) for doc_id, score in top_items]

    def _excluded(self, snapshot: IndexSnapshot, query: Query, fields: tuple[str, ...]) -> set[str]:
        excluded: set[str] = set()
        for term in query.negated_terms:
            for lexeme in self.matching_lexemes(snapshot, term):
                for field_name in fields:
                    excluded.update(snapshot.field_postings(lexeme, field_name))
        return excluded
