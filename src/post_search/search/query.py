"""Turn free-text queries into ordered query terms."""

from __future__ import annotations

import logging

from post_search.search.models import Query, QueryTerm
from post_search.search.schema import SearchScope


logger = logging.getLogger(__name__)

NEGATION_PREFIX = "!"


class QueryParser:
    """Parse raw query text with the scope's shared analyzer.

    Terms come out in order of first appearance with duplicates dropped.
    When the scope enables negation, a word written as ``!word`` becomes an
    exact, negated term that excludes matching documents.
    """

    def __init__(self, scope: SearchScope) -> None:
        self.scope = scope

    def parse(self, text: str | None, prefix: bool | None = None) -> Query:
        if text is None or not text.strip():
            return Query.empty()

        is_prefix = self.scope.prefix_default if prefix is None else prefix
        analyzer = self.scope.analyzer
        terms: list[QueryTerm] = []
        seen: set[tuple[str, bool]] = set()

        for chunk in text.split():
            negated = self.scope.negation and chunk.startswith(NEGATION_PREFIX)
            source = chunk.lstrip(NEGATION_PREFIX) if negated else chunk
            for lexeme in analyzer.lexemes(source):
                key = (lexeme, negated)
                if key in seen:
                    continue
                seen.add(key)
                terms.append(QueryTerm(text=lexeme, is_prefix=is_prefix and not negated, negated=negated))

        if not terms:
            logger.debug("Query %r produced no terms", text)
            return Query(raw_text=text)
        return Query(terms=tuple(terms), raw_text=text)
