"""Search data models."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any


def doc_id_sort_key(doc_id: str) -> tuple[int, int, str]:
    """Order numeric ids by value ("9" before "10") and place other ids after them."""
    if doc_id.isascii() and doc_id.isdigit():
        return (0, int(doc_id), doc_id)
    return (1, 0, doc_id)


@dataclass(frozen=True)
class Document:
    """A caller-owned document: identifier plus named text fields."""

    doc_id: str
    fields: Mapping[str, str]

    def __post_init__(self) -> None:
        object.__setattr__(self, "fields", MappingProxyType(dict(self.fields)))

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {"id": self.doc_id, "fields": dict(self.fields)}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Document:
        """Create from dictionary."""
        return cls(doc_id=data["id"], fields=data.get("fields", {}))


@dataclass(frozen=True)
class Posting:
    """A posting links a lexeme to one document field and its occurrences."""

    lexeme: str
    field: str
    doc_id: str
    positions: tuple[int, ...] = ()

    @property
    def frequency(self) -> int:
        """Derive frequency from positions length."""
        return len(self.positions)


@dataclass(frozen=True)
class QueryTerm:
    """One parsed query term."""

    text: str
    is_prefix: bool = False
    negated: bool = False

    def matches(self, lexeme: str) -> bool:
        if self.is_prefix:
            return lexeme.startswith(self.text)
        return lexeme == self.text


@dataclass(frozen=True)
class Query:
    """Immutable, ordered set of query terms built for one search request."""

    terms: tuple[QueryTerm, ...] = ()
    raw_text: str = ""

    @classmethod
    def empty(cls) -> Query:
        return cls()

    def is_empty(self) -> bool:
        return not self.terms

    @property
    def positive_terms(self) -> tuple[QueryTerm, ...]:
        return tuple(term for term in self.terms if not term.negated)

    @property
    def negated_terms(self) -> tuple[QueryTerm, ...]:
        return tuple(term for term in self.terms if term.negated)


@dataclass(frozen=True)
class RankedDocument:
    """Represents a scored document produced by the ranker."""

    doc_id: str
    score: float


@dataclass(frozen=True)
class SearchHit:
    """A ranked document enriched with highlighted excerpts per field."""

    doc_id: str
    score: float
    highlights: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class SearchResponse:
    """Results of one search plus the query that produced them."""

    query: Query
    hits: tuple[SearchHit, ...] = ()

    def __len__(self) -> int:
        return len(self.hits)
