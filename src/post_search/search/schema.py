"""
Search scope definition.

A search scope enumerates everything a search needs to know up front:
- which text fields are searchable
- how much each field weighs in scoring
- whether query terms default to prefix matching
- how text is normalized (stopwords, stemming, accent folding)

Scopes are validated once at construction. Nothing is resolved per call.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
import math
from typing import Any

from post_search.search.analyzers import DEFAULT_STOPWORDS, AnalyzerPipeline, get_analyzer


@dataclass(frozen=True)
class TextField:
    """
    Analyzed text field for full-text search.

    Args:
        name: Field name (e.g., "title", "body")
        weight: Multiplier applied to every match in this field (default: 1.0)
    """

    name: str
    weight: float = 1.0

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name.strip():
            msg = "Field name must be a non-empty string"
            raise ValueError(msg)
        if isinstance(self.weight, bool) or not isinstance(self.weight, (int, float)):
            msg = f"Weight for field '{self.name}' must be a number"
            raise ValueError(msg)
        if not math.isfinite(self.weight) or self.weight <= 0:
            msg = f"Weight for field '{self.name}' must be a positive finite number, got {self.weight}"
            raise ValueError(msg)

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "weight": self.weight}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TextField:
        return cls(name=data["name"], weight=data.get("weight", 1.0))


@dataclass(frozen=True)
class SearchScope:
    """
    Explicit configuration of a searchable scope.

    Example:
        scope = SearchScope(
            fields=(TextField("title", weight=2.0), TextField("body")),
            prefix_default=True,
        )

    Args:
        fields: Searchable text fields, in declaration order
        prefix_default: Whether query terms are prefix terms unless overridden
        negation: Whether ``!word`` in a query excludes documents containing it
        stopwords: Words dropped from documents and queries; empty keeps everything
        stemming: Apply light suffix stripping to lexemes
        ignore_accents: Fold accented characters to their base letters
        dictionary: Named analyzer configuration ("simple" or "english"); explicit
            stopwords and stemming are layered on top of its defaults
    """

    fields: tuple[TextField, ...]
    prefix_default: bool = False
    negation: bool = False
    stopwords: frozenset[str] = field(default_factory=frozenset)
    stemming: bool = False
    ignore_accents: bool = False
    dictionary: str = "simple"
    name: str = "default"

    def __post_init__(self) -> None:
        fields = tuple(self.fields)
        if not fields:
            msg = "A search scope needs at least one field"
            raise ValueError(msg)
        for entry in fields:
            if not isinstance(entry, TextField):
                msg = f"Scope fields must be TextField instances, got {type(entry).__name__}"
                raise ValueError(msg)
        names = [entry.name for entry in fields]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            msg = f"Duplicate fields in scope: {duplicates}"
            raise ValueError(msg)

        object.__setattr__(self, "fields", fields)
        object.__setattr__(self, "stopwords", frozenset(word.casefold() for word in self.stopwords))
        object.__setattr__(self, "_field_map", {entry.name: entry for entry in fields})
        options: dict[str, Any] = {"ignore_accents": self.ignore_accents}
        if self.stopwords:
            options["stopwords"] = self.stopwords
        if self.stemming:
            options["apply_stemming"] = True
        object.__setattr__(self, "_analyzer", get_analyzer(self.dictionary, **options))

    def __contains__(self, name: object) -> bool:
        return name in self._field_map

    def __iter__(self):
        return iter(self.fields)

    def __len__(self) -> int:
        return len(self.fields)

    @property
    def field_names(self) -> tuple[str, ...]:
        return tuple(entry.name for entry in self.fields)

    @property
    def analyzer(self) -> AnalyzerPipeline:
        """Analyzer shared by indexing and query parsing."""
        return self._analyzer

    def weight(self, field_name: str) -> float:
        """Get the weight for a field; fields outside the scope weigh nothing."""
        entry = self._field_map.get(field_name)
        return entry.weight if entry is not None else 0.0

    def resolve_fields(self, field_filter: Iterable[str] | None) -> tuple[str, ...]:
        """Return scoped field names selected by ``field_filter``.

        ``None`` selects every field. Unknown names are ignored, so a filter
        naming only unknown fields selects nothing.
        """
        if field_filter is None:
            return self.field_names
        if isinstance(field_filter, str):
            field_filter = (field_filter,)
        wanted = set(field_filter)
        return tuple(name for name in self.field_names if name in wanted)

    def to_dict(self) -> dict[str, Any]:
        """Serialize scope to dict."""
        return {
            "name": self.name,
            "fields": [entry.to_dict() for entry in self.fields],
            "prefix_default": self.prefix_default,
            "negation": self.negation,
            "stopwords": sorted(self.stopwords),
            "stemming": self.stemming,
            "ignore_accents": self.ignore_accents,
            "dictionary": self.dictionary,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SearchScope:
        """Deserialize scope from dict."""
        return cls(
            fields=tuple(TextField.from_dict(entry) for entry in data["fields"]),
            prefix_default=bool(data.get("prefix_default", False)),
            negation=bool(data.get("negation", False)),
            stopwords=frozenset(data.get("stopwords", ())),
            stemming=bool(data.get("stemming", False)),
            ignore_accents=bool(data.get("ignore_accents", False)),
            dictionary=data.get("dictionary", "simple"),
            name=data.get("name", "default"),
        )


def create_default_scope(*, prefix_default: bool = True) -> SearchScope:
    """
    Create the default scope for searching posts.

    Fields:
    - title: Post title (weight=1.0)
    - body: Post body (weight=1.0)

    Prefix matching is on by default so "pen" finds "penne".
    """
    return SearchScope(
        name="posts",
        fields=(TextField("title"), TextField("body")),
        prefix_default=prefix_default,
    )


def english_stopwords() -> frozenset[str]:
    """Return the built-in English stopword list."""
    return frozenset(DEFAULT_STOPWORDS)
