"""Analyzer utilities for the post search stack.

Analyzers follow Whoosh's composable tokenizer/filter design: a tokenizer
produces a lazy stream of ``Token`` objects and each filter wraps that stream.
The same analyzer instance is applied to stored documents and to incoming
queries so that both sides always agree on lexemes.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator, Sequence
from dataclasses import dataclass, replace
import re
import unicodedata
from typing import Protocol


@dataclass(frozen=True)
class Token:
    """Represents a token emitted by analyzers."""

    text: str
    position: int
    start_char: int
    end_char: int


class Tokenizer(Protocol):
    """Protocol implemented by tokenizers."""

    def __call__(self, text: str) -> Iterator[Token]:  # pragma: no cover - interface definition
        ...


class TokenFilter(Protocol):
    """Protocol implemented by token filters."""

    def __call__(self, tokens: Iterable[Token]) -> Iterator[Token]:  # pragma: no cover - interface definition
        ...


class RegexTokenizer:
    """Regex-based tokenizer that yields word tokens.

    The default pattern keeps letters and digits only, so punctuation and
    underscores act as separators ("don't" -> "don", "t").
    """

    def __init__(self, pattern: str = r"[^\W_]+", flags: int = re.UNICODE | re.MULTILINE) -> None:
        self.pattern = re.compile(pattern, flags)

    def __call__(self, text: str) -> Iterator[Token]:
        for position, match in enumerate(self.pattern.finditer(text)):
            yield Token(
                text=match.group(0),
                position=position,
                start_char=match.start(),
                end_char=match.end(),
            )


class LowercaseFilter:
    """Filter that case-folds token text."""

    def __call__(self, tokens: Iterable[Token]) -> Iterator[Token]:
        for token in tokens:
            folded = token.text.casefold()
            yield token if folded == token.text else replace(token, text=folded)


class AccentFoldFilter:
    """Strips combining marks so "crème" and "creme" share a lexeme."""

    def __call__(self, tokens: Iterable[Token]) -> Iterator[Token]:
        for token in tokens:
            if token.text.isascii():
                yield token
                continue
            decomposed = unicodedata.normalize("NFKD", token.text)
            stripped = "".join(char for char in decomposed if not unicodedata.combining(char))
            yield replace(token, text=stripped)


DEFAULT_STOPWORDS = (
    "a",
    "an",
    "and",
    "are",
    "as",
    "at",
    "be",
    "but",
    "by",
    "for",
    "if",
    "in",
    "into",
    "is",
    "it",
    "no",
    "not",
    "of",
    "on",
    "or",
    "such",
    "that",
    "the",
    "their",
    "then",
    "there",
    "these",
    "they",
    "this",
    "to",
    "was",
    "will",
    "with",
)


class StopFilter:
    """Removes stopwords from the stream."""

    def __init__(self, stopwords: Iterable[str] | None = None) -> None:
        vocab = stopwords if stopwords is not None else DEFAULT_STOPWORDS
        self.stopwords = frozenset(word.casefold() for word in vocab)

    def __call__(self, tokens: Iterable[Token]) -> Iterator[Token]:
        for token in tokens:
            if token.text not in self.stopwords:
                yield token


_SUFFIX_RULES: tuple[tuple[str, str], ...] = (
    ("ization", "ize"),
    ("ational", "ate"),
    ("fulness", "ful"),
    ("ousness", "ous"),
    ("iveness", "ive"),
    ("tional", "tion"),
    ("biliti", "ble"),
    ("entli", "ent"),
    ("izer", "ize"),
    ("ator", "ate"),
    ("ation", "ate"),
    ("ness", ""),
    ("ment", ""),
)

_SIMPLE_SUFFIXES: tuple[str, ...] = ("ingly", "edly", "ing", "ed", "ly", "es", "s")


class PorterStemFilter:
    """Applies a minimal Porter-style stemming routine."""

    def stem(self, word: str) -> str:
        stemmed = _strip_suffix(word, _SUFFIX_RULES) or _strip_suffix(word, ((s, "") for s in _SIMPLE_SUFFIXES))
        return stemmed or word

    def __call__(self, tokens: Iterable[Token]) -> Iterator[Token]:
        for token in tokens:
            stemmed = self.stem(token.text)
            yield token if stemmed == token.text else replace(token, text=stemmed)


def _strip_suffix(word: str, rules: Iterable[tuple[str, str]]) -> str | None:
    for suffix, replacement in rules:
        if word.endswith(suffix) and len(word) - len(suffix) >= 2:
            candidate = word[: -len(suffix)] + replacement
            if len(candidate) >= 2:
                return candidate
    return None


class AnalyzerPipeline:
    """Composable analyzer pipeline (tokenizer + filters).

    Positions are renumbered after filtering so that removed stopwords do not
    leave gaps.
    """

    def __init__(self, tokenizer: Tokenizer, filters: Sequence[TokenFilter] | None = None) -> None:
        self.tokenizer = tokenizer
        self.filters = list(filters or [])

    def tokens(self, text: str) -> Iterator[Token]:
        stream: Iterable[Token] = self.tokenizer(text)
        for token_filter in self.filters:
            stream = token_filter(stream)
        position = 0
        for token in stream:
            if not token.text:
                continue
            yield token if token.position == position else replace(token, position=position)
            position += 1

    def lexemes(self, text: str) -> Iterator[str]:
        """Return a fresh lazy stream of normalized lexemes for ``text``."""
        return (token.text for token in self.tokens(text))

    def __call__(self, text: str) -> list[Token]:
        return list(self.tokens(text))


class StandardAnalyzer(AnalyzerPipeline):
    """Default analyzer wired into search scopes.

    Mirrors PostgreSQL's ``simple`` text-search configuration: lowercase and
    strip punctuation, with optional stopword removal, stemming and accent
    folding layered on top.
    """

    def __init__(
        self,
        *,
        stopwords: Iterable[str] | None = (),
        apply_stemming: bool = False,
        ignore_accents: bool = False,
    ) -> None:
        filters: list[TokenFilter] = [LowercaseFilter()]
        if ignore_accents:
            filters.append(AccentFoldFilter())
        stop_filter = StopFilter(stopwords)
        if stop_filter.stopwords:
            filters.append(stop_filter)
        if apply_stemming:
            filters.append(PorterStemFilter())
        super().__init__(RegexTokenizer(), filters)


_ANALYZER_FACTORIES: dict[str, Callable[..., AnalyzerPipeline]] = {
    "simple": lambda **kw: StandardAnalyzer(**kw),
    "english": lambda **kw: StandardAnalyzer(**{"apply_stemming": True, "stopwords": None, **kw}),
}


def get_analyzer(name: str | None = None, **options) -> AnalyzerPipeline:
    """Return analyzer by name, defaulting to the ``simple`` configuration."""

    if name is None:
        return _ANALYZER_FACTORIES["simple"](**options)
    normalized = name.lower()
    if normalized not in _ANALYZER_FACTORIES:
        msg = f"Unknown analyzer '{name}'. Available: {sorted(_ANALYZER_FACTORIES)}"
        raise ValueError(msg)
    return _ANALYZER_FACTORIES[normalized](**options)
