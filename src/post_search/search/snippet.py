"""Highlighted excerpts with sentence-boundary awareness.

Excerpts behave like PostgreSQL's ``ts_headline``: matched lexemes are
wrapped in ``<b>``/``</b>`` by default and, when nothing matches, the start of
the text is returned. Matching runs through the same analyzer as indexing, so
a prefix term "pen" highlights "Penne" but not "open".
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
import re

from post_search.search.analyzers import AnalyzerPipeline, Token
from post_search.search.models import QueryTerm


# Sentence-ending punctuation pattern
SENTENCE_END_PATTERN = re.compile(r"[.!?]\s+")
# Word boundary pattern (for fallback)
WORD_BOUNDARY_PATTERN = re.compile(r"\s+")


@dataclass(frozen=True)
class HighlightOptions:
    """Markers and sizing for highlighted excerpts."""

    start_sel: str = "<b>"
    stop_sel: str = "</b>"
    max_chars: int = 300
    surrounding_context: int = 100
    max_highlights: int = 10

    def __post_init__(self) -> None:
        if self.max_chars < 1:
            msg = f"max_chars must be positive, got {self.max_chars}"
            raise ValueError(msg)


def find_sentence_start(text: str, position: int, max_lookback: int = 200) -> int:
    """Find the start of the sentence containing the position.

    Args:
        text: The full text to search in.
        position: The position to find sentence start for.
        max_lookback: Maximum characters to look back.

    Returns:
        Index of sentence start, or a nearby word boundary if none is found.
    """
    if position == 0:
        return 0

    start_search = max(0, position - max_lookback)
    search_text = text[start_search:position]

    matches = list(SENTENCE_END_PATTERN.finditer(search_text))
    if matches:
        return start_search + matches[-1].end()

    if start_search == 0:
        return 0

    words = list(WORD_BOUNDARY_PATTERN.finditer(search_text))
    if words:
        quarter_pos = len(search_text) // 4
        for match in words:
            if match.start() >= quarter_pos:
                return start_search + match.end()

    return start_search


def find_sentence_end(text: str, position: int, max_lookahead: int = 200) -> int:
    """Find the end of the sentence containing the position.

    Returns:
        Index just past the sentence end, or a nearby word boundary if none is found.
    """
    if position >= len(text):
        return len(text)

    end_search = min(len(text), position + max_lookahead)
    search_text = text[position:end_search]

    match = SENTENCE_END_PATTERN.search(search_text)
    if match:
        return position + match.end()

    if end_search == len(text):
        return end_search

    words = list(WORD_BOUNDARY_PATTERN.finditer(search_text))
    if words:
        three_quarter_pos = (len(search_text) * 3) // 4
        for match in reversed(words):
            if match.start() <= three_quarter_pos:
                return position + match.start()

    return end_search


def find_matches(text: str, terms: Sequence[QueryTerm], analyzer: AnalyzerPipeline) -> list[Token]:
    """Return the tokens of ``text`` matched by any positive term."""
    positive = [term for term in terms if not term.negated]
    if not text or not positive:
        return []
    return [token for token in analyzer.tokens(text) if any(term.matches(token.text) for term in positive)]


def _excerpt_bounds(text: str, first: Token, options: HighlightOptions) -> tuple[int, int]:
    initial_start = max(0, first.start_char - options.surrounding_context)
    initial_end = min(len(text), first.end_char + options.surrounding_context)

    start = find_sentence_start(text, initial_start, max_lookback=options.surrounding_context)
    end = find_sentence_end(text, initial_end, max_lookahead=options.surrounding_context)

    if end - start > options.max_chars:
        half_max = options.max_chars // 2
        center = (first.start_char + first.end_char) // 2
        start = max(0, min(first.start_char, center - half_max))
        end = min(len(text), start + options.max_chars)
    return start, end


def build_highlight(
    text: str,
    terms: Sequence[QueryTerm],
    analyzer: AnalyzerPipeline,
    options: HighlightOptions | None = None,
) -> str:
    """Build an excerpt of ``text`` around the first match with matches wrapped.

    This is the main entry point for highlighting.
    """
    options = options or HighlightOptions()
    if not text:
        return ""

    matches = find_matches(text, terms, analyzer)
    if not matches:
        return text[: options.max_chars].strip()

    start, end = _excerpt_bounds(text, matches[0], options)
    selected = [token for token in matches if token.start_char >= start and token.end_char <= end]
    selected = selected[: options.max_highlights]

    pieces: list[str] = []
    cursor = start
    for token in selected:
        pieces.append(text[cursor : token.start_char])
        pieces.append(f"{options.start_sel}{text[token.start_char : token.end_char]}{options.stop_sel}")
        cursor = token.end_char
    pieces.append(text[cursor:end])
    return "".join(pieces).strip()
