"""Unit tests for analyzers."""

import pytest

from post_search.search.analyzers import (
    DEFAULT_STOPWORDS,
    AccentFoldFilter,
    LowercaseFilter,
    RegexTokenizer,
    StandardAnalyzer,
    StopFilter,
    get_analyzer,
)


def _texts(tokens):
    return [token.text for token in tokens]


def test_standard_analyzer_lowercases_and_strips_punctuation():
    analyzer = StandardAnalyzer()
    assert _texts(analyzer("Penne with Arrabiata!")) == ["penne", "with", "arrabiata"]


def test_underscores_and_apostrophes_split_words():
    analyzer = StandardAnalyzer()
    assert _texts(analyzer("Don't stop_me now")) == ["don", "t", "stop", "me", "now"]


def test_stopwords_are_kept_unless_configured():
    assert _texts(StandardAnalyzer()("the fox")) == ["the", "fox"]
    assert _texts(StandardAnalyzer(stopwords=None)("the fox")) == ["fox"]


def test_positions_are_renumbered_after_stopword_removal():
    tokens = StandardAnalyzer(stopwords=DEFAULT_STOPWORDS)("the quick and brown fox")
    assert [(token.text, token.position) for token in tokens] == [("quick", 0), ("brown", 1), ("fox", 2)]


def test_character_offsets_point_into_original_text():
    text = "Spaghetti Carbonara"
    tokens = StandardAnalyzer()(text)
    assert [text[token.start_char : token.end_char] for token in tokens] == ["Spaghetti", "Carbonara"]


def test_accent_folding_is_opt_in():
    assert _texts(StandardAnalyzer()("Crème Brûlée")) == ["crème", "brûlée"]
    assert _texts(StandardAnalyzer(ignore_accents=True)("Crème Brûlée")) == ["creme", "brulee"]


def test_english_analyzer_stems_and_drops_stopwords():
    analyzer = get_analyzer("english")
    assert _texts(analyzer("The cats")) == ["cat"]


def test_lexemes_is_lazy_and_restartable():
    analyzer = StandardAnalyzer()
    stream = analyzer.lexemes("one two")
    assert next(stream) == "one"
    assert list(analyzer.lexemes("one two")) == ["one", "two"]
    assert list(analyzer.lexemes("one two")) == list(analyzer.lexemes("one two"))


def test_filters_compose_over_tokenizer():
    tokens = StopFilter(["b"])(LowercaseFilter()(RegexTokenizer()("A B C")))
    assert _texts(tokens) == ["a", "c"]


def test_accent_fold_filter_leaves_ascii_tokens_untouched():
    tokens = list(RegexTokenizer()("plain"))
    assert list(AccentFoldFilter()(tokens)) == tokens


def test_empty_text_yields_no_tokens():
    assert StandardAnalyzer()("") == []
    assert StandardAnalyzer()("?! ...") == []


def test_unknown_analyzer_name_raises():
    with pytest.raises(ValueError, match="Unknown analyzer"):
        get_analyzer("klingon")


def test_stemmer_keeps_no_per_word_state():
    analyzer = StandardAnalyzer(apply_stemming=True)
    stemmer = analyzer.filters[-1]
    for number in range(1000):
        analyzer(f"cooking{number}s")
    assert vars(stemmer) == {}
    assert _texts(analyzer("cooking")) == ["cook"]
