"""Unit tests for query parsing."""

import pytest

from post_search.search.models import QueryTerm
from post_search.search.query import QueryParser
from post_search.search.schema import SearchScope, TextField


@pytest.fixture
def parser(scope) -> QueryParser:
    return QueryParser(scope)


@pytest.mark.parametrize("text", ["", "   ", "\t\n", None])
def test_blank_queries_have_no_terms(parser, text):
    query = parser.parse(text)
    assert query.is_empty()
    assert query.terms == ()


def test_punctuation_only_query_has_no_terms(parser):
    assert parser.parse("?! -- ...").is_empty()


def test_terms_are_normalized_with_the_shared_analyzer(parser):
    assert parser.parse("PENNE, Arrabiata!", prefix=False).terms == (
        QueryTerm("penne", is_prefix=False),
        QueryTerm("arrabiata", is_prefix=False),
    )


def test_prefix_flag_overrides_scope_default(parser):
    assert parser.parse("pen").terms == (QueryTerm("pen", is_prefix=True),)
    assert parser.parse("pen", prefix=False).terms == (QueryTerm("pen", is_prefix=False),)


def test_scope_default_applies_when_prefix_is_omitted():
    exact_scope = SearchScope(fields=(TextField("title"),), prefix_default=False)
    assert QueryParser(exact_scope).parse("pen").terms == (QueryTerm("pen", is_prefix=False),)


def test_duplicates_are_dropped_in_order_of_first_appearance(parser):
    terms = parser.parse("pasta Penne pasta penne sauce").terms
    assert [term.text for term in terms] == ["pasta", "penne", "sauce"]


def test_raw_text_is_kept(parser):
    assert parser.parse("Pen").raw_text == "Pen"


def test_negation_marks_exact_excluded_terms(weighted_scope):
    query = QueryParser(weighted_scope).parse("pasta !penne")
    assert query.terms == (
        QueryTerm("pasta", is_prefix=True),
        QueryTerm("penne", is_prefix=False, negated=True),
    )
    assert query.positive_terms == (QueryTerm("pasta", is_prefix=True),)
    assert query.negated_terms == (QueryTerm("penne", negated=True),)


def test_bang_is_plain_punctuation_without_negation(parser):
    assert parser.parse("!penne", prefix=False).terms == (QueryTerm("penne"),)


def test_only_negated_terms_leaves_no_positive_terms(weighted_scope):
    query = QueryParser(weighted_scope).parse("!penne")
    assert not query.is_empty()
    assert query.positive_terms == ()
