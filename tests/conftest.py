"""Shared test fixtures and configuration."""

import os

import pytest

from post_search.search.index import DocumentIndex
from post_search.search.schema import SearchScope, TextField, create_default_scope


PENNE_DOCS = {
    "1": {"title": "Penne with Arrabiata"},
    "2": {"title": "Spaghetti Carbonara"},
}


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch, tmp_path):
    """Keep host POST_SEARCH_* variables and any .env file out of the tests."""
    for key in list(os.environ):
        if key.upper().startswith("POST_SEARCH_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def scope() -> SearchScope:
    return create_default_scope()


@pytest.fixture
def weighted_scope() -> SearchScope:
    return SearchScope(
        name="weighted",
        fields=(TextField("title", weight=2.0), TextField("body", weight=1.0)),
        prefix_default=True,
        negation=True,
    )


@pytest.fixture
def penne_index(scope) -> DocumentIndex:
    index = DocumentIndex(scope)
    for doc_id, fields in PENNE_DOCS.items():
        index.index_document(doc_id, fields)
    return index
