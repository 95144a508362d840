"""Unit tests for JSON document persistence."""

from pathlib import Path

import orjson
import pytest

from post_search.search.errors import StorageError
from post_search.search.models import Document
from post_search.search.schema import create_default_scope
from post_search.search.storage import JsonDocumentStore


def test_missing_file_loads_as_empty_corpus(tmp_path: Path):
    corpus = JsonDocumentStore(tmp_path / "missing.json").load()
    assert corpus.documents == ()
    assert corpus.scope is None
    assert corpus.ever_indexed is False


def test_documents_and_scope_survive_a_round_trip(tmp_path: Path):
    store = JsonDocumentStore(tmp_path / "store" / "posts.json")
    scope = create_default_scope()
    documents = [Document("2", {"title": "Spaghetti Carbonara"}), Document("1", {"title": "Penne", "body": "Hot"})]

    store.save(documents, scope)
    corpus = store.load()

    assert [document.to_dict() for document in corpus.documents] == [
        {"id": "1", "fields": {"title": "Penne", "body": "Hot"}},
        {"id": "2", "fields": {"title": "Spaghetti Carbonara"}},
    ]
    assert corpus.scope == scope
    assert corpus.saved_at is not None
    assert corpus.ever_indexed is True


def test_save_leaves_no_temporary_file(tmp_path: Path):
    store = JsonDocumentStore(tmp_path / "posts.json")
    store.save([Document("1", {"title": "Penne"})])
    assert [path.name for path in tmp_path.iterdir()] == ["posts.json"]


def test_ever_indexed_is_kept_for_an_emptied_store(tmp_path: Path):
    store = JsonDocumentStore(tmp_path / "posts.json")
    store.save([], ever_indexed=True)
    assert store.load().ever_indexed is True
    store.save([], ever_indexed=False)
    assert store.load().ever_indexed is False


def test_postings_are_not_persisted(tmp_path: Path):
    path = tmp_path / "posts.json"
    JsonDocumentStore(path).save([Document("1", {"title": "Penne"})], create_default_scope())
    assert set(orjson.loads(path.read_bytes())) == {"v", "saved_at", "scope", "ever_indexed", "documents"}


@pytest.mark.parametrize(
    "payload",
    [
        b"{not json",
        b"[1, 2, 3]",
        b'{"v": 99, "documents": []}',
        b'{"v": 1, "documents": [{"fields": {}}]}',
        b'{"v": 1, "documents": [], "scope": {"fields": []}}',
    ],
)
def test_unreadable_store_raises_storage_error(tmp_path: Path, payload: bytes):
    path = tmp_path / "posts.json"
    path.write_bytes(payload)
    with pytest.raises(StorageError):
        JsonDocumentStore(path).load()
