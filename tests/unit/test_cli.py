"""Tests for the post-search command line."""

from pathlib import Path

import orjson
import pytest

from post_search import cli


@pytest.fixture(autouse=True)
def quiet_logging(monkeypatch):
    monkeypatch.setattr(cli, "configure_logging", lambda *args, **kwargs: None)


@pytest.fixture
def corpus(tmp_path: Path) -> Path:
    path = tmp_path / "corpus.json"
    path.write_bytes(
        orjson.dumps(
            [
                {"id": "1", "fields": {"title": "Penne with Arrabiata"}},
                {"id": "2", "fields": {"title": "Spaghetti Carbonara"}},
            ]
        )
    )
    return path


def _run(capsys, *argv: str):
    code = cli.main(list(argv))
    out = capsys.readouterr().out
    return code, (orjson.loads(out) if out.strip() else None)


def test_index_then_search(capsys, tmp_path, corpus):
    store = str(tmp_path / "posts.json")
    assert _run(capsys, "--store", store, "index", str(corpus)) == (0, {"indexed": 2, "total": 2})

    code, results = _run(capsys, "--store", store, "search", "pen")
    assert code == 0
    assert results == [{"id": "1", "score": 1.0}]

    code, results = _run(capsys, "--store", store, "search", "pen", "--exact")
    assert code == 0
    assert results == []


def test_search_with_highlights(capsys, tmp_path, corpus):
    store = str(tmp_path / "posts.json")
    cli.main(["--store", store, "index", str(corpus)])
    capsys.readouterr()

    code, results = _run(capsys, "--store", store, "search", "carb", "--highlight", "--field", "title")
    assert code == 0
    assert results == [{"id": "2", "score": 1.0, "highlights": {"title": "Spaghetti <b>Carbonara</b>"}}]


def test_remove(capsys, tmp_path, corpus):
    store = str(tmp_path / "posts.json")
    cli.main(["--store", store, "index", str(corpus)])
    capsys.readouterr()

    assert _run(capsys, "--store", store, "remove", "1") == (0, {"removed": True, "total": 1})
    assert _run(capsys, "--store", store, "remove", "99") == (0, {"removed": False, "total": 1})
    assert _run(capsys, "--store", store, "search", "pen") == (0, [])


def test_search_before_anything_is_indexed(capsys, tmp_path):
    code, results = _run(capsys, "--store", str(tmp_path / "posts.json"), "search", "pen")
    assert code == cli.EXIT_EMPTY_INDEX
    assert results is None


def test_store_path_from_environment(capsys, monkeypatch, tmp_path, corpus):
    monkeypatch.setenv("POST_SEARCH_STORE_PATH", str(tmp_path / "env-store.json"))
    code, _ = _run(capsys, "index", str(corpus))
    assert code == 0
    assert (tmp_path / "env-store.json").exists()


def test_missing_store_is_an_error(capsys, corpus):
    code, results = _run(capsys, "index", str(corpus))
    assert code == cli.EXIT_ERROR
    assert results is None


def test_invalid_document_in_corpus(capsys, tmp_path):
    corpus = tmp_path / "bad.json"
    corpus.write_bytes(orjson.dumps([{"id": "3", "fields": {}}]))
    code, results = _run(capsys, "--store", str(tmp_path / "posts.json"), "index", str(corpus))
    assert code == cli.EXIT_ERROR
    assert results is None
    assert not (tmp_path / "posts.json").exists()


def test_corpus_must_be_a_list(capsys, tmp_path):
    corpus = tmp_path / "bad.json"
    corpus.write_bytes(orjson.dumps({"id": "1"}))
    code, _ = _run(capsys, "--store", str(tmp_path / "posts.json"), "index", str(corpus))
    assert code == cli.EXIT_ERROR


def test_invalid_configuration(capsys, monkeypatch, tmp_path):
    monkeypatch.setenv("POST_SEARCH_FIELD_WEIGHTS", "comments:2")
    code, _ = _run(capsys, "--store", str(tmp_path / "posts.json"), "search", "pen")
    assert code == cli.EXIT_ERROR


def test_prefix_and_exact_are_mutually_exclusive(capsys):
    with pytest.raises(SystemExit):
        cli.main(["search", "pen", "--prefix", "--exact"])


def test_numeric_ids_tie_in_numeric_order(capsys, tmp_path):
    corpus = tmp_path / "numeric.json"
    corpus.write_bytes(
        orjson.dumps(
            [
                {"id": 10, "fields": {"title": "Penne"}},
                {"id": 9, "fields": {"title": "Penne"}},
            ]
        )
    )
    store = str(tmp_path / "posts.json")
    cli.main(["--store", store, "index", str(corpus)])
    capsys.readouterr()

    code, results = _run(capsys, "--store", store, "search", "pen")
    assert code == 0
    assert [result["id"] for result in results] == ["9", "10"]


def test_metrics_reports_document_count(capsys, tmp_path, corpus):
    store = str(tmp_path / "posts.json")
    cli.main(["--store", store, "index", str(corpus)])
    capsys.readouterr()

    code = cli.main(["--store", store, "metrics"])
    out = capsys.readouterr().out
    assert code == 0
    assert 'post_search_index_document_count{scope="settings"} 2.0' in out
