"""Readers never observe a half-applied update while a writer is busy."""

import threading

from post_search import SearchEngine


def test_readers_see_whole_documents_during_updates():
    engine = SearchEngine()
    engine.open()
    engine.index_document("1", {"title": "alpha beta"})
    engine.index_document("2", {"title": "steady"})

    stop = threading.Event()
    failures: list[str] = []

    def writer() -> None:
        flip = False
        while not stop.is_set():
            engine.index_document("1", {"title": "gamma delta" if flip else "alpha beta"})
            flip = not flip

    def reader() -> None:
        for _ in range(300):
            snapshot = engine.snapshot()
            old = {posting.doc_id for name in ("alpha", "beta") for posting in snapshot.lookup(name)}
            new = {posting.doc_id for name in ("gamma", "delta") for posting in snapshot.lookup(name)}
            if old and new:
                failures.append(f"version {snapshot.version} mixes both revisions")
            if not old and not new:
                failures.append(f"version {snapshot.version} lost document 1")
            if [posting.doc_id for posting in snapshot.lookup("steady")] != ["2"]:
                failures.append(f"version {snapshot.version} lost document 2")

    writer_thread = threading.Thread(target=writer)
    readers = [threading.Thread(target=reader) for _ in range(4)]
    writer_thread.start()
    for thread in readers:
        thread.start()
    for thread in readers:
        thread.join()
    stop.set()
    writer_thread.join()

    assert failures == []
    assert [result.doc_id for result in engine.search("steady")] == ["2"]
