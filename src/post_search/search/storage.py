"""JSON persistence for indexed documents.

Only documents and the scope they were indexed under are written to disk.
Postings are derived data and are rebuilt from the documents on load, which
keeps the index a pure function of document content across restarts.

Payloads are minified JSON written with ``orjson``; writes go through a
temporary file and an atomic rename.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timezone
import logging
from pathlib import Path
from typing import Any

import orjson

from post_search.search.errors import StorageError
from post_search.search.models import Document, doc_id_sort_key
from post_search.search.schema import SearchScope


logger = logging.getLogger(__name__)

FORMAT_VERSION = 1


@dataclass(frozen=True)
class StoredCorpus:
    """Documents plus the scope recorded next to them."""

    documents: tuple[Document, ...]
    scope: SearchScope | None = None
    saved_at: datetime | None = None
    ever_indexed: bool = False


class JsonDocumentStore:
    """Persist documents as a single minified JSON payload."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.exists()

    def load(self) -> StoredCorpus:
        """Load documents from disk; a missing file is an empty corpus."""
        if not self.path.exists():
            return StoredCorpus(documents=())
        try:
            data = orjson.loads(self.path.read_bytes())
        except (OSError, orjson.JSONDecodeError) as exc:
            msg = f"Cannot read document store {self.path}: {exc}"
            raise StorageError(msg) from exc

        if not isinstance(data, dict):
            msg = f"Document store {self.path} is not a JSON object"
            raise StorageError(msg)
        version = data.get("v", FORMAT_VERSION)
        if version != FORMAT_VERSION:
            msg = f"Unsupported document store version {version!r} in {self.path}"
            raise StorageError(msg)

        try:
            documents = tuple(Document.from_dict(entry) for entry in data.get("documents", []))
            scope = SearchScope.from_dict(data["scope"]) if data.get("scope") else None
            saved_raw = data.get("saved_at")
            saved_at = datetime.fromisoformat(saved_raw) if isinstance(saved_raw, str) else None
        except (KeyError, TypeError, ValueError) as exc:
            msg = f"Malformed document store {self.path}: {exc}"
            raise StorageError(msg) from exc

        logger.info("Loaded %d documents from %s", len(documents), self.path)
        return StoredCorpus(
            documents=documents,
            scope=scope,
            saved_at=saved_at,
            ever_indexed=bool(data.get("ever_indexed", documents)),
        )

    def save(
        self,
        documents: Iterable[Document],
        scope: SearchScope | None = None,
        *,
        ever_indexed: bool = True,
    ) -> Path:
        """Write every document to disk, replacing the previous payload.

        ``ever_indexed`` survives a save with zero documents so that a later
        load can still tell "emptied" apart from "never used".
        """
        ordered = sorted(documents, key=lambda document: doc_id_sort_key(document.doc_id))
        payload: dict[str, Any] = {
            "v": FORMAT_VERSION,
            "saved_at": datetime.now(timezone.utc).isoformat(),
            "scope": scope.to_dict() if scope is not None else None,
            "ever_indexed": ever_indexed or bool(ordered),
            "documents": [document.to_dict() for document in ordered],
        }
        try:
            self._atomic_write_json(self.path, payload)
        except OSError as exc:
            msg = f"Cannot write document store {self.path}: {exc}"
            raise StorageError(msg) from exc
        logger.debug("Saved %d documents to %s", len(ordered), self.path)
        return self.path

    def _atomic_write_json(self, path: Path, payload: Any) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_suffix(path.suffix + ".tmp") if path.suffix else path.with_name(path.name + ".tmp")
        tmp_path.write_bytes(orjson.dumps(payload))
        tmp_path.replace(path)
