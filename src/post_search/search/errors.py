"""Exceptions raised by the search stack."""

from __future__ import annotations


class SearchError(Exception):
    """Base class for search stack errors."""


class InvalidDocument(SearchError, ValueError):
    """Raised when an indexing request is malformed; the index is left unchanged."""

    def __init__(self, doc_id: object, reason: str) -> None:
        self.doc_id = doc_id
        self.reason = reason
        super().__init__(f"Invalid document {doc_id!r}: {reason}")


class EmptyIndex(SearchError):
    """Raised when a search runs before any document has ever been indexed.

    Distinct from a search that simply matches nothing.
    """

    def __init__(self, message: str = "No documents have been indexed yet") -> None:
        super().__init__(message)


class StorageError(SearchError):
    """Raised when a persisted document store cannot be read or written."""
