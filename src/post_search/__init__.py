"""Full-text search over stored documents with prefix matching and deterministic ranking."""

from post_search.engine import SearchEngine
from post_search.search.errors import EmptyIndex, InvalidDocument, SearchError, StorageError
from post_search.search.models import Document, Posting, Query, QueryTerm, RankedDocument, SearchHit, SearchResponse
from post_search.search.schema import SearchScope, TextField, create_default_scope


__version__ = "0.1.0"

__all__ = [
    "Document",
    "EmptyIndex",
    "InvalidDocument",
    "Posting",
    "Query",
    "QueryTerm",
    "RankedDocument",
    "SearchEngine",
    "SearchError",
    "SearchHit",
    "SearchResponse",
    "SearchScope",
    "StorageError",
    "TextField",
    "create_default_scope",
]
