class SearchError(Exception):
    """Base exception for all search and indexing errors."""


class SearchBackendError(SearchError):
    """Raised when the search engine is unreachable or fails to answer."""


class IndexRejectedError(SearchError):
    """Raised when the search engine refuses a document (client-side error)."""
