"""Elasticsearch-backed document index.

Entries are stored under their document id, so writing the same document twice
overwrites the earlier entry instead of creating a duplicate.
"""

from typing import Any

from elasticsearch import ApiError, Elasticsearch, NotFoundError, TransportError

from docflow.config.settings import Settings
from docflow.logging.logger import Log
from docflow.search.exceptions import IndexRejectedError, SearchBackendError
from docflow.search.models import IndexEntry, SearchHit

SEARCH_FIELDS = ("name", "author", "ocrText")

INDEX_MAPPINGS: dict[str, Any] = {
    "properties": {
        "documentId": {"type": "keyword"},
        "name": {"type": "text"},
        "author": {"type": "text"},
        "ocrText": {"type": "text"},
        "fileLocator": {"type": "keyword"},
        "lastModified": {"type": "keyword"},
    }
}

_WILDCARD_SPECIAL = ("\\", "*", "?")


class SearchIndex:
    """Write and query access to one Elasticsearch index."""

    def __init__(self, client: Elasticsearch, index_name: str, max_results: int = 100) -> None:
        self._client = client
        self._index_name = index_name
        self._max_results = max_results

    @classmethod
    def from_settings(cls, settings: Settings) -> "SearchIndex":
        client = Elasticsearch(
            settings.elasticsearch_url,
            request_timeout=settings.elasticsearch_timeout_seconds,
        )
        return cls(client, settings.elasticsearch_index, settings.search_max_results)

    @property
    def index_name(self) -> str:
        return self._index_name

    def ensure_index(self) -> None:
        """Create the index with its mappings unless it already exists."""
        try:
            if self._client.indices.exists(index=self._index_name):
                Log.info("Search index exists", index=self._index_name)
                return
            self._client.indices.create(index=self._index_name, mappings=INDEX_MAPPINGS)
        except ApiError as exc:
            if _error_type(exc) == "resource_already_exists_exception":
                return
            raise _translate(exc, f"create index '{self._index_name}'") from exc
        except TransportError as exc:
            raise _translate(exc, f"create index '{self._index_name}'") from exc
        Log.info("Search index created", index=self._index_name)

    def upsert(self, entry: IndexEntry) -> None:
        """Index ``entry`` under its document id, replacing any previous version."""
        try:
            self._client.index(
                index=self._index_name,
                id=entry.document_id,
                document=entry.to_document(),
                refresh="wait_for",
            )
        except (ApiError, TransportError) as exc:
            raise _translate(exc, f"index document {entry.document_id}") from exc
        Log.info("Document indexed", index=self._index_name, document_id=entry.document_id)

    def get(self, document_id: str) -> IndexEntry | None:
        try:
            response = self._client.get(index=self._index_name, id=document_id)
        except NotFoundError:
            return None
        except (ApiError, TransportError) as exc:
            raise _translate(exc, f"fetch document {document_id}") from exc
        return IndexEntry.from_document(response["_source"])

    def match_exact(self, term: str) -> list[SearchHit]:
        """Full-text match or case-insensitive substring match on name, author and text."""
        should: list[dict[str, Any]] = []
        pattern = f"*{_escape_wildcard(term)}*"
        for field in SEARCH_FIELDS:
            should.append({"match": {field: term}})
            should.append(
                {"wildcard": {field: {"value": pattern, "case_insensitive": True}}}
            )
        return self._search({"bool": {"should": should, "minimum_should_match": 1}})

    def match_fuzzy(self, term: str, fuzziness: int) -> list[SearchHit]:
        """Match terms within ``fuzziness`` edits on name, author and text."""
        should = [
            {"match": {field: {"query": term, "fuzziness": fuzziness}}}
            for field in SEARCH_FIELDS
        ]
        return self._search({"bool": {"should": should, "minimum_should_match": 1}})

    def _search(self, query: dict[str, Any]) -> list[SearchHit]:
        try:
            response = self._client.search(
                index=self._index_name,
                query=query,
                size=self._max_results,
            )
        except (ApiError, TransportError) as exc:
            raise SearchBackendError(f"Search request failed: {exc}") from exc
        return [
            SearchHit(
                entry=IndexEntry.from_document(hit["_source"]),
                score=float(hit.get("_score") or 0.0),
            )
            for hit in response["hits"]["hits"]
        ]


def _escape_wildcard(term: str) -> str:
    for char in _WILDCARD_SPECIAL:
        term = term.replace(char, f"\\{char}")
    return term


def _error_type(exc: ApiError) -> str:
    info = exc.info if isinstance(exc.info, dict) else {}
    error = info.get("error")
    return str(error.get("type", "")) if isinstance(error, dict) else ""


def _translate(exc: ApiError | TransportError, action: str) -> Exception:
    if isinstance(exc, ApiError) and 400 <= exc.meta.status < 500:
        return IndexRejectedError(f"Search engine rejected request to {action}: {exc}")
    return SearchBackendError(f"Search engine failed to {action}: {exc}")
