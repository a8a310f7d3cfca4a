from docflow.config.settings import Settings
from docflow.logging.logger import Log
from docflow.search.exceptions import SearchError
from docflow.search.index import SearchIndex
from docflow.search.models import SearchHit


class SearchService:
    """Two-phase search: exact matching first, fuzzy matching only when nothing matched.

    The phases never blend. When the exact phase returns at least one hit, the
    fuzzy phase is not executed.
    """

    FUZZINESS = 2

    def __init__(self, index: SearchIndex) -> None:
        self._index = index

    @classmethod
    def from_settings(cls, settings: Settings) -> "SearchService":
        return cls(SearchIndex.from_settings(settings))

    def search(self, term: str) -> list[SearchHit]:
        try:
            hits = self._index.match_exact(term)
            if hits:
                Log.info("Exact search matched", term=term, hits=len(hits))
                return hits

            Log.info("No exact matches, falling back to fuzzy search", term=term)
            hits = self._index.match_fuzzy(term, self.FUZZINESS)
        except SearchError:
            Log.exception("Search failed", term=term)
            raise
        Log.info("Fuzzy search finished", term=term, hits=len(hits))
        return hits
