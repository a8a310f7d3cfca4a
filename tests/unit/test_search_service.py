from typing import Any
from unittest.mock import MagicMock, patch

import pytest

from docflow.search.exceptions import SearchBackendError
from docflow.search.models import IndexEntry
from docflow.search.service import SearchService


def _entry(document_id: str, name: str, author: str = "", ocr_text: str = "") -> IndexEntry:
    return IndexEntry(document_id=document_id, name=name, author=author, ocr_text=ocr_text)


class TestExactPhase:
    def test_exact_hit_skips_fuzzy(self, fake_index: Any) -> None:
        fake_index.upsert(_entry("1", "Concert", author="Wagner"))
        service = SearchService(fake_index)

        hits = service.search("Wagner")

        assert [h.document_id for h in hits] == ["1"]
        assert fake_index.fuzzy_calls == []

    def test_substring_match_is_exact(self, fake_index: Any) -> None:
        fake_index.upsert(_entry("1", "Invoice 2024", ocr_text="Total due $500"))
        service = SearchService(fake_index)

        assert [h.document_id for h in service.search("500")] == ["1"]
        assert fake_index.fuzzy_calls == []


class TestFuzzyPhase:
    def test_typo_falls_back_to_fuzzy(self, fake_index: Any) -> None:
        fake_index.upsert(_entry("1", "Concert", author="Wagner"))
        service = SearchService(fake_index)

        hits = service.search("Wagnr")

        assert [h.document_id for h in hits] == ["1"]
        assert fake_index.fuzzy_calls == [("Wagnr", 2)]

    def test_fuzziness_is_two(self) -> None:
        assert SearchService.FUZZINESS == 2

    def test_no_matches_returns_empty_list(self, fake_index: Any) -> None:
        fake_index.upsert(_entry("1", "Concert", author="Wagner"))
        service = SearchService(fake_index)

        assert service.search("zzzzzzzz") == []
        assert len(fake_index.fuzzy_calls) == 1

    def test_phases_do_not_blend(self) -> None:
        index = MagicMock()
        exact_hit = MagicMock()
        index.match_exact.return_value = [exact_hit]
        index.match_fuzzy.return_value = [MagicMock(), MagicMock()]

        assert SearchService(index).search("term") == [exact_hit]
        index.match_fuzzy.assert_not_called()


class TestBackendFailures:
    def test_exact_failure_propagates(self) -> None:
        index = MagicMock()
        index.match_exact.side_effect = SearchBackendError("down")

        with pytest.raises(SearchBackendError):
            SearchService(index).search("term")
        index.match_fuzzy.assert_not_called()

    def test_fuzzy_failure_propagates(self) -> None:
        index = MagicMock()
        index.match_exact.return_value = []
        index.match_fuzzy.side_effect = SearchBackendError("down")

        with pytest.raises(SearchBackendError):
            SearchService(index).search("term")


class TestFromSettings:
    def test_builds_index_from_settings(self) -> None:
        settings = MagicMock()
        with patch("docflow.search.service.SearchIndex.from_settings") as mock_build:
            service = SearchService.from_settings(settings)

        mock_build.assert_called_once_with(settings)
        assert service._index is mock_build.return_value
