from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class IndexEntry:
    """A searchable document, keyed by ``document_id``."""

    document_id: str
    name: str
    author: str
    ocr_text: str
    file_locator: str | None = None
    last_modified: str | None = None

    def to_document(self) -> dict[str, Any]:
        return {
            "documentId": self.document_id,
            "name": self.name,
            "author": self.author,
            "ocrText": self.ocr_text,
            "fileLocator": self.file_locator,
            "lastModified": self.last_modified,
        }

    @classmethod
    def from_document(cls, source: dict[str, Any]) -> "IndexEntry":
        return cls(
            document_id=str(source["documentId"]),
            name=source.get("name") or "",
            author=source.get("author") or "",
            ocr_text=source.get("ocrText") or "",
            file_locator=source.get("fileLocator"),
            last_modified=source.get("lastModified"),
        )


@dataclass(frozen=True)
class SearchHit:
    """One search result in relevance order."""

    entry: IndexEntry
    score: float

    @property
    def document_id(self) -> str:
        return self.entry.document_id
