"""Pipeline events and their JSON wire format.

Messages are tagged with ``type`` and ``schemaVersion`` so a consumer can tell a
DocumentReady from an OcrResult without relying on which queue delivered it.
Untagged payloads are accepted as schema version 0 of the expected event type.
"""

import json
from dataclasses import dataclass
from typing import Any, ClassVar

from docflow.messaging.exceptions import MessageDecodeError

SCHEMA_VERSION = 1


@dataclass(frozen=True)
class DocumentMetadata:
    """Descriptive fields carried alongside a document through the pipeline."""

    name: str
    author: str
    last_modified: str | None = None
    file_locator: str | None = None


@dataclass(frozen=True)
class DocumentReady:
    """A newly uploaded document is available for OCR."""

    TYPE: ClassVar[str] = "DocumentReady"

    document_id: str
    file_locator: str
    metadata: DocumentMetadata


@dataclass(frozen=True)
class OcrResult:
    """Extracted text plus document metadata, ready for indexing."""

    TYPE: ClassVar[str] = "OcrResult"

    document_id: str
    document_metadata: DocumentMetadata
    ocr_text: str


Event = DocumentReady | OcrResult

_EVENT_TYPES: dict[str, type[DocumentReady] | type[OcrResult]] = {
    DocumentReady.TYPE: DocumentReady,
    OcrResult.TYPE: OcrResult,
}


def encode_event(event: Event) -> str:
    """Serialize an event to its tagged JSON representation."""
    if isinstance(event, DocumentReady):
        payload: dict[str, Any] = {
            "documentId": event.document_id,
            "fileLocator": event.file_locator,
            "metadata": {
                "name": event.metadata.name,
                "author": event.metadata.author,
                "lastModified": event.metadata.last_modified,
            },
        }
    elif isinstance(event, OcrResult):
        payload = {
            "documentId": event.document_id,
            "documentMetadata": {
                "name": event.document_metadata.name,
                "author": event.document_metadata.author,
                "lastModified": event.document_metadata.last_modified,
                "fileLocator": event.document_metadata.file_locator,
            },
            "ocrText": event.ocr_text,
        }
    else:
        raise TypeError(f"Unsupported event type: {type(event).__name__}")
    return json.dumps({"type": event.TYPE, "schemaVersion": SCHEMA_VERSION, **payload})


def decode_event(
    raw: bytes | str,
    expected: type[DocumentReady] | type[OcrResult] | None = None,
) -> Event:
    """Parse and validate a wire payload.

    Raises:
        MessageDecodeError: if the payload is not JSON, is not an object,
            lacks a usable documentId, or its type tag is unknown or does not
            match ``expected``.
    """
    data = _load_object(raw)
    event_cls = _resolve_event_type(data, expected)
    if event_cls is DocumentReady:
        return _build_document_ready(data)
    return _build_ocr_result(data)


def _load_object(raw: bytes | str) -> dict[str, Any]:
    try:
        text = raw.decode("utf-8") if isinstance(raw, bytes) else raw
        data = json.loads(text)
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise MessageDecodeError(f"Payload is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise MessageDecodeError("Payload must be a JSON object")
    return data


def _resolve_event_type(
    data: dict[str, Any],
    expected: type[DocumentReady] | type[OcrResult] | None,
) -> type[DocumentReady] | type[OcrResult]:
    tag = data.get("type")
    if tag is None:
        if expected is None:
            raise MessageDecodeError("Untagged payload and no expected event type")
        return expected

    event_cls = _EVENT_TYPES.get(tag)
    if event_cls is None:
        raise MessageDecodeError(f"Unknown event type: {tag!r}")
    if expected is not None and event_cls is not expected:
        raise MessageDecodeError(f"Expected {expected.TYPE}, got {tag}")

    version = data.get("schemaVersion", SCHEMA_VERSION)
    if not isinstance(version, int) or isinstance(version, bool):
        raise MessageDecodeError("'schemaVersion' must be an integer")
    if version > SCHEMA_VERSION:
        raise MessageDecodeError(
            f"Unsupported schemaVersion {version} (max {SCHEMA_VERSION})"
        )
    return event_cls


def _build_document_ready(data: dict[str, Any]) -> DocumentReady:
    file_locator = data.get("fileLocator")
    if not file_locator or not isinstance(file_locator, str):
        raise MessageDecodeError("'fileLocator' must be a non-empty string")
    return DocumentReady(
        document_id=_document_id(data),
        file_locator=file_locator,
        metadata=_metadata(data.get("metadata"), "metadata"),
    )


def _build_ocr_result(data: dict[str, Any]) -> OcrResult:
    ocr_text = data.get("ocrText", "")
    if ocr_text is None:
        ocr_text = ""
    if not isinstance(ocr_text, str):
        raise MessageDecodeError("'ocrText' must be a string")
    return OcrResult(
        document_id=_document_id(data),
        document_metadata=_metadata(data.get("documentMetadata"), "documentMetadata"),
        ocr_text=ocr_text,
    )


def _document_id(data: dict[str, Any]) -> str:
    raw = data.get("documentId")
    if isinstance(raw, bool):
        raise MessageDecodeError("'documentId' must be a string or integer")
    if isinstance(raw, int):
        return str(raw)
    if isinstance(raw, str) and raw.strip():
        return raw
    raise MessageDecodeError("'documentId' is missing or empty")


def _metadata(raw: Any, field_name: str) -> DocumentMetadata:
    if not isinstance(raw, dict):
        raise MessageDecodeError(f"'{field_name}' must be an object")
    values: dict[str, str | None] = {}
    for key in ("name", "author"):
        value = raw.get(key)
        if not isinstance(value, str):
            raise MessageDecodeError(f"'{field_name}.{key}' must be a string")
        values[key] = value
    for key in ("lastModified", "fileLocator"):
        value = raw.get(key)
        if value is not None and not isinstance(value, str):
            raise MessageDecodeError(f"'{field_name}.{key}' must be a string or null")
        values[key] = value
    return DocumentMetadata(
        name=values["name"] or "",
        author=values["author"] or "",
        last_modified=values["lastModified"],
        file_locator=values["fileLocator"],
    )
