import io
import uuid
from collections.abc import Callable, Generator

import pytest
from kombu import Connection
from reportlab.lib.pagesizes import letter
from reportlab.pdfgen import canvas

from docflow.config.settings import Settings
from docflow.messaging.transport import QueueTransport
from docflow.search.models import IndexEntry, SearchHit

MEMORY_BROKER_URL = "memory://"


@pytest.fixture()
def sample_pdf_bytes() -> bytes:
    """Generate a minimal single-page PDF with known text content."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.drawString(72, 720, "Hello PDF World")
    c.save()
    return buf.getvalue()


@pytest.fixture()
def multi_page_pdf_bytes() -> bytes:
    """Generate a two-page PDF with known text on each page."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.drawString(72, 720, "Page one content")
    c.showPage()
    c.drawString(72, 720, "Page two content")
    c.save()
    return buf.getvalue()


@pytest.fixture()
def empty_pdf_bytes() -> bytes:
    """Generate a valid PDF with no text content (blank page)."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.showPage()
    c.save()
    return buf.getvalue()


@pytest.fixture()
def invoice_pdf_bytes() -> bytes:
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.drawString(72, 720, "Invoice 2024")
    c.drawString(72, 700, "Total due $500")
    c.save()
    return buf.getvalue()


@pytest.fixture()
def queue_names() -> dict[str, str]:
    """Unique queue names per test; the in-memory broker state is process-global."""
    suffix = uuid.uuid4().hex[:8]
    return {
        "documentReadyQueue": f"ocrQueue-{suffix}",
        "ocrResultsQueue": f"ocrResultsQueue-{suffix}",
    }


@pytest.fixture()
def settings(queue_names: dict[str, str]) -> Settings:
    return Settings(
        broker_url=MEMORY_BROKER_URL,
        queues=queue_names,
        broker_poll_interval_seconds=0.05,
        retry_backoff_seconds=0,
        storage_backend="local",
        ocr_engine="pdfplumber",
    )


@pytest.fixture()
def memory_connection() -> Connection:
    return Connection(MEMORY_BROKER_URL, transport_options={"polling_interval": 0.01})


@pytest.fixture()
def memory_transport(
    memory_connection: Connection,
    queue_names: dict[str, str],
) -> Generator[QueueTransport, None, None]:
    transport = QueueTransport(memory_connection, queue_names)
    transport.connect()
    try:
        yield transport
    finally:
        transport.close()


@pytest.fixture()
def inspect_channel() -> Generator[object, None, None]:
    """A channel on a separate in-memory connection for looking at queue contents."""
    connection = Connection(MEMORY_BROKER_URL)
    channel = connection.channel()
    try:
        yield channel
    finally:
        channel.close()
        connection.close()


@pytest.fixture()
def queue_size(inspect_channel: object) -> Callable[[str], int]:
    def _size(name: str) -> int:
        return int(inspect_channel.queue_declare(queue=name, passive=True).message_count)  # type: ignore[attr-defined]

    return _size


def _levenshtein(a: str, b: str) -> int:
    previous = list(range(len(b) + 1))
    for i, char_a in enumerate(a, start=1):
        current = [i]
        for j, char_b in enumerate(b, start=1):
            current.append(
                min(
                    previous[j] + 1,
                    current[j - 1] + 1,
                    previous[j - 1] + (char_a != char_b),
                )
            )
        previous = current
    return previous[-1]


class FakeSearchIndex:
    """In-memory stand-in for SearchIndex with substring and edit-distance matching."""

    def __init__(self) -> None:
        self.entries: dict[str, IndexEntry] = {}
        self.exact_calls: list[str] = []
        self.fuzzy_calls: list[tuple[str, int]] = []
        self.upserts = 0

    def ensure_index(self) -> None:
        pass

    def upsert(self, entry: IndexEntry) -> None:
        self.upserts += 1
        self.entries[entry.document_id] = entry

    def get(self, document_id: str) -> IndexEntry | None:
        return self.entries.get(document_id)

    def match_exact(self, term: str) -> list[SearchHit]:
        self.exact_calls.append(term)
        needle = term.lower()
        return [
            SearchHit(entry=entry, score=1.0)
            for entry in self.entries.values()
            if any(needle in value.lower() for value in _fields(entry))
        ]

    def match_fuzzy(self, term: str, fuzziness: int) -> list[SearchHit]:
        self.fuzzy_calls.append((term, fuzziness))
        needle = term.lower()
        return [
            SearchHit(entry=entry, score=0.5)
            for entry in self.entries.values()
            if any(
                _levenshtein(needle, token) <= fuzziness
                for value in _fields(entry)
                for token in value.lower().split()
            )
        ]


def _fields(entry: IndexEntry) -> tuple[str, str, str]:
    return (entry.name, entry.author, entry.ocr_text)


@pytest.fixture()
def fake_index() -> FakeSearchIndex:
    return FakeSearchIndex()
