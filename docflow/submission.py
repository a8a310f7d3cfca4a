from typing import BinaryIO

from docflow.logging.logger import Log
from docflow.messaging.events import DocumentMetadata, DocumentReady
from docflow.messaging.transport import QueueTransport
from docflow.storage.base import BaseObjectStorage


class DocumentSubmitter:
    """Stores an uploaded file and announces it to the OCR queue."""

    def __init__(
        self,
        storage: BaseObjectStorage,
        transport: QueueTransport,
        queue_name: str,
    ) -> None:
        self._storage = storage
        self._transport = transport
        self._queue_name = queue_name

    def submit(
        self,
        document_id: str,
        name: str,
        author: str,
        stream: BinaryIO,
        filename: str,
        last_modified: str | None = None,
    ) -> DocumentReady:
        """Upload the file, then publish DocumentReady for it.

        Nothing is published when the upload fails.
        """
        locator = self._storage.upload(filename, stream)
        event = DocumentReady(
            document_id=document_id,
            file_locator=locator,
            metadata=DocumentMetadata(name=name, author=author, last_modified=last_modified),
        )
        self._transport.publish(event, self._queue_name)
        Log.info(f"Submitted document {document_id}", locator=locator)
        return event
