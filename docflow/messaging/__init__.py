from docflow.messaging.events import (
    DocumentMetadata,
    DocumentReady,
    Event,
    OcrResult,
    decode_event,
    encode_event,
)
from docflow.messaging.transport import QueueTransport

__all__ = [
    "DocumentMetadata",
    "DocumentReady",
    "Event",
    "OcrResult",
    "QueueTransport",
    "decode_event",
    "encode_event",
]
