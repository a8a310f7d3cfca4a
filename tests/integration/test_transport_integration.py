import threading
import time
from typing import Any

import pytest
from kombu import Producer

from docflow.messaging.events import DocumentMetadata, DocumentReady, Event
from docflow.messaging.transport import QueueTransport


def _event(document_id: str) -> DocumentReady:
    return DocumentReady(
        document_id=document_id,
        file_locator=f"{document_id}.pdf",
        metadata=DocumentMetadata(name="n", author="a"),
    )


def _poll_for(transport: QueueTransport, expected: int, seconds: float = 10) -> int:
    settled = 0
    deadline = time.monotonic() + seconds
    while settled < expected and time.monotonic() < deadline:
        settled += transport.poll(0.2)
    return settled


@pytest.mark.integration
class TestTransportIntegration:
    def test_publish_and_consume(
        self, broker_transport: QueueTransport, broker_queues: dict[str, str]
    ) -> None:
        queue = broker_queues["documentReadyQueue"]
        received: list[Event] = []
        broker_transport.consume(queue, received.append, DocumentReady)

        broker_transport.publish(_event("1"), queue)

        assert _poll_for(broker_transport, 1) == 1
        assert received == [_event("1")]

    def test_prefetch_serialises_handlers(
        self, broker_transport: QueueTransport, broker_queues: dict[str, str]
    ) -> None:
        queue = broker_queues["documentReadyQueue"]
        active = 0
        peak = 0
        lock = threading.Lock()

        def handler(event: Event) -> None:
            nonlocal active, peak
            with lock:
                active += 1
                peak = max(peak, active)
            time.sleep(0.1)
            with lock:
                active -= 1

        broker_transport.consume(queue, handler, DocumentReady)
        for i in range(3):
            broker_transport.publish(_event(str(i)), queue)

        assert _poll_for(broker_transport, 3) == 3
        assert peak == 1

    def test_malformed_message_goes_to_dead_letter_queue(
        self,
        broker_transport: QueueTransport,
        broker_queues: dict[str, str],
        broker_channel: Any,
    ) -> None:
        queue = broker_queues["ocrResultsQueue"]
        broker_transport.consume(queue, lambda event: None, DocumentReady)
        Producer(broker_channel).publish("garbage", routing_key=queue, content_type="text/plain")

        assert _poll_for(broker_transport, 1) == 1

        dlq = broker_transport.dead_letter_queue(queue)
        assert broker_channel.queue_declare(queue=dlq, passive=True).message_count == 1
