"""Durable named-queue transport over an AMQP broker.

One connection is used for consuming and a cloned connection for publishing, so
handler threads can publish while the I/O thread keeps draining deliveries.
Each consumer registration owns its channel (prefetch=1) and a single-thread
executor; handler bodies run on the executor and the resulting ack or reject
is always issued from the thread that calls ``poll``.

The publisher connection never reads frames, so it runs without heartbeats
and reconnects on demand when a publish hits a dropped connection. A dead-letter
write that still fails on a broken connection is raised out of ``poll`` with
the message left unsettled, so the broker redelivers it to the next worker.
"""

import socket
import threading
from collections.abc import Callable, Mapping
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from functools import partial
from types import TracebackType
from typing import Any

from kombu import Connection, Consumer, Exchange, Producer, Queue
from kombu.entity import PERSISTENT_DELIVERY_MODE
from kombu.exceptions import OperationalError
from kombu.message import Message

from docflow.config.settings import Settings
from docflow.logging.logger import Log
from docflow.messaging.events import DocumentReady, Event, OcrResult, decode_event, encode_event
from docflow.messaging.exceptions import MessageDecodeError, UnknownQueueError

Handler = Callable[[Event], None]
EventType = type[DocumentReady] | type[OcrResult]

_DEFAULT_EXCHANGE = Exchange("", type="direct")


@dataclass
class _Delivery:
    message: Message
    event: Event
    future: "Future[None]"


@dataclass
class _Registration:
    queue_name: str
    handler: Handler
    event_type: EventType
    channel: Any
    consumer: Consumer | None = None
    inflight: _Delivery | None = None
    executor: ThreadPoolExecutor = field(
        default_factory=lambda: ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="docflow-handler"
        )
    )


class QueueTransport:
    """Publish/consume primitives over durable queues with manual acknowledgement."""

    def __init__(
        self,
        connection: Connection,
        queues: Mapping[str, str],
        *,
        dead_letter_enabled: bool = True,
        dead_letter_suffix: str = "-dlq",
        publish_max_retries: int = 3,
    ) -> None:
        self._connection = connection
        self._publish_connection: Connection | None = None
        self._publish_channel: Any = None
        self._producer: Producer | None = None
        self._publish_lock = threading.Lock()
        self._queue_names = frozenset(queues.values())
        self._dead_letter_enabled = dead_letter_enabled
        self._dead_letter_suffix = dead_letter_suffix
        self._publish_max_retries = publish_max_retries
        self._registrations: list[_Registration] = []
        self._settled = 0
        self._closed = False

    @classmethod
    def from_settings(cls, settings: Settings) -> "QueueTransport":
        """Build and connect a transport. Broker errors propagate to the caller."""
        connection = Connection(
            settings.amqp_url(),
            heartbeat=settings.broker_heartbeat_seconds,
        )
        transport = cls(
            connection,
            settings.queues,
            dead_letter_enabled=settings.dead_letter_enabled,
            dead_letter_suffix=settings.dead_letter_suffix,
            publish_max_retries=settings.broker_connect_max_retries,
        )
        transport.connect(max_retries=settings.broker_connect_max_retries)
        return transport

    def connect(self, max_retries: int | None = None) -> None:
        """Open consumer and publisher connections and declare all configured queues."""
        self._connection.ensure_connection(
            max_retries=max_retries, errback=self._on_connection_error
        )
        self._publish_connection = self._connection.clone(heartbeat=0)
        self._publish_connection.ensure_connection(
            max_retries=max_retries, errback=self._on_connection_error
        )
        self._publish_channel = self._publish_connection.channel()
        self._producer = Producer(self._publish_channel, exchange=_DEFAULT_EXCHANGE)
        for name in sorted(self._queue_names):
            self._declare(name)
            if self._dead_letter_enabled:
                self._declare(self.dead_letter_queue(name))
        Log.info("Broker connection established", queues=sorted(self._queue_names))

    def publish(self, event: Event, queue_name: str) -> None:
        """Serialize ``event`` as persistent JSON and send it to ``queue_name``."""
        self._require_configured(queue_name)
        body = encode_event(event)
        try:
            self._send(body, queue_name, content_type="application/json")
        except Exception:
            Log.exception(
                "Failed to publish message",
                queue=queue_name,
                document_id=event.document_id,
            )
            raise
        Log.info(
            "Published message",
            queue=queue_name,
            type=event.TYPE,
            document_id=event.document_id,
        )

    def consume(self, queue_name: str, handler: Handler, event_type: EventType) -> None:
        """Register ``handler`` for deliveries on ``queue_name`` (prefetch=1, manual ack)."""
        self._require_configured(queue_name)
        channel = self._connection.channel()
        registration = _Registration(
            queue_name=queue_name,
            handler=handler,
            event_type=event_type,
            channel=channel,
        )
        consumer = Consumer(
            channel,
            queues=[self._queue(queue_name)],
            on_message=partial(self._on_message, registration),
            no_ack=False,
        )
        consumer.qos(prefetch_count=1)
        consumer.consume()
        registration.consumer = consumer
        self._registrations.append(registration)
        Log.info("Consuming messages", queue=queue_name, type=event_type.TYPE)

    def poll(self, timeout: float) -> int:
        """Drain broker events for up to ``timeout`` seconds and settle finished handlers.

        Returns:
            Number of messages acknowledged or rejected during this call.
        """
        before = self._settled
        self._settle_finished()
        try:
            self._connection.drain_events(timeout=timeout)
        except socket.timeout:
            self._connection.heartbeat_check()
        self._settle_finished()
        return self._settled - before

    def stop_consuming(self) -> None:
        """Cancel every consumer so the broker stops delivering new messages."""
        for registration in self._registrations:
            if registration.consumer is None:
                continue
            try:
                registration.consumer.cancel()
            except Exception as exc:
                Log.warning("Failed to cancel consumer", queue=registration.queue_name, error=exc)
            registration.consumer = None

    def wait_for_inflight(self, timeout: float | None = None) -> int:
        """Block until in-flight handlers finish, then settle them."""
        futures = [r.inflight.future for r in self._registrations if r.inflight is not None]
        if futures:
            Log.info("Waiting for in-flight messages", count=len(futures))
            wait(futures, timeout=timeout)
        before = self._settled
        self._settle_finished()
        return self._settled - before

    def close(self) -> None:
        """Stop consuming, then close consumer channels, publisher channel and connections."""
        if self._closed:
            return
        self._closed = True
        self.stop_consuming()
        for registration in self._registrations:
            registration.executor.shutdown(wait=False, cancel_futures=True)
            self._close_quietly(registration.channel, f"channel {registration.queue_name}")
        self._registrations.clear()
        if self._publish_channel is not None:
            self._close_quietly(self._publish_channel, "publisher channel")
        if self._publish_connection is not None:
            self._close_quietly(self._publish_connection, "publisher connection")
        self._close_quietly(self._connection, "connection")
        Log.info("Broker connection and channels closed")

    def dead_letter_queue(self, queue_name: str) -> str:
        return f"{queue_name}{self._dead_letter_suffix}"

    def __enter__(self) -> "QueueTransport":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def _on_message(self, registration: _Registration, message: Message) -> None:
        try:
            event = decode_event(message.body, expected=registration.event_type)
        except MessageDecodeError as exc:
            Log.error(
                "Rejecting undecodable message without requeue",
                queue=registration.queue_name,
                error=exc,
            )
            self._dead_letter(registration.queue_name, message, f"decode error: {exc}")
            message.reject(requeue=False)
            self._settled += 1
            return

        Log.info(
            "Message received",
            queue=registration.queue_name,
            document_id=event.document_id,
        )
        future = registration.executor.submit(registration.handler, event)
        registration.inflight = _Delivery(message=message, event=event, future=future)

    def _settle_finished(self) -> None:
        for registration in self._registrations:
            delivery = registration.inflight
            if delivery is None or not delivery.future.done():
                continue
            registration.inflight = None
            error = delivery.future.exception()
            if error is None:
                delivery.message.ack()
                Log.info(
                    "Message acknowledged",
                    queue=registration.queue_name,
                    document_id=delivery.event.document_id,
                )
            else:
                Log.error(
                    "Handler failed, rejecting without requeue",
                    queue=registration.queue_name,
                    document_id=delivery.event.document_id,
                    error=repr(error),
                )
                self._dead_letter(registration.queue_name, delivery.message, repr(error))
                delivery.message.reject(requeue=False)
            self._settled += 1

    def _dead_letter(self, queue_name: str, message: Message, reason: str) -> None:
        if not self._dead_letter_enabled:
            return
        dlq_name = self.dead_letter_queue(queue_name)
        try:
            self._send(
                message.body,
                dlq_name,
                content_type=message.content_type or "application/octet-stream",
                headers={"x-original-queue": queue_name, "x-failure-reason": reason},
            )
        except Exception as exc:
            Log.exception("Failed to send message to dead-letter queue", queue=dlq_name)
            if self._is_connection_failure(exc):
                raise
            return
        Log.info("Message sent to dead-letter queue", queue=dlq_name)

    def _send(
        self,
        body: bytes | str,
        queue_name: str,
        *,
        content_type: str,
        headers: dict[str, str] | None = None,
    ) -> None:
        if self._producer is None:
            raise RuntimeError("Transport not connected. Call connect() first.")
        with self._publish_lock:
            self._producer.publish(
                body,
                routing_key=queue_name,
                content_type=content_type,
                content_encoding="utf-8" if isinstance(body, str) else None,
                delivery_mode=PERSISTENT_DELIVERY_MODE,
                headers=headers,
                retry=True,
                retry_policy={
                    "max_retries": self._publish_max_retries,
                    "interval_start": 0,
                    "interval_step": 1,
                    "interval_max": 5,
                },
            )

    def _declare(self, queue_name: str) -> None:
        with self._publish_lock:
            self._queue(queue_name).declare(channel=self._publish_channel)
        Log.debug("Declared queue", queue=queue_name)

    @staticmethod
    def _queue(queue_name: str) -> Queue:
        return Queue(
            queue_name,
            exchange=_DEFAULT_EXCHANGE,
            routing_key=queue_name,
            durable=True,
            exclusive=False,
            auto_delete=False,
        )

    def _require_configured(self, queue_name: str) -> None:
        if queue_name not in self._queue_names:
            raise UnknownQueueError(f"Queue {queue_name} not found in configuration")

    def _is_connection_failure(self, exc: BaseException) -> bool:
        connection_errors: tuple[type[BaseException], ...] = (OperationalError,)
        if self._publish_connection is not None:
            connection_errors += tuple(self._publish_connection.connection_errors)
        return isinstance(exc, connection_errors)

    @staticmethod
    def _on_connection_error(exc: Exception, interval: float) -> None:
        Log.warning("Broker connection failed, retrying", error=exc, retry_in=interval)

    @staticmethod
    def _close_quietly(resource: Any, label: str) -> None:
        try:
            resource.close()
        except Exception as exc:
            Log.warning(f"Failed to close {label}", error=exc)
