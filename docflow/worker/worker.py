import signal
import threading
from types import FrameType

from docflow.config.settings import Settings
from docflow.logging.logger import Log
from docflow.messaging.transport import EventType, QueueTransport
from docflow.worker.message_runner import MessageRunner


class Worker:
    """Consume loop: register -> poll -> settle, until stopped."""

    def __init__(
        self,
        transport: QueueTransport,
        queue_name: str,
        event_type: EventType,
        runner: MessageRunner,
        settings: Settings,
    ) -> None:
        self._transport = transport
        self._queue_name = queue_name
        self._event_type = event_type
        self._runner = runner
        self._settings = settings
        self._stop = threading.Event()

    def run(self, max_messages: int | None = None) -> None:
        """Main consume loop. Runs until a stop is requested or interrupted.

        If max_messages is set, stop after settling that many messages (for testing).
        """
        self._transport.consume(self._queue_name, self._runner.run, self._event_type)
        Log.info(f"Worker started, consuming from {self._queue_name}")
        settled = 0
        try:
            while not self._stop.is_set():
                if max_messages is not None and settled >= max_messages:
                    break
                settled += self._transport.poll(self._settings.broker_poll_interval_seconds)
        except KeyboardInterrupt:
            Log.info("Worker interrupted")
        finally:
            self._shutdown()

    def request_stop(self) -> None:
        self._stop.set()

    def install_signal_handlers(self) -> None:
        """Translate SIGTERM and SIGINT into a graceful stop."""
        signal.signal(signal.SIGTERM, self._on_signal)
        signal.signal(signal.SIGINT, self._on_signal)

    def _on_signal(self, signum: int, frame: FrameType | None) -> None:
        Log.info(f"Received {signal.Signals(signum).name}, stopping after in-flight message")
        self.request_stop()

    def _shutdown(self) -> None:
        Log.info("Worker shutting down gracefully")
        self._transport.stop_consuming()
        settled = self._transport.wait_for_inflight()
        Log.info("Worker stopped", settled_on_shutdown=settled)
