import time
from collections.abc import Callable

from docflow.config.settings import Settings
from docflow.logging.logger import Log
from docflow.messaging.events import Event
from docflow.messaging.exceptions import MessageDecodeError
from docflow.ocr.exceptions import OcrError
from docflow.processor.base import BaseProcessor
from docflow.processor.exceptions import ProcessorError
from docflow.search.exceptions import IndexRejectedError
from docflow.storage.exceptions import ObjectNotFoundError

DEFAULT_PERMANENT_ERRORS: tuple[type[Exception], ...] = (
    MessageDecodeError,
    ObjectNotFoundError,
    OcrError,
    IndexRejectedError,
    ProcessorError,
)


class MessageRunner:
    """Run one message through the processor, retrying transient failures in-process.

    Permanent errors and an exhausted attempt budget are re-raised so the
    transport rejects the message without requeue.
    """

    def __init__(
        self,
        processor: BaseProcessor,
        settings: Settings,
        permanent_errors: tuple[type[Exception], ...] = DEFAULT_PERMANENT_ERRORS,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._processor = processor
        self._max_attempts = settings.max_handler_attempts
        self._backoff_seconds = settings.retry_backoff_seconds
        self._permanent_errors = permanent_errors
        self._sleep = sleep

    def run(self, event: Event) -> None:
        attempt = 1
        while True:
            Log.info(
                f"Running message {event.document_id} (attempt {attempt}/{self._max_attempts})"
            )
            try:
                self._processor.process(event)
            except self._permanent_errors as exc:
                Log.error(f"Message {event.document_id} failed permanently: {exc}")
                raise
            except Exception as exc:
                if attempt >= self._max_attempts:
                    Log.error(
                        f"Message {event.document_id} failed after {attempt} attempts: {exc}"
                    )
                    raise
                delay = self._backoff_seconds * 2 ** (attempt - 1)
                Log.warning(
                    f"Message {event.document_id} will be retried: {exc}",
                    attempt=attempt,
                    retry_in=delay,
                )
                self._sleep(delay)
                attempt += 1
                continue
            Log.info(f"Message {event.document_id} completed successfully")
            return
