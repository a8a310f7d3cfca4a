from docflow.config.settings import Settings
from docflow.logging.logger import Log
from docflow.messaging.events import DocumentReady, Event
from docflow.messaging.transport import QueueTransport
from docflow.ocr.base import BaseOcrEngine
from docflow.ocr.factory import OcrEngineFactory
from docflow.processor.base import BaseProcessor
from docflow.processor.exceptions import UnexpectedEventError
from docflow.processor.pipeline import Pipeline, PipelineContext
from docflow.processor.steps import DownloadDocumentStep, ExtractTextStep, PublishOcrResultStep
from docflow.storage.base import BaseObjectStorage
from docflow.storage.factory import ObjectStorageFactory


class OcrProcessor(BaseProcessor):
    """Turns a DocumentReady into an OcrResult.

    Pipeline: download -> extract -> publish result.
    """

    def __init__(
        self,
        storage: BaseObjectStorage,
        ocr_engine: BaseOcrEngine,
        transport: QueueTransport,
        results_queue: str,
    ) -> None:
        self._pipeline = Pipeline(
            "ocr",
            [
                DownloadDocumentStep(storage),
                ExtractTextStep(ocr_engine),
                PublishOcrResultStep(transport, results_queue),
            ],
        )

    def process(self, event: Event) -> None:
        if not isinstance(event, DocumentReady):
            raise UnexpectedEventError(
                f"OCR processor cannot handle {type(event).__name__}"
            )
        Log.info(f"Processing document {event.document_id}", name=event.metadata.name)
        context = PipelineContext(
            document_id=event.document_id,
            metadata=event.metadata,
            file_locator=event.file_locator,
        )
        self._pipeline.run(context)


def build_ocr_processor(
    settings: Settings,
    transport: QueueTransport,
    storage: BaseObjectStorage | None = None,
    ocr_engine: BaseOcrEngine | None = None,
) -> OcrProcessor:
    """Build an OcrProcessor with the configured storage backend and OCR engine."""
    return OcrProcessor(
        storage=storage if storage is not None else ObjectStorageFactory.create(settings),
        ocr_engine=ocr_engine if ocr_engine is not None else OcrEngineFactory.create(settings),
        transport=transport,
        results_queue=settings.queue_name("ocrResultsQueue"),
    )
