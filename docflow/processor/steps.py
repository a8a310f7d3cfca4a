from dataclasses import replace

from docflow.logging.logger import Log
from docflow.messaging.events import OcrResult
from docflow.messaging.transport import QueueTransport
from docflow.ocr.base import BaseOcrEngine
from docflow.processor.exceptions import ProcessorError
from docflow.processor.pipeline import PipelineContext, PipelineStep, Stage
from docflow.search.index import SearchIndex
from docflow.search.models import IndexEntry
from docflow.storage.base import BaseObjectStorage


class DownloadDocumentStep(PipelineStep):
    stage = Stage.DOWNLOADING

    def __init__(self, storage: BaseObjectStorage) -> None:
        self._storage = storage

    def run(self, context: PipelineContext) -> PipelineContext:
        if not context.file_locator:
            raise ProcessorError(f"Document {context.document_id} has no file locator")
        context.raw_bytes = self._storage.download(context.file_locator)
        Log.info(
            f"Loaded {len(context.raw_bytes)} bytes for document {context.document_id}"
        )
        return context


class ExtractTextStep(PipelineStep):
    stage = Stage.EXTRACTING

    def __init__(self, ocr_engine: BaseOcrEngine) -> None:
        self._ocr_engine = ocr_engine

    def run(self, context: PipelineContext) -> PipelineContext:
        context.ocr_text = self._ocr_engine.extract(context.raw_bytes)
        # raw bytes are not needed past extraction
        context.raw_bytes = b""
        if not context.ocr_text:
            Log.warning(f"No text extracted from document {context.document_id}")
        Log.info(
            f"Extracted {len(context.ocr_text)} chars from document {context.document_id}"
        )
        return context


class PublishOcrResultStep(PipelineStep):
    stage = Stage.PUBLISHING_RESULT

    def __init__(self, transport: QueueTransport, results_queue: str) -> None:
        self._transport = transport
        self._results_queue = results_queue

    def run(self, context: PipelineContext) -> PipelineContext:
        result = OcrResult(
            document_id=context.document_id,
            document_metadata=replace(context.metadata, file_locator=context.file_locator),
            ocr_text=context.ocr_text,
        )
        self._transport.publish(result, self._results_queue)
        return context


class IndexDocumentStep(PipelineStep):
    stage = Stage.INDEXING

    def __init__(self, index: SearchIndex) -> None:
        self._index = index

    def run(self, context: PipelineContext) -> PipelineContext:
        entry = IndexEntry(
            document_id=context.document_id,
            name=context.metadata.name,
            author=context.metadata.author,
            ocr_text=context.ocr_text,
            file_locator=context.file_locator,
            last_modified=context.metadata.last_modified,
        )
        self._index.upsert(entry)
        return context
