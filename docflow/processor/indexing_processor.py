from docflow.config.settings import Settings
from docflow.logging.logger import Log
from docflow.messaging.events import Event, OcrResult
from docflow.processor.base import BaseProcessor
from docflow.processor.exceptions import UnexpectedEventError
from docflow.processor.pipeline import Pipeline, PipelineContext
from docflow.processor.steps import IndexDocumentStep
from docflow.search.index import SearchIndex


class IndexingProcessor(BaseProcessor):
    """Writes an OcrResult into the search index, keyed by document id."""

    def __init__(self, index: SearchIndex) -> None:
        self._pipeline = Pipeline("indexing", [IndexDocumentStep(index)])

    def process(self, event: Event) -> None:
        if not isinstance(event, OcrResult):
            raise UnexpectedEventError(
                f"Indexing processor cannot handle {type(event).__name__}"
            )
        Log.info(f"Indexing document {event.document_id}", chars=len(event.ocr_text))
        context = PipelineContext(
            document_id=event.document_id,
            metadata=event.document_metadata,
            file_locator=event.document_metadata.file_locator,
            ocr_text=event.ocr_text,
        )
        self._pipeline.run(context)


def build_indexing_processor(
    settings: Settings,
    index: SearchIndex | None = None,
) -> IndexingProcessor:
    """Build an IndexingProcessor and make sure the target index exists."""
    if index is None:
        index = SearchIndex.from_settings(settings)
    index.ensure_index()
    return IndexingProcessor(index)
