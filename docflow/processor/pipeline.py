from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass
from enum import StrEnum
from typing import ClassVar

from docflow.logging.logger import Log
from docflow.messaging.events import DocumentMetadata


class Stage(StrEnum):
    RECEIVED = "received"
    DOWNLOADING = "downloading"
    EXTRACTING = "extracting"
    PUBLISHING_RESULT = "publishing_result"
    INDEXING = "indexing"
    DONE = "done"
    FAILED = "failed"


@dataclass(slots=True)
class PipelineContext:
    document_id: str
    metadata: DocumentMetadata
    file_locator: str | None = None
    stage: Stage = Stage.RECEIVED
    raw_bytes: bytes = b""
    ocr_text: str = ""
    error_message: str = ""


class PipelineStep(ABC):
    stage: ClassVar[Stage]

    @abstractmethod
    def run(self, context: PipelineContext) -> PipelineContext:
        raise NotImplementedError


class Pipeline:
    """Runs steps in order, recording the stage of the message as it moves."""

    def __init__(self, name: str, steps: Sequence[PipelineStep]) -> None:
        self._name = name
        self._steps = list(steps)

    def run(self, context: PipelineContext) -> PipelineContext:
        try:
            for step in self._steps:
                self._transition(context, step.stage)
                context = step.run(context)
        except Exception as exc:
            context.error_message = str(exc)
            self._transition(context, Stage.FAILED)
            Log.error(
                f"{self._name} pipeline failed",
                document_id=context.document_id,
                error=repr(exc),
            )
            raise
        self._transition(context, Stage.DONE)
        return context

    def _transition(self, context: PipelineContext, stage: Stage) -> None:
        Log.info(
            f"{self._name} stage",
            document_id=context.document_id,
            transition=f"{context.stage}->{stage}",
        )
        context.stage = stage
