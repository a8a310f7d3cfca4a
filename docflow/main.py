from docflow.config.settings import Settings
from docflow.logging.logger import Log
from docflow.messaging.events import DocumentReady, OcrResult
from docflow.messaging.transport import QueueTransport
from docflow.processor.indexing_processor import build_indexing_processor
from docflow.processor.ocr_processor import build_ocr_processor
from docflow.worker.message_runner import MessageRunner
from docflow.worker.worker import Worker

ROLES = ("ocr", "indexing")


def build_worker(settings: Settings, transport: QueueTransport, role: str) -> Worker:
    """Wire the processor, runner and worker for ``role``."""
    if role == "ocr":
        processor = build_ocr_processor(settings, transport)
        queue_name = settings.queue_name("documentReadyQueue")
        event_type: type[DocumentReady] | type[OcrResult] = DocumentReady
    elif role == "indexing":
        processor = build_indexing_processor(settings)
        queue_name = settings.queue_name("ocrResultsQueue")
        event_type = OcrResult
    else:
        raise ValueError(f"Unknown worker role '{role}'. Choose from: {list(ROLES)}")
    runner = MessageRunner(processor, settings)
    return Worker(transport, queue_name, event_type, runner, settings)


def main(role: str | None = None) -> None:
    """Entry point: load settings -> connect broker -> build dependencies -> consume."""
    settings = Settings()
    Log.configure(settings.log_level)
    role = (role or settings.worker_role).lower()
    if role not in ROLES:
        raise ValueError(f"Unknown worker role '{role}'. Choose from: {list(ROLES)}")
    Log.info(f"Starting {role} worker", env=settings.app_env)

    with QueueTransport.from_settings(settings) as transport:
        worker = build_worker(settings, transport, role)
        worker.install_signal_handlers()
        worker.run()


def ocr_worker_main() -> None:
    main("ocr")


def indexing_worker_main() -> None:
    main("indexing")


if __name__ == "__main__":
    main()
