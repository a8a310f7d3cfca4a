from docflow.config.settings import Settings
from docflow.ocr.base import BaseOcrEngine
from docflow.ocr.pdfplumber_adapter import PdfPlumberTextEngine
from docflow.ocr.pymupdf_adapter import PyMuPdfTextEngine
from docflow.ocr.tesseract_adapter import TesseractOcrEngine


class OcrEngineFactory:
    """Creates the correct text extraction engine based on settings."""

    TEXT_LAYER_ENGINES: dict[str, type[BaseOcrEngine]] = {
        "pdfplumber": PdfPlumberTextEngine,
        "pymupdf": PyMuPdfTextEngine,
    }

    @classmethod
    def create(cls, settings: Settings) -> BaseOcrEngine:
        engine = settings.ocr_engine.lower()
        if engine == "tesseract":
            return TesseractOcrEngine(
                binary=settings.tesseract_binary,
                languages=settings.ocr_languages,
                timeout_seconds=settings.ocr_timeout_seconds,
                dpi=settings.ocr_dpi,
            )
        engine_cls = cls.TEXT_LAYER_ENGINES.get(engine)
        if engine_cls is None:
            raise ValueError(
                f"Unknown OCR engine '{engine}'. "
                f"Choose from: {['tesseract', *cls.TEXT_LAYER_ENGINES]}"
            )
        return engine_cls()
