import pymupdf

from docflow.logging.logger import Log
from docflow.ocr.base import BaseOcrEngine
from docflow.ocr.exceptions import OcrError


class PyMuPdfTextEngine(BaseOcrEngine):
    """Reads the embedded text layer with PyMuPDF, in reading order. No OCR is performed."""

    def extract(self, pdf_bytes: bytes) -> str:
        try:
            with pymupdf.open(stream=pdf_bytes, filetype="pdf") as doc:  # type: ignore[no-untyped-call]
                page_count = doc.page_count
                texts = [page.get_text("text", sort=True).strip() for page in doc]
        except Exception as exc:
            raise OcrError(f"pymupdf could not read the document: {exc}") from exc
        texts = [text for text in texts if text]
        if page_count and not texts:
            Log.warning("PDF has no text layer", pages=page_count, engine="pymupdf")
        return "\n".join(texts)
