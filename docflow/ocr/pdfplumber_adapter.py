import io

import pdfplumber

from docflow.logging.logger import Log
from docflow.ocr.base import BaseOcrEngine
from docflow.ocr.exceptions import OcrError


class PdfPlumberTextEngine(BaseOcrEngine):
    """Reads the embedded text layer with pdfplumber. No OCR is performed.

    Scanned documents have no text layer and come back empty; use the
    tesseract engine for those.
    """

    def extract(self, pdf_bytes: bytes) -> str:
        try:
            with pdfplumber.open(io.BytesIO(pdf_bytes)) as pdf:
                page_count = len(pdf.pages)
                texts = [(page.extract_text() or "").strip() for page in pdf.pages]
        except Exception as exc:
            raise OcrError(f"pdfplumber could not read the document: {exc}") from exc
        texts = [text for text in texts if text]
        if page_count and not texts:
            Log.warning("PDF has no text layer", pages=page_count, engine="pdfplumber")
        return "\n".join(texts)
