import pytest

from docflow.ocr.exceptions import OcrError
from docflow.ocr.pymupdf_adapter import PyMuPdfTextEngine


class TestPyMuPdfTextEngine:
    def test_extract_returns_text(self, sample_pdf_bytes: bytes) -> None:
        result = PyMuPdfTextEngine().extract(sample_pdf_bytes)
        assert "Hello PDF World" in result

    def test_extract_multi_page_in_order(self, multi_page_pdf_bytes: bytes) -> None:
        result = PyMuPdfTextEngine().extract(multi_page_pdf_bytes)
        assert result.index("Page one content") < result.index("Page two content")

    def test_extract_raises_on_invalid_bytes(self) -> None:
        with pytest.raises(OcrError):
            PyMuPdfTextEngine().extract(b"not a pdf")
