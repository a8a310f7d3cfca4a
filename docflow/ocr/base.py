from abc import ABC, abstractmethod


class BaseOcrEngine(ABC):
    """Contract for all text extraction engines."""

    @abstractmethod
    def extract(self, pdf_bytes: bytes) -> str:
        """Extract plain text from PDF bytes.

        Args:
            pdf_bytes: Raw PDF file content.

        Returns:
            Extracted text, possibly empty.

        Raises:
            OcrError: if extraction fails for any reason.
        """
