class OcrError(Exception):
    """Raised when text extraction fails for a document."""


class OcrTimeoutError(OcrError):
    """Raised when the OCR engine exceeds its time budget and is killed."""


class OcrEngineUnavailableError(OcrError):
    """Raised when the OCR engine executable cannot be started."""
