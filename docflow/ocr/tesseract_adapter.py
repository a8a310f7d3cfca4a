"""OCR through the external tesseract executable.

Pages are rendered to PNG with PyMuPDF inside a temporary directory and each
page is passed to ``tesseract <image> stdout``. A single deadline covers the
whole document; the running subprocess is killed when it is exceeded.
"""

import subprocess
import tempfile
import time
from pathlib import Path

import pymupdf

from docflow.logging.logger import Log
from docflow.ocr.base import BaseOcrEngine
from docflow.ocr.exceptions import OcrEngineUnavailableError, OcrError, OcrTimeoutError


class TesseractOcrEngine(BaseOcrEngine):
    """Rasterizes PDF pages and runs tesseract on each of them."""

    def __init__(
        self,
        *,
        binary: str = "tesseract",
        languages: str = "eng",
        timeout_seconds: float = 120,
        dpi: int = 300,
        work_root: Path | None = None,
    ) -> None:
        self._binary = binary
        self._languages = languages
        self._timeout_seconds = timeout_seconds
        self._dpi = dpi
        self._work_root = work_root

    def extract(self, pdf_bytes: bytes) -> str:
        deadline = time.monotonic() + self._timeout_seconds
        with tempfile.TemporaryDirectory(prefix="docflow-ocr-", dir=self._work_root) as workdir:
            images = self._rasterize(pdf_bytes, Path(workdir), deadline)
            texts = []
            for image in images:
                text = self._run_tesseract(image, deadline).strip()
                if text:
                    texts.append(text)
                else:
                    Log.warning("No text extracted from page", page=image.name)
        return "\n".join(texts)

    def _rasterize(self, pdf_bytes: bytes, workdir: Path, deadline: float) -> list[Path]:
        images: list[Path] = []
        try:
            with pymupdf.open(stream=pdf_bytes, filetype="pdf") as doc:  # type: ignore[no-untyped-call]
                for index, page in enumerate(doc):
                    if time.monotonic() >= deadline:
                        raise OcrTimeoutError(
                            f"OCR exceeded {self._timeout_seconds}s while rendering page {index}"
                        )
                    path = workdir / f"page-{index:04d}.png"
                    page.get_pixmap(dpi=self._dpi).save(str(path))
                    images.append(path)
        except OcrTimeoutError:
            raise
        except Exception as exc:
            raise OcrError(f"Failed to render PDF pages: {exc}") from exc
        Log.debug("Rendered PDF pages", pages=len(images), dpi=self._dpi)
        return images

    def _run_tesseract(self, image: Path, deadline: float) -> str:
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            raise OcrTimeoutError(f"OCR exceeded {self._timeout_seconds}s before {image.name}")
        try:
            completed = subprocess.run(
                [self._binary, str(image), "stdout", "-l", self._languages],
                capture_output=True,
                text=True,
                timeout=remaining,
                check=False,
            )
        except FileNotFoundError as exc:
            raise OcrEngineUnavailableError(
                f"OCR engine '{self._binary}' is not installed"
            ) from exc
        except subprocess.TimeoutExpired as exc:
            raise OcrTimeoutError(
                f"OCR exceeded {self._timeout_seconds}s on {image.name}"
            ) from exc

        if completed.returncode != 0:
            raise OcrError(
                f"tesseract exited with {completed.returncode}: {completed.stderr.strip()}"
            )
        return completed.stdout
