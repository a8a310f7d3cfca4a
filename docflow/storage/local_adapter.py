import shutil
import uuid
from pathlib import Path
from typing import BinaryIO

from docflow.storage.base import BaseObjectStorage
from docflow.storage.exceptions import ObjectNotFoundError, StorageError


class LocalObjectStorage(BaseObjectStorage):
    """Filesystem-backed storage. Locators are paths relative to ``files_root``."""

    FILES_ROOT = Path("/app/files")

    def __init__(self, files_root: Path | None = None) -> None:
        self._files_root = files_root if files_root is not None else self.FILES_ROOT

    def download(self, locator: str) -> bytes:
        path = self._resolve_path(locator)
        if not path.is_file():
            raise ObjectNotFoundError(f"File not found: {path}")
        try:
            return path.read_bytes()
        except OSError as exc:
            raise StorageError(f"Failed to read {path}: {exc}") from exc

    def upload(self, name: str, stream: BinaryIO) -> str:
        locator = f"{uuid.uuid4()}_{Path(name).name}"
        path = self._resolve_path(locator)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with path.open("wb") as target:
                shutil.copyfileobj(stream, target)
        except OSError as exc:
            raise StorageError(f"Failed to write {path}: {exc}") from exc
        return locator

    def _resolve_path(self, locator: str) -> Path:
        root = self._files_root.resolve()
        path = (root / locator).resolve()
        if not path.is_relative_to(root):
            raise StorageError(f"Locator '{locator}' escapes the storage root")
        return path
