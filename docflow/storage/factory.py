from docflow.config.settings import Settings
from docflow.storage.base import BaseObjectStorage
from docflow.storage.local_adapter import LocalObjectStorage
from docflow.storage.s3_adapter import S3ObjectStorage


class ObjectStorageFactory:
    """Creates the configured object storage backend."""

    BACKENDS = ("s3", "local")

    @classmethod
    def create(cls, settings: Settings) -> BaseObjectStorage:
        backend = settings.storage_backend.lower()
        if backend == "s3":
            storage = S3ObjectStorage.from_settings(settings)
            storage.ensure_bucket()
            return storage
        if backend == "local":
            return LocalObjectStorage(files_root=settings.files_root)
        raise ValueError(
            f"Unknown storage backend '{backend}'. Choose from: {list(cls.BACKENDS)}"
        )
