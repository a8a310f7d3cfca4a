from abc import ABC, abstractmethod
from typing import BinaryIO


class BaseObjectStorage(ABC):
    """Contract for object storage backends holding uploaded documents."""

    @abstractmethod
    def download(self, locator: str) -> bytes:
        """Fetch the bytes stored under ``locator``.

        Raises:
            ObjectNotFoundError: if nothing is stored under the locator.
            StorageError: on any other I/O or backend failure.
        """

    @abstractmethod
    def upload(self, name: str, stream: BinaryIO) -> str:
        """Store ``stream`` and return the locator that resolves to it.

        Raises:
            StorageError: on any backend failure.
        """
