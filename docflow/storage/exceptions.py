class StorageError(Exception):
    """Raised when object storage cannot be read or written."""


class ObjectNotFoundError(StorageError):
    """Raised when a locator does not resolve to a stored object."""
