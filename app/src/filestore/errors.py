from __future__ import annotations


class StorageError(Exception):
    """Base class for failures raised by the storage layer."""


class ConfigurationError(StorageError):
    """Required storage configuration is missing or unusable."""


class TransferError(StorageError, OSError):
    """Writing the object bytes to the backend failed."""

    def __init__(self, message: str, original: BaseException | None = None):
        super().__init__(message)
        self.original = original


class MetadataError(StorageError):
    """The bytes were written but setting the object metadata failed.

    The object exists in the bucket; callers should treat the upload as failed
    and upload again under a fresh key.
    """

    def __init__(self, message: str, file_key: str, original: BaseException | None = None):
        super().__init__(message)
        self.file_key = file_key
        self.original = original
