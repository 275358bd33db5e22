"""Domain exception hierarchy for the AlokaHub chat client."""

from __future__ import annotations


class AlokaHubError(RuntimeError):
    """Base class for all domain-level chat errors."""


class AttachmentError(AlokaHubError):
    """Raised when a file cannot be turned into an attachment."""

    def __init__(self, file_name: str, cause: BaseException | str) -> None:
        self.file_name = file_name
        self.cause = cause
        super().__init__(
            f"Could not read {file_name}. It might be corrupted or protected."
        )


class RequestError(AlokaHubError):
    """Raised when the chat endpoint fails or returns an unusable body."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class ConfigValidationError(AlokaHubError):
    """Raised when configuration cannot be validated safely."""


class StorageError(AlokaHubError):
    """Raised when the key-value store cannot be read or written."""


class StorageFormatError(StorageError):
    """Raised when a persisted value cannot be decoded safely."""
