"""Exception hierarchy for storage providers (configuration, credentials, upload failures)."""

from __future__ import annotations

from typing import Any


class StorageError(Exception):
    """Base exception for all storage provider errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(StorageError):
    """Raised when provider properties are missing or invalid, or the bucket does not exist."""


class AuthenticationError(StorageError):
    """Raised when the vendor rejects (or cannot find) the credentials."""


class UploadError(StorageError):
    """Base class for failures while uploading or signing."""


class TransientNetworkError(UploadError):
    """Connection errors, timeouts, throttling and 5xx responses. Safe to retry."""


class PermanentUploadError(UploadError):
    """Vendor API rejected the request. Retrying will not help."""
