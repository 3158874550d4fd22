"""Storage provider contract: upload a conversion artifact and return a 30-minute signed URL."""

from __future__ import annotations

import io
import logging
import mimetypes
import os
import time
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import timedelta
from typing import BinaryIO

from conversion_storage.errors import (
    AuthenticationError,
    ConfigurationError,
    PermanentUploadError,
    StorageError,
    TransientNetworkError,
)
from conversion_storage.upload_logging import log_upload_event

SIGNED_URL_TTL = timedelta(minutes=30)

PROPERTY_PREFIX = "storageprovider"


def storage_key(base_path: str, job_id: str, filename: str) -> str:
    """{base_path}/{job_id}/{filename}, base path segment omitted when empty. No escaping."""
    prefix = base_path + "/" if base_path else ""
    return prefix + job_id + "/" + filename


def guess_content_type(filename: str, default: str = "application/octet-stream") -> str:
    content_type, _ = mimetypes.guess_type(filename)
    return content_type or default


def expand_home(path: str) -> str:
    """Expand a leading ~ to the current user's home directory."""
    if path.startswith("~"):
        return os.path.expanduser(path)
    return path


@dataclass(frozen=True)
class UploadResult:
    """Outcome of one put: either a signed URL or the classified error."""

    key: str
    url: str | None = None
    error: StorageError | None = None

    @property
    def ok(self) -> bool:
        return self.url is not None and self.error is None

    @property
    def retryable(self) -> bool:
        return isinstance(self.error, TransientNetworkError)

    def unwrap(self) -> str:
        """Return the URL or raise the stored error."""
        if self.error is not None:
            raise self.error
        if self.url is None:
            raise PermanentUploadError(f"No URL was issued for {self.key}", {"key": self.key})
        return self.url


class PropertyReader:
    """Reads one vendor's storageprovider.{vendor}.* keys and collects every problem before failing."""

    def __init__(self, properties: Mapping[str, str], vendor: str) -> None:
        self._properties = properties
        self.vendor = vendor
        self.problems: list[str] = []

    def name(self, key: str) -> str:
        return f"{PROPERTY_PREFIX}.{self.vendor}.{key}"

    def optional(self, key: str, default: str = "") -> str:
        value = self._properties.get(self.name(key))
        if value is None:
            return default
        return str(value).strip()

    def required(self, key: str, message: str | None = None) -> str:
        value = self.optional(key)
        if not value:
            self.problems.append(message or f"{self.name(key)} must have a value")
        return value

    def readable_file(self, key: str, what: str = "credentials file") -> str:
        """Required filesystem path; ~ is expanded before the existence/readability check."""
        value = self.required(key)
        if not value:
            return value
        path = expand_home(value)
        if not (os.path.isfile(path) and os.access(path, os.R_OK)):
            self.problems.append(f"{self.name(key)} must point to a valid {what} that can be accessed")
        return path

    def invalid(self, key: str, message: str) -> None:
        self.problems.append(f"{self.name(key)} {message}")

    def raise_if_invalid(self) -> None:
        if self.problems:
            raise ConfigurationError("\n".join(self.problems), {"vendor": self.vendor, "problems": list(self.problems)})


class StorageProvider:
    """Abstract storage: put bytes or a sized stream under {base_path}/{job_id}/{filename}, return a signed URL.

    Subclasses implement _upload_stream, _sign, verify and optionally _upload_bytes and _classify.
    """

    name = "base"
    default_content_type = "application/octet-stream"

    def __init__(self, base_path: str = "") -> None:
        self.base_path = base_path or ""
        self.logger = logging.getLogger(f"conversion_storage.providers.{self.name}")

    def key_for(self, job_id: str, filename: str) -> str:
        return storage_key(self.base_path, job_id, filename)

    def content_type_for(self, filename: str) -> str:
        return guess_content_type(filename, self.default_content_type)

    def put(self, data: bytes, filename: str, job_id: str) -> UploadResult:
        """Upload a byte buffer. Failures are logged and returned, never raised."""
        return self._put(filename, job_id, len(data), lambda key: self._upload_bytes(data, key, filename))

    def put_stream(self, stream: BinaryIO, size: int, filename: str, job_id: str) -> UploadResult:
        """Upload `size` bytes read from `stream`. Failures are logged and returned, never raised."""
        return self._put(filename, job_id, size, lambda key: self._upload_stream(stream, size, key, filename))

    def verify(self) -> None:
        """One round-trip confirming the bucket is reachable with these credentials. Raises on failure."""
        raise NotImplementedError

    def _put(self, filename: str, job_id: str, size: int, upload) -> UploadResult:
        if not filename:
            raise ValueError("filename must be non-empty")
        if not job_id:
            raise ValueError("job_id must be non-empty")
        key = self.key_for(job_id, filename)
        started_at = time.monotonic()
        log_upload_event(self.name, job_id, key, "started", size=size)
        try:
            upload(key)
            url = self._sign(key)
        except Exception as e:
            error = self._classify(e)
            self.logger.exception("Upload failed: job_id=%s key=%s error=%s", job_id, key, e)
            log_upload_event(
                self.name,
                job_id,
                key,
                "failed",
                duration_ms=int((time.monotonic() - started_at) * 1000),
                error=error.message,
                error_type=type(error).__name__,
            )
            return UploadResult(key=key, error=error)
        log_upload_event(
            self.name,
            job_id,
            key,
            "completed",
            duration_ms=int((time.monotonic() - started_at) * 1000),
            size=size,
        )
        return UploadResult(key=key, url=url)

    def _upload_bytes(self, data: bytes, key: str, filename: str) -> None:
        with io.BytesIO(data) as stream:
            self._upload_stream(stream, len(data), key, filename)

    def _upload_stream(self, stream: BinaryIO, size: int, key: str, filename: str) -> None:
        raise NotImplementedError

    def _sign(self, key: str) -> str:
        raise NotImplementedError

    def _verify_failed(self, exc: Exception) -> StorageError:
        """Error for a failed verify(): AuthenticationError as classified, anything else a ConfigurationError."""
        error = self._classify(exc)
        if isinstance(error, (AuthenticationError, ConfigurationError)):
            return error
        details = dict(error.details, retryable=isinstance(error, TransientNetworkError))
        return ConfigurationError(f"{self.name} storage could not be verified: {error.message}", details)

    def _classify(self, exc: Exception) -> StorageError:
        """Map an SDK exception to AuthenticationError | TransientNetworkError | PermanentUploadError."""
        if isinstance(exc, StorageError):
            return exc
        if isinstance(exc, (ConnectionError, TimeoutError)):
            return TransientNetworkError(str(exc), {"vendor": self.name})
        return PermanentUploadError(str(exc), {"vendor": self.name})
