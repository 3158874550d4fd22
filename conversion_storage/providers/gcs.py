"""GCS storage provider: uploads to a Google Cloud Storage bucket, V4 signed URLs."""

from __future__ import annotations

from collections.abc import Mapping
from typing import BinaryIO

from google.api_core import exceptions as api_exceptions
from google.auth import exceptions as auth_exceptions
from google.cloud import storage
from google.oauth2 import service_account

from conversion_storage.errors import (
    AuthenticationError,
    ConfigurationError,
    PermanentUploadError,
    StorageError,
    TransientNetworkError,
)
from conversion_storage.providers.base import SIGNED_URL_TTL, PropertyReader, StorageProvider, expand_home

CLOUD_PLATFORM_SCOPE = "https://www.googleapis.com/auth/cloud-platform"

_TRANSIENT = (
    api_exceptions.TooManyRequests,
    api_exceptions.ServerError,
    auth_exceptions.TransportError,
    ConnectionError,
    TimeoutError,
)
_AUTH = (
    api_exceptions.Unauthorized,
    api_exceptions.Forbidden,
    auth_exceptions.DefaultCredentialsError,
    auth_exceptions.RefreshError,
)


def _credentials_from_file(credentials_path: str):
    # Signing V4 URLs needs the private key, so this must be a service account key file.
    return service_account.Credentials.from_service_account_file(
        expand_home(credentials_path),
        scopes=[CLOUD_PLATFORM_SCOPE],
    )


class GCPStorage(StorageProvider):
    """Storage using Google Cloud Storage."""

    name = "gcp"

    def __init__(
        self,
        project_id: str,
        bucket_name: str,
        base_path: str = "",
        *,
        credentials=None,
        client: storage.Client | None = None,
    ) -> None:
        super().__init__(base_path)
        self.project_id = project_id
        self.bucket_name = bucket_name
        self._client = client or storage.Client(project=project_id, credentials=credentials)
        self._bucket = self._client.bucket(bucket_name)

    @classmethod
    def from_environment(cls, project_id: str, bucket_name: str, base_path: str = "") -> GCPStorage:
        """Application default credentials (GOOGLE_APPLICATION_CREDENTIALS)."""
        return cls(project_id, bucket_name, base_path)

    @classmethod
    def from_credentials_file(
        cls,
        credentials_path: str,
        project_id: str,
        bucket_name: str,
        base_path: str = "",
    ) -> GCPStorage:
        return cls(project_id, bucket_name, base_path, credentials=_credentials_from_file(credentials_path))

    @classmethod
    def from_properties(cls, properties: Mapping[str, str], *, verify: bool = True) -> GCPStorage:
        """storageprovider.gcp.{credentialspath, projectid, bucketname, basepath}."""
        reader = PropertyReader(properties, cls.name)
        credentials_path = reader.readable_file("credentialspath")
        project_id = reader.required("projectid")
        bucket_name = reader.required("bucketname")
        base_path = reader.optional("basepath")
        reader.raise_if_invalid()

        try:
            credentials = _credentials_from_file(credentials_path)
        except (ValueError, KeyError) as e:
            raise ConfigurationError(
                f"{reader.name('credentialspath')} is not a service account key file: {e}",
                {"vendor": cls.name},
            ) from e
        provider = cls(project_id, bucket_name, base_path, credentials=credentials)
        if verify:
            provider.verify()
        return provider

    def verify(self) -> None:
        try:
            self._client.get_service_account_email(project=self.project_id)
        except _AUTH as e:
            raise AuthenticationError(f"GCP rejected the credentials for project {self.project_id}: {e}") from e
        except api_exceptions.NotFound as e:
            raise ConfigurationError(f"GCP project {self.project_id} was not found: {e}") from e
        except Exception as e:
            raise self._verify_failed(e) from e

    def _upload_bytes(self, data: bytes, key: str, filename: str) -> None:
        blob = self._bucket.blob(key)
        blob.upload_from_string(data, content_type=self.content_type_for(filename))

    def _upload_stream(self, stream: BinaryIO, size: int, key: str, filename: str) -> None:
        blob = self._bucket.blob(key)
        blob.upload_from_file(stream, size=size, content_type=self.content_type_for(filename))

    def _sign(self, key: str) -> str:
        blob = self._bucket.blob(key)
        return blob.generate_signed_url(version="v4", expiration=SIGNED_URL_TTL, method="GET")

    def _classify(self, exc: Exception) -> StorageError:
        if isinstance(exc, _AUTH):
            return AuthenticationError(str(exc), {"vendor": self.name})
        if isinstance(exc, _TRANSIENT):
            return TransientNetworkError(str(exc), {"vendor": self.name})
        if isinstance(exc, api_exceptions.GoogleAPIError):
            return PermanentUploadError(str(exc), {"vendor": self.name})
        return super()._classify(exc)
