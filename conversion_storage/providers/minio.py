"""MinIO (S3-compatible) storage provider: self-hosted object storage."""

from __future__ import annotations

from collections.abc import Mapping
from typing import BinaryIO

from minio import Minio
from minio.error import S3Error
from urllib3.exceptions import HTTPError as TransportError

from conversion_storage.errors import (
    AuthenticationError,
    ConfigurationError,
    PermanentUploadError,
    StorageError,
    TransientNetworkError,
)
from conversion_storage.providers.base import SIGNED_URL_TTL, PropertyReader, StorageProvider

_AUTH_CODES = {"AccessDenied", "InvalidAccessKeyId", "SignatureDoesNotMatch", "ExpiredToken"}
_TRANSIENT_CODES = {"SlowDown", "RequestTimeout", "ServiceUnavailable", "InternalError", "XMinioServerNotInitialized"}

_TRUE = ("1", "true", "yes")


class MinIOStorage(StorageProvider):
    """Storage using MinIO. Endpoint is host[:port] without scheme, e.g. localhost:9000."""

    name = "minio"

    def __init__(
        self,
        endpoint: str,
        bucket_name: str,
        base_path: str = "",
        *,
        access_key: str | None = None,
        secret_key: str | None = None,
        secure: bool = True,
        client: Minio | None = None,
    ) -> None:
        super().__init__(base_path)
        self.endpoint = endpoint
        self.bucket_name = bucket_name
        self._client = client or Minio(
            endpoint,
            access_key=access_key,
            secret_key=secret_key,
            secure=secure,
        )

    @classmethod
    def from_environment(cls, endpoint: str, bucket_name: str, base_path: str = "", secure: bool = True) -> MinIOStorage:
        """Credentials from MINIO_ACCESS_KEY / MINIO_SECRET_KEY or AWS_* variables (minio's provider chain)."""
        from minio.credentials import ChainedProvider, EnvAWSProvider, EnvMinioProvider

        client = Minio(endpoint, secure=secure, credentials=ChainedProvider([EnvMinioProvider(), EnvAWSProvider()]))
        return cls(endpoint, bucket_name, base_path, client=client)

    @classmethod
    def from_properties(cls, properties: Mapping[str, str], *, verify: bool = True) -> MinIOStorage:
        """storageprovider.minio.{endpoint, accesskey, secretkey, bucketname, secure, basepath}."""
        reader = PropertyReader(properties, cls.name)
        endpoint = reader.required("endpoint")
        if "://" in endpoint:
            reader.invalid("endpoint", "must be host[:port] without a scheme, Eg localhost:9000")
        access_key = reader.required("accesskey")
        secret_key = reader.required("secretkey")
        bucket_name = reader.required("bucketname")
        secure = reader.optional("secure", "true").lower() in _TRUE
        base_path = reader.optional("basepath")
        reader.raise_if_invalid()

        provider = cls(
            endpoint,
            bucket_name,
            base_path,
            access_key=access_key,
            secret_key=secret_key,
            secure=secure,
        )
        if verify:
            provider.verify()
        return provider

    def verify(self) -> None:
        try:
            exists = self._client.bucket_exists(bucket_name=self.bucket_name)
        except S3Error as e:
            if e.code in _AUTH_CODES:
                raise AuthenticationError(f"MinIO rejected the credentials: {e}") from e
            raise self._verify_failed(e) from e
        except Exception as e:
            raise self._verify_failed(e) from e
        if not exists:
            raise ConfigurationError(f"A bucket with the name {self.bucket_name} does not exist")

    def _upload_stream(self, stream: BinaryIO, size: int, key: str, filename: str) -> None:
        self._client.put_object(
            bucket_name=self.bucket_name,
            object_name=key,
            data=stream,
            length=size,
            content_type=self.content_type_for(filename),
        )

    def _sign(self, key: str) -> str:
        return self._client.presigned_get_object(bucket_name=self.bucket_name, object_name=key, expires=SIGNED_URL_TTL)

    def _classify(self, exc: Exception) -> StorageError:
        details = {"vendor": self.name}
        if isinstance(exc, S3Error):
            details["code"] = exc.code
            if exc.code in _AUTH_CODES:
                return AuthenticationError(str(exc), details)
            if exc.code in _TRANSIENT_CODES:
                return TransientNetworkError(str(exc), details)
            return PermanentUploadError(str(exc), details)
        if isinstance(exc, TransportError):
            return TransientNetworkError(str(exc), details)
        return super()._classify(exc)
