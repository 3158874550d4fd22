"""S3 storage provider: AWS S3 and S3-compatible endpoints via boto3, SigV4 presigned URLs."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import BinaryIO

import boto3
from botocore.client import Config
from botocore.exceptions import (
    ClientError,
    ConnectionClosedError,
    ConnectTimeoutError,
    EndpointConnectionError,
    NoCredentialsError,
    PartialCredentialsError,
    ReadTimeoutError,
)

from conversion_storage.errors import (
    AuthenticationError,
    ConfigurationError,
    PermanentUploadError,
    StorageError,
    TransientNetworkError,
)
from conversion_storage.providers.base import SIGNED_URL_TTL, PropertyReader, StorageProvider

_AUTH_CODES = {
    "AccessDenied",
    "InvalidAccessKeyId",
    "SignatureDoesNotMatch",
    "ExpiredToken",
    "InvalidToken",
    "403",
}
_TRANSIENT_CODES = {"SlowDown", "RequestTimeout", "ServiceUnavailable", "InternalError", "Throttling"}
_NOT_FOUND_CODES = {"404", "NoSuchBucket", "NotFound"}


def known_regions() -> set[str]:
    """Every region botocore lists for s3, across partitions."""
    session = boto3.session.Session()
    regions: set[str] = set()
    for partition in session.get_available_partitions():
        regions.update(session.get_available_regions("s3", partition_name=partition))
    return regions


def _error_code(exc: ClientError) -> str:
    return str((exc.response.get("Error") or {}).get("Code") or "")


def _status_code(exc: ClientError) -> int:
    return int((exc.response.get("ResponseMetadata") or {}).get("HTTPStatusCode") or 0)


class AWSStorage(StorageProvider):
    """Storage using AWS S3, or any S3-compatible service when endpoint_url is set."""

    name = "aws"
    # The conversion service produces zip archives; S3 does not sniff content types.
    default_content_type = "application/zip"

    def __init__(
        self,
        bucket_name: str,
        base_path: str = "",
        *,
        region: str | None = None,
        access_key: str | None = None,
        secret_key: str | None = None,
        endpoint_url: str | None = None,
        vendor: str | None = None,
        client=None,
    ) -> None:
        if vendor:
            self.name = vendor
        super().__init__(base_path)
        self.bucket_name = bucket_name
        self.region = region
        self.endpoint_url = endpoint_url
        # Without explicit keys boto3 falls back to AWS_ACCESS_KEY_ID / AWS_SECRET_ACCESS_KEY and its credential chain.
        self._client = client or boto3.client(
            "s3",
            region_name=region,
            endpoint_url=endpoint_url,
            aws_access_key_id=access_key,
            aws_secret_access_key=secret_key,
            config=Config(signature_version="s3v4"),
        )

    @property
    def client(self):
        return self._client

    @classmethod
    def from_environment(cls, region: str, bucket_name: str, base_path: str = "") -> AWSStorage:
        return cls(bucket_name, base_path, region=region)

    @classmethod
    def from_properties(cls, properties: Mapping[str, str], *, verify: bool = True) -> AWSStorage:
        """storageprovider.aws.{region, accesskey, secretkey, bucketname, basepath}."""
        return s3_from_properties(properties, "aws", check_region=True, verify=verify)

    def verify(self) -> None:
        try:
            self._client.head_bucket(Bucket=self.bucket_name)
        except ClientError as e:
            code = _error_code(e)
            if code in _NOT_FOUND_CODES:
                raise ConfigurationError(f"A bucket with the name {self.bucket_name} does not exist") from e
            if code in _AUTH_CODES:
                raise AuthenticationError(f"Access to bucket {self.bucket_name} was denied: {e}") from e
            raise self._verify_failed(e) from e
        except Exception as e:
            raise self._verify_failed(e) from e

    def _upload_stream(self, stream: BinaryIO, size: int, key: str, filename: str) -> None:
        self._client.put_object(
            Bucket=self.bucket_name,
            Key=key,
            Body=stream,
            ContentLength=size,
            ContentType=self.content_type_for(filename),
        )

    def _sign(self, key: str) -> str:
        return self._client.generate_presigned_url(
            ClientMethod="get_object",
            Params={"Bucket": self.bucket_name, "Key": key},
            ExpiresIn=int(SIGNED_URL_TTL.total_seconds()),
        )

    def _classify(self, exc: Exception) -> StorageError:
        details = {"vendor": self.name}
        if isinstance(exc, (NoCredentialsError, PartialCredentialsError)):
            return AuthenticationError(str(exc), details)
        if isinstance(exc, (EndpointConnectionError, ConnectTimeoutError, ReadTimeoutError, ConnectionClosedError)):
            return TransientNetworkError(str(exc), details)
        if isinstance(exc, ClientError):
            code = _error_code(exc)
            status = _status_code(exc)
            details["code"] = code
            if code in _AUTH_CODES:
                return AuthenticationError(str(exc), details)
            if code in _TRANSIENT_CODES or status == 429 or status >= 500:
                return TransientNetworkError(str(exc), details)
            return PermanentUploadError(str(exc), details)
        return super()._classify(exc)


def s3_from_properties(
    properties: Mapping[str, str],
    vendor: str,
    *,
    endpoint_for: Callable[[str], str] | None = None,
    check_region: bool = False,
    verify: bool = True,
) -> AWSStorage:
    """Build an AWSStorage from storageprovider.{vendor}.* (region, accesskey, secretkey, bucketname, basepath)."""
    reader = PropertyReader(properties, vendor)
    region = reader.required(
        "region",
        f"You must set {reader.name('region')} to the name of a region, Eg eu-west-1" if check_region else None,
    )
    if region and check_region and region not in known_regions():
        reader.invalid(
            "region",
            "has been set to an unknown region, please check you have entered the region correctly",
        )
    access_key = reader.required("accesskey")
    secret_key = reader.required("secretkey")
    bucket_name = reader.required("bucketname")
    base_path = reader.optional("basepath")
    reader.raise_if_invalid()

    provider = AWSStorage(
        bucket_name,
        base_path,
        region=region,
        access_key=access_key,
        secret_key=secret_key,
        endpoint_url=endpoint_for(region) if endpoint_for else None,
        vendor=vendor,
    )
    if verify:
        provider.verify()
    return provider
