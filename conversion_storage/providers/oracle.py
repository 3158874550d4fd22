"""Oracle Object Storage provider: uploads, then issues a pre-authenticated request (PAR) as the download URL."""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import BinaryIO

import oci
from oci.object_storage.models import CreatePreauthenticatedRequestDetails

from conversion_storage.errors import (
    AuthenticationError,
    ConfigurationError,
    PermanentUploadError,
    StorageError,
    TransientNetworkError,
)
from conversion_storage.providers.base import SIGNED_URL_TTL, PropertyReader, StorageProvider, expand_home

logger = logging.getLogger("conversion_storage.providers.oracle")

# e.g. us-ashburn-1, eu-frankfurt-1, us-gov-ashburn-1
REGION_PATTERN = re.compile(r"^[a-z]{2}(-[a-z]+)+-\d+$")


def check_region(region: str) -> bool:
    """False when the identifier is malformed. Well-formed regions the SDK does not list are only warned about."""
    if not REGION_PATTERN.match(region):
        return False
    if not oci.regions.is_region(region):
        logger.warning("Oracle region %s is not known to this OCI SDK version; using it as given", region)
    return True


def load_config(config_file_path: str, profile: str | None = None) -> dict:
    """Parse an OCI config file (~ expanded); blank profile means DEFAULT."""
    return oci.config.from_file(
        file_location=expand_home(config_file_path),
        profile_name=(profile or "").strip() or oci.config.DEFAULT_PROFILE,
    )


class OracleStorage(StorageProvider):
    """Storage using Oracle Cloud Object Storage."""

    name = "oracle"

    def __init__(
        self,
        region: str,
        namespace: str,
        bucket_name: str,
        base_path: str = "",
        *,
        config: dict | None = None,
        signer=None,
        client=None,
    ) -> None:
        super().__init__(base_path)
        self.region = region
        self.namespace = namespace
        self.bucket_name = bucket_name
        if client is None:
            client_config = dict(config or {}, region=region)
            if signer is not None:
                client = oci.object_storage.ObjectStorageClient(client_config, signer=signer)
            else:
                client = oci.object_storage.ObjectStorageClient(client_config)
        self._client = client

    @classmethod
    def from_config_file(
        cls,
        region: str,
        namespace: str,
        bucket_name: str,
        base_path: str = "",
        *,
        config_file_path: str = oci.config.DEFAULT_LOCATION,
        profile: str | None = None,
    ) -> OracleStorage:
        """Defaults to ~/.oci/config and its DEFAULT profile."""
        return cls(region, namespace, bucket_name, base_path, config=load_config(config_file_path, profile))

    @classmethod
    def from_properties(cls, properties: Mapping[str, str], *, verify: bool = True) -> OracleStorage:
        """storageprovider.oracle.{ociconfigfilepath, profile, region, namespace, bucketname, basepath}."""
        reader = PropertyReader(properties, cls.name)
        config_file_path = reader.readable_file("ociconfigfilepath", what="config file")
        region = reader.required("region")
        if region and not check_region(region):
            reader.invalid(
                "region",
                "has been set to an unknown region, please check you have entered the region correctly",
            )
        namespace = reader.required("namespace")
        bucket_name = reader.required("bucketname")
        profile = reader.optional("profile")
        base_path = reader.optional("basepath")
        reader.raise_if_invalid()

        try:
            config = load_config(config_file_path, profile)
        except (oci.exceptions.ConfigFileNotFound, oci.exceptions.ProfileNotFound, oci.exceptions.InvalidConfig) as e:
            raise ConfigurationError(
                f"{reader.name('ociconfigfilepath')} could not be loaded: {e}",
                {"vendor": cls.name},
            ) from e
        provider = cls(region, namespace, bucket_name, base_path, config=config)
        if verify:
            provider.verify()
        return provider

    @property
    def endpoint(self) -> str:
        return self._client.base_client.endpoint

    def verify(self) -> None:
        try:
            self._client.get_bucket(self.namespace, self.bucket_name)
        except oci.exceptions.ServiceError as e:
            if e.status in (401, 403):
                raise AuthenticationError(f"Oracle rejected the credentials: {e.message}") from e
            if e.status == 404:
                raise ConfigurationError(
                    f"A bucket with the name {self.bucket_name} does not exist in namespace {self.namespace}"
                ) from e
            raise self._verify_failed(e) from e
        except Exception as e:
            raise self._verify_failed(e) from e

    def _upload_stream(self, stream: BinaryIO, size: int, key: str, filename: str) -> None:
        self._client.put_object(
            self.namespace,
            self.bucket_name,
            key,
            stream,
            content_length=size,
            content_type=self.content_type_for(filename),
        )

    def _sign(self, key: str) -> str:
        details = CreatePreauthenticatedRequestDetails(
            name=f"Converted file {key} download",
            object_name=key,
            access_type="ObjectRead",
            time_expires=datetime.now(timezone.utc) + SIGNED_URL_TTL,
            bucket_listing_action="Deny",
        )
        response = self._client.create_preauthenticated_request(self.namespace, self.bucket_name, details)
        return self.endpoint + response.data.access_uri

    def _classify(self, exc: Exception) -> StorageError:
        details = {"vendor": self.name}
        if isinstance(exc, oci.exceptions.ServiceError):
            details["status"] = exc.status
            details["code"] = exc.code
            if exc.status in (401, 403):
                return AuthenticationError(str(exc.message), details)
            if exc.status == 429 or exc.status >= 500:
                return TransientNetworkError(str(exc.message), details)
            return PermanentUploadError(str(exc.message), details)
        if isinstance(exc, (oci.exceptions.RequestException, oci.exceptions.ConnectTimeout)):
            return TransientNetworkError(str(exc), details)
        return super()._classify(exc)
