"""Azure Blob Storage provider: container created on demand, read-only SAS URLs."""

from __future__ import annotations

import os
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import BinaryIO

from azure.core.exceptions import (
    ClientAuthenticationError,
    HttpResponseError,
    ResourceExistsError,
    ServiceRequestError,
    ServiceResponseError,
)
from azure.storage.blob import BlobSasPermissions, BlobServiceClient, ContentSettings, generate_blob_sas

from conversion_storage.errors import (
    AuthenticationError,
    ConfigurationError,
    PermanentUploadError,
    StorageError,
    TransientNetworkError,
)
from conversion_storage.providers.base import SIGNED_URL_TTL, PropertyReader, StorageProvider

CONNECTION_STRING_ENV = "AZURE_STORAGE_CONNECTION_STRING"


def account_url(account_name: str) -> str:
    return f"https://{account_name}.blob.core.windows.net"


class AzureStorage(StorageProvider):
    """Storage using Azure Blob Storage. Credential: account key, SAS/token credential, or injected client."""

    name = "azure"

    def __init__(
        self,
        account_name: str,
        container_name: str,
        base_path: str = "",
        *,
        credential=None,
        client: BlobServiceClient | None = None,
    ) -> None:
        super().__init__(base_path)
        self.account_name = account_name
        self.container_name = container_name
        self._client = client or BlobServiceClient(account_url=account_url(account_name), credential=credential)
        if isinstance(credential, str):
            self._account_key = credential
        else:
            # Shared key credentials expose the key; token credentials sign with a user delegation key instead.
            self._account_key = getattr(credential or getattr(self._client, "credential", None), "account_key", None)

    @classmethod
    def from_connection_string(
        cls,
        container_name: str,
        base_path: str = "",
        connection_string: str | None = None,
    ) -> AzureStorage:
        """Uses AZURE_STORAGE_CONNECTION_STRING when connection_string is not given."""
        conn = connection_string or os.environ.get(CONNECTION_STRING_ENV, "")
        if not conn.strip():
            raise ConfigurationError(f"{CONNECTION_STRING_ENV} must be set", {"vendor": cls.name})
        client = BlobServiceClient.from_connection_string(conn)
        return cls(client.account_name, container_name, base_path, client=client)

    @classmethod
    def from_properties(cls, properties: Mapping[str, str], *, verify: bool = True) -> AzureStorage:
        """storageprovider.azure.{accountname, accountkey, containername, basepath}."""
        reader = PropertyReader(properties, cls.name)
        account_name = reader.required("accountname")
        account_key = reader.required("accountkey")
        container_name = reader.required("containername")
        base_path = reader.optional("basepath")
        reader.raise_if_invalid()

        provider = cls(account_name, container_name, base_path, credential=account_key)
        if verify:
            provider.verify()
        return provider

    def verify(self) -> None:
        try:
            self._client.get_account_information()
        except ClientAuthenticationError as e:
            raise AuthenticationError(f"Azure rejected the credentials for account {self.account_name}: {e}") from e
        except ServiceRequestError as e:
            raise ConfigurationError(f"Azure account {self.account_name} is unreachable: {e}") from e
        except HttpResponseError as e:
            if e.status_code in (401, 403):
                raise AuthenticationError(f"Azure rejected the credentials for account {self.account_name}: {e}") from e
            raise self._verify_failed(e) from e
        except Exception as e:
            raise self._verify_failed(e) from e

    def _container(self):
        container = self._client.get_container_client(self.container_name)
        try:
            container.create_container()
        except ResourceExistsError:
            pass
        return container

    def _upload_stream(self, stream: BinaryIO, size: int, key: str, filename: str) -> None:
        blob = self._container().get_blob_client(key)
        # Content-Disposition keeps the browser download name free of the {job_id}/ prefix.
        blob.upload_blob(
            stream,
            length=size,
            content_settings=ContentSettings(
                content_type=self.content_type_for(filename),
                content_disposition=f"attachment; filename={filename}",
            ),
        )

    def _sign(self, key: str) -> str:
        now = datetime.now(timezone.utc)
        expiry = now + SIGNED_URL_TTL
        signing = {"account_key": self._account_key}
        if not self._account_key:
            signing = {"user_delegation_key": self._client.get_user_delegation_key(now, expiry)}
        sas = generate_blob_sas(
            account_name=self.account_name,
            container_name=self.container_name,
            blob_name=key,
            permission=BlobSasPermissions(read=True),
            expiry=expiry,
            **signing,
        )
        blob = self._client.get_blob_client(container=self.container_name, blob=key)
        return f"{blob.url}?{sas}"

    def _classify(self, exc: Exception) -> StorageError:
        details = {"vendor": self.name}
        if isinstance(exc, ClientAuthenticationError):
            return AuthenticationError(str(exc), details)
        if isinstance(exc, (ServiceRequestError, ServiceResponseError)):
            return TransientNetworkError(str(exc), details)
        if isinstance(exc, HttpResponseError):
            status = exc.status_code or 0
            details["status"] = status
            if status in (401, 403):
                return AuthenticationError(str(exc), details)
            if status == 429 or status >= 500:
                return TransientNetworkError(str(exc), details)
            return PermanentUploadError(str(exc), details)
        return super()._classify(exc)
