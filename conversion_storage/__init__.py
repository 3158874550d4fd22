"""
Pluggable object storage for conversion artifacts.
Each provider uploads bytes under {basepath}/{job_id}/{filename} and returns a signed URL valid for 30 minutes.
"""

from conversion_storage.errors import (
    AuthenticationError,
    ConfigurationError,
    PermanentUploadError,
    StorageError,
    TransientNetworkError,
    UploadError,
)
from conversion_storage.providers import (
    SIGNED_URL_TTL,
    AWSStorage,
    AzureStorage,
    GCPStorage,
    MinIOStorage,
    OracleStorage,
    StorageProvider,
    UploadResult,
    build_storage_provider,
    digitalocean_storage,
    get_storage_provider,
    storage_key,
)

__all__ = [
    "SIGNED_URL_TTL",
    "StorageProvider",
    "UploadResult",
    "storage_key",
    "build_storage_provider",
    "get_storage_provider",
    "GCPStorage",
    "AWSStorage",
    "AzureStorage",
    "OracleStorage",
    "MinIOStorage",
    "digitalocean_storage",
    "StorageError",
    "ConfigurationError",
    "AuthenticationError",
    "UploadError",
    "TransientNetworkError",
    "PermanentUploadError",
]
