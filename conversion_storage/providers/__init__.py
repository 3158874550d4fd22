"""Storage providers: gcp, aws, azure, oracle, do (DigitalOcean Spaces), minio."""

from collections.abc import Callable, Mapping

from conversion_storage.config import get_settings
from conversion_storage.errors import ConfigurationError
from conversion_storage.providers.azure import AzureStorage
from conversion_storage.providers.base import SIGNED_URL_TTL, StorageProvider, UploadResult, storage_key
from conversion_storage.providers.digitalocean import digitalocean_from_properties, digitalocean_storage
from conversion_storage.providers.gcs import GCPStorage
from conversion_storage.providers.minio import MinIOStorage
from conversion_storage.providers.oracle import OracleStorage
from conversion_storage.providers.s3 import AWSStorage

PROVIDER_FACTORIES: dict[str, Callable[..., StorageProvider]] = {
    "gcp": GCPStorage.from_properties,
    "aws": AWSStorage.from_properties,
    "azure": AzureStorage.from_properties,
    "oracle": OracleStorage.from_properties,
    "do": digitalocean_from_properties,
    "minio": MinIOStorage.from_properties,
}

_PROVIDER: StorageProvider | None = None


def build_storage_provider(name: str, properties: Mapping[str, str], *, verify: bool = True) -> StorageProvider:
    """Build (and by default verify) the named provider from its storageprovider.{name}.* properties."""
    tag = (name or "").strip().lower()
    factory = PROVIDER_FACTORIES.get(tag)
    if factory is None:
        raise ConfigurationError(
            f"Unknown storage provider {name!r}; expected one of {', '.join(PROVIDER_FACTORIES)}",
            {"vendor": tag},
        )
    return factory(properties, verify=verify)


def get_storage_provider() -> StorageProvider:
    """Return the configured storage provider (STORAGE_PROVIDER). Built and verified once per process."""
    global _PROVIDER
    if _PROVIDER is not None:
        return _PROVIDER
    settings = get_settings()
    _PROVIDER = build_storage_provider(settings.storage_provider, settings.storage_properties())
    return _PROVIDER


__all__ = [
    "SIGNED_URL_TTL",
    "PROVIDER_FACTORIES",
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
    "digitalocean_from_properties",
]
