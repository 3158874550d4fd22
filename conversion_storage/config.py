"""
Configuration loaded from environment variables.
Use a .env file or export variables; STORAGE_PROVIDER selects the backend and the
matching vendor variables become its storageprovider.{vendor}.* properties.
"""

from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-based settings. Required vendor values are checked when the provider is built."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    storage_provider: str = "gcp"  # gcp | aws | azure | oracle | do | minio

    # Google Cloud Storage: service account key file (needed for V4 signing)
    gcp_credentials_path: str = ""
    gcp_project_id: str = ""
    gcp_bucket_name: str = ""
    gcp_base_path: str = ""

    # Amazon S3
    aws_region: str = ""  # e.g. eu-west-1
    aws_access_key: str = ""
    aws_secret_key: str = ""
    aws_bucket_name: str = ""
    aws_base_path: str = ""

    # Azure Blob Storage (shared key)
    azure_account_name: str = ""
    azure_account_key: str = ""
    azure_container_name: str = ""
    azure_base_path: str = ""

    # Oracle Object Storage
    oracle_config_file_path: str = "~/.oci/config"
    oracle_profile: str = ""  # blank = DEFAULT
    oracle_region: str = ""  # e.g. us-ashburn-1
    oracle_namespace: str = ""
    oracle_bucket_name: str = ""
    oracle_base_path: str = ""

    # DigitalOcean Spaces
    do_region: str = ""  # e.g. ams3
    do_access_key: str = ""
    do_secret_key: str = ""
    do_bucket_name: str = ""
    do_base_path: str = ""

    # MinIO
    minio_endpoint: str = ""  # e.g. localhost:9000
    minio_access_key: str = ""
    minio_secret_key: str = ""
    minio_bucket_name: str = ""
    minio_secure: bool = True  # False for plain HTTP
    minio_base_path: str = ""

    @field_validator("storage_provider")
    @classmethod
    def normalize_provider(cls, v: str) -> str:
        return (v or "gcp").strip().lower()

    def storage_properties(self) -> dict[str, str]:
        """storageprovider.{vendor}.* property bag for the selected provider. Blank values are left out."""
        vendor = self.storage_provider
        values: dict[str, str] = {}
        if vendor == "gcp":
            values = {
                "credentialspath": self.gcp_credentials_path,
                "projectid": self.gcp_project_id,
                "bucketname": self.gcp_bucket_name,
                "basepath": self.gcp_base_path,
            }
        elif vendor in ("aws", "do"):
            values = {
                "region": getattr(self, f"{vendor}_region"),
                "accesskey": getattr(self, f"{vendor}_access_key"),
                "secretkey": getattr(self, f"{vendor}_secret_key"),
                "bucketname": getattr(self, f"{vendor}_bucket_name"),
                "basepath": getattr(self, f"{vendor}_base_path"),
            }
        elif vendor == "azure":
            values = {
                "accountname": self.azure_account_name,
                "accountkey": self.azure_account_key,
                "containername": self.azure_container_name,
                "basepath": self.azure_base_path,
            }
        elif vendor == "oracle":
            values = {
                "ociconfigfilepath": self.oracle_config_file_path,
                "profile": self.oracle_profile,
                "region": self.oracle_region,
                "namespace": self.oracle_namespace,
                "bucketname": self.oracle_bucket_name,
                "basepath": self.oracle_base_path,
            }
        elif vendor == "minio":
            values = {
                "endpoint": self.minio_endpoint,
                "accesskey": self.minio_access_key,
                "secretkey": self.minio_secret_key,
                "bucketname": self.minio_bucket_name,
                "secure": "true" if self.minio_secure else "false",
                "basepath": self.minio_base_path,
            }
        return {
            f"storageprovider.{vendor}.{key}": value.strip()
            for key, value in values.items()
            if value and value.strip()
        }


@lru_cache
def get_settings() -> Settings:
    """Cached settings instance (env read once)."""
    return Settings()
