"""DigitalOcean Spaces: the S3 provider pointed at https://{region}.digitaloceanspaces.com."""

from __future__ import annotations

from collections.abc import Mapping

from conversion_storage.providers.s3 import AWSStorage, s3_from_properties

VENDOR = "do"


def spaces_endpoint(region: str) -> str:
    return f"https://{region}.digitaloceanspaces.com"


def digitalocean_storage(
    region: str,
    bucket_name: str,
    base_path: str = "",
    *,
    access_key: str | None = None,
    secret_key: str | None = None,
    client=None,
) -> AWSStorage:
    """Spaces keys are S3 keys; without them boto3 reads AWS_ACCESS_KEY_ID / AWS_SECRET_ACCESS_KEY."""
    return AWSStorage(
        bucket_name,
        base_path,
        region=region,
        access_key=access_key,
        secret_key=secret_key,
        endpoint_url=spaces_endpoint(region),
        vendor=VENDOR,
        client=client,
    )


def digitalocean_from_properties(properties: Mapping[str, str], *, verify: bool = True) -> AWSStorage:
    """storageprovider.do.{region, accesskey, secretkey, bucketname, basepath}."""
    return s3_from_properties(properties, VENDOR, endpoint_for=spaces_endpoint, verify=verify)
