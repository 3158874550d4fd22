"""Google Cloud Storage provider against an in-memory fake of google.cloud.storage.Client."""

from __future__ import annotations

import io
from datetime import timedelta

import pytest
from google.api_core import exceptions as api_exceptions
from google.auth import exceptions as auth_exceptions

from conversion_storage.errors import (
    AuthenticationError,
    ConfigurationError,
    PermanentUploadError,
    TransientNetworkError,
)
from conversion_storage.providers import gcs
from conversion_storage.providers.gcs import GCPStorage


class FakeBlob:
    def __init__(self, bucket: "FakeBucket", name: str):
        self.bucket = bucket
        self.name = name

    def upload_from_string(self, data, content_type=None):
        self.bucket.calls.append("upload_from_string")
        self.bucket.store(self.name, bytes(data), content_type)

    def upload_from_file(self, file_obj, size=None, content_type=None):
        self.bucket.calls.append("upload_from_file")
        self.bucket.store(self.name, file_obj.read(size), content_type)

    def generate_signed_url(self, version=None, expiration=None, method=None):
        self.bucket.signed.append({"name": self.name, "version": version, "expiration": expiration, "method": method})
        seconds = int(expiration.total_seconds())
        return f"https://storage.googleapis.com/{self.bucket.name}/{self.name}?X-Goog-Expires={seconds}"


class FakeBucket:
    def __init__(self, name: str):
        self.name = name
        self.objects: dict[str, tuple[bytes, str | None]] = {}
        self.signed: list[dict] = []
        self.calls: list[str] = []
        self.fail_with: Exception | None = None

    def store(self, name, data, content_type):
        if self.fail_with is not None:
            raise self.fail_with
        self.objects[name] = (data, content_type)

    def blob(self, name: str) -> FakeBlob:
        return FakeBlob(self, name)


class FakeClient:
    def __init__(self, project=None, credentials=None):
        self.project = project
        self.credentials = credentials
        self.buckets: dict[str, FakeBucket] = {}
        self.service_account_checks: list[str] = []
        self.verify_error: Exception | None = None

    def bucket(self, name: str) -> FakeBucket:
        return self.buckets.setdefault(name, FakeBucket(name))

    def get_service_account_email(self, project=None):
        self.service_account_checks.append(project)
        if self.verify_error is not None:
            raise self.verify_error
        return "service-123@gs-project-accounts.iam.gserviceaccount.com"


@pytest.fixture
def client():
    return FakeClient(project="proj")


def test_bytes_upload_uses_bulk_upload_and_v4_signature(client):
    provider = GCPStorage("proj", "out", client=client)

    result = provider.put(b"hello", "a.zip", "job-123")

    bucket = client.buckets["out"]
    assert result.ok
    assert result.key == "job-123/a.zip"
    assert bucket.calls == ["upload_from_string"]
    assert bucket.objects == {"job-123/a.zip": (b"hello", "application/zip")}
    assert bucket.signed == [
        {"name": "job-123/a.zip", "version": "v4", "expiration": timedelta(minutes=30), "method": "GET"}
    ]
    assert result.url == "https://storage.googleapis.com/out/job-123/a.zip?X-Goog-Expires=1800"


def test_stream_upload_matches_bytes_upload(client):
    provider = GCPStorage("proj", "out", "reports", client=client)

    from_bytes = provider.put(b"hello", "a.zip", "job-1")
    stored_from_bytes = dict(client.buckets["out"].objects)
    client.buckets["out"].objects.clear()
    from_stream = provider.put_stream(io.BytesIO(b"hello"), 5, "a.zip", "job-1")

    assert client.buckets["out"].calls == ["upload_from_string", "upload_from_file"]
    assert from_bytes.key == from_stream.key == "reports/job-1/a.zip"
    assert client.buckets["out"].objects == stored_from_bytes


def test_verify_fetches_service_account(client):
    GCPStorage("proj", "out", client=client).verify()
    assert client.service_account_checks == ["proj"]


def test_verify_forbidden_is_authentication_error(client):
    client.verify_error = api_exceptions.Forbidden("caller does not have storage.buckets.get")
    with pytest.raises(AuthenticationError):
        GCPStorage("proj", "out", client=client).verify()


def test_verify_unknown_project_is_configuration_error(client):
    client.verify_error = api_exceptions.NotFound("project not found")
    with pytest.raises(ConfigurationError):
        GCPStorage("proj", "out", client=client).verify()


@pytest.mark.parametrize(
    "exc",
    [
        api_exceptions.ServiceUnavailable("backend down"),
        auth_exceptions.TransportError("connection refused"),
        api_exceptions.BadRequest("malformed request"),
    ],
)
def test_verify_other_failures_are_configuration_errors(client, exc):
    client.verify_error = exc
    with pytest.raises(ConfigurationError, match="gcp storage could not be verified") as info:
        GCPStorage("proj", "out", client=client).verify()
    assert info.value.__cause__ is exc


@pytest.mark.parametrize(
    "exc, expected",
    [
        (api_exceptions.ServiceUnavailable("backend down"), TransientNetworkError),
        (api_exceptions.TooManyRequests("rate limited"), TransientNetworkError),
        (api_exceptions.Unauthorized("bad token"), AuthenticationError),
        (api_exceptions.BadRequest("invalid object name"), PermanentUploadError),
    ],
)
def test_upload_errors_are_classified(client, exc, expected):
    provider = GCPStorage("proj", "out", client=client)
    client.bucket("out").fail_with = exc

    result = provider.put(b"hello", "a.zip", "job-123")

    assert result.url is None
    assert isinstance(result.error, expected)


def test_from_properties_reports_every_missing_key():
    with pytest.raises(ConfigurationError) as info:
        GCPStorage.from_properties({})
    message = info.value.message
    for key in ("credentialspath", "projectid", "bucketname"):
        assert f"storageprovider.gcp.{key} must have a value" in message


def test_from_properties_rejects_unreadable_credentials(tmp_path):
    with pytest.raises(ConfigurationError, match="valid credentials file"):
        GCPStorage.from_properties(
            {
                "storageprovider.gcp.credentialspath": str(tmp_path / "missing.json"),
                "storageprovider.gcp.projectid": "proj",
                "storageprovider.gcp.bucketname": "out",
            }
        )


def test_from_properties_expands_home_and_verifies(home, monkeypatch):
    (home / "creds.json").write_text("{}")
    opened: list[str] = []
    clients: list[FakeClient] = []

    def fake_credentials(path):
        opened.append(path)
        return "service-account-credentials"

    def fake_client(project=None, credentials=None):
        clients.append(FakeClient(project=project, credentials=credentials))
        return clients[-1]

    monkeypatch.setattr(gcs, "_credentials_from_file", fake_credentials)
    monkeypatch.setattr(gcs.storage, "Client", fake_client)

    provider = GCPStorage.from_properties(
        {
            "storageprovider.gcp.credentialspath": "~/creds.json",
            "storageprovider.gcp.projectid": "proj",
            "storageprovider.gcp.bucketname": "out",
            "storageprovider.gcp.basepath": "reports",
        }
    )

    assert opened == [f"{home}/creds.json"]
    assert clients[0].credentials == "service-account-credentials"
    assert clients[0].service_account_checks == ["proj"]
    assert provider.key_for("job-1", "a.zip") == "reports/job-1/a.zip"


def test_from_properties_rejects_non_service_account_file(home, monkeypatch):
    (home / "creds.json").write_text("{}")

    def bad_credentials(path):
        raise ValueError("Service account info was not in the expected format")

    monkeypatch.setattr(gcs, "_credentials_from_file", bad_credentials)

    with pytest.raises(ConfigurationError, match="not a service account key file"):
        GCPStorage.from_properties(
            {
                "storageprovider.gcp.credentialspath": "~/creds.json",
                "storageprovider.gcp.projectid": "proj",
                "storageprovider.gcp.bucketname": "out",
            }
        )
