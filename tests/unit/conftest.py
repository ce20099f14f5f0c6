"""
Shared fixtures for unit tests.

The Google Cloud Storage SDK is replaced with small in-memory fakes that
mirror the parts of Client / Bucket / Blob the storage client touches.
Errors are real google-api-core exceptions so error handling is exercised
against the same types production sees.
"""

from datetime import datetime, timezone
from types import SimpleNamespace

import pytest
from google.api_core.exceptions import Forbidden, NotFound, ServiceUnavailable

from src.config.settings import Settings, get_settings
from src.infrastructure.storage.client import get_storage_client


ENV_VARS = [
    "ENVIRONMENT",
    "GCP_SERVICE_KEY_PATH",
    "GOOGLE_CLOUD_CREDENTIALS_BASE64",
    "GOOGLE_CLOUD_PROJECT_ID",
    "GOOGLE_CLOUD_CLIENT_EMAIL",
    "GOOGLE_CLOUD_PRIVATE_KEY",
    "GCS_DEFAULT_PROJECT_ID",
    "GCS_BUCKET_NAME",
    "GCS_MOCK_MODE",
    "LOG_LEVEL",
]

FIXED_NOW = datetime(2024, 1, 15, 9, 30, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch, tmp_path):
    """Run every test in an empty directory with no credential env vars."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)

    get_settings.cache_clear()
    get_storage_client.cache_clear()
    yield
    get_settings.cache_clear()
    get_storage_client.cache_clear()


@pytest.fixture
def make_settings():
    def _make(**overrides) -> Settings:
        return Settings(_env_file=None, **overrides)
    return _make


@pytest.fixture
def fixed_clock():
    return lambda: FIXED_NOW


class FakeBlob:
    def __init__(self, bucket: "FakeBucket", name: str) -> None:
        self.bucket = bucket
        self.name = name
        self.cache_control = None
        self.metadata = None
        self.content_type = None
        self.size = None
        self.md5_hash = None
        self.time_created = None
        self.upload_kwargs = None

    def upload_from_string(self, data, content_type=None, checksum=None):
        if self.bucket.fail_uploads:
            raise Forbidden("Permission denied on upload")

        self.upload_kwargs = {"content_type": content_type, "checksum": checksum}

        if self.bucket.drop_uploads:
            return

        self.bucket.objects[self.name] = {
            "data": data,
            "content_type": content_type,
            "cache_control": self.cache_control,
            "metadata": dict(self.metadata or {}),
        }

    def exists(self) -> bool:
        return self.name in self.bucket.objects

    def reload(self) -> None:
        stored = self.bucket.objects[self.name]
        self.size = len(stored["data"])
        self.content_type = stored["content_type"]
        self.md5_hash = "fake-md5"
        self.time_created = datetime(2024, 1, 15, tzinfo=timezone.utc)

    def delete(self) -> None:
        if self.bucket.fail_deletes:
            raise Forbidden("Caller lacks storage.objects.delete")
        if self.name not in self.bucket.objects:
            raise NotFound(f"No such object: {self.bucket.name}/{self.name}")
        del self.bucket.objects[self.name]


class FakeBucket:
    def __init__(self, name: str, created: bool = True) -> None:
        self.name = name
        self.created = created
        self.location = "ASIA-SOUTHEAST1" if created else None
        self.storage_class = "STANDARD" if created else None
        self.time_created = None
        self.iam_configuration = SimpleNamespace(uniform_bucket_level_access_enabled=False)
        self.objects: dict[str, dict] = {}
        self.policies: list = []
        self.fail_uploads = False
        self.drop_uploads = False
        self.fail_iam = False
        self.fail_deletes = False

    def exists(self) -> bool:
        return self.created

    def reload(self) -> None:
        if not self.created:
            raise NotFound(f"Bucket {self.name} not found")

    def blob(self, name: str) -> FakeBlob:
        return FakeBlob(self, name)

    def set_iam_policy(self, policy):
        if self.fail_iam:
            raise Forbidden("Caller lacks storage.buckets.setIamPolicy")
        self.policies.append(policy)
        return policy


class FakeGCSClient:
    def __init__(self) -> None:
        self.buckets: dict[str, FakeBucket] = {}
        self.unreachable = False
        self.fail_create = False
        self.create_calls: list[dict] = []

    def add_bucket(self, name: str, created: bool = True) -> FakeBucket:
        bucket = FakeBucket(name, created=created)
        self.buckets[name] = bucket
        return bucket

    def bucket(self, name: str) -> FakeBucket:
        if name not in self.buckets:
            self.add_bucket(name, created=False)
        return self.buckets[name]

    def list_buckets(self):
        if self.unreachable:
            raise ServiceUnavailable("Backend unavailable")
        return [bucket for bucket in self.buckets.values() if bucket.created]

    def create_bucket(self, bucket: FakeBucket, location=None):
        if self.fail_create:
            raise Forbidden("Caller lacks storage.buckets.create")
        self.create_calls.append({
            "name": bucket.name,
            "location": location,
            "storage_class": bucket.storage_class,
            "uniform_access": bucket.iam_configuration.uniform_bucket_level_access_enabled,
        })
        bucket.created = True
        bucket.location = location
        return bucket

    def list_blobs(self, bucket_name: str, prefix=None):
        if self.unreachable:
            raise ServiceUnavailable("Backend unavailable")
        objects = self.buckets[bucket_name].objects
        return [
            SimpleNamespace(name=key)
            for key in sorted(objects)
            if not prefix or key.startswith(prefix)
        ]


@pytest.fixture
def fake_gcs() -> FakeGCSClient:
    """A fake SDK client with the revault-files bucket already created."""
    client = FakeGCSClient()
    client.add_bucket("revault-files")
    return client
