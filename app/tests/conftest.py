import io
import os

import pytest
from fastapi.testclient import TestClient
from google.api_core import exceptions as gcp_exceptions

os.environ.setdefault("GCS_BUCKET", "test-bucket")
os.environ.setdefault("STORAGE_FOLDER", "uploads")

from filestore.main import app
from filestore.storage import get_storage_backend
from filestore.storage.gcs import GCSStorage


class FakeBlob:
    def __init__(self, bucket, name):
        self.bucket = bucket
        self.name = name
        self.metadata = None
        self._properties = {}

    def upload_from_file(self, file_obj, content_type=None, **kwargs):
        self.bucket.upload_calls.append(dict(kwargs, content_type=content_type))
        if self.bucket.upload_error is not None:
            raise self.bucket.upload_error
        data = file_obj.read()
        self.bucket.data[self.name] = data
        self.bucket.resources[self.name] = {
            "kind": "storage#object",
            "bucket": self.bucket.name,
            "name": self.name,
            "size": str(len(data)),
            "contentType": content_type or "application/octet-stream",
        }
        self._properties = dict(self.bucket.resources[self.name])

    def patch(self):
        if self.bucket.patch_error is not None:
            raise self.bucket.patch_error
        resource = self.bucket.resources[self.name]
        resource["metadata"] = dict(self.metadata or {})
        self._properties = dict(resource)

    def reload(self):
        if self.name in self.bucket.forbidden:
            raise gcp_exceptions.Forbidden(f"forbidden: {self.name}")
        if self.bucket.reload_error is not None:
            raise self.bucket.reload_error
        if self.name not in self.bucket.resources:
            raise gcp_exceptions.NotFound(f"not found: {self.name}")
        self._properties = dict(self.bucket.resources[self.name])

    def open(self, mode="r", **kwargs):
        self.bucket.opened.append(self.name)
        return io.BytesIO(self.bucket.data[self.name])

    def generate_signed_url(self, **kwargs):
        self.bucket.signed.append(dict(kwargs, name=self.name))
        return f"https://storage.googleapis.com/{self.bucket.name}/{self.name}?Signature=fake"


class FakeBucket:
    def __init__(self, name="test-bucket"):
        self.name = name
        self.data = {}
        self.resources = {}
        self.forbidden = set()
        self.opened = []
        self.signed = []
        self.upload_calls = []
        self.upload_error = None
        self.patch_error = None
        self.reload_error = None

    def blob(self, name):
        return FakeBlob(self, name)


@pytest.fixture()
def bucket():
    return FakeBucket()


@pytest.fixture()
def file_store(bucket):
    return GCSStorage(bucket, folder="uploads", upload_url_minutes=2, download_url_years=5)


@pytest.fixture()
def client(file_store):
    app.dependency_overrides[get_storage_backend] = lambda: file_store
    yield TestClient(app)
    app.dependency_overrides.clear()
