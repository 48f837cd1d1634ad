"""Pytest configuration and shared fixtures."""

import io
from datetime import datetime, timezone
from pathlib import Path

import pytest
from PIL import Image

from assetscale.core.config import Settings
from assetscale.services.downscaler.base import BlobStore, DocumentStore
from assetscale.services.downscaler.exceptions import StorageError
from assetscale.services.downscaler.models import UploadEvent
from assetscale.services.downscaler.resizer import PillowResizer
from assetscale.services.downscaler.service import Collaborators

FIXED_NOW = datetime(2024, 5, 1, 10, 20, 30, 123000, tzinfo=timezone.utc)
FIXED_TIMESTAMP = "2024-05-01T10:20:30.123Z"


def make_image_bytes(width: int, height: int, image_format: str = "PNG") -> bytes:
    """Render a solid-colour image of the given size."""
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), color=(200, 40, 90)).save(buffer, format=image_format)
    return buffer.getvalue()


class FakeBlobStore(BlobStore):
    """In-memory blob store that records every call in order."""

    def __init__(self):
        self.objects: dict[tuple[str, str], bytes] = {}
        self.calls: list[tuple] = []
        self.fail_on: dict[str, Exception] = {}

    def _maybe_fail(self, operation: str) -> None:
        if operation in self.fail_on:
            raise self.fail_on[operation]

    def download(self, bucket_name: str, object_name: str, destination: Path) -> None:
        self.calls.append(("download", bucket_name, object_name))
        self._maybe_fail("download")
        if (bucket_name, object_name) not in self.objects:
            raise StorageError(f"File not found: gs://{bucket_name}/{object_name}")
        destination.write_bytes(self.objects[(bucket_name, object_name)])

    def upload(self, bucket_name, object_name, source, content_type=None):
        self.calls.append(("upload", bucket_name, object_name))
        self._maybe_fail("upload")
        self.objects[(bucket_name, object_name)] = Path(source).read_bytes()
        return (bucket_name, object_name)

    def delete(self, bucket_name: str, object_name: str) -> None:
        self.calls.append(("delete", bucket_name, object_name))
        self._maybe_fail("delete")
        self.objects.pop((bucket_name, object_name))

    def signed_read_url(self, handle, expires_at: datetime) -> str:
        self.calls.append(("sign", handle[0], handle[1]))
        self._maybe_fail("sign")
        return f"https://storage.example.com/{handle[0]}/{handle[1]}?Expires={int(expires_at.timestamp())}"

    @property
    def operations(self) -> list[str]:
        return [call[0] for call in self.calls]


class FakeDocumentStore(DocumentStore):
    """In-memory document store."""

    def __init__(self):
        self.documents: dict[str, dict] = {}
        self.calls: list[tuple] = []
        self.error: Exception | None = None

    def update(self, document_path, fields) -> None:
        self.calls.append((document_path, dict(fields)))
        if self.error is not None:
            raise self.error
        self.documents.setdefault(document_path, {}).update(fields)


@pytest.fixture
def test_settings(tmp_path):
    """Settings with scratch files kept under the test's tmp_path."""
    return Settings(SCRATCH_DIR=str(tmp_path / "scratch"))


@pytest.fixture
def blob_store():
    return FakeBlobStore()


@pytest.fixture
def document_store():
    return FakeDocumentStore()


@pytest.fixture
def collaborators(blob_store, document_store):
    return Collaborators(
        blob_store=blob_store,
        document_store=document_store,
        resizer=PillowResizer(),
    )


@pytest.fixture
def fixed_clock():
    return lambda: FIXED_NOW


@pytest.fixture
def upload_event():
    """Event for files/u1/assets/upload/pic.png with an origin reference."""
    return UploadEvent(
        bucket="app-bucket",
        name="files/u1/assets/upload/pic.png",
        content_type="image/png",
        metadata={"messageOrigin": "msgs/m1"},
    )
