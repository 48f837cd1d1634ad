"""
Tests for Downscaler event and result models.
"""

import pytest

from assetscale.services.downscaler.exceptions import InvalidEventError
from assetscale.services.downscaler.models import RunResult, UploadEvent


def _object_resource(**overrides):
    resource = {
        "kind": "storage#object",
        "id": "app-bucket/files/u1/assets/upload/pic.png/1700000000000000",
        "bucket": "app-bucket",
        "name": "files/u1/assets/upload/pic.png",
        "contentType": "image/png",
        "size": "2048",
        "timeCreated": "2024-05-01T10:20:30.000Z",
        "generation": "1700000000000000",
        "metadata": {"messageOrigin": "msgs/m1"},
    }
    resource.update(overrides)
    return resource


def test_from_payload_binary_mode():
    """Test parsing of the object resource delivered as the request body."""
    event = UploadEvent.from_payload(_object_resource())

    assert event.bucket == "app-bucket"
    assert event.name == "files/u1/assets/upload/pic.png"
    assert event.path == event.name
    assert event.content_type == "image/png"
    assert event.metadata == {"messageOrigin": "msgs/m1"}
    assert event.size == "2048"
    assert event.time_created is not None


def test_from_payload_structured_cloud_event():
    """Test parsing of a structured-mode CloudEvent envelope."""
    payload = {
        "specversion": "1.0",
        "type": "google.cloud.storage.object.v1.finalized",
        "source": "//storage.googleapis.com/projects/_/buckets/app-bucket",
        "subject": "objects/files/u1/assets/upload/pic.png",
        "id": "evt-1",
        "time": "2024-05-01T10:20:30.000Z",
        "datacontenttype": "application/json",
        "data": _object_resource(),
    }

    event = UploadEvent.from_payload(payload)

    assert event.name == "files/u1/assets/upload/pic.png"
    assert event.metadata["messageOrigin"] == "msgs/m1"


def test_from_payload_without_optional_fields():
    event = UploadEvent.from_payload({"bucket": "app-bucket", "name": "files/u1/assets/upload/pic.png"})

    assert event.content_type is None
    assert event.metadata == {}


def test_from_payload_null_metadata():
    event = UploadEvent.from_payload(_object_resource(metadata=None))
    assert event.metadata == {}


def test_from_payload_missing_name():
    payload = _object_resource()
    del payload["name"]

    with pytest.raises(InvalidEventError, match="Invalid storage event"):
        UploadEvent.from_payload(payload)


def test_from_payload_cloud_event_without_data():
    with pytest.raises(InvalidEventError, match="no object data"):
        UploadEvent.from_payload({"specversion": "1.0", "id": "evt-1"})


def test_from_payload_rejects_non_object():
    with pytest.raises(InvalidEventError):
        UploadEvent.from_payload(["not", "an", "object"])


def test_path_helpers():
    event = UploadEvent(bucket="app-bucket", name="files/u1/assets/upload/pic.png")

    assert event.directory == "files/u1/assets/upload"
    assert event.basename == "pic.png"
    assert event.gcs_uri == "gs://app-bucket/files/u1/assets/upload/pic.png"


def test_run_result_serializes_with_wire_names():
    result = RunResult(
        original_metadata={"messageOrigin": "msgs/m1"},
        url="https://storage.example.com/signed",
        origin_updated=True,
    )

    assert result.model_dump(by_alias=True) == {
        "originalMetadata": {"messageOrigin": "msgs/m1"},
        "url": "https://storage.example.com/signed",
        "originUpdated": True,
    }
