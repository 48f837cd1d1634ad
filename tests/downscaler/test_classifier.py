"""Unit tests for the event classifier."""

import pytest

from assetscale.services.downscaler.classifier import (
    classify_event,
    in_staging_directory,
    is_image_mime_type,
)
from assetscale.services.downscaler.models import FilterDecision, UploadEvent


def _event(name: str, content_type: str | None) -> UploadEvent:
    return UploadEvent(bucket="app-bucket", name=name, content_type=content_type)


@pytest.mark.parametrize(
    "mime_type,expected",
    [
        ("image/png", True),
        ("image/jpeg", True),
        ("Image/WebP", True),
        ("image/jpeg; charset=binary", True),
        ("text/plain", False),
        ("application/octet-stream", False),
        ("application/image", False),
        ("", False),
        (None, False),
    ],
)
def test_is_image_mime_type(mime_type, expected):
    assert is_image_mime_type(mime_type) is expected


@pytest.mark.parametrize(
    "object_name,expected",
    [
        ("files/u1/assets/upload/pic.png", True),
        ("upload/pic.png", True),
        ("files/u1/assets/images/pic.png", False),
        ("files/u1/assets/myupload/pic.png", False),
        ("files/u1/upload/assets/pic.png", False),
        ("pic.png", False),
    ],
)
def test_in_staging_directory(object_name, expected):
    assert in_staging_directory(object_name, "upload") is expected


def test_classify_image_in_staging_directory():
    event = _event("files/u1/assets/upload/pic.png", "image/png")
    assert classify_event(event) == FilterDecision.PROCEED


def test_classify_non_image():
    event = _event("files/u1/assets/upload/notes.txt", "text/plain")
    assert classify_event(event) == FilterDecision.SKIP_NOT_IMAGE


def test_classify_missing_content_type():
    event = _event("files/u1/assets/upload/pic.png", None)
    assert classify_event(event) == FilterDecision.SKIP_NOT_IMAGE


def test_classify_processed_output():
    event = _event("files/u1/assets/images/2024-05-01T10:20:30.123Z_pic.png", "image/png")
    assert classify_event(event) == FilterDecision.SKIP_ALREADY_PROCESSED


def test_content_type_checked_before_directory():
    """Test that a non-image outside staging reports the content type reason."""
    event = _event("files/u1/assets/images/notes.txt", "text/plain")
    assert classify_event(event) == FilterDecision.SKIP_NOT_IMAGE


def test_classify_custom_staging_directory():
    event = _event("files/u1/inbox/pic.png", "image/png")
    assert classify_event(event, staging_dir="inbox") == FilterDecision.PROCEED
    assert classify_event(event) == FilterDecision.SKIP_ALREADY_PROCESSED
