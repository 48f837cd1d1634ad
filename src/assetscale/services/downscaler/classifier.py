"""
Event classifier for the downscale pipeline.

Decides whether a finalized object should be processed:
- proceed: an image sitting in the staging directory
- skip-not-image: content type missing or outside image/*
- skip-already-processed: object lives anywhere but the staging directory,
  which includes the pipeline's own output in the images directory
"""

from pathlib import PurePosixPath

from assetscale.services.downscaler.models import FilterDecision, UploadEvent

IMAGE_MIME_PREFIX = "image/"


def is_image_mime_type(mime_type: str | None) -> bool:
    """
    Check whether a MIME type denotes a raster image.

    Examples:
        >>> is_image_mime_type("image/png")
        True
        >>> is_image_mime_type("IMAGE/JPEG; charset=binary")
        True
        >>> is_image_mime_type("text/plain")
        False
        >>> is_image_mime_type(None)
        False
    """
    if not mime_type:
        return False
    normalized_mime = mime_type.lower().split(";")[0].strip()
    return normalized_mime.startswith(IMAGE_MIME_PREFIX)


def in_staging_directory(object_name: str, staging_dir: str) -> bool:
    """Return True if the object's parent directory is the staging directory."""
    return PurePosixPath(object_name).parent.name == staging_dir


def classify_event(event: UploadEvent, staging_dir: str = "upload") -> FilterDecision:
    """
    Classify a storage event. Pure function, performs no I/O.

    Args:
        event: The finalized object descriptor
        staging_dir: Name of the directory holding unprocessed uploads

    Returns:
        FilterDecision for the event
    """
    if not is_image_mime_type(event.content_type):
        return FilterDecision.SKIP_NOT_IMAGE

    if not in_staging_directory(event.name, staging_dir):
        return FilterDecision.SKIP_ALREADY_PROCESSED

    return FilterDecision.PROCEED
