"""
Downscaler pipeline.

Processes one finalized storage object:

    filter -> download -> transform -> upload -> sign -> release scratch
           -> delete original -> update origin document

Every step runs once and raises on failure; the invoking event delivery
decides whether to redeliver. The original object is only deleted after the
scaled copy is uploaded and its signed URL exists.
"""

import logging
import shutil
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import PurePosixPath
from typing import Callable, Optional

from assetscale.core.config import Settings, settings as default_settings
from assetscale.core.logging import gcs_uri_context
from assetscale.services.downscaler.base import BlobStore, DocumentStore, ImageResizer
from assetscale.services.downscaler.classifier import classify_event
from assetscale.services.downscaler.exceptions import DocumentStoreError
from assetscale.services.downscaler.imaging import file_size, read_dimensions
from assetscale.services.downscaler.models import (
    FilterDecision,
    PublishedArtifact,
    RunResult,
    ScaledImage,
    UploadEvent,
)
from assetscale.services.downscaler.scratch import ScratchSpace

logger = logging.getLogger(__name__)


@dataclass
class Collaborators:
    """External capabilities the pipeline is run against."""

    blob_store: BlobStore
    document_store: DocumentStore
    resizer: ImageResizer


def build_collaborators(settings: Settings) -> Collaborators:
    """Construct the production GCS, Firestore and resize collaborators.

    Meant to be called once per process and reused across runs.
    """
    from assetscale.services.downscaler.documents import FirestoreDocumentStore
    from assetscale.services.downscaler.resizer import create_resizer
    from assetscale.services.downscaler.storage import GCSBlobStore

    return Collaborators(
        blob_store=GCSBlobStore(
            project_id=settings.GCP_PROJECT_ID or None,
            signing_service_account_email=settings.SIGNING_SERVICE_ACCOUNT_EMAIL,
        ),
        document_store=FirestoreDocumentStore(
            project_id=settings.firestore_project,
            database=settings.FIRESTORE_DATABASE,
        ),
        resizer=create_resizer(settings),
    )


def processing_timestamp(now: datetime) -> str:
    """ISO-8601 UTC timestamp with millisecond precision, e.g. 2024-05-01T10:20:30.123Z."""
    return now.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def scaled_object_name(object_name: str, timestamp: str) -> str:
    """Name of the scaled file next to the original: ``<dir>/<timestamp>_<basename>``."""
    original = PurePosixPath(object_name)
    return str(original.parent / f"{timestamp}_{original.name}")


def output_object_name(scaled_name: str, output_dir: str) -> str:
    """Move a scaled name from the staging directory into its output sibling.

    Example:
        files/u1/assets/upload/T_pic.png -> files/u1/assets/images/T_pic.png
    """
    scaled = PurePosixPath(scaled_name)
    return str(scaled.parent.parent / output_dir / scaled.name)


def materialize(event: UploadEvent, scratch: ScratchSpace, blob_store: BlobStore) -> None:
    """Download the original object into the scratch space."""
    blob_store.download(event.bucket, event.name, scratch.original)
    logger.info(
        "The file has been downloaded",
        extra={"object_name": event.name, "local_path": str(scratch.original)},
    )


def transform(
    scratch: ScratchSpace,
    resizer: ImageResizer,
    max_width: int,
    target_height: int,
) -> ScaledImage:
    """Produce the scaled file from the downloaded original.

    Images wider than max_width are resized to target_height with
    proportional width; anything else is copied unchanged.

    Raises:
        ImageDecodeError: If the original is not a decodable image
        ResizeError: If the resize backend fails
    """
    size_bytes = file_size(scratch.original)
    dimensions = read_dimensions(scratch.original)

    logger.info(
        "Inspected original image",
        extra={
            "size_mb": round(size_bytes / (1024 * 1024), 2),
            "width": dimensions.width,
            "height": dimensions.height,
        },
    )

    if dimensions.width > max_width:
        logger.info(
            "Image too large, downscaling",
            extra={"max_width": max_width, "target_height": target_height},
        )
        resizer.resize(scratch.original, scratch.scaled, target_height)
        resized = True
    else:
        logger.info("No downscale needed", extra={"max_width": max_width})
        shutil.copyfile(scratch.original, scratch.scaled)
        resized = False

    logger.info("New file created", extra={"local_path": str(scratch.scaled)})

    return ScaledImage(
        path=scratch.scaled,
        original_dimensions=dimensions,
        original_size_bytes=size_bytes,
        resized=resized,
    )


def publish(
    event: UploadEvent,
    scaled: ScaledImage,
    output_name: str,
    scratch: ScratchSpace,
    collaborators: Collaborators,
    settings: Settings,
) -> RunResult:
    """Upload, sign, clean up and notify the origin document.

    Ordering matters: the original object is deleted only once the signed
    URL exists, and the origin document only learns the URL after that.
    """
    blob_store = collaborators.blob_store

    handle = blob_store.upload(event.bucket, output_name, scaled.path, event.content_type)
    logger.info(
        "New file uploaded to storage",
        extra={"bucket": event.bucket, "object_name": output_name},
    )

    url = blob_store.signed_read_url(handle, settings.SIGNED_URL_EXPIRES)
    artifact = PublishedArtifact(bucket=event.bucket, object_name=output_name, url=url)

    # Local disk is per-instance and small; free it before the remaining I/O.
    scratch.release()

    blob_store.delete(event.bucket, event.name)
    logger.info("Deleted the original upload", extra={"object_name": event.name})

    origin_updated = _update_origin(event, artifact, collaborators.document_store, settings)

    return RunResult(
        original_metadata=dict(event.metadata),
        url=artifact.url,
        origin_updated=origin_updated,
    )


def _update_origin(
    event: UploadEvent,
    artifact: PublishedArtifact,
    document_store: DocumentStore,
    settings: Settings,
) -> bool:
    origin_path = event.metadata.get(settings.ORIGIN_METADATA_KEY)
    if not origin_path:
        logger.warning(
            "Upload has no origin reference in its metadata, origin document not updated",
            extra={
                "object_name": event.name,
                "metadata_key": settings.ORIGIN_METADATA_KEY,
                "published_object": artifact.object_name,
            },
        )
        return False

    try:
        document_store.update(origin_path, {settings.ORIGIN_FIELD: artifact.url})
    except DocumentStoreError as e:
        # The artifact is already durable; report the gap instead of failing the run.
        logger.error(
            "Failed to update origin document",
            extra={
                "document_path": origin_path,
                "published_object": artifact.object_name,
                "error": str(e),
            },
            exc_info=True,
        )
        return False

    logger.info("Updated the origin document", extra={"document_path": origin_path})
    return True


def process_event(
    event: UploadEvent,
    collaborators: Collaborators,
    settings: Optional[Settings] = None,
    now: Optional[Callable[[], datetime]] = None,
) -> Optional[RunResult]:
    """
    Run the downscale pipeline for one finalized object.

    Args:
        event: The finalized object descriptor
        collaborators: Blob store, document store and resizer to run against
        settings: Settings override, defaults to the process settings
        now: Clock override used for the output name timestamp

    Returns:
        RunResult on success, None if the event was skipped

    Raises:
        StorageError: Download, upload, signing or deletion failed
        ImageDecodeError: The object is not a decodable image
        ResizeError: The resize backend failed
    """
    settings = settings or default_settings
    now = now or (lambda: datetime.now(timezone.utc))
    start_time = time.time()

    token = gcs_uri_context.set(event.gcs_uri)
    try:
        logger.info(
            "Loaded file",
            extra={
                "bucket": event.bucket,
                "object_name": event.name,
                "content_type": event.content_type,
            },
        )

        decision = classify_event(event, settings.STAGING_DIR_NAME)
        if decision == FilterDecision.SKIP_NOT_IMAGE:
            logger.warning(
                "This is not an image, skipping",
                extra={"object_name": event.name, "decision": decision.value},
            )
            return None
        if decision == FilterDecision.SKIP_ALREADY_PROCESSED:
            logger.info(
                "Object is outside the staging directory, skipping",
                extra={"object_name": event.name, "decision": decision.value},
            )
            return None

        scaled_name = scaled_object_name(event.name, processing_timestamp(now()))
        output_name = output_object_name(scaled_name, settings.OUTPUT_DIR_NAME)
        logger.info(
            "Derived output object name",
            extra={"scaled_name": scaled_name, "output_name": output_name},
        )

        with ScratchSpace(settings.scratch_root, event.name, scaled_name) as scratch:
            materialize(event, scratch, collaborators.blob_store)
            scaled = transform(
                scratch,
                collaborators.resizer,
                max_width=settings.MAX_IMAGE_WIDTH,
                target_height=settings.TARGET_HEIGHT,
            )
            result = publish(event, scaled, output_name, scratch, collaborators, settings)

        logger.info(
            "Downscale run finished",
            extra={
                "object_name": event.name,
                "output_name": output_name,
                "resized": scaled.resized,
                "origin_updated": result.origin_updated,
                "processing_time_ms": int((time.time() - start_time) * 1000),
                "outcome": "success",
            },
        )
        return result

    except Exception as e:
        logger.error(
            f"Downscale run failed: {e}",
            extra={
                "object_name": event.name,
                "error": str(e),
                "error_type": type(e).__name__,
                "processing_time_ms": int((time.time() - start_time) * 1000),
                "outcome": "failed",
            },
            exc_info=True,
        )
        raise

    finally:
        gcs_uri_context.reset(token)
