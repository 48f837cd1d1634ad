"""
Event and result models for Downscaler service.

Cloud Storage delivers OBJECT_FINALIZE notifications as the object resource
JSON, either directly (Eventarc binary mode) or wrapped in a CloudEvents 1.0
envelope (structured mode).
See: https://cloud.google.com/storage/docs/json_api/v1/objects#resource
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path, PurePosixPath
from typing import Any, Dict, NamedTuple, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from assetscale.services.downscaler.exceptions import InvalidEventError

logger = logging.getLogger(__name__)


class UploadEvent(BaseModel):
    """
    Cloud Storage object metadata from an OBJECT_FINALIZE event.

    Only bucket and name are required; everything else is optional because
    GCS omits fields it has no value for.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    bucket: str = Field(..., description="Cloud Storage bucket name")
    name: str = Field(..., description="Full object key")
    content_type: Optional[str] = Field(
        None, alias="contentType", description="MIME type of the object"
    )
    metadata: Dict[str, str] = Field(
        default_factory=dict, description="Custom object metadata"
    )
    size: Optional[str] = Field(None, description="Object size in bytes (as string)")
    generation: Optional[str] = Field(None, description="Object generation number")
    time_created: Optional[datetime] = Field(
        None, alias="timeCreated", description="Timestamp when the object was created"
    )

    @field_validator("metadata", mode="before")
    @classmethod
    def _metadata_or_empty(cls, value: Any) -> Any:
        return {} if value is None else value

    @property
    def path(self) -> str:
        return self.name

    @property
    def directory(self) -> str:
        """Object key without the basename (posix semantics)."""
        return str(PurePosixPath(self.name).parent)

    @property
    def basename(self) -> str:
        return PurePosixPath(self.name).name

    @property
    def gcs_uri(self) -> str:
        return f"gs://{self.bucket}/{self.name}"

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "UploadEvent":
        """
        Build an UploadEvent from an Eventarc request body.

        Structured-mode CloudEvents carry the object resource under "data";
        binary-mode deliveries and raw GCS notifications are the resource itself.

        Args:
            payload: Decoded JSON request body

        Returns:
            Parsed UploadEvent

        Raises:
            InvalidEventError: If the payload is not an object resource
        """
        if not isinstance(payload, dict):
            raise InvalidEventError("Event payload must be a JSON object")

        if "specversion" in payload:
            data = payload.get("data")
            if not isinstance(data, dict):
                raise InvalidEventError("CloudEvent has no object data")
        else:
            data = payload

        try:
            return cls.model_validate(data)
        except ValidationError as e:
            logger.warning(
                "Storage event failed validation",
                extra={"error_count": e.error_count(), "errors": e.errors(include_url=False)},
            )
            raise InvalidEventError(f"Invalid storage event: {e}") from e


class FilterDecision(str, Enum):
    """Outcome of the event filter."""

    PROCEED = "proceed"
    SKIP_NOT_IMAGE = "skip-not-image"
    SKIP_ALREADY_PROCESSED = "skip-already-processed"


class Dimensions(NamedTuple):
    """Pixel dimensions of an image."""

    width: int
    height: int


@dataclass
class ScaledImage:
    """Output of the transform stage."""

    path: Path
    original_dimensions: Dimensions
    original_size_bytes: int
    resized: bool


@dataclass
class PublishedArtifact:
    """Uploaded scaled object and its signed read URL."""

    bucket: str
    object_name: str
    url: str


class RunResult(BaseModel):
    """Audit record returned by a successful run."""

    model_config = ConfigDict(populate_by_name=True)

    original_metadata: Dict[str, str] = Field(..., alias="originalMetadata")
    url: str = Field(..., description="Signed read URL of the published image")
    origin_updated: bool = Field(
        False, alias="originUpdated", description="Whether the origin document was updated"
    )
