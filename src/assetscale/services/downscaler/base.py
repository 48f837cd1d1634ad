"""Abstract collaborator interfaces for the downscale pipeline."""

from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Any, Mapping


class BlobStore(ABC):
    """Abstract base class for blob storage."""

    @abstractmethod
    def download(self, bucket_name: str, object_name: str, destination: Path) -> None:
        """Download an object to a local file, overwriting it if present.

        Args:
            bucket_name: Bucket holding the object
            object_name: Object key
            destination: Local file path
        """
        pass

    @abstractmethod
    def upload(
        self,
        bucket_name: str,
        object_name: str,
        source: Path,
        content_type: str | None = None,
    ) -> Any:
        """Upload a local file.

        Returns:
            Backend handle for the new object, accepted by signed_read_url
        """
        pass

    @abstractmethod
    def delete(self, bucket_name: str, object_name: str) -> None:
        """Delete an object."""
        pass

    @abstractmethod
    def signed_read_url(self, handle: Any, expires_at: datetime) -> str:
        """Issue a signed GET URL for an uploaded object.

        Args:
            handle: Handle returned by upload
            expires_at: Absolute expiry of the URL

        Returns:
            Signed URL
        """
        pass


class DocumentStore(ABC):
    """Abstract base class for the document store holding origin records."""

    @abstractmethod
    def update(self, document_path: str, fields: Mapping[str, Any]) -> None:
        """Set fields on an existing document.

        Args:
            document_path: Slash-separated document path, e.g. "msgs/m1"
            fields: Field values to set
        """
        pass


class ImageResizer(ABC):
    """Abstract base class for image resize backends."""

    @abstractmethod
    def resize(self, source: Path, destination: Path, target_height: int) -> Path:
        """Scale an image to target_height, keeping its aspect ratio.

        Args:
            source: Path of the original image
            destination: Path to write the scaled image to
            target_height: Height of the output in pixels

        Returns:
            Path of the written image
        """
        pass

    @abstractmethod
    def get_backend_name(self) -> str:
        """Return backend identifier."""
        pass
