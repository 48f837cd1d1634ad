"""Firestore access for origin document updates."""

import logging
from typing import Any, Mapping

from google.api_core.exceptions import GoogleAPIError, NotFound
from google.cloud import firestore

from assetscale.services.downscaler.base import DocumentStore
from assetscale.services.downscaler.exceptions import DocumentStoreError

logger = logging.getLogger(__name__)


class FirestoreDocumentStore(DocumentStore):
    """Document store backed by Cloud Firestore."""

    def __init__(self, project_id: str | None = None, database: str = "(default)"):
        self.client = firestore.Client(project=project_id, database=database)

    def update(self, document_path: str, fields: Mapping[str, Any]) -> None:
        """Update fields of an existing Firestore document.

        Raises:
            DocumentStoreError: If the document is missing or the write fails
        """
        try:
            self.client.document(document_path).update(dict(fields))
            logger.info(
                "Firestore document updated",
                extra={"document_path": document_path, "fields": sorted(fields)},
            )
        except NotFound as e:
            raise DocumentStoreError(f"Document not found: {document_path}") from e
        except (GoogleAPIError, ValueError) as e:
            raise DocumentStoreError(f"Failed to update document {document_path}: {e}") from e
